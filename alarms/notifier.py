from __future__ import annotations

import logging
import math
import sys
import wave
from array import array
from pathlib import Path
from threading import Event, Lock, Thread
from time import monotonic
from typing import Callable, Optional

try:
    import winsound
except ImportError:  # pragma: no cover - non-Windows fallback
    winsound = None  # type: ignore

try:  # Optional local TTS for spoken alarm messages
    import pyttsx3
except ImportError:  # pragma: no cover - optional
    pyttsx3 = None  # type: ignore

logger = logging.getLogger(__name__)

RING_SAMPLE_RATE = 16000


def write_ring_tone(
    path: Path,
    beeps: int = 3,
    beep_seconds: float = 0.18,
    gap_seconds: float = 0.12,
    pitch_hz: float = 988.0,
) -> None:
    """Write a beep-beep-beep WAV pattern unless ``path`` already exists."""
    if path.exists():
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    tone_len = int(beep_seconds * RING_SAMPLE_RATE)
    gap_len = int(gap_seconds * RING_SAMPLE_RATE)
    ramp = max(1, tone_len // 10)
    pattern = array("h")
    for _ in range(beeps):
        for n in range(tone_len):
            envelope = min(1.0, n / ramp, (tone_len - n) / ramp)
            pattern.append(int(12000 * envelope * math.sin(2 * math.pi * pitch_hz * n / RING_SAMPLE_RATE)))
        pattern.extend([0] * gap_len)
    if sys.byteorder == "big":
        pattern.byteswap()
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(RING_SAMPLE_RATE)
        wav.writeframes(pattern.tobytes())
    logger.info("Wrote %s-beep ring tone to %s", beeps, path)


class LocalSpeaker:
    """Offline TTS wrapper around pyttsx3; silently unavailable without it."""

    def __init__(self, rate: int = 185):
        self._engine = pyttsx3.init() if pyttsx3 else None
        self._lock = Lock()
        if self._engine:
            try:
                self._engine.setProperty("rate", rate)
            except Exception:
                logger.debug("Failed to set pyttsx3 rate")

    @property
    def available(self) -> bool:
        return self._engine is not None

    def speak_async(self, text: str) -> bool:
        if not self._engine:
            return False
        Thread(target=self._speak, args=(text,), daemon=True).start()
        return True

    def _speak(self, text: str) -> None:
        with self._lock:
            try:
                self._engine.say(text)
                self._engine.runAndWait()
            except Exception:  # pragma: no cover - engine runtime errors
                logger.error("pyttsx3 failed to speak text", exc_info=True)


class AlarmNotifier:
    """Notification sink for firing alarms: rings, logs and relays messages.

    Each ``activate`` pushes the ring deadline ``ring_seconds`` ahead; a ring
    thread that is still running picks up the new deadline instead of
    stopping at the old one.
    """

    def __init__(
        self,
        sound_path: Optional[Path] = None,
        ring_seconds: float = 30.0,
        speaker: Optional[LocalSpeaker] = None,
        on_message: Optional[Callable[[str], None]] = None,
    ):
        self.sound_path = sound_path
        self.ring_seconds = max(0.0, ring_seconds)
        self.speaker = speaker
        self.on_message = on_message
        self._silence_event = Event()
        self._ring_thread: Optional[Thread] = None
        self._ring_until = 0.0
        self._lock = Lock()
        self._active = False

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._active

    def activate(self) -> None:
        with self._lock:
            self._active = True
            self._ring_until = monotonic() + self.ring_seconds
            was_silenced = self._silence_event.is_set()
            self._silence_event.clear()
            if self._ring_thread is not None:
                if was_silenced:
                    self._start_sound()
                return
            self._ring_thread = Thread(target=self._ring_loop, name="alarm-ring", daemon=True)
            self._ring_thread.start()

    def silence(self) -> None:
        with self._lock:
            self._active = False
            self._silence_event.set()
            self._stop_sound()

    def send_message(self, text: str) -> None:
        logger.info("%s", text)
        if self.on_message:
            try:
                self.on_message(text)
            except Exception:  # pragma: no cover - callback safety
                logger.error("on_message callback failed", exc_info=True)
        if self.speaker and self.speaker.available:
            self.speaker.speak_async(text)

    def _ring_loop(self) -> None:
        self._start_sound()
        while True:
            with self._lock:
                remaining = self._ring_until - monotonic()
                if self._silence_event.is_set() or remaining <= 0:
                    # Decided under the lock, so a concurrent activate starts a fresh thread.
                    if not self._silence_event.is_set():
                        logger.info("Alarm silenced after %.0f seconds", self.ring_seconds)
                        self._active = False
                        self._stop_sound()
                    self._ring_thread = None
                    return
            self._silence_event.wait(remaining)

    def _start_sound(self) -> None:
        if winsound and self.sound_path:
            try:
                write_ring_tone(self.sound_path)
                winsound.PlaySound(
                    str(self.sound_path),
                    winsound.SND_FILENAME | winsound.SND_LOOP | winsound.SND_ASYNC,
                )
                return
            except (RuntimeError, OSError):
                logger.warning("winsound.PlaySound failed, falling back to log ringing")
        logger.info("Alarm ringing...")

    @staticmethod
    def _stop_sound() -> None:
        if winsound:
            try:
                winsound.PlaySound(None, winsound.SND_PURGE)
            except RuntimeError:
                logger.debug("winsound.PlaySound purge failed")
