import json
import logging
import signal
from typing import Optional, Tuple

from alarms.cron import CronTimer
from alarms.dispatcher import CommandDispatcher
from alarms.manager import AlarmManager
from alarms.notifier import AlarmNotifier, LocalSpeaker
from alarms.scheduler import SchedulerRegistry
from alarms.storage import AlarmStore, JsonRecordStore
from config import Config, load_config, setup_logging

logger = logging.getLogger("alarms")

PROMPT = "> "


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


def parse_command_line(line: str) -> Tuple[str, dict]:
    """Split ``create_alarm {"cron": "0 9 * * *", "name": "Wake up"}`` into name and args."""
    name, _, raw_args = line.strip().partition(" ")
    raw_args = raw_args.strip()
    if not raw_args:
        return name, {}
    args = json.loads(raw_args)
    if not isinstance(args, dict):
        raise ValueError("Command arguments must be a JSON object")
    return name, args


class AssistantRuntime:
    def __init__(self, config: Config):
        self.config = config
        speaker = LocalSpeaker() if config.enable_voice else None
        if speaker and not speaker.available:
            logger.warning("ENABLE_VOICE is set but pyttsx3 is not installed")
        self.notifier = AlarmNotifier(
            sound_path=config.alarm_sound_path,
            ring_seconds=config.alarm_ring_seconds,
            speaker=speaker,
            on_message=self._print,
        )
        self.alarm_manager = AlarmManager(
            store=AlarmStore(JsonRecordStore(config.alarms_path)),
            registry=SchedulerRegistry(timer_factory=CronTimer),
            notifier=self.notifier,
        )
        self.dispatcher = CommandDispatcher(self.alarm_manager)
        self.chat = None
        if config.gemini_api_key:
            from gemini_chat import GeminiChatClient

            self.chat = GeminiChatClient(
                dispatcher=self.dispatcher,
                model_name=config.gemini_model_name,
                system_prompt=config.system_prompt,
                api_key=config.gemini_api_key,
            )
        else:
            logger.info("GEMINI_API_KEY not set; accepting direct commands like: get_alarms")

    def start(self) -> None:
        self.alarm_manager.start()

    def shutdown(self) -> None:
        self.alarm_manager.shutdown()

    def handle_line(self, line: str) -> Optional[str]:
        if not line.strip():
            return None
        if self.chat:
            return self.chat.send_text(line)
        try:
            name, args = parse_command_line(line)
        except ValueError as exc:
            return f"Error: {exc}"
        result = self.dispatcher.dispatch(name, args)
        if not result.handled:
            return f"Unknown command {name!r}. Use create_alarm, get_alarms, update_alarm or delete_alarm."
        return result.response_text

    @staticmethod
    def _print(text: str) -> None:
        print(f"\n{text}\n{PROMPT}", end="", flush=True)

    def run(self) -> None:
        while True:
            try:
                line = input(PROMPT)
            except EOFError:
                return
            if line.strip() in {"quit", "exit"}:
                return
            if line.strip() == "stop":
                self.notifier.silence()
                continue
            response = self.handle_line(line)
            if response:
                print(response)


def main() -> None:
    config = load_config()
    setup_logging(config.log_level, config.log_dir)
    signal.signal(signal.SIGINT, graceful_exit)

    runtime = AssistantRuntime(config)
    runtime.start()
    try:
        runtime.run()
    except KeyboardInterrupt:
        pass
    finally:
        runtime.shutdown()


if __name__ == "__main__":
    main()
