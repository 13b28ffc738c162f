import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return float(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a float") from exc


@dataclass
class Config:
    gemini_api_key: str
    gemini_model_name: str
    system_prompt: str
    log_level: str
    log_dir: Path
    alarms_path: Path
    alarm_sound_path: Path
    alarm_ring_seconds: float
    enable_voice: bool


DEFAULT_SYSTEM_PROMPT = (
    "You are a concise alarm assistant. Use the alarm functions to create, list, "
    "update and cancel recurring alarms, and answer in the user's language."
)


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    return Config(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or "",
        gemini_model_name=os.getenv("GEMINI_MODEL_NAME", "gemini-2.5-flash"),
        system_prompt=os.getenv("SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_dir=Path(os.getenv("LOG_DIR", "logs")),
        alarms_path=Path(os.getenv("ALARM_STORAGE_PATH", "data/db.json")),
        alarm_sound_path=Path(os.getenv("ALARM_SOUND_PATH", "data/alarm.wav")),
        alarm_ring_seconds=_get_env_float("ALARM_RING_SECONDS", 30.0),
        enable_voice=_get_env_bool("ENABLE_VOICE", False),
    )


def setup_logging(log_level: str = "INFO", logs_dir: Path = Path("logs")) -> None:
    logs_dir.mkdir(parents=True, exist_ok=True)

    log_path = logs_dir / "alarms.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )
