from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from google.genai import types

from .manager import AlarmManager, dump_yaml

logger = logging.getLogger(__name__)

_NUMBER = {"type": "integer", "description": "The number of the alarm."}
_CRON = {"type": "string", "description": "The cron of the alarm."}
_NAME = {"type": "string", "description": "The name of the alarm."}
_TIME_ZONE = {"type": "string", "description": "The IANA time zone of the alarm."}

FUNCTION_SCHEMAS: List[Dict[str, Any]] = [
    {
        "name": "create_alarm",
        "description": "Create an alarm.",
        "parameters": {
            "type": "object",
            "properties": {"cron": _CRON, "name": _NAME, "timeZone": _TIME_ZONE},
            "required": ["cron", "name"],
        },
    },
    {
        "name": "delete_alarm",
        "description": "Cancel an alarm.",
        "parameters": {
            "type": "object",
            "properties": {"number": _NUMBER},
            "required": ["number"],
        },
    },
    {
        "name": "get_alarms",
        "description": "Get alarms.",
    },
    {
        "name": "update_alarm",
        "description": "Update an alarm.",
        "parameters": {
            "type": "object",
            "properties": {"number": _NUMBER, "cron": _CRON, "name": _NAME, "timeZone": _TIME_ZONE},
            "required": ["number"],
        },
    },
]

ALARM_LIST_SCHEMA = {
    "alarms": {
        "type": "array",
        "items": {
            "type": "object",
            "properties": {"number": _NUMBER, "name": _NAME, "cron": _CRON, "timeZone": _TIME_ZONE},
        },
    },
}

_SCHEMA_TYPES = {
    "object": types.Type.OBJECT,
    "array": types.Type.ARRAY,
    "string": types.Type.STRING,
    "integer": types.Type.INTEGER,
}


def build_instructions() -> str:
    lines = [
        "You can manage multiple recurring alarms.",
        "Alarms are scheduled using specific times or cron expressions.",
        'Use format like "0 9 * * *" to set an alarm at 9am every day.',
        "",
        "``` yaml",
        dump_yaml(ALARM_LIST_SCHEMA).rstrip(),
        "```",
    ]
    return "\n".join(lines)


def _to_schema(node: Dict[str, Any]) -> types.Schema:
    return types.Schema(
        type=_SCHEMA_TYPES[node["type"]],
        description=node.get("description"),
        properties={key: _to_schema(value) for key, value in node.get("properties", {}).items()} or None,
        required=node.get("required"),
    )


def function_declarations() -> List[types.FunctionDeclaration]:
    declarations = []
    for schema in FUNCTION_SCHEMAS:
        params = schema.get("parameters")
        declarations.append(
            types.FunctionDeclaration(
                name=schema["name"],
                description=schema["description"],
                parameters=_to_schema(params) if params else None,
            )
        )
    return declarations


@dataclass
class DispatchResult:
    handled: bool
    response_text: Optional[str] = None
    action: Optional[str] = None


class CommandDispatcher:
    def __init__(self, alarm_manager: AlarmManager):
        self.alarm_manager = alarm_manager

    def dispatch(self, name: str, args: Optional[Dict[str, Any]] = None) -> DispatchResult:
        args = dict(args or {})
        logger.info("Dispatching %s(%s)", name, args)
        try:
            if name == "create_alarm":
                resp = self.alarm_manager.create_alarm(
                    cron=_optional_str(args.get("cron")) or "",
                    name=_optional_str(args.get("name")) or "",
                    time_zone=_optional_str(args.get("timeZone")),
                )
            elif name == "get_alarms":
                resp = self.alarm_manager.get_alarms()
            elif name == "delete_alarm":
                resp = self.alarm_manager.delete_alarm(_coerce_number(args.get("number")))
            elif name == "update_alarm":
                resp = self.alarm_manager.update_alarm(
                    _coerce_number(args.get("number")),
                    cron=_optional_str(args.get("cron")),
                    name=_optional_str(args.get("name")),
                    time_zone=_optional_str(args.get("timeZone")),
                )
            else:
                logger.warning("Unknown function %s", name)
                return DispatchResult(handled=False, action=name)
        except ValueError as exc:
            logger.warning("%s failed: %s", name, exc)
            return DispatchResult(handled=True, response_text=f"Error: {exc}", action=name)
        return DispatchResult(handled=True, response_text=resp, action=name)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _coerce_number(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Alarm number must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("#").isdigit():
        return int(value.strip().lstrip("#"))
    raise ValueError(f"Alarm number must be an integer, got {value!r}")
