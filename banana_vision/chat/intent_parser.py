"""Parse user input into structured intents."""

from __future__ import annotations

import re
import shlex

from .command_registry import COMMAND_ALIASES, COMMAND_MAP
from .intent_schema import Intent

_SLASH_PATTERN = re.compile(r"^/(\w+)(?:\s+(.*))?$")


def _parse_path_args(arg: str) -> list[str]:
    if not arg:
        return []
    try:
        parts = shlex.split(arg)
    except ValueError:
        parts = arg.split()
    return [part for part in parts if part]


def _parse_single_path_arg(arg: str) -> str:
    """Parse a single path argument (best-effort).

    Accepts quoted paths for spaces. If the user forgets to quote a path that
    contains spaces, join tokens back together as a last-resort.
    """
    parts = _parse_path_args(arg)
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    return " ".join(parts)


def _parse_index_arg(arg: str) -> int | None:
    try:
        value = int(arg.strip())
    except ValueError:
        return None
    if value < 1:
        return None
    return value - 1


def parse_intent(text: str) -> Intent:
    raw = text.strip()
    if not raw:
        return Intent(action="noop", raw=text)
    match = _SLASH_PATTERN.match(raw)
    if not match:
        return Intent(action="submit", raw=text, prompt=raw)

    command = match.group(1).lower()
    command = COMMAND_ALIASES.get(command, command)
    arg = (match.group(2) or "").strip()
    spec = COMMAND_MAP.get(command)
    if spec is None:
        return Intent(action="unknown", raw=text, command_args={"command": command, "arg": arg})
    if spec.arg_kind == "single_path":
        return Intent(action=spec.action, raw=text, command_args={"path": _parse_single_path_arg(arg)})
    if spec.arg_kind == "optional_path":
        path = _parse_single_path_arg(arg)
        return Intent(action=spec.action, raw=text, command_args={"path": path or None})
    if spec.arg_kind == "index":
        return Intent(action=spec.action, raw=text, command_args={"index": _parse_index_arg(arg)})
    return Intent(action=spec.action, raw=text, command_args={})
