"""Shared slash-command metadata for parse + chat handling."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandSpec:
    command: str
    action: str
    arg_kind: str
    help: str


COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec("generate", "set_mode_generate", "none", "Switch to generate mode"),
    CommandSpec("edit", "set_mode_edit", "none", "Switch to edit mode"),
    CommandSpec("use", "set_source_image", "single_path", "Select the image to edit"),
    CommandSpec("clear", "clear_source_image", "none", "Remove the selected image"),
    CommandSpec("samples", "list_samples", "none", "Show sample prompts for the current mode"),
    CommandSpec("sample", "use_sample", "index", "Submit sample prompt N"),
    CommandSpec("save", "save_result", "optional_path", "Save the last result (default: session dir)"),
    CommandSpec("help", "help", "none", "Show help"),
    CommandSpec("quit", "quit", "none", "Leave the session"),
)

COMMAND_MAP = {spec.command: spec for spec in COMMANDS}
COMMAND_ALIASES = {"exit": "quit", "q": "quit"}


def help_text() -> str:
    width = max(len(spec.command) for spec in COMMANDS) + 1
    lines = ["Type a prompt to submit it in the current mode, or a command:"]
    for spec in COMMANDS:
        lines.append(f"  /{spec.command.ljust(width)} {spec.help}")
    return "\n".join(lines)
