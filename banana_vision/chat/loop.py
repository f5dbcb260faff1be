"""Interactive chat loop wrapper."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, TextIO

from ..cli_progress import ProgressTicker, retry_label
from ..errors import ValidationError
from ..orchestrator import RetryNotice
from ..request import Artifact
from ..studio import ImageStudio
from .command_registry import help_text
from .intent_parser import parse_intent

_TOAST_PREFIX = {"success": "✓", "error": "✗", "info": "•"}


def submit_with_progress(
    studio: ImageStudio,
    stream: TextIO | None = None,
    runner: asyncio.Runner | None = None,
) -> Artifact | None:
    """Run ``studio.submit`` behind a progress ticker that reports retries.

    Chat sessions pass their ``runner`` so every submit shares one event loop.
    """
    run = runner.run if runner is not None else asyncio.run
    if studio.state.loading or studio.validation_message() is not None:
        # Rejected before any request is sent; the studio records the toast.
        return run(studio.submit())
    editing = studio.state.mode == "edit"
    ticker = ProgressTicker(
        "Editing image" if editing else "Generating image",
        stream=stream,
        done_label="Edited in" if editing else "Generated in",
    )
    orchestrator = studio.orchestrator
    previous = orchestrator.on_retry

    def _on_retry(notice: RetryNotice) -> None:
        ticker.update_label(retry_label(notice.error.kind, notice.delay_ms, notice.remaining))
        if previous is not None:
            previous(notice)

    orchestrator.on_retry = _on_retry
    ticker.start_ticking()
    artifact: Artifact | None = None
    try:
        artifact = run(studio.submit())
    finally:
        orchestrator.on_retry = previous
        ticker.stop(done=artifact is not None)
    return artifact


class ChatLoop:
    def __init__(
        self,
        studio: ImageStudio,
        out_dir: Path,
        *,
        input_fn: Callable[[str], str] = input,
        print_fn: Callable[[str], None] = print,
        stream: TextIO | None = None,
    ) -> None:
        self.studio = studio
        self.out_dir = out_dir
        self._input = input_fn
        self._print = print_fn
        self._stream = stream
        self._seen_toasts: set[str] = set()
        # One loop for the whole session; the SDK client is bound to it.
        self._runner = asyncio.Runner()

    def close(self) -> None:
        self._runner.close()

    def run(self) -> None:
        self._print("banana-vision started. Type /help for commands.")
        try:
            while True:
                try:
                    line = self._input(f"[{self.studio.state.mode}] > ")
                except (EOFError, KeyboardInterrupt):
                    break
                if not self.handle_line(line):
                    break
        finally:
            self.close()

    def handle_line(self, line: str) -> bool:
        """Apply one line of input; return False when the session should end."""
        intent = parse_intent(line)
        action = intent.action
        state = self.studio.state
        if action == "noop":
            return True
        if action == "quit":
            return False
        if action == "help":
            self._print(help_text())
            return True
        if action == "unknown":
            self._print(f"Unknown command: /{intent.command_args.get('command')}. Type /help for commands.")
            return True
        if action in {"set_mode_generate", "set_mode_edit"}:
            self.studio.set_mode("generate" if action == "set_mode_generate" else "edit")
            self._print(f"Mode set to {state.mode}.")
            if state.mode == "edit" and state.source_image is None:
                self._print("Select an image with /use PATH.")
            return True
        if action == "set_source_image":
            path = intent.command_args.get("path")
            if not path:
                self._print("/use requires a path")
                return True
            try:
                source = self.studio.select_source_image(path)
            except ValidationError as exc:
                self._print(str(exc))
                return True
            self._print(f"Source image set ({source.mime_type}): {path}")
            return True
        if action == "clear_source_image":
            self.studio.clear_source_image()
            self._print("Source image cleared.")
            return True
        if action == "list_samples":
            for idx, sample in enumerate(self.studio.samples(), start=1):
                self._print(f"  {idx}. {sample}")
            return True
        if action == "use_sample":
            index = intent.command_args.get("index")
            if index is None:
                self._print("/sample requires a number (see /samples)")
                return True
            try:
                prompt = self.studio.use_sample(index)
            except ValidationError as exc:
                self._print(str(exc))
                return True
            self._print(f"Prompt: {prompt}")
            self._submit()
            return True
        if action == "save_result":
            target = Path(intent.command_args.get("path") or self.out_dir)
            try:
                saved = self.studio.save_result(target)
            except ValidationError as exc:
                self._print(str(exc))
                return True
            self._print(f"Saved to {saved}")
            return True
        if action == "submit":
            self.studio.set_prompt(intent.prompt or "")
            self._submit()
            return True
        return True

    def _submit(self) -> None:
        artifact = submit_with_progress(self.studio, stream=self._stream, runner=self._runner)
        self._flush_toasts()
        if artifact is not None:
            self._print(f"Type /save to write it to {self.out_dir}.")

    def _flush_toasts(self) -> None:
        for toast in self.studio.state.toasts.active():
            if toast.toast_id in self._seen_toasts:
                continue
            self._seen_toasts.add(toast.toast_id)
            self._print(f"{_TOAST_PREFIX.get(toast.kind, '•')} {toast.message}")
