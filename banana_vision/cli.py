"""banana-vision CLI entrypoints."""

from __future__ import annotations

import argparse
import uuid
from pathlib import Path

from .chat.loop import ChatLoop, submit_with_progress
from .config import load_settings
from .errors import ValidationError
from .events import EventWriter
from .orchestrator import ImageOrchestrator
from .studio import ImageStudio
from .utils import load_dotenv


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--out", required=True, help="Output directory for images and events")
    parser.add_argument("--events", help="Path to events.jsonl")
    parser.add_argument("--model", help="Image model (default: gemini-2.5-flash-image)")
    parser.add_argument("--dry-run", dest="dry_run", action="store_true", default=None, help="Render offline placeholders")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="banana-vision", description="Generate or edit images with Gemini")
    sub = parser.add_subparsers(dest="command")

    generate = sub.add_parser("generate", help="Generate an image from a prompt")
    generate.add_argument("--prompt", required=True)
    _add_common_args(generate)

    edit = sub.add_parser("edit", help="Edit an image with an instruction")
    edit.add_argument("--image", required=True, help="Path to the image to edit")
    edit.add_argument("--prompt", required=True, help="Edit instruction")
    _add_common_args(edit)

    chat = sub.add_parser("chat", help="Interactive generate/edit session")
    _add_common_args(chat)

    return parser


def _build_studio(args: argparse.Namespace) -> tuple[ImageStudio, Path]:
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    events_path = Path(args.events) if args.events else out_dir / "events.jsonl"
    events = EventWriter(events_path, out_dir.name or uuid.uuid4().hex)
    settings = load_settings(model=args.model, dry_run=args.dry_run)
    orchestrator = ImageOrchestrator.from_settings(settings, events=events)
    events.emit("session_started", out_dir=str(out_dir), model=settings.model, dry_run=settings.dry_run)
    return ImageStudio(orchestrator, events=events), out_dir


def _run_once(studio: ImageStudio, out_dir: Path) -> int:
    artifact = submit_with_progress(studio)
    for toast in studio.state.toasts.active():
        print(toast.message)
    if artifact is None:
        if studio.last_error is not None:
            print(f"Details: {studio.last_error}")
        return 1
    saved = studio.save_result(out_dir)
    print(f"Saved to {saved}")
    return 0


def _handle_generate(args: argparse.Namespace) -> int:
    studio, out_dir = _build_studio(args)
    studio.set_prompt(args.prompt)
    return _run_once(studio, out_dir)


def _handle_edit(args: argparse.Namespace) -> int:
    studio, out_dir = _build_studio(args)
    studio.set_mode("edit")
    try:
        studio.select_source_image(args.image)
    except ValidationError as exc:
        print(str(exc))
        return 1
    studio.set_prompt(args.prompt)
    return _run_once(studio, out_dir)


def _handle_chat(args: argparse.Namespace) -> int:
    studio, out_dir = _build_studio(args)
    ChatLoop(studio, out_dir).run()
    if studio.events is not None:
        studio.events.emit("session_finished")
    return 0


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "generate":
        raise SystemExit(_handle_generate(args))
    if args.command == "edit":
        raise SystemExit(_handle_edit(args))
    if args.command == "chat":
        raise SystemExit(_handle_chat(args))
    parser.print_help()
    raise SystemExit(1)


if __name__ == "__main__":
    main()
