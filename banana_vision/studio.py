"""Application state for the generate/edit session and its event handlers."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator

from .errors import ImageRequestError, ValidationError, user_message
from .events import EventWriter
from .orchestrator import ImageOrchestrator
from .request import Artifact, SourceImage

MODES = ("generate", "edit")
TOAST_KINDS = ("success", "error", "info")
TOAST_TTL_MS = 5000

SAMPLE_PROMPTS: dict[str, tuple[str, ...]] = {
    "generate": (
        "A futuristic city made of translucent crystal at sunset",
        "A cute robot watering plants on Mars, digital art",
        "Oil painting of a cozy cabin in snowy mountains",
    ),
    "edit": (
        "Add sunglasses",
        "Change the background to a cyberpunk city",
        "Make it look like a vintage pencil sketch",
    ),
}

EMPTY_PROMPT_MESSAGE = "Please enter a prompt."
MISSING_SOURCE_MESSAGE = "Please upload an image to edit."
BUSY_MESSAGE = "A request is already in progress."
GENERATED_MESSAGE = "Image generated successfully!"
EDITED_MESSAGE = "Image edited successfully!"


@dataclass(frozen=True)
class Toast:
    toast_id: str
    kind: str
    message: str
    created_at: float

    def expired(self, now: float, ttl_ms: int = TOAST_TTL_MS) -> bool:
        return (now - self.created_at) * 1000 >= ttl_ms


class ToastBoard:
    """Time-ordered notifications, each expiring on its own."""

    def __init__(self, ttl_ms: int = TOAST_TTL_MS, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._toasts: dict[str, Toast] = {}

    def __iter__(self) -> Iterator[Toast]:
        return iter(list(self._toasts.values()))

    def __len__(self) -> int:
        return len(self._toasts)

    def add(self, kind: str, message: str) -> Toast:
        if kind not in TOAST_KINDS:
            raise ValueError(f"Unknown toast kind: {kind}")
        toast = Toast(
            toast_id=uuid.uuid4().hex[:12],
            kind=kind,
            message=message,
            created_at=self._clock(),
        )
        self._toasts[toast.toast_id] = toast
        return toast

    def dismiss(self, toast_id: str) -> bool:
        return self._toasts.pop(toast_id, None) is not None

    def expire(self, now: float | None = None) -> list[Toast]:
        current = self._clock() if now is None else now
        removed = [toast for toast in self._toasts.values() if toast.expired(current, self.ttl_ms)]
        for toast in removed:
            del self._toasts[toast.toast_id]
        return removed

    def active(self) -> list[Toast]:
        self.expire()
        return list(self._toasts.values())


@dataclass
class AppState:
    mode: str = "generate"
    prompt: str = ""
    loading: bool = False
    result: Artifact | None = None
    source_image: SourceImage | None = None
    toasts: ToastBoard = field(default_factory=ToastBoard)


class ImageStudio:
    def __init__(
        self,
        orchestrator: ImageOrchestrator,
        *,
        state: AppState | None = None,
        events: EventWriter | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.state = state or AppState()
        self.events = events
        self.last_error: ImageRequestError | None = None

    def _emit(self, event_type: str, **payload: object) -> None:
        if self.events is not None:
            self.events.emit(event_type, **payload)

    def set_mode(self, mode: str) -> None:
        normalized = str(mode or "").strip().lower()
        if normalized not in MODES:
            raise ValidationError(f"Unknown mode: {mode!r} (expected one of {', '.join(MODES)})")
        self.state.mode = normalized
        self._emit("mode_changed", mode=normalized)

    def set_prompt(self, text: str) -> None:
        self.state.prompt = text

    def samples(self) -> tuple[str, ...]:
        return SAMPLE_PROMPTS[self.state.mode]

    def use_sample(self, index: int) -> str:
        options = self.samples()
        if not 0 <= index < len(options):
            raise ValidationError(f"Sample index out of range: {index + 1}")
        self.state.prompt = options[index]
        return self.state.prompt

    def select_source_image(self, image: SourceImage | str | Path) -> SourceImage:
        source = image if isinstance(image, SourceImage) else SourceImage.from_path(image)
        self.state.source_image = source
        self._emit("source_image_selected", mime_type=source.mime_type, payload_chars=len(source.payload))
        return source

    def clear_source_image(self) -> None:
        self.state.source_image = None
        self._emit("source_image_cleared")

    def validation_message(self) -> str | None:
        if not self.state.prompt.strip():
            return EMPTY_PROMPT_MESSAGE
        if self.state.mode == "edit" and self.state.source_image is None:
            return MISSING_SOURCE_MESSAGE
        return None

    async def submit(self) -> Artifact | None:
        """Run one generate/edit request and record the outcome as a toast."""
        if self.state.loading:
            self.state.toasts.add("info", BUSY_MESSAGE)
            return None
        message = self.validation_message()
        if message:
            self.state.toasts.add("error", message)
            return None

        mode = self.state.mode
        source = self.state.source_image if mode == "edit" else None
        self.state.loading = True
        self.state.result = None
        self.last_error = None
        try:
            artifact = await self.orchestrator.request_image(self.state.prompt.strip(), source)
        except ImageRequestError as exc:
            self.last_error = exc
            self.state.toasts.add("error", user_message(exc))
            self._emit("submit_failed", mode=mode, kind=exc.kind, attempts=exc.attempts, error=str(exc))
            return None
        finally:
            self.state.loading = False

        self.state.result = artifact
        self.state.toasts.add("success", GENERATED_MESSAGE if mode == "generate" else EDITED_MESSAGE)
        self._emit("submit_succeeded", mode=mode, mime_type=artifact.mime_type)
        return artifact

    def save_result(self, out_dir: str | Path) -> Path:
        if self.state.result is None:
            raise ValidationError("No image to save yet.")
        path = self.state.result.save(out_dir)
        self._emit("result_saved", image_path=str(path))
        return path

    def expire_toasts(self, now: float | None = None) -> list[Toast]:
        return self.state.toasts.expire(now)
