"""Gemini image request orchestration with retry/backoff."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

from google import genai
from google.genai import types

from .config import DEFAULT_INITIAL_DELAY_MS, DEFAULT_MAX_RETRIES, DEFAULT_MODEL, Settings, load_settings
from .dryrun import DryRunClient
from .errors import ImageRequestError, NoArtifactError, UnknownError, classify_error
from .events import EventWriter
from .request import Artifact, ImageRequest, SourceImage, normalize_mime_type, strip_data_url_prefix

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS

    def delays_ms(self) -> list[int]:
        return [self.initial_delay_ms * (2**idx) for idx in range(self.max_retries)]


@dataclass(frozen=True)
class RetryNotice:
    attempt: int
    delay_ms: int
    remaining: int
    error: ImageRequestError


def build_contents(request: ImageRequest) -> list[types.Content]:
    parts: list[types.Part] = []
    source = request.source_image
    if source is not None:
        parts.append(
            types.Part(
                inline_data=types.Blob(
                    data=source.decoded(),
                    mime_type=source.mime_type,
                )
            )
        )
    parts.append(types.Part(text=request.instruction))
    return [types.Content(role="user", parts=parts)]


def extract_artifact(response: Any) -> Artifact:
    """Return the first inline image of the first candidate."""
    candidates: Sequence[Any] = getattr(response, "candidates", None) or []
    if not candidates:
        raise NoArtifactError("No image data found in the response: no candidates returned.")
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        data = getattr(inline_data, "data", None) if inline_data else None
        if not data:
            continue
        mime_type = getattr(inline_data, "mime_type", None)
        if isinstance(data, str):
            # Already base64 text.
            return Artifact(
                mime_type=normalize_mime_type(mime_type) or "image/png",
                data=strip_data_url_prefix(data),
            )
        return Artifact.from_inline_bytes(bytes(data), mime_type)
    raise NoArtifactError()


class ImageOrchestrator:
    """Sends one generate/edit request and retries transient failures.

    Each ``request_image`` call owns its own retry budget and delay; nothing
    about a call outlives it. Waits between attempts go through ``sleep`` and
    cannot be cancelled by the caller once started.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        policy: RetryPolicy | None = None,
        events: EventWriter | None = None,
        on_retry: Callable[[RetryNotice], None] | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self.model = model
        self.policy = policy or RetryPolicy()
        self.events = events
        self.on_retry = on_retry
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        client: Any | None = None,
        events: EventWriter | None = None,
        on_retry: Callable[[RetryNotice], None] | None = None,
    ) -> "ImageOrchestrator":
        if client is None and settings.dry_run:
            client = DryRunClient()
        return cls(
            client,
            model=settings.model,
            api_key=settings.api_key,
            policy=RetryPolicy(max_retries=settings.max_retries, initial_delay_ms=settings.initial_delay_ms),
            events=events,
            on_retry=on_retry,
        )

    def _resolve_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise UnknownError("Gemini API key not set. Set GEMINI_API_KEY, GOOGLE_API_KEY or API_KEY.")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _emit(self, event_type: str, **payload: Any) -> None:
        if self.events is not None:
            self.events.emit(event_type, **payload)

    async def request_image(self, instruction: str, source_image: SourceImage | None = None) -> Artifact:
        request = ImageRequest(instruction=instruction, source_image=source_image)
        contents = build_contents(request)
        delays = self.policy.delays_ms()
        attempt = 0
        while True:
            attempt += 1
            self._emit("image_request_attempt", attempt=attempt, mode=request.mode, model=self.model)
            try:
                client = self._resolve_client()
                response = await client.aio.models.generate_content(model=self.model, contents=contents)
            except Exception as exc:
                error = classify_error(exc)
                error.attempts = attempt
                if not error.retryable or attempt > len(delays):
                    self._emit(
                        "image_request_failed",
                        attempt=attempt,
                        kind=error.kind,
                        code=error.code,
                        error=str(error),
                    )
                    if error is exc:
                        raise
                    raise error from exc
                delay_ms = delays[attempt - 1]
                remaining = len(delays) - attempt + 1
                self._emit(
                    "image_request_retry",
                    attempt=attempt,
                    kind=error.kind,
                    code=error.code,
                    delay_ms=delay_ms,
                    remaining=remaining,
                )
                if self.on_retry is not None:
                    self.on_retry(RetryNotice(attempt=attempt, delay_ms=delay_ms, remaining=remaining, error=error))
                await self._sleep(delay_ms / 1000)
                continue

            try:
                artifact = extract_artifact(response)
            except NoArtifactError as exc:
                exc.attempts = attempt
                self._emit("image_request_failed", attempt=attempt, kind=exc.kind, code=None, error=str(exc))
                raise
            self._emit(
                "image_request_succeeded",
                attempt=attempt,
                mode=request.mode,
                mime_type=artifact.mime_type,
                payload_chars=len(artifact.data),
            )
            return artifact


async def request_image(
    instruction: str,
    source_image: SourceImage | None = None,
    *,
    settings: Settings | None = None,
    events: EventWriter | None = None,
) -> Artifact:
    orchestrator = ImageOrchestrator.from_settings(settings or load_settings(), events=events)
    return await orchestrator.request_image(instruction, source_image)
