"""Dry-run image client (offline)."""

from __future__ import annotations

import hashlib
import io
from types import SimpleNamespace
from typing import Any, Sequence

from google.genai import types
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

DRYRUN_SIZE = (1024, 1024)


class _DryRunModels:
    def __init__(self, owner: "DryRunClient") -> None:
        self._owner = owner

    async def generate_content(self, *, model: str, contents: Any, **_: Any) -> types.GenerateContentResponse:
        self._owner.calls.append({"model": model, "contents": contents})
        prompt, source = _split_contents(contents)
        png = _render(prompt, source)
        return types.GenerateContentResponse(
            candidates=[
                types.Candidate(
                    content=types.Content(
                        role="model",
                        parts=[
                            types.Part(text="dryrun"),
                            types.Part(inline_data=types.Blob(data=png, mime_type="image/png")),
                        ],
                    )
                )
            ]
        )


class DryRunClient:
    """Mimics ``genai.Client`` closely enough for ``client.aio.models.generate_content``."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.aio = SimpleNamespace(models=_DryRunModels(self))


def _split_contents(contents: Any) -> tuple[str, bytes | None]:
    items: Sequence[Any] = contents if isinstance(contents, (list, tuple)) else [contents]
    prompt = ""
    source: bytes | None = None
    for item in items:
        parts = getattr(item, "parts", None) or []
        for part in parts:
            text = getattr(part, "text", None)
            if text:
                prompt = str(text)
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data else None
            if data and source is None:
                source = bytes(data)
    return prompt, source


def _render(prompt: str, source: bytes | None) -> bytes:
    image = _open_source(source)
    if image is None:
        image = Image.new("RGB", DRYRUN_SIZE, _color_from_prompt(prompt))
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()
    draw.text((20, 20), f"dryrun\n{prompt[:60]}", fill=(255, 255, 255), font=font)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _open_source(source: bytes | None) -> Image.Image | None:
    if not source:
        return None
    try:
        with Image.open(io.BytesIO(source)) as opened:
            return opened.convert("RGB")
    except (UnidentifiedImageError, OSError):
        return None


def _color_from_prompt(prompt: str) -> tuple[int, int, int]:
    digest = hashlib.sha256(prompt.encode("utf-8")).digest()
    return digest[0], digest[1], digest[2]
