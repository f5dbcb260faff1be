"""Request and artifact records."""

from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import ValidationError
from .utils import now_ms

DEFAULT_ARTIFACT_MIME_TYPE = "image/png"
SUPPORTED_SOURCE_MIME_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/webp", "image/heic", "image/heif"}
)
_PIL_FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


def strip_data_url_prefix(value: str) -> str:
    """Return the raw base64 payload of a data URL, or the input when it has no prefix."""
    text = value.strip()
    payload = text.split(",", 1)[1] if "," in text else ""
    return payload or text


def parse_data_url(value: str) -> tuple[str | None, str]:
    text = value.strip()
    if not text.startswith("data:") or "," not in text:
        return None, text
    header, payload = text.split(",", 1)
    mime_type = header[len("data:"):].split(";", 1)[0].strip().lower()
    return mime_type or None, payload


def normalize_mime_type(value: str | None) -> str | None:
    lowered = str(value or "").strip().lower()
    if not lowered:
        return None
    if lowered == "image/jpg":
        return "image/jpeg"
    return lowered


def mime_type_for_suffix(suffix: str) -> str | None:
    lowered = str(suffix or "").strip().lower()
    if lowered == ".png":
        return "image/png"
    if lowered in {".jpg", ".jpeg"}:
        return "image/jpeg"
    if lowered == ".webp":
        return "image/webp"
    if lowered == ".heic":
        return "image/heic"
    if lowered == ".heif":
        return "image/heif"
    return None


def extension_for_mime_type(mime_type: str | None) -> str:
    normalized = normalize_mime_type(mime_type)
    if normalized == "image/jpeg":
        return "jpg"
    if normalized == "image/webp":
        return "webp"
    return "png"


def sniff_mime_type(data: bytes) -> str | None:
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError):
        return None
    return _PIL_FORMAT_MIME_TYPES.get(str(image_format or "").upper())


@dataclass(frozen=True)
class SourceImage:
    """An uploaded image to edit.

    ``data`` is base64 text and may still carry a ``data:`` URL prefix; the
    prefix is removed when the request is built.
    """

    data: str
    mime_type: str

    def __post_init__(self) -> None:
        normalized = normalize_mime_type(self.mime_type)
        if normalized not in SUPPORTED_SOURCE_MIME_TYPES:
            raise ValidationError(f"Unsupported source image type: {self.mime_type!r}")
        object.__setattr__(self, "mime_type", normalized)

    @property
    def payload(self) -> str:
        return strip_data_url_prefix(self.data)

    def decoded(self) -> bytes:
        """Raw image bytes; line breaks and other whitespace in the payload are ignored.

        The SDK re-encodes these bytes on the wire, so a canonical payload is
        sent back unchanged.
        """
        compact = "".join(self.payload.split())
        try:
            return base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("Source image data is not valid base64.") from exc

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str | None = None) -> "SourceImage":
        resolved = normalize_mime_type(mime_type) or sniff_mime_type(data)
        if resolved is None:
            raise ValidationError("Could not determine the source image type.")
        return cls(data=base64.b64encode(data).decode("ascii"), mime_type=resolved)

    @classmethod
    def from_path(cls, value: str | Path) -> "SourceImage":
        path = Path(value).expanduser()
        if not path.is_file():
            raise ValidationError(f"Source image not found: {path}")
        data = path.read_bytes()
        return cls.from_bytes(data, mime_type_for_suffix(path.suffix))

    @classmethod
    def from_data_url(cls, value: str) -> "SourceImage":
        mime_type, payload = parse_data_url(value)
        if mime_type is None:
            raise ValidationError("Expected a data URL with an image media type.")
        return cls(data=payload, mime_type=mime_type)


@dataclass(frozen=True)
class ImageRequest:
    instruction: str
    source_image: SourceImage | None = None

    @property
    def mode(self) -> str:
        return "edit" if self.source_image is not None else "generate"


@dataclass(frozen=True)
class Artifact:
    mime_type: str
    data: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    def save(self, out_dir: str | Path, *, stem: str = "banana-vision") -> Path:
        base_dir = Path(out_dir).expanduser()
        base_dir.mkdir(parents=True, exist_ok=True)
        path = base_dir / f"{stem}-{now_ms()}.{extension_for_mime_type(self.mime_type)}"
        path.write_bytes(self.to_bytes())
        return path

    @classmethod
    def from_inline_bytes(cls, data: bytes, mime_type: str | None) -> "Artifact":
        return cls(
            mime_type=normalize_mime_type(mime_type) or DEFAULT_ARTIFACT_MIME_TYPE,
            data=base64.b64encode(data).decode("ascii"),
        )
