from __future__ import annotations

import base64
import io
from pathlib import Path

import pytest
from PIL import Image

from banana_vision.errors import ValidationError
from banana_vision.request import (
    Artifact,
    ImageRequest,
    SourceImage,
    extension_for_mime_type,
    parse_data_url,
    strip_data_url_prefix,
)


def _png_bytes(size: tuple[int, int] = (8, 6)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (10, 20, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_strip_data_url_prefix() -> None:
    assert strip_data_url_prefix("data:image/png;base64,QUJD") == "QUJD"
    assert strip_data_url_prefix("QUJD") == "QUJD"
    assert strip_data_url_prefix("  QUJD\n") == "QUJD"


def test_parse_data_url() -> None:
    assert parse_data_url("data:image/webp;base64,QUJD") == ("image/webp", "QUJD")
    assert parse_data_url("QUJD") == (None, "QUJD")


def test_source_image_rejects_unsupported_types() -> None:
    with pytest.raises(ValidationError):
        SourceImage(data="QUJD", mime_type="application/pdf")


def test_source_image_normalizes_jpg_alias() -> None:
    source = SourceImage(data="QUJD", mime_type="IMAGE/JPG")
    assert source.mime_type == "image/jpeg"


def test_source_image_rejects_invalid_base64() -> None:
    source = SourceImage(data="not base64!!", mime_type="image/png")
    with pytest.raises(ValidationError):
        source.decoded()


def test_source_image_decodes_wrapped_base64() -> None:
    raw = _png_bytes((120, 90))
    wrapped = base64.encodebytes(raw).decode("ascii")
    assert "\n" in wrapped.strip()

    source = SourceImage(data=f"data:image/png;base64,{wrapped}", mime_type="image/png")

    assert source.decoded() == raw
    assert base64.b64encode(source.decoded()).decode("ascii") == "".join(wrapped.split())


def test_source_image_from_path_uses_suffix(tmp_path: Path) -> None:
    path = tmp_path / "photo.png"
    path.write_bytes(_png_bytes())

    source = SourceImage.from_path(path)

    assert source.mime_type == "image/png"
    assert source.decoded() == path.read_bytes()


def test_source_image_from_path_sniffs_unknown_suffix(tmp_path: Path) -> None:
    path = tmp_path / "upload.bin"
    path.write_bytes(_png_bytes())

    assert SourceImage.from_path(path).mime_type == "image/png"


def test_source_image_from_path_rejects_non_images(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")

    with pytest.raises(ValidationError):
        SourceImage.from_path(path)


def test_source_image_from_missing_path(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        SourceImage.from_path(tmp_path / "missing.png")


def test_source_image_from_data_url() -> None:
    source = SourceImage.from_data_url("data:image/jpeg;base64,QUJD")
    assert source.mime_type == "image/jpeg"
    assert source.payload == "QUJD"


def test_request_mode() -> None:
    assert ImageRequest("a cat").mode == "generate"
    assert ImageRequest("add a hat", SourceImage(data="QUJD", mime_type="image/png")).mode == "edit"


def test_artifact_save_writes_decoded_bytes(tmp_path: Path) -> None:
    data = _png_bytes()
    artifact = Artifact.from_inline_bytes(data, "image/png")

    path = artifact.save(tmp_path / "out")

    assert path.name.startswith("banana-vision-")
    assert path.suffix == ".png"
    assert path.read_bytes() == data
    assert artifact.data == base64.b64encode(data).decode("ascii")


def test_extension_for_mime_type() -> None:
    assert extension_for_mime_type("image/jpeg") == "jpg"
    assert extension_for_mime_type("image/webp") == "webp"
    assert extension_for_mime_type(None) == "png"
