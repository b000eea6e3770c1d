"""
Image payload helpers: uploaded reference photos and ``data:`` URIs.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
from dataclasses import dataclass
from pathlib import Path

PathLike = str | Path

_DATA_URI_PREFIX = "data:"


def encode_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"{_DATA_URI_PREFIX}{mime_type};base64,{encoded}"


def decode_data_uri(uri: str) -> tuple[bytes, str]:
    """
    Split a base64 ``data:`` URI into its raw bytes and mime type.
    """
    if not is_data_uri(uri):
        raise ValueError("Expected a base64 data URI.")
    header, _, payload = uri.partition(",")
    mime_type = header[len(_DATA_URI_PREFIX):].split(";", 1)[0] or "application/octet-stream"
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Data URI payload is not valid base64.") from exc
    return data, mime_type


def is_data_uri(value: object) -> bool:
    if not isinstance(value, str) or not value.startswith(_DATA_URI_PREFIX):
        return False
    header, sep, payload = value.partition(",")
    return bool(sep) and header.endswith(";base64") and bool(payload)


@dataclass(frozen=True)
class ReferenceImage:
    """
    A user-uploaded photo used to condition character likeness.

    Held in memory for one generation request and shared read-only by every
    task that needs it.
    """

    data: bytes
    mime_type: str = "image/jpeg"

    def __post_init__(self) -> None:
        if not self.data:
            raise ValueError("Reference image must not be empty.")
        if not self.mime_type.startswith("image/"):
            raise ValueError(f"Unsupported reference image type {self.mime_type!r}.")

    @classmethod
    def from_path(cls, path: PathLike) -> "ReferenceImage":
        image_path = Path(path).expanduser()
        mime_type, _ = mimetypes.guess_type(image_path.name)
        return cls(data=image_path.read_bytes(), mime_type=mime_type or "image/jpeg")

    @classmethod
    def from_data_uri(cls, uri: str) -> "ReferenceImage":
        data, mime_type = decode_data_uri(uri)
        return cls(data=data, mime_type=mime_type)

    def to_data_uri(self) -> str:
        return encode_data_uri(self.data, self.mime_type)

    def __repr__(self) -> str:
        return f"ReferenceImage(mime_type={self.mime_type!r}, size={len(self.data)})"
