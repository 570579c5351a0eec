"""Decode attachment payloads and write them wherever the caller wants."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import mimetypes
import os
import re
from pathlib import Path
from typing import BinaryIO, Callable

from .models import MessagePart, MessagePartBody, ProcessedAttachment

logger = logging.getLogger(__name__)

# Any callable that hands back a writable, closable binary resource for a name.
SinkFactory = Callable[[str], BinaryIO]

_URLSAFE_B64 = re.compile(r"[A-Za-z0-9_-]*={0,2}")
_PATH_SEPARATORS = re.compile(r"[/\\]")


class AttachmentDecodeError(ValueError):
    """Inline data was not valid padded URL-safe base64."""


def decode_body_data(data: str) -> bytes:
    """Strictly decode Gmail's URL-safe base64 body data."""
    if len(data) % 4 or not _URLSAFE_B64.fullmatch(data):
        raise AttachmentDecodeError(f"Malformed URL-safe base64 payload ({len(data)} chars)")
    try:
        return base64.urlsafe_b64decode(data)
    except (binascii.Error, ValueError) as exc:
        raise AttachmentDecodeError(str(exc)) from exc


def extension_for(mime_type: str) -> str:
    return mimetypes.guess_extension(mime_type) or ".bin"


def build_filename(part: MessagePart, message_id: str, extension: str = ".pdf") -> str:
    """``<part filename>-<message id>-<part id><extension>``, unique per run."""
    original = _PATH_SEPARATORS.sub("_", part.filename)
    return f"{original}-{message_id}-{part.part_id}{extension}"


class FileSink:
    """Create (or truncate) files below ``directory`` with 0600 permissions."""

    def __init__(self, directory: Path | str = ".") -> None:
        self.directory = Path(directory)

    def __call__(self, filename: str) -> BinaryIO:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        fd = os.open(path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o600)
        return os.fdopen(fd, "w+b")


class _MemoryFile(io.BytesIO):
    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self._saved = b""

    def close(self) -> None:
        if not self.closed:
            self._saved = self.getvalue()
        super().close()

    @property
    def contents(self) -> bytes:
        return self._saved if self.closed else self.getvalue()


class MemorySink:
    """Keep written attachments in memory; handy for tests and dry runs."""

    def __init__(self) -> None:
        self.files: dict[str, _MemoryFile] = {}

    def __call__(self, filename: str) -> BinaryIO:
        buffer = _MemoryFile(filename)
        self.files[filename] = buffer
        return buffer

    def read(self, filename: str) -> bytes:
        return self.files[filename].contents


def write_attachment(
    part: MessagePart,
    body: MessagePartBody,
    message_id: str,
    sink: SinkFactory,
    extension: str = ".pdf",
) -> ProcessedAttachment:
    """Decode ``body`` and write it through ``sink``.

    The returned attachment keeps the resource open; closing it is the
    caller's job.
    """
    content = decode_body_data(body.data)
    filename = build_filename(part, message_id, extension)

    resource = sink(filename)
    try:
        resource.write(content)
    except OSError:
        resource.close()
        raise

    logger.info("Wrote %s (%d bytes)", filename, len(content))
    return ProcessedAttachment(
        filename=filename,
        original_filename=part.filename,
        message_id=message_id,
        part_id=part.part_id,
        mime_type=part.mime_type,
        resource=resource,
        headers=part.headers,
    )
