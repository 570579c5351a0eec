"""Depth-first search of a message's MIME tree for parts of one content type."""

from __future__ import annotations

import logging
from typing import Iterator

from .models import MessagePart

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


def iter_matching_parts(
    root: MessagePart, mime_type: str = PDF_MIME_TYPE, depth: int = 0
) -> Iterator[MessagePart]:
    """Yield parts whose content type equals ``mime_type``.

    Order is pre-order, depth-first, left-to-right. A matching part is never
    descended into. ``depth`` only affects the debug output.
    """
    _log_part(root, depth)
    if root.mime_type == mime_type:
        yield root
        return

    for child in root.parts:
        yield from iter_matching_parts(child, mime_type, depth + 1)


def _log_part(part: MessagePart, depth: int) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    pad = "-" * (depth * 4)
    logger.debug("%sPart %s: %s filename=%r", pad, part.part_id, part.mime_type, part.filename)
    for header in part.headers:
        logger.debug("%s  %s: %s", pad, header.name, header.value)
