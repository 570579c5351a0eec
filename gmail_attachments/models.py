"""Typed containers shared across the pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessagePartHeader:
    name: str
    value: str


@dataclass(frozen=True)
class MessagePartBody:
    """Inline transfer-encoded data, or a reference to fetch it remotely."""

    data: str = ""
    attachment_id: str = ""
    size: int = 0

    @property
    def is_remote(self) -> bool:
        return bool(self.attachment_id)


@dataclass(frozen=True)
class MessagePart:
    """One node of a message's MIME tree."""

    part_id: str
    mime_type: str
    filename: str = ""
    body: MessagePartBody = field(default_factory=MessagePartBody)
    headers: tuple[MessagePartHeader, ...] = ()
    parts: tuple["MessagePart", ...] = ()


@dataclass(frozen=True)
class Message:
    """A Gmail message; ``payload`` is None until the full message is fetched."""

    message_id: str
    thread_id: str = ""
    snippet: str = ""
    label_ids: tuple[str, ...] = ()
    payload: Optional[MessagePart] = None

    @property
    def is_summary(self) -> bool:
        return self.payload is None


class MessageState(str, Enum):
    SUMMARY = "summary"
    HYDRATED = "hydrated"
    EXTRACTED = "extracted"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ProcessedAttachment:
    """A decoded attachment and the open resource it was written to.

    The caller owns ``resource`` and must close it, either directly or through
    :meth:`RunOutcome.close`.
    """

    filename: str
    original_filename: str
    message_id: str
    part_id: str
    mime_type: str
    resource: BinaryIO
    headers: tuple[MessagePartHeader, ...] = ()

    @property
    def closed(self) -> bool:
        return self.resource.closed

    def close(self) -> None:
        if not self.resource.closed:
            self.resource.close()


@dataclass
class RunOutcome:
    """Everything a run produced, accumulated message by message."""

    attachments: list[ProcessedAttachment] = field(default_factory=list)
    extracted_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)

    def record(self, message_id: str, state: MessageState) -> None:
        if state is MessageState.EXTRACTED:
            self.extracted_ids.append(message_id)
        elif state is MessageState.FAILED:
            self.failed_ids.append(message_id)
        elif state is MessageState.SKIPPED:
            self.skipped_ids.append(message_id)
        else:
            raise ValueError(f"{state} is not a terminal message state")

    def close(self) -> None:
        """Close every still-open resource, then raise the first failure seen."""
        first_error: Exception | None = None
        for attachment in self.attachments:
            try:
                attachment.close()
            except Exception as exc:  # keep closing the rest
                logger.warning("Failed to close %s: %s", attachment.filename, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def __enter__(self) -> "RunOutcome":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        try:
            self.close()
        except Exception as close_exc:
            logger.warning("Error while closing attachments after failure: %s", close_exc)


class MailService:
    """Remote mailbox operations the pipeline depends on."""

    def list_messages(self, query: str) -> list[Message]:
        raise NotImplementedError

    def get_message(self, message_id: str) -> Message:
        raise NotImplementedError

    def get_attachment(self, message_id: str, attachment_id: str) -> MessagePartBody:
        raise NotImplementedError

    def batch_mark_read(self, message_ids: Iterable[str]) -> None:
        raise NotImplementedError
