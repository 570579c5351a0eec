from __future__ import annotations

import base64

import requests

from gmail_attachments.models import MailService, Message, MessagePart, MessagePartBody


def encode(content: bytes) -> str:
    return base64.urlsafe_b64encode(content).decode("ascii")


def pdf_part(part_id: str, filename: str = "statement.pdf", *, data: str = "", attachment_id: str = "") -> MessagePart:
    return MessagePart(
        part_id=part_id,
        mime_type="application/pdf",
        filename=filename,
        body=MessagePartBody(data=data, attachment_id=attachment_id),
    )


def container(part_id: str, *children: MessagePart, mime_type: str = "multipart/mixed") -> MessagePart:
    return MessagePart(part_id=part_id, mime_type=mime_type, parts=tuple(children))


def text_part(part_id: str, text: str = "hi") -> MessagePart:
    return MessagePart(
        part_id=part_id,
        mime_type="text/plain",
        body=MessagePartBody(data=encode(text.encode())),
    )


class FakeMailService(MailService):
    """In-memory mailbox that records every call made against it."""

    def __init__(
        self,
        messages: list[Message] | None = None,
        *,
        full_messages: dict[str, Message] | None = None,
        attachments: dict[tuple[str, str], str] | None = None,
        failing_gets: set[str] | None = None,
        fail_listing: bool = False,
        fail_mark_read: bool = False,
    ) -> None:
        self.messages = messages or []
        self.full_messages = full_messages or {}
        self.attachments = attachments or {}
        self.failing_gets = failing_gets or set()
        self.fail_listing = fail_listing
        self.fail_mark_read = fail_mark_read
        self.list_calls: list[str] = []
        self.get_calls: list[str] = []
        self.attachment_calls: list[tuple[str, str]] = []
        self.mark_read_calls: list[list[str]] = []

    def list_messages(self, query: str) -> list[Message]:
        self.list_calls.append(query)
        if self.fail_listing:
            raise requests.ConnectionError("listing unavailable")
        return list(self.messages)

    def get_message(self, message_id: str) -> Message:
        self.get_calls.append(message_id)
        if message_id in self.failing_gets:
            raise requests.HTTPError(f"404 for {message_id}")
        return self.full_messages[message_id]

    def get_attachment(self, message_id: str, attachment_id: str) -> MessagePartBody:
        self.attachment_calls.append((message_id, attachment_id))
        try:
            data = self.attachments[(message_id, attachment_id)]
        except KeyError:
            raise requests.HTTPError(f"no attachment {attachment_id}") from None
        return MessagePartBody(data=data, size=len(data))

    def batch_mark_read(self, message_ids) -> None:
        self.mark_read_calls.append(list(message_ids))
        if self.fail_mark_read:
            raise requests.HTTPError("500 batchModify")

