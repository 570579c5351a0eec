"""Run the list → hydrate → walk → decode → mark-read pipeline."""

from __future__ import annotations

import logging

import requests

from .mime_walker import PDF_MIME_TYPE, iter_matching_parts
from .models import MailService, Message, MessageState, RunOutcome
from .resolver import resolve_body
from .sink import AttachmentDecodeError, SinkFactory, extension_for, write_attachment

logger = logging.getLogger(__name__)

# Errors that cost a single part (and therefore its message) but not the run.
PART_ERRORS = (requests.RequestException, AttachmentDecodeError, OSError)


class MarkReadError(RuntimeError):
    """The final mark-as-read call failed; ``outcome`` is still usable."""

    def __init__(self, outcome: RunOutcome, message_ids: list[str]) -> None:
        super().__init__(f"Failed to mark {len(message_ids)} message(s) as read")
        self.outcome = outcome
        self.message_ids = message_ids


class AttachmentPipeline:
    """Extract attachments of one content type from the messages of a query.

    Not safe for concurrent use: give every run its own service instance.
    """

    def __init__(
        self,
        service: MailService,
        sink: SinkFactory,
        *,
        mime_type: str = PDF_MIME_TYPE,
        mark_read: bool = True,
    ) -> None:
        self.service = service
        self.sink = sink
        self.mime_type = mime_type
        self.mark_read = mark_read
        self.extension = extension_for(mime_type)

    def run(self, query: str) -> RunOutcome:
        """Process every message matching ``query``.

        Listing errors propagate. A failed mark-read call raises
        :class:`MarkReadError` carrying the outcome.
        """
        messages = self.service.list_messages(query)
        logger.info("Query %r matched %d message(s)", query, len(messages))

        outcome = RunOutcome()
        for message in messages:
            state = self.process_message(message, outcome)
            outcome.record(message.message_id, state)

        self.finalize(outcome)
        logger.info(
            "Run complete: attachments=%s extracted=%s failed=%s skipped=%s",
            len(outcome.attachments),
            len(outcome.extracted_ids),
            len(outcome.failed_ids),
            len(outcome.skipped_ids),
        )
        return outcome

    def process_message(self, message: Message, outcome: RunOutcome) -> MessageState:
        """Extract every matching part of ``message`` into ``outcome``.

        Returns the terminal state. Attachments written before a failure stay
        in ``outcome`` even though the message ends up FAILED.
        """
        hydrated = self._hydrate(message)
        if hydrated is None:
            return MessageState.SKIPPED

        logger.debug("Message %s: %s", hydrated.message_id, hydrated.snippet)
        for part in iter_matching_parts(hydrated.payload, self.mime_type):
            try:
                body = resolve_body(self.service, hydrated.message_id, part.body)
                attachment = write_attachment(
                    part, body, hydrated.message_id, self.sink, self.extension
                )
            except PART_ERRORS as exc:
                logger.warning(
                    "Message %s part %s (%s) failed: %s",
                    hydrated.message_id,
                    part.part_id,
                    part.filename,
                    exc,
                )
                return MessageState.FAILED
            outcome.attachments.append(attachment)

        return MessageState.EXTRACTED

    def finalize(self, outcome: RunOutcome) -> None:
        """Mark all fully extracted messages as read with a single call."""
        if not self.mark_read:
            logger.info("Mark-as-read disabled; leaving %d message(s) unread", len(outcome.extracted_ids))
            return
        if not outcome.extracted_ids:
            return

        message_ids = list(outcome.extracted_ids)
        try:
            self.service.batch_mark_read(message_ids)
        except requests.RequestException as exc:
            raise MarkReadError(outcome, message_ids) from exc
        logger.info("Marked %d message(s) as read", len(message_ids))

    def _hydrate(self, message: Message) -> Message | None:
        if not message.is_summary:
            return message
        try:
            full = self.service.get_message(message.message_id)
        except requests.RequestException as exc:
            logger.warning("Skipping message %s; fetch failed: %s", message.message_id, exc)
            return None
        if full.payload is None:
            logger.warning("Skipping message %s; no payload returned", message.message_id)
            return None
        return full
