"""Turn a part body into inline data, fetching it when Gmail deferred it."""

from __future__ import annotations

import logging

from .models import MailService, MessagePartBody

logger = logging.getLogger(__name__)


def resolve_body(service: MailService, message_id: str, body: MessagePartBody) -> MessagePartBody:
    """Return a body whose ``data`` holds the complete encoded payload.

    Gmail leaves large payloads out of message responses and only hands back an
    attachment id; those are fetched with one extra call. Transport errors are
    left to the caller.
    """
    if not body.is_remote:
        return body

    logger.debug("Requesting attachment %s of message %s", body.attachment_id, message_id)
    return service.get_attachment(message_id, body.attachment_id)
