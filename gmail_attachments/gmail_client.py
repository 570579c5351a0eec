"""Gmail REST helper focused on message + attachment retrieval."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Sequence
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from requests import Response

from .models import MailService, Message, MessagePart, MessagePartBody, MessagePartHeader

logger = logging.getLogger(__name__)

UNREAD_LABEL = "UNREAD"


class GmailClient(MailService):
    """Thin wrapper that authenticates with Gmail and exposes the calls we need.

    Instances are not safe to share between concurrent runs.
    """

    GMAIL_BASE = "https://gmail.googleapis.com/gmail/v1"

    def __init__(
        self,
        credentials: Any,
        user_id: str = "me",
        *,
        page_size: int = 100,
        max_messages: int | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.credentials = credentials
        self.user_id = user_id
        self.page_size = page_size
        self.max_messages = max_messages
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_service_account_file(
        cls, path: Path, subject: str, scopes: Sequence[str], **kwargs: Any
    ) -> "GmailClient":
        """Build a client impersonating ``subject`` via domain-wide delegation."""
        credentials = service_account.Credentials.from_service_account_file(
            str(path), scopes=list(scopes), subject=subject
        )
        return cls(credentials, user_id=subject, **kwargs)

    def list_messages(self, query: str) -> list[Message]:
        """Return message summaries matching a Gmail search-box query."""
        url = f"{self._user_root()}/messages"
        params: dict[str, Any] = {"maxResults": self.page_size}
        if query:
            params["q"] = query

        messages: list[Message] = []
        while True:
            logger.debug("Fetching Gmail messages page %s", params.get("pageToken", "<first>"))
            payload = self._request("GET", url, params=params).json()
            for raw in payload.get("messages", []):
                messages.append(self._to_message(raw))
                if self.max_messages and len(messages) >= self.max_messages:
                    return messages

            token = payload.get("nextPageToken")
            if not token:
                return messages
            params = {**params, "pageToken": token}

    def get_message(self, message_id: str) -> Message:
        url = f"{self._user_root()}/messages/{quote(message_id)}"
        response = self._request("GET", url, params={"format": "full"})
        return self._to_message(response.json())

    def get_attachment(self, message_id: str, attachment_id: str) -> MessagePartBody:
        url = (
            f"{self._user_root()}/messages/{quote(message_id)}"
            f"/attachments/{quote(attachment_id)}"
        )
        response = self._request("GET", url)
        return self._to_body(response.json())

    def batch_mark_read(self, message_ids: Iterable[str]) -> None:
        """Remove the UNREAD label from all ``message_ids`` in one request."""
        body = {"ids": list(message_ids), "removeLabelIds": [UNREAD_LABEL]}
        self._request("POST", f"{self._user_root()}/messages/batchModify", json=body)

    def _request(self, method: str, url: str, **kwargs: Any) -> Response:
        headers = {"Authorization": f"Bearer {self._acquire_token()}"}
        resp = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        if resp.status_code >= 400:
            logger.error("Gmail request failed (%s): %s", resp.status_code, resp.text)
            resp.raise_for_status()
        return resp

    def _acquire_token(self) -> str:
        if not self.credentials.valid:
            try:
                self.credentials.refresh(Request())
            except GoogleAuthError as exc:
                logger.error("Gmail token refresh failed: %s", exc)
                raise requests.ConnectionError(f"Unable to refresh Gmail access token: {exc}") from exc
        if not self.credentials.token:
            raise RuntimeError("Unable to obtain Gmail access token")
        return self.credentials.token

    def _user_root(self) -> str:
        return f"{self.GMAIL_BASE}/users/{quote(self.user_id)}"

    @staticmethod
    def _to_message(raw: dict) -> Message:
        payload = raw.get("payload")
        return Message(
            message_id=raw["id"],
            thread_id=raw.get("threadId", ""),
            snippet=raw.get("snippet", ""),
            label_ids=tuple(raw.get("labelIds") or ()),
            payload=GmailClient._to_part(payload) if payload else None,
        )

    @staticmethod
    def _to_part(raw: dict) -> MessagePart:
        return MessagePart(
            part_id=raw.get("partId", ""),
            mime_type=raw.get("mimeType", ""),
            filename=raw.get("filename", ""),
            body=GmailClient._to_body(raw.get("body") or {}),
            headers=tuple(
                MessagePartHeader(name=h.get("name", ""), value=h.get("value", ""))
                for h in raw.get("headers") or ()
            ),
            parts=tuple(GmailClient._to_part(child) for child in raw.get("parts") or ()),
        )

    @staticmethod
    def _to_body(raw: dict) -> MessagePartBody:
        return MessagePartBody(
            data=raw.get("data", ""),
            attachment_id=raw.get("attachmentId", ""),
            size=raw.get("size", 0),
        )
