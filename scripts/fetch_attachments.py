"""Entry point that saves PDF attachments from Gmail messages to disk."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from dotenv import load_dotenv

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import requests

from gmail_attachments.config import Settings
from gmail_attachments.gmail_client import GmailClient
from gmail_attachments.models import RunOutcome
from gmail_attachments.processor import AttachmentPipeline, MarkReadError
from gmail_attachments.sink import FileSink, MemorySink

load_dotenv()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Save Gmail attachments and mark their messages read.")
    parser.add_argument("-c", "--credentials", type=Path, help="Service account JSON key file")
    parser.add_argument("-s", "--subject", help="Mailbox (user) the service account impersonates")
    parser.add_argument("-q", "--query", help="Gmail search-box style query filtering messages")
    parser.add_argument("--output-dir", type=Path, help="Directory attachments are written to")
    parser.add_argument("--mime-type", help="Content type of the parts to extract")
    parser.add_argument("--max-messages", type=int, help="Limit how many messages to inspect")
    parser.add_argument("--no-mark-read", action="store_true", help="Leave processed messages unread")
    parser.add_argument(
        "--dry-run", action="store_true", help="Decode in memory only and leave messages unread"
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def report(outcome: RunOutcome) -> None:
    for attachment in outcome.attachments:
        logging.info(
            "Saved %s (original filename: %s)", attachment.filename, attachment.original_filename
        )
        for header in attachment.headers:
            logging.debug("  %s: %s", header.name, header.value)


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    settings = Settings()
    configure_logging(settings.log_level)

    credentials = args.credentials or settings.service_account_file
    subject = args.subject or settings.gmail_subject
    query = args.query if args.query is not None else settings.gmail_query
    if not credentials:
        parser.error("a service account file is required (-c or GMAIL_SERVICE_ACCOUNT_FILE)")
    if not subject:
        parser.error("a subject is required (-s or GMAIL_SUBJECT)")
    if not query:
        parser.error("a query is required (-q or GMAIL_QUERY)")

    client = GmailClient.from_service_account_file(
        credentials,
        subject,
        settings.gmail_scopes,
        page_size=settings.gmail_page_size,
        max_messages=args.max_messages,
        timeout=settings.request_timeout,
    )
    sink = MemorySink() if args.dry_run else FileSink(args.output_dir or settings.output_dir)
    pipeline = AttachmentPipeline(
        client,
        sink,
        mime_type=args.mime_type or settings.target_mime_type,
        mark_read=settings.mark_read and not (args.no_mark_read or args.dry_run),
    )

    try:
        outcome = pipeline.run(query)
    except MarkReadError as exc:
        with exc.outcome:
            report(exc.outcome)
        logging.error("%s: %s", exc, exc.__cause__)
        return 1
    except requests.RequestException as exc:
        logging.error("Listing messages failed: %s", exc)
        return 1

    with outcome:
        report(outcome)
    return 0


if __name__ == "__main__":
    sys.exit(main())
