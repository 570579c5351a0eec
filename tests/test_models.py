from __future__ import annotations

import pytest

from gmail_attachments.models import MessageState, ProcessedAttachment, RunOutcome


class TrackingResource:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.close_calls = 0
        self.closed = False

    def write(self, data: bytes) -> int:
        return len(data)

    def close(self) -> None:
        self.close_calls += 1
        if self.error is not None:
            raise self.error
        self.closed = True


def _attachment(name: str, resource: TrackingResource) -> ProcessedAttachment:
    return ProcessedAttachment(
        filename=name,
        original_filename=name,
        message_id="M1",
        part_id="0",
        mime_type="application/pdf",
        resource=resource,
    )


def test_close_visits_every_resource_and_raises_first_error() -> None:
    first_error = OSError("disk gone")
    resources = [
        TrackingResource(),
        TrackingResource(first_error),
        TrackingResource(),
        TrackingResource(OSError("second")),
        TrackingResource(),
    ]
    outcome = RunOutcome(attachments=[_attachment(f"f{i}", r) for i, r in enumerate(resources)])

    with pytest.raises(OSError) as excinfo:
        outcome.close()

    assert excinfo.value is first_error
    assert [r.close_calls for r in resources] == [1, 1, 1, 1, 1]


def test_close_skips_already_closed_resources() -> None:
    resource = TrackingResource()
    outcome = RunOutcome(attachments=[_attachment("f", resource)])

    outcome.close()
    outcome.close()

    assert resource.close_calls == 1


def test_outcome_works_as_context_manager() -> None:
    resource = TrackingResource()

    with RunOutcome(attachments=[_attachment("f", resource)]):
        assert not resource.closed

    assert resource.closed


def test_record_sorts_terminal_states() -> None:
    outcome = RunOutcome()
    outcome.record("a", MessageState.EXTRACTED)
    outcome.record("b", MessageState.FAILED)
    outcome.record("c", MessageState.SKIPPED)

    assert outcome.extracted_ids == ["a"]
    assert outcome.failed_ids == ["b"]
    assert outcome.skipped_ids == ["c"]


def test_record_rejects_intermediate_states() -> None:
    with pytest.raises(ValueError):
        RunOutcome().record("a", MessageState.HYDRATED)


def test_context_manager_keeps_original_error_when_close_fails() -> None:
    resource = TrackingResource(OSError("close failed"))

    with pytest.raises(KeyError):
        with RunOutcome(attachments=[_attachment("f", resource)]):
            raise KeyError("boom")

    assert resource.close_calls == 1


def test_context_manager_raises_close_error_after_clean_exit() -> None:
    resource = TrackingResource(OSError("close failed"))

    with pytest.raises(OSError):
        with RunOutcome(attachments=[_attachment("f", resource)]):
            pass
