"""Tests for the sequential apply coordinator."""

from unittest.mock import MagicMock

import requests

from theme_editor.apply import (
    NETWORK_ERROR,
    ApplyCoordinator,
    ApplyOutcome,
    ApplyResult,
    FileUpdate,
    OverallStatus,
)
from theme_editor.changes import PendingChange
from theme_editor.store import WriteResult


def _writer(*results):
    writer = MagicMock()
    writer.put_file.side_effect = list(results)
    return writer


class TestApplyCoordinator:
    def test_partial_success_continues_after_failure(self):
        writer = _writer(WriteResult(True), WriteResult(False, "Invalid Liquid"), WriteResult(True))
        sleep = MagicMock()
        coordinator = ApplyCoordinator(writer, delay=0.25, sleep=sleep)

        outcome = coordinator.apply_approved("gid://shopify/OnlineStoreTheme/1", [
            FileUpdate("a.liquid", "A"),
            FileUpdate("b.liquid", "B"),
            FileUpdate("c.liquid", "C"),
        ])

        assert outcome.overall_status is OverallStatus.PARTIAL_SUCCESS
        assert outcome.succeeded == ["a.liquid", "c.liquid"]
        assert outcome.failed == [ApplyResult("b.liquid", False, "Invalid Liquid")]
        assert writer.put_file.call_count == 3

    def test_writes_are_in_order_and_paced(self):
        writer = _writer(WriteResult(True), WriteResult(True), WriteResult(True))
        sleep = MagicMock()
        coordinator = ApplyCoordinator(writer, delay=0.25, sleep=sleep)

        coordinator.apply_approved("t", [FileUpdate(n, n) for n in ("x", "y", "z")])

        assert [c.args[1] for c in writer.put_file.call_args_list] == ["x", "y", "z"]
        assert sleep.call_count == 2
        sleep.assert_called_with(0.25)

    def test_single_file_does_not_sleep(self):
        sleep = MagicMock()
        ApplyCoordinator(_writer(WriteResult(True)), sleep=sleep).apply_approved(
            "t", [FileUpdate("a", "")])
        sleep.assert_not_called()

    def test_zero_delay_does_not_sleep(self):
        sleep = MagicMock()
        coordinator = ApplyCoordinator(_writer(WriteResult(True), WriteResult(True)),
                                       delay=0, sleep=sleep)
        coordinator.apply_approved("t", [FileUpdate("a", ""), FileUpdate("b", "")])
        sleep.assert_not_called()

    def test_transport_exception_becomes_network_error(self):
        writer = _writer(requests.ConnectionError("boom"), WriteResult(True))
        coordinator = ApplyCoordinator(writer, sleep=MagicMock())

        outcome = coordinator.apply_approved("t", [FileUpdate("a", "1"), FileUpdate("b", "2")])

        assert outcome.results[0] == ApplyResult("a", False, NETWORK_ERROR)
        assert outcome.results[1].success

    def test_failure_without_message_defaults_to_network_error(self):
        coordinator = ApplyCoordinator(_writer(WriteResult(False)), sleep=MagicMock())
        outcome = coordinator.apply_approved("t", [FileUpdate("a", "1")])
        assert outcome.results[0].error == NETWORK_ERROR

    def test_all_failed(self):
        writer = _writer(WriteResult(False, "x"), WriteResult(False, "y"))
        outcome = ApplyCoordinator(writer, sleep=MagicMock()).apply_approved(
            "t", [FileUpdate("a", ""), FileUpdate("b", "")])
        assert outcome.overall_status is OverallStatus.ALL_FAILED
        assert outcome.summary() == "Failed to push changes."

    def test_pending_changes_push_proposed_text(self):
        writer = _writer(WriteResult(True))
        change = PendingChange("sections/header.liquid", "old", "new", approved=True)
        ApplyCoordinator(writer, sleep=MagicMock()).apply_approved("t", [change])
        writer.put_file.assert_called_once_with("t", "sections/header.liquid", "new")


class TestApplyOutcome:
    def test_all_succeeded_summary(self):
        outcome = ApplyOutcome([ApplyResult("a", True), ApplyResult("b", True)])
        assert outcome.overall_status is OverallStatus.ALL_SUCCEEDED
        assert outcome.summary() == "Pushed 2 file(s)."

    def test_partial_summary_lists_failures(self):
        outcome = ApplyOutcome([ApplyResult("a", True), ApplyResult("b", False, "HTTP 422")])
        summary = outcome.summary()
        assert summary.startswith("Pushed 1 of 2 file(s).")
        assert "b: HTTP 422" in summary

    def test_empty_batch_counts_as_success(self):
        assert ApplyOutcome().overall_status is OverallStatus.ALL_SUCCEEDED
