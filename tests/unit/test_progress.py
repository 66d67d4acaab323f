#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for progress events and cancellation tokens."""

import logging

import pytest

from comicpack.cancellation import CancellationToken, OperationCanceled
from comicpack.progress import ProgressEvent, emit_progress


@pytest.mark.unit
class TestProgressEvents:
    """Event formatting and delivery."""

    def test_str_with_counts(self):
        event = ProgressEvent("file_started", "issue1.cbz", current=1, total=3)
        assert str(event) == "[FILE_STARTED] issue1.cbz (1/3)"

    def test_str_without_total(self):
        assert str(ProgressEvent("log_line", "hello")) == "[LOG_LINE] hello"

    def test_emit_delivers_metadata(self):
        events = []
        emit_progress(events.append, "file_finished", "done", current=2, total=2, error_count=1)
        assert len(events) == 1
        assert events[0].metadata == {"error_count": 1}
        assert (events[0].current, events[0].total) == (2, 2)

    def test_emit_without_callback(self):
        emit_progress(None, "info_text", "nothing happens")

    def test_failing_callback_is_logged_not_raised(self, caplog):
        def broken(event):
            raise RuntimeError("boom")

        with caplog.at_level(logging.WARNING, logger="comicpack.progress"):
            emit_progress(broken, "info_text", "text")

        assert "boom" in caplog.text


@pytest.mark.unit
class TestCancellationToken:
    """Cooperative cancellation."""

    def test_initially_not_canceled(self):
        token = CancellationToken()
        assert not token.is_canceled
        token.raise_if_canceled()

    def test_cancel_is_idempotent(self):
        token = CancellationToken()
        token.cancel()
        token.cancel()
        assert token.is_canceled
        with pytest.raises(OperationCanceled):
            token.raise_if_canceled()
