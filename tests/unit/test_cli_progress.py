#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for CLI progress display and summaries."""

from pathlib import Path

import pytest

from comicpack.cli.progress import ProgressContext, SummaryRenderer, create_progress_context_callback
from comicpack.models import ComicSource, ConversionResult, SourceOutcome, SourceStage
from comicpack.progress import ProgressEvent


def _outcome(name: str, stage: SourceStage, error: str | None = None) -> SourceOutcome:
    return SourceOutcome(source=ComicSource(Path(name), "zip"), index=0, stage=stage, error=error)


@pytest.mark.unit
@pytest.mark.cli
class TestSummaryRenderer:
    def test_plain_summary(self, capsys):
        result = ConversionResult(files_total=3, files_attempted=2, error_count=1)
        SummaryRenderer(use_rich=False).render_conversion_summary(result)

        err = capsys.readouterr().err
        assert "Conversion Summary" in err
        assert "+ Succeeded:" in err
        assert "Skipped:" in err

    def test_canceled_title(self, capsys):
        result = ConversionResult(files_total=2, was_canceled=True)
        SummaryRenderer(use_rich=False).render_conversion_summary(result)
        assert "(canceled)" in capsys.readouterr().err

    def test_failures_listed(self, capsys):
        outcomes = [_outcome("a.cbz", SourceStage.DONE), _outcome("b.cbz", SourceStage.ERROR, "corrupt")]
        SummaryRenderer(use_rich=False).render_failures(outcomes)

        err = capsys.readouterr().err
        assert "b.cbz" in err
        assert "corrupt" in err
        assert "a.cbz" not in err

    def test_no_failures_prints_nothing(self, capsys):
        SummaryRenderer(use_rich=False).render_failures([_outcome("a.cbz", SourceStage.DONE)])
        assert capsys.readouterr().err == ""


@pytest.mark.unit
@pytest.mark.cli
class TestProgressCallback:
    def test_events_reach_plain_output(self, capsys):
        with ProgressContext(use_progress=False, total=2, description="Converting") as progress:
            callback = create_progress_context_callback(progress)
            callback(ProgressEvent("file_started", "a.cbz", current=1, total=2))
            callback(ProgressEvent("log_line", "Created a.cbz"))
            callback(ProgressEvent("log_line", "Error: b.cbz: corrupt"))
            callback(
                ProgressEvent(
                    "file_finished",
                    "b.cbz: error",
                    current=2,
                    total=2,
                    metadata={"outcome": _outcome("b.cbz", SourceStage.ERROR, "corrupt")},
                )
            )

        err = capsys.readouterr().err
        assert "Converting (2 files)..." in err
        assert "Created a.cbz" in err
        assert "Failed: b.cbz: corrupt" in err
        assert "Error: b.cbz" not in err
        assert progress._current == 1
