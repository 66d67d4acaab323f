#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the out-of-process page exporter."""

import os
import time
from pathlib import Path

import pytest
from utils import PAGE_COLORS, make_cbz, make_image_bytes, make_image_folder, make_pdf

from comicpack.exceptions import EmptySourceError, ValidationError
from comicpack.exporter import PageExporter, PageExportRequest, PageExportResponse, export_page
from comicpack.models import ComicSource
from comicpack.utils.images import detect_image_format_from_bytes


def crashing_worker(conn, request, options):
    os._exit(3)


def chatty_worker(conn, request, options):
    conn.send("not a reply")
    conn.close()


def sleepy_worker(conn, request, options):
    time.sleep(30)


def _request(path: Path, kind: str, page_index: int, output_folder: Path) -> PageExportRequest:
    return PageExportRequest(
        source_kind=kind, source_path=str(path), page_index=page_index, output_folder=str(output_folder)
    )


@pytest.mark.unit
class TestExportPage:
    """In-process export used by the worker body."""

    def test_writes_named_page(self, temp_dir, output_dir):
        path = make_cbz(temp_dir / "Issue 1.cbz", ["1.png", "2.jpg"])
        written = export_page(_request(path, "zip", 1, output_dir))

        assert written == output_dir / "Issue 1_page_2.jpg"
        assert detect_image_format_from_bytes(written.read_bytes()) == "jpg"

    def test_collision_gets_counter(self, temp_dir, output_dir):
        path = make_cbz(temp_dir / "a.cbz", ["1.png"])
        first = export_page(_request(path, "zip", 0, output_dir))
        second = export_page(_request(path, "zip", 0, output_dir))

        assert first.name == "a_page_1.png"
        assert second.name == "a_page_1(2).png"
        assert first.read_bytes() == second.read_bytes()

    def test_extension_from_content(self, temp_dir, output_dir):
        folder = temp_dir / "pages"
        folder.mkdir()
        (folder / "1.png").write_bytes(make_image_bytes(fmt="JPEG"))
        written = export_page(_request(folder, "folder", 0, output_dir))
        assert written.suffix == ".jpg"

    def test_pdf_page(self, temp_dir, output_dir):
        path = make_pdf(temp_dir / "doc.pdf", page_count=2)
        written = export_page(_request(path, "pdf", 1, output_dir))
        assert written.name == "doc_page_2.jpg"

    def test_known_local_path_skips_listing(self, temp_dir, output_dir):
        files = make_image_folder(temp_dir / "pages", ["a.png", "b.png"])
        request = PageExportRequest.for_source(
            ComicSource(temp_dir / "pages", "folder"), 1, output_dir, page_local_path=str(files[1])
        )
        written = export_page(request)
        assert written.read_bytes() == files[1].read_bytes()

    def test_page_out_of_range(self, temp_dir, output_dir):
        path = make_cbz(temp_dir / "a.cbz", ["1.png"])
        with pytest.raises(ValidationError, match="out of range"):
            export_page(_request(path, "zip", 5, output_dir))
        assert list(output_dir.iterdir()) == []

    def test_missing_output_folder(self, temp_dir):
        path = make_cbz(temp_dir / "a.cbz", ["1.png"])
        with pytest.raises(ValidationError, match="Output folder"):
            export_page(_request(path, "zip", 0, temp_dir / "nope"))

    def test_empty_source(self, temp_dir, output_dir):
        (temp_dir / "empty").mkdir()
        with pytest.raises(EmptySourceError):
            export_page(_request(temp_dir / "empty", "folder", 0, output_dir))


@pytest.mark.unit
class TestPageExportResponse:
    """Validation of raw worker replies."""

    def test_success(self):
        response = PageExportResponse.from_message({"ok": True, "output_file_path": "/out/a.jpg"})
        assert response == PageExportResponse(ok=True, output_file_path="/out/a.jpg")

    def test_failure(self):
        response = PageExportResponse.from_message({"ok": False, "error_message": "bad page"})
        assert not response.ok
        assert response.error_message == "bad page"

    @pytest.mark.parametrize(
        "message",
        ["text", None, {"ok": True}, {"ok": True, "output_file_path": 5}, {"ok": "yes"}, ["ok", True]],
    )
    def test_malformed(self, message):
        response = PageExportResponse.from_message(message)
        assert not response.ok
        assert "Malformed" in response.error_message


@pytest.mark.unit
@pytest.mark.slow
class TestPageExporter:
    """Worker process lifecycle."""

    def test_export_in_worker(self, temp_dir, output_dir):
        path = make_cbz(temp_dir / "a.cbz", ["1.png", "2.png", "3.png"])
        response = PageExporter(timeout=120).export(_request(path, "zip", 2, output_dir))

        assert response.ok, response.error_message
        written = Path(response.output_file_path)
        assert written == output_dir / "a_page_3.png"
        with open(written, "rb") as f:
            assert f.read() == make_image_bytes(color=PAGE_COLORS[2])

    def test_worker_error_is_reported(self, temp_dir, output_dir):
        path = make_cbz(temp_dir / "a.cbz", ["1.png"])
        response = PageExporter(timeout=120).export(_request(path, "zip", 9, output_dir))

        assert not response.ok
        assert "out of range" in response.error_message

    def test_crashed_worker(self, temp_dir, output_dir):
        exporter = PageExporter(timeout=60, start_method="fork", worker_target=crashing_worker)
        response = exporter.export(_request(temp_dir / "a.cbz", "zip", 0, output_dir))

        assert not response.ok
        assert "exit code 3" in response.error_message

    def test_malformed_reply(self, temp_dir, output_dir):
        exporter = PageExporter(timeout=60, start_method="fork", worker_target=chatty_worker)
        response = exporter.export(_request(temp_dir / "a.cbz", "zip", 0, output_dir))

        assert not response.ok
        assert "Malformed" in response.error_message

    def test_hung_worker_is_killed(self, temp_dir, output_dir):
        exporter = PageExporter(timeout=0.5, start_method="fork", worker_target=sleepy_worker)
        started = time.monotonic()
        response = exporter.export(_request(temp_dir / "a.cbz", "zip", 0, output_dir))

        assert not response.ok
        assert "timed out" in response.error_message
        assert time.monotonic() - started < 20

    def test_exporter_recovers_after_crash(self, temp_dir, output_dir):
        path = make_cbz(temp_dir / "a.cbz", ["1.png"])
        exporter = PageExporter(timeout=60, start_method="fork", worker_target=crashing_worker)
        assert not exporter.export(_request(path, "zip", 0, output_dir)).ok

        exporter = PageExporter(timeout=120)
        assert exporter.export(_request(path, "zip", 0, output_dir)).ok
