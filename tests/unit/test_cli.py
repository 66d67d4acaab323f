#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the comicpack command line."""

import argparse
import logging
import os

import pytest
from utils import image_size, make_cbz, make_corrupt_file, make_image_folder, write_image, zip_member_names

from comicpack.cli import create_parser, main
from comicpack.cli.builder import (
    EXIT_CANCELED,
    EXIT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    EXIT_WORKSPACE_ERROR,
    DynamicCLIBuilder,
    get_exit_code_for_exception,
)
from comicpack.exceptions import ExtractionError, JobAlreadyRunningError, ValidationError, WorkspaceError
from comicpack.options import InputOptions, OutputOptions


@pytest.fixture(autouse=True)
def restore_root_logging():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def run_cli(*args: str) -> int:
    return main([*args, "--no-config", "--no-progress"])


@pytest.mark.unit
@pytest.mark.cli
class TestParser:
    """Flags generated from option metadata."""

    def test_convert_flags(self):
        parsed = create_parser().parse_args(
            ["convert", "a.cbz", "-o", "out", "-f", "pdf", "--scale", "50", "--image-format", "webp", "-r"]
        )
        assert parsed.sources == ["a.cbz"]
        assert parsed.output_folder == "out"
        assert parsed.output_format == "pdf"
        assert parsed.image_scale == 50
        assert parsed.image_format == "webp"
        assert parsed.recursive_folders is True

    def test_unset_flags_are_absent(self):
        parsed = create_parser().parse_args(["convert", "a.cbz"])
        assert not hasattr(parsed, "output_format")
        assert not hasattr(parsed, "image_scale")

    def test_true_default_gets_no_flag(self):
        parsed = create_parser().parse_args(["convert", "a.cbz", "--no-epub-core-media-only"])
        assert parsed.epub_core_media_only is False

    def test_convert_has_no_name_flag(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["convert", "a.cbz", "--name", "x"])

    def test_invalid_choice(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["convert", "a.cbz", "-f", "tar"])

    def test_cli_values_override_config(self):
        parsed = argparse.Namespace(output_format="cb7")
        options = DynamicCLIBuilder().map_args_to_options(
            parsed, OutputOptions, {"output-format": "pdf", "image_scale": 40}
        )
        assert options.output_format == "cb7"
        assert options.image_scale == 40

    def test_input_options_from_args(self):
        parsed = argparse.Namespace(pdf_extraction_dpi=150)
        options = DynamicCLIBuilder().map_args_to_options(parsed, InputOptions)
        assert options.pdf_extraction_dpi == 150


@pytest.mark.unit
@pytest.mark.cli
class TestExitCodes:
    @pytest.mark.parametrize(
        "error, code",
        [
            (KeyboardInterrupt(), EXIT_CANCELED),
            (WorkspaceError("x"), EXIT_WORKSPACE_ERROR),
            (ValidationError("x"), EXIT_VALIDATION_ERROR),
            (JobAlreadyRunningError("x"), EXIT_VALIDATION_ERROR),
            (ValueError("x"), EXIT_VALIDATION_ERROR),
            (ExtractionError("x"), EXIT_ERROR),
            (RuntimeError("x"), EXIT_ERROR),
        ],
    )
    def test_mapping(self, error, code):
        assert get_exit_code_for_exception(error) == code


@pytest.mark.unit
@pytest.mark.cli
class TestConvertCommand:
    """``comicpack convert`` and ``comicpack create``."""

    def test_convert(self, temp_dir, output_dir, scratch_parent, capsys):
        source = make_cbz(temp_dir / "a.cbz", ["1.png", "2.png"])
        make_image_folder(temp_dir / "b", ["1.png"])

        code = run_cli(
            "convert", str(source), str(temp_dir / "b"), "-o", str(output_dir), "--temp-dir", str(scratch_parent)
        )

        assert code == EXIT_SUCCESS
        assert sorted(p.name for p in output_dir.iterdir()) == ["a.cbz", "b.cbz"]
        assert str(output_dir / "a.cbz") in capsys.readouterr().out
        assert list(scratch_parent.iterdir()) == []

    def test_partial_failure_exit_code(self, temp_dir, output_dir, capsys):
        good = make_cbz(temp_dir / "a.cbz", ["1.png"])
        bad = make_corrupt_file(temp_dir / "b.cbz")

        code = run_cli("convert", str(good), str(bad), "-o", str(output_dir))

        assert code == EXIT_ERROR
        assert [p.name for p in output_dir.iterdir()] == ["a.cbz"]
        assert "b.cbz" in capsys.readouterr().err

    def test_create(self, temp_dir, output_dir):
        first = make_cbz(temp_dir / "a.cbz", ["1.png", "2.png"])
        second = make_cbz(temp_dir / "b.cbz", ["1.png"])

        code = run_cli("create", str(first), str(second), "-o", str(output_dir), "-n", "All", "--split-num-files", "2")

        assert code == EXIT_SUCCESS
        assert len(zip_member_names(output_dir / "All_1.cbz")) == 2
        assert len(zip_member_names(output_dir / "All_2.cbz")) == 1

    def test_create_requires_name(self, temp_dir, output_dir):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        assert run_cli("create", str(source), "-o", str(output_dir)) == EXIT_VALIDATION_ERROR

    def test_missing_output_dir(self, temp_dir):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        assert run_cli("convert", str(source)) == EXIT_VALIDATION_ERROR

    def test_unsupported_source(self, temp_dir, output_dir, capsys):
        path = temp_dir / "notes.txt"
        path.write_text("hello")
        assert run_cli("convert", str(path), "-o", str(output_dir)) == EXIT_VALIDATION_ERROR
        assert "Unsupported" in capsys.readouterr().err

    def test_invalid_option_value(self, temp_dir, output_dir):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        assert run_cli("convert", str(source), "-o", str(output_dir), "--scale", "0") == EXIT_VALIDATION_ERROR

    def test_missing_temp_parent(self, temp_dir, output_dir):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        code = run_cli("convert", str(source), "-o", str(output_dir), "--temp-dir", str(temp_dir / "missing"))
        assert code == EXIT_WORKSPACE_ERROR

    def test_cbr_without_rar_is_rejected(self, temp_dir, output_dir, monkeypatch, capsys):
        monkeypatch.setattr("comicpack.writers.cbr.shutil.which", lambda name: None)
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])

        assert run_cli("convert", str(source), "-o", str(output_dir), "-f", "cbr") == EXIT_VALIDATION_ERROR
        assert "rar" in capsys.readouterr().err
        assert list(output_dir.iterdir()) == []


@pytest.mark.unit
@pytest.mark.cli
class TestConvertImagesCommand:
    """``comicpack convert-images``."""

    def test_parser_offers_only_image_flags(self):
        parsed = create_parser().parse_args(
            ["convert-images", "p.png", "-o", "out", "-s", "50", "--webp-quality", "70"]
        )
        assert parsed.sources == ["p.png"]
        assert (parsed.output_folder, parsed.image_scale, parsed.webp_quality) == ("out", 50, 70)
        with pytest.raises(SystemExit):
            create_parser().parse_args(["convert-images", "p.png", "-f", "pdf"])

    def test_convert_images(self, temp_dir, output_dir, scratch_parent, capsys):
        first = write_image(temp_dir / "p.png", size=(40, 60))
        second = write_image(temp_dir / "q.jpg")

        options = ["-o", str(output_dir), "--image-format", "webp", "--scale", "50", "--temp-dir", str(scratch_parent)]
        code = run_cli("convert-images", str(first), str(second), *options)

        assert code == EXIT_SUCCESS
        assert sorted(p.name for p in output_dir.iterdir()) == ["p.webp", "q.webp"]
        assert image_size(output_dir / "p.webp") == (20, 30)
        assert str(output_dir / "p.webp") in capsys.readouterr().out
        assert list(scratch_parent.iterdir()) == []

    def test_undecodable_image_exit_code(self, temp_dir, output_dir):
        good = write_image(temp_dir / "p.png")
        bad = make_corrupt_file(temp_dir / "bad.png", header=b"\x89PNG\r\n\x1a\n")

        code = run_cli("convert-images", str(bad), str(good), "-o", str(output_dir), "--scale", "50")

        assert code == EXIT_ERROR
        assert [p.name for p in output_dir.iterdir()] == ["p.png"]

    def test_missing_output_dir(self, temp_dir):
        image = write_image(temp_dir / "p.png")
        assert run_cli("convert-images", str(image)) == EXIT_VALIDATION_ERROR

    def test_unsupported_file(self, temp_dir, output_dir, capsys):
        path = temp_dir / "notes.txt"
        path.write_text("hello")
        assert run_cli("convert-images", str(path), "-o", str(output_dir)) == EXIT_VALIDATION_ERROR
        assert "Unsupported image" in capsys.readouterr().err


@pytest.mark.unit
@pytest.mark.cli
class TestConfigFiles:
    """Config files feed option defaults."""

    def test_config_values_and_override(self, temp_dir, output_dir, scratch_parent):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        config = temp_dir / "settings.toml"
        config.write_text('temp_folder_parent = "scratch"\n\n[output]\noutput_format = "cb7"\n')

        assert main(["convert", str(source), "-o", str(output_dir), "--config", str(config), "--no-progress"]) == 0
        assert [p.name for p in output_dir.iterdir()] == ["a.cb7"]

        code = main(["convert", str(source), "-o", str(output_dir), "-f", "cbz", "--config", str(config), "--no-progress"])
        assert code == 0
        assert (output_dir / "a.cbz").exists()
        assert list(scratch_parent.iterdir()) == []

    def test_base_name_in_config_does_not_affect_convert(self, temp_dir, output_dir):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        config = temp_dir / "settings.yaml"
        config.write_text("output:\n  output_file_base_name: Merged\n")

        code = main(["convert", str(source), "-o", str(output_dir), "--config", str(config), "--no-progress"])

        assert code == 0
        assert [p.name for p in output_dir.iterdir()] == ["a.cbz"]

    def test_env_var_config(self, temp_dir, output_dir, monkeypatch):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        config = temp_dir / "env.json"
        config.write_text('{"output": {"output_format": "pdf"}}')
        monkeypatch.setenv("COMICPACK_CONFIG", str(config))

        assert main(["convert", str(source), "-o", str(output_dir), "--no-progress"]) == 0
        assert (output_dir / "a.pdf").exists()

    def test_bad_config(self, temp_dir, output_dir, capsys):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        config = temp_dir / "settings.toml"
        config.write_text("colour = 'red'\n")

        code = main(["convert", str(source), "-o", str(output_dir), "--config", str(config)])

        assert code == EXIT_VALIDATION_ERROR
        assert "Unknown configuration key" in capsys.readouterr().err

    def test_unknown_option_in_config(self, temp_dir, output_dir):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        config = temp_dir / "settings.toml"
        config.write_text("[output]\ncolour = 'red'\n")

        code = main(["convert", str(source), "-o", str(output_dir), "--config", str(config)])

        assert code == EXIT_VALIDATION_ERROR


@pytest.mark.unit
@pytest.mark.cli
class TestPageCommands:
    """``list-pages`` and ``export-page``."""

    def test_list_pages(self, temp_dir, capsys):
        source = make_cbz(temp_dir / "a.cbz", ["10.png", "2.png", "1.png"])

        assert run_cli("list-pages", str(source)) == EXIT_SUCCESS

        lines = capsys.readouterr().out.splitlines()
        assert [line.split() for line in lines] == [["1", "1.png"], ["2", "2.png"], ["3", "10.png"]]

    def test_list_empty_source(self, temp_dir):
        source = make_cbz(temp_dir / "a.cbz", [], extra=["readme.txt"])
        assert run_cli("list-pages", str(source)) == EXIT_ERROR

    @pytest.mark.slow
    def test_export_page(self, temp_dir, output_dir, capsys):
        source = make_cbz(temp_dir / "a.cbz", ["1.png", "2.png"])

        assert run_cli("export-page", str(source), "2", "-o", str(output_dir)) == EXIT_SUCCESS

        printed = capsys.readouterr().out.strip()
        assert printed == str(output_dir / "a_page_2.png")
        assert os.path.exists(printed)

    def test_export_page_zero(self, temp_dir, output_dir):
        source = make_cbz(temp_dir / "a.cbz", ["1.png"])
        assert run_cli("export-page", str(source), "0", "-o", str(output_dir)) == EXIT_VALIDATION_ERROR
