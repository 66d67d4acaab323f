#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Security tests for archive validation and path containment."""

import zipfile

import pytest
from utils import make_cbz, make_corrupt_file

from comicpack.exceptions import ArchiveSecurityError, ExtractionError
from comicpack.utils.security import is_path_within, validate_safe_extraction_path, validate_zip_archive


@pytest.mark.unit
class TestZipValidation:
    """Security checks run before a zip source is read."""

    def test_valid_archive_passes(self, temp_dir):
        validate_zip_archive(make_cbz(temp_dir / "ok.cbz", ["1.png", "2.png"]))

    def test_path_traversal_is_blocked(self, temp_dir):
        path = temp_dir / "evil.cbz"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("../../etc/passwd.jpg", b"x")

        with pytest.raises(ArchiveSecurityError, match="suspicious path"):
            validate_zip_archive(path)

    def test_windows_absolute_path_is_blocked(self, temp_dir):
        path = temp_dir / "evil.cbz"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("C:\\Windows\\evil.jpg", b"x")

        with pytest.raises(ArchiveSecurityError, match="Windows absolute path"):
            validate_zip_archive(path)

    def test_too_many_entries(self, temp_dir):
        path = make_cbz(temp_dir / "many.cbz", [f"{i}.png" for i in range(5)])
        with pytest.raises(ArchiveSecurityError, match="too many entries"):
            validate_zip_archive(path, max_entries=3)

    def test_uncompressed_size_limit(self, temp_dir):
        path = temp_dir / "big.cbz"
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("1.png", b"\x00" * 4096)

        with pytest.raises(ArchiveSecurityError, match="too large"):
            validate_zip_archive(path, max_uncompressed_size=1024)

    def test_compression_bomb(self, temp_dir):
        path = temp_dir / "bomb.cbz"
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("1.png", b"\x00" * (8 * 1024 * 1024))

        with pytest.raises(ArchiveSecurityError, match="compression ratio"):
            validate_zip_archive(path)

    def test_corrupt_archive_is_extraction_error(self, temp_dir):
        path = make_corrupt_file(temp_dir / "broken.cbz")
        with pytest.raises(ExtractionError, match="Invalid ZIP archive"):
            validate_zip_archive(path)


@pytest.mark.unit
class TestSafeExtractionPath:
    """Extraction target validation."""

    def test_normal_entry(self, temp_dir):
        target = validate_safe_extraction_path(temp_dir, "sub/001.jpg")
        assert target == (temp_dir / "sub" / "001.jpg").resolve()

    @pytest.mark.parametrize("name", ["../x.jpg", "a/../../x.jpg", "/etc/passwd", "C:/x.jpg"])
    def test_unsafe_entries(self, temp_dir, name):
        with pytest.raises(ArchiveSecurityError):
            validate_safe_extraction_path(temp_dir, name)


@pytest.mark.unit
class TestIsPathWithin:
    """Containment checks used by workspace cleanup."""

    def test_descendant(self, temp_dir):
        assert is_path_within(temp_dir / "a" / "b", temp_dir)

    def test_equal_only_when_allowed(self, temp_dir):
        assert not is_path_within(temp_dir, temp_dir)
        assert is_path_within(temp_dir, temp_dir, allow_equal=True)

    def test_sibling_with_common_prefix(self, temp_dir):
        assert not is_path_within(temp_dir.parent / (temp_dir.name + "-sibling"), temp_dir)

    def test_dotdot_is_collapsed(self, temp_dir):
        assert not is_path_within(temp_dir / "a" / ".." / "..", temp_dir)
