#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the image transcode pipeline."""

import io

import pytest
from hypothesis import given
from hypothesis import strategies as st
from PIL import Image
from utils import image_size, write_image

from comicpack.exceptions import TranscodeError
from comicpack.options import OutputOptions
from comicpack.transcode import ImageTranscoder, scaled_size, sniff_file_format


@pytest.fixture
def transcoder():
    return ImageTranscoder(OutputOptions())


@pytest.mark.unit
class TestScaledSize:
    """Target size computation."""

    def test_half(self):
        assert scaled_size(400, 600, 50) == (200, 300)

    def test_rounding(self):
        assert scaled_size(1001, 1500, 50) == (500, 749)

    def test_never_zero(self):
        assert scaled_size(10, 1000, 1) == (1, 100)

    @given(
        width=st.integers(min_value=1, max_value=5000),
        height=st.integers(min_value=1, max_value=5000),
        scale=st.integers(min_value=1, max_value=100),
    )
    def test_within_original_bounds(self, width, height, scale):
        new_width, new_height = scaled_size(width, height, scale)
        assert 1 <= new_width <= width
        assert new_height >= 1
        exact_height = height * new_width / width
        if exact_height < 0.5:
            # Clamped to a single pixel row
            assert new_height == 1
        else:
            # Height tracks the width's ratio within rounding
            assert abs(new_height - exact_height) <= 0.5 + 1e-9

    def test_clamped_height(self):
        assert scaled_size(3, 1, 1) == (1, 1)


@pytest.mark.unit
class TestImageTranscoder:
    """Resize and re-encode of single files."""

    def test_resize_keeps_aspect_ratio(self, temp_dir, transcoder):
        source = write_image(temp_dir / "p.png", size=(40, 60))
        result = transcoder.transcode(source, scale=50)

        assert not source.exists()
        assert result.parent == temp_dir
        assert sniff_file_format(result) == "png"
        assert image_size(result) == (20, 30)
        # The lossless intermediate is gone
        assert [p.name for p in temp_dir.iterdir()] == [result.name]

    def test_format_change_replaces_source(self, temp_dir, transcoder):
        source = write_image(temp_dir / "p.png", size=(40, 60))
        result = transcoder.transcode(source, image_format="webp")

        assert result == temp_dir / "p.webp"
        assert not source.exists()
        assert sniff_file_format(result) == "webp"
        assert image_size(result) == (40, 60)

    def test_resize_and_reencode(self, temp_dir, transcoder):
        source = write_image(temp_dir / "p.jpg", size=(100, 50))
        result = transcoder.transcode(source, image_format="png", scale=25)
        assert result.suffix == ".png"
        assert image_size(result) == (25, 12)

    def test_transparent_png_to_jpeg_is_flattened(self, temp_dir, transcoder):
        source = temp_dir / "alpha.png"
        Image.new("RGBA", (10, 10), (255, 0, 0, 0)).save(source)

        result = transcoder.transcode(source, image_format="jpg")

        with Image.open(result) as img:
            assert img.mode == "RGB"
            # Transparent pixels become the white background
            assert all(channel > 240 for channel in img.getpixel((5, 5)))

    def test_png_quality_quantizes(self, temp_dir):
        source = write_image(temp_dir / "p.jpg", size=(30, 30))
        result = ImageTranscoder(OutputOptions(png_quality=50)).transcode(source, image_format="png")
        with Image.open(result) as img:
            assert img.mode == "P"

    def test_jpeg_quality_is_applied(self, temp_dir):
        noisy = Image.effect_noise((64, 64), 100).convert("RGB")
        high_path = temp_dir / "high.png"
        low_path = temp_dir / "low.png"
        noisy.save(high_path)
        noisy.save(low_path)

        high = ImageTranscoder(OutputOptions(jpg_quality=95)).transcode(high_path, image_format="jpg")
        low = ImageTranscoder(OutputOptions(jpg_quality=10)).transcode(low_path, image_format="jpg")

        assert low.stat().st_size < high.stat().st_size

    def test_exif_is_preserved(self, temp_dir, transcoder):
        img = Image.new("RGB", (20, 20), (10, 20, 30))
        exif = Image.Exif()
        exif[0x0112] = 6  # orientation
        source = temp_dir / "rotated.jpg"
        img.save(source, format="JPEG", exif=exif.tobytes())

        result = transcoder.transcode(source, image_format="png", scale=50)

        with Image.open(result) as out:
            assert out.getexif().get(0x0112) == 6

    def test_undecodable_file_keeps_source(self, temp_dir, transcoder):
        source = temp_dir / "broken.png"
        source.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 20)

        with pytest.raises(TranscodeError) as exc_info:
            transcoder.transcode(source, image_format="jpg")

        assert source.exists()
        assert exc_info.value.image_path == str(source)
        assert [p.name for p in temp_dir.iterdir()] == ["broken.png"]

    def test_unknown_format_without_target(self, temp_dir, transcoder):
        source = temp_dir / "mystery.png"
        source.write_bytes(b"not an image at all")
        with pytest.raises(TranscodeError, match="Cannot encode"):
            transcoder.transcode(source, scale=50)
        assert source.exists()

    def test_needs_transcode(self, temp_dir, transcoder):
        png = write_image(temp_dir / "p.png")
        assert not transcoder.needs_transcode(png, None, 100)
        assert not transcoder.needs_transcode(png, "png", 100)
        assert transcoder.needs_transcode(png, "jpg", 100)
        assert transcoder.needs_transcode(png, None, 80)

    def test_sniffing_ignores_extension(self, temp_dir):
        path = temp_dir / "lies.png"
        buffer = io.BytesIO()
        Image.new("RGB", (4, 4)).save(buffer, format="JPEG")
        path.write_bytes(buffer.getvalue())
        assert sniff_file_format(path) == "jpg"
