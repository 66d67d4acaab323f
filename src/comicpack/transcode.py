#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/transcode.py
"""Page image resize and re-encode using Pillow.

A transcode runs in two steps when a resize is requested: the resized image
is first written to a lossless temporary PNG next to the source, then that
file is encoded to the target codec. EXIF data (orientation included) and
ICC profiles are carried through both steps.

The source file is deleted only after the final encode succeeded; on any
failure the source stays and partial output is removed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from PIL import Image

from comicpack.constants import PIL_FORMAT_NAMES
from comicpack.exceptions import TranscodeError
from comicpack.options.output import OutputOptions
from comicpack.utils.images import detect_image_format_from_bytes
from comicpack.utils.paths import unique_output_path

logger = logging.getLogger(__name__)

_PIL_ERRORS = (OSError, ValueError, KeyError, SyntaxError, Image.DecompressionBombError)


def sniff_file_format(path: Path) -> str | None:
    """Return the image format of a file from its magic bytes."""
    with open(path, "rb") as f:
        return detect_image_format_from_bytes(f.read(32))


def scaled_size(width: int, height: int, scale: int) -> tuple[int, int]:
    """Return the size of an image resized to ``scale`` percent of its width.

    The height follows the aspect ratio of the original.

    Examples
    --------
        >>> scaled_size(1001, 1500, 50)
        (500, 749)

    """
    new_width = max(1, round(width * scale / 100))
    new_height = max(1, round(height * new_width / width))
    return new_width, new_height


class ImageTranscoder:
    """Resize and re-encode page images.

    Parameters
    ----------
    options : OutputOptions
        Supplies per-codec quality settings

    """

    def __init__(self, options: OutputOptions):
        """Initialize the transcoder with output options."""
        self.options = options

    def needs_transcode(self, path: Path, image_format: str | None, scale: int) -> bool:
        """Whether a page differs from the requested format or scale."""
        if scale < 100:
            return True
        if image_format is None:
            return False
        return sniff_file_format(path) != image_format

    def transcode(self, path: Path, image_format: str | None = None, scale: int = 100) -> Path:
        """Resize and/or re-encode one image file.

        Parameters
        ----------
        path : Path
            Image to transcode; deleted on success
        image_format : {"jpg", "png", "webp", "avif"} or None
            Target codec. None keeps the image's own format.
        scale : int, default 100
            Percentage of the original width (1-100)

        Returns
        -------
        Path
            The encoded file, in the same folder as ``path``

        Raises
        ------
        TranscodeError
            If the image cannot be decoded, resized or encoded

        """
        path = Path(path)
        resized_path: Path | None = None
        output_path: Path | None = None
        try:
            target_format = image_format or sniff_file_format(path)
            if target_format not in PIL_FORMAT_NAMES:
                raise TranscodeError(f"Cannot encode to image format {target_format!r}", image_path=str(path))

            encode_from = path
            if scale < 100:
                resized_path = unique_output_path(path.parent, f"{path.stem}.resize", "tmp")
                self._resize(path, resized_path, scale)
                encode_from = resized_path

            output_path = unique_output_path(path.parent, path.stem, target_format)
            self._encode(encode_from, output_path, target_format)
        except TranscodeError:
            self._discard(output_path)
            raise
        except _PIL_ERRORS as e:
            self._discard(output_path)
            raise TranscodeError(f"Failed to transcode {path.name}: {e}", image_path=str(path), original_error=e) from e
        finally:
            self._discard(resized_path)

        path.unlink()
        logger.debug(f"Transcoded {path.name} -> {output_path.name}")
        return output_path

    @staticmethod
    def _discard(path: Path | None) -> None:
        if path is not None:
            path.unlink(missing_ok=True)

    @staticmethod
    def _metadata_kwargs(img: Image.Image) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        exif = img.info.get("exif")
        if exif:
            kwargs["exif"] = exif
        icc_profile = img.info.get("icc_profile")
        if icc_profile:
            kwargs["icc_profile"] = icc_profile
        return kwargs

    def _resize(self, source: Path, target: Path, scale: int) -> None:
        with Image.open(source) as img:
            size = scaled_size(img.width, img.height, scale)
            metadata = self._metadata_kwargs(img)
            resized = img.resize(size, Image.Resampling.LANCZOS)
            # PNG keeps the intermediate lossless
            resized.save(target, format="PNG", **metadata)

    def _encode(self, source: Path, target: Path, image_format: str) -> None:
        with Image.open(source) as img:
            metadata = self._metadata_kwargs(img)
            img.load()
            prepared, save_kwargs = self._prepare(img, image_format)
            prepared.save(target, format=PIL_FORMAT_NAMES[image_format], **metadata, **save_kwargs)

    def _prepare(self, img: Image.Image, image_format: str) -> tuple[Image.Image, dict[str, Any]]:
        options = self.options

        if image_format == "jpg":
            return _flatten_to_rgb(img), {
                "quality": options.jpg_quality,
                "optimize": options.jpg_optimize,
                "progressive": options.jpg_optimize,
            }

        if image_format == "png":
            if options.png_quality < 100:
                colors = max(2, round(256 * options.png_quality / 100))
                base = img.convert("RGBA") if img.mode not in ("RGB", "RGBA", "L") else img
                method = Image.Quantize.FASTOCTREE if base.mode == "RGBA" else Image.Quantize.MEDIANCUT
                return base.quantize(colors=colors, method=method), {"optimize": True, "compress_level": 9}
            return img, {}

        if image_format in ("webp", "avif"):
            if img.mode not in ("RGB", "RGBA", "L"):
                img = img.convert("RGBA" if "A" in img.getbands() or img.mode == "P" else "RGB")
            return img, {"quality": options.quality_for(image_format)}

        # bmp, gif and tiff only reach here when resized in their own format
        return img, {}


def _flatten_to_rgb(img: Image.Image) -> Image.Image:
    if img.mode in ("RGB", "L"):
        return img
    if img.mode in ("RGBA", "LA", "P", "PA"):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")
