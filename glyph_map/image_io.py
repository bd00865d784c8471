# glyph_map/image_io.py
from __future__ import annotations

import io
import os
import tempfile
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .core_types import ConfigurationError, U8Image

"""
Image I/O helpers (RGB in sRGB) and the resize steps that run before matching.
"""

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]


def _convert_to_srgb_rgb(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes and ImageCms is not None:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im.convert("RGB"),
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGB",
            )
            if im2 is None:
                return im.convert("RGB")
            return im2
        except (ImageCms.PyCMSError, OSError, ValueError):
            return im.convert("RGB")

    return im.convert("RGB")


def load_image_rgb(path: Path) -> U8Image:
    """Load any Pillow-readable image as uint8 (H,W,3) sRGB."""
    try:
        with Image.open(path) as im0:
            im = _convert_to_srgb_rgb(im0)
            arr = np.array(im, dtype=np.uint8)
    except (FileNotFoundError, UnidentifiedImageError, OSError) as exc:
        raise ConfigurationError(f"cannot read image {path}: {exc}") from exc
    if arr.size == 0:
        raise ConfigurationError(f"image {path} is empty")
    return arr


def save_image_rgb(path: Path, rgb: U8Image) -> Path:
    """
    Write rgb as PNG. The file appears only once fully written (temporary file
    in the same folder, then replace).
    """
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".png", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            Image.fromarray(np.ascontiguousarray(rgb)).save(fh, format="PNG")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def pillow_resample_from_name(name: str) -> Image.Resampling:
    """Map a string to a Pillow resampling filter enum."""
    if name == "nearest":
        return Image.Resampling.NEAREST
    if name == "bilinear":
        return Image.Resampling.BILINEAR
    if name == "bicubic":
        return Image.Resampling.BICUBIC
    if name == "lanczos":
        return Image.Resampling.LANCZOS
    return Image.Resampling.BILINEAR  # default


def _resize(rgb: U8Image, width: int, height: int, resample: Image.Resampling) -> U8Image:
    im = Image.fromarray(rgb).resize((width, height), resample=resample)
    return np.array(im, dtype=np.uint8)


def correct_aspect(
    rgb: U8Image, cell_w: int, cell_h: int, resample: Image.Resampling
) -> U8Image:
    """
    Scale the height by cell_w / cell_h so the rendered art keeps the source
    proportions when cells are not square.
    """
    if cell_w == cell_h:
        return rgb
    h0, w0 = rgb.shape[:2]
    new_h = max(1, int(round(h0 * cell_w / float(cell_h))))
    if new_h == h0:
        return rgb
    return _resize(rgb, w0, new_h, resample)


def cap_height(
    rgb: U8Image, max_height: Optional[int], resample: Image.Resampling
) -> U8Image:
    """Shrink so height <= max_height, keeping the aspect ratio."""
    h0, w0 = rgb.shape[:2]
    if max_height is None or max_height <= 0 or h0 <= max_height:
        return rgb
    new_w = max(1, int(round(w0 * (max_height / float(h0)))))
    return _resize(rgb, new_w, int(max_height), resample)


__all__ = [
    "load_image_rgb",
    "save_image_rgb",
    "pillow_resample_from_name",
    "correct_aspect",
    "cap_height",
]
