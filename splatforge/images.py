"""Training images read on demand, and a bounded cache of decoded samples."""

import math
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .errors import FormatError

MAX_CACHE_MB = 6 * 1024
"""Largest amount of decoded image data, in MiB, that a loader keeps around."""

_ALPHA_MODES = frozenset({"RGBA", "LA", "PA", "RGBa", "La"})


def _has_alpha(image):
    return image.mode in _ALPHA_MODES or "transparency" in image.info


def _round_half_away(value):
    return math.floor(value + 0.5)


def view_to_sample_image(image, alpha_is_mask):
    """Turn an image with straight alpha into one with premultiplied alpha.

    Images without alpha, and images whose alpha is a mask, are returned
    unchanged. The multiplication is done on 8-bit values with rounding.
    """
    if not _has_alpha(image) or alpha_is_mask:
        return image
    pixels = np.asarray(image.convert("RGBA"), dtype=np.uint16)
    out = pixels.copy()
    out[..., :3] = (pixels[..., :3] * pixels[..., 3:4] + 127) // 255
    return Image.fromarray(out.astype(np.uint8))


def fit_within(width, height, max_resolution):
    """Size of an image scaled down, keeping its aspect, to fit a square limit."""
    if width <= max_resolution and height <= max_resolution:
        return width, height
    ratio = min(max_resolution / width, max_resolution / height)
    return (
        max(_round_half_away(width * ratio), 1),
        max(_round_half_away(height * ratio), 1),
    )


@dataclass(frozen=True)
class ImageFile:
    """An image on disk whose header has been read but whose pixels have not."""

    path: Path
    size: Tuple[int, int]
    color_has_alpha: bool
    max_resolution: int = 1920
    mask_path: Optional[Path] = None

    @classmethod
    def open(cls, path, mask_path=None, max_resolution=1920):
        """Read the size and colour layout of an image file."""
        path = Path(path)
        try:
            with Image.open(path) as image:
                size = image.size
                alpha = _has_alpha(image)
        except OSError as err:
            raise FormatError(f"Image error: {err}") from err
        return cls(
            path=path,
            size=size,
            color_has_alpha=alpha,
            max_resolution=max_resolution,
            mask_path=None if mask_path is None else Path(mask_path),
        )

    def dim(self):
        """Size (width, height) of the image once loaded."""
        return fit_within(self.size[0], self.size[1], self.max_resolution)

    def width(self):
        return self.dim()[0]

    def height(self):
        return self.dim()[1]

    def is_masked(self):
        return self.mask_path is not None

    def has_alpha(self):
        return self.color_has_alpha or self.is_masked()

    def aspect_ratio(self):
        width, height = self.dim()
        return width / height

    def load(self):
        """Decode the image, apply its mask as alpha and scale it to ``dim()``."""
        try:
            with Image.open(self.path) as source:
                image = source.copy()
            if self.mask_path is not None:
                image = self._apply_mask(image)
        except OSError as err:
            raise FormatError(f"Image error: {err}") from err

        if image.width <= self.max_resolution and image.height <= self.max_resolution:
            return image
        target = fit_within(image.width, image.height, self.max_resolution)
        return image.resize(target, Image.Resampling.BILINEAR)

    def _apply_mask(self, image):
        rgba = np.array(image.convert("RGBA"))
        with Image.open(self.mask_path) as mask:
            if _has_alpha(mask):
                channel = np.asarray(mask.convert("RGBA"))[..., 3]
            else:
                channel = np.asarray(mask.convert("RGB"))[..., 0]
        flat = rgba.reshape(-1, 4)
        values = channel.reshape(-1)
        count = min(len(flat), len(values))
        flat[:count, 3] = values[:count]
        return Image.fromarray(rgba)


class ImageCache:
    """Keeps decoded samples by view index until a size budget in MiB is spent."""

    def __init__(self, max_size_mb, n_images):
        self.max_size = max_size_mb
        self.size = 0
        self._states = [None] * n_images
        self._lock = threading.Lock()

    def try_get(self, index):
        """The cached image for this index, or None."""
        with self._lock:
            return self._states[index]

    def insert(self, index, image):
        """Cache an image unless the slot is taken or the budget would be exceeded."""
        size_mb = len(image.tobytes()) // (1024 * 1024)
        with self._lock:
            if self.size + size_mb < self.max_size and self._states[index] is None:
                self._states[index] = image
                self.size += size_mb