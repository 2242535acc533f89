"""Image decoding and coarse perceptual comparison.

Two images are compared by shrinking both to a tiny grayscale raster and
counting positions whose gray values are exactly equal. This is sensitive to
crops and scaling but not to file format, which is what matching a freshly
downloaded image against a known reference needs.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
import hashlib
import io
import os

from loguru import logger
from PIL import Image, ImageOps, UnidentifiedImageError

try:  # pragma: no cover - optional dependency
    from pillow_heif import register_heif_opener  # type: ignore

    register_heif_opener()
    PIL_HEIF_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    PIL_HEIF_AVAILABLE = False

DEFAULT_THUMB_SIZE = 8
# One fixed resize filter keeps scores reproducible across machines
THUMB_RESAMPLE = Image.Resampling.BOX


def gray_thumbnail(image: Image.Image, thumb_size: int = DEFAULT_THUMB_SIZE) -> Image.Image:
    """Return `image` as a `thumb_size` x `thumb_size` single-channel raster."""
    if thumb_size < 1:
        raise ValueError(f"thumb_size must be positive, got {thumb_size}")
    upright = ImageOps.exif_transpose(image)
    return upright.convert("L").resize((thumb_size, thumb_size), THUMB_RESAMPLE)


def raster_similarity(a: Image.Image, b: Image.Image) -> float:
    """Fraction of pixel positions with identical values in two equal-size rasters."""
    if a.size != b.size:
        raise ValueError(f"raster sizes differ: {a.size} != {b.size}")
    pa = a.tobytes()
    pb = b.tobytes()
    matches = sum(1 for x, y in zip(pa, pb) if x == y)
    return matches / len(pa)


def tiny_thumbnail_similarity(
    a: Image.Image, b: Image.Image, thumb_size: int = DEFAULT_THUMB_SIZE
) -> float:
    """Coarse visual similarity in [0, 1]; 1.0 means identical thumbnails."""
    return raster_similarity(gray_thumbnail(a, thumb_size), gray_thumbnail(b, thumb_size))


def _compute_cache_key(path: str, size_key: int) -> str:
    """Compute a stable cache key from path, mtime, size, and requested side."""
    try:
        st = os.stat(path)
        sig = f"{path}|{int(st.st_mtime_ns)}|{int(st.st_size)}|{int(size_key)}".encode(
            "utf-8", errors="ignore"
        )
    except OSError:
        sig = f"{path}|0|0|{int(size_key)}".encode("utf-8", errors="ignore")
    return hashlib.sha1(sig).hexdigest()


@dataclass
class _MemCacheItem:
    key: str
    image: Image.Image


class _LRUCache:
    def __init__(self, capacity: int) -> None:
        self._cap = max(1, int(capacity or 1))
        self._data: OrderedDict[str, _MemCacheItem] = OrderedDict()

    def get(self, key: str) -> Image.Image | None:
        """Return cached image for key, moving it to the MRU position."""
        item = self._data.get(key)
        if not item:
            return None
        self._data.move_to_end(key)
        return item.image

    def put(self, key: str, image: Image.Image) -> None:
        """Insert or update `key` with `image`, evicting LRU when over capacity."""
        if key in self._data:
            self._data.move_to_end(key)
        self._data[key] = _MemCacheItem(key, image)
        while len(self._data) > self._cap:
            self._data.popitem(last=False)

    def __len__(self) -> int:
        return len(self._data)


class ImageService:
    """Decodes images with Pillow and caches reference thumbnails."""

    def __init__(self, thumb_size: int = DEFAULT_THUMB_SIZE, cache_capacity: int = 64) -> None:
        self.thumb_size = thumb_size
        self._cache = _LRUCache(cache_capacity)
        self._pillow_heif_available = bool(PIL_HEIF_AVAILABLE)

    def decode(self, data: bytes) -> Image.Image | None:
        """Decode image bytes, or return None when they are not an image."""
        try:
            with Image.open(io.BytesIO(data)) as im:
                im.load()
                return im.copy()
        except (UnidentifiedImageError, OSError, ValueError) as ex:
            logger.debug("Decode failed ({} bytes): {}", len(data), ex)
            return None

    def load(self, path: str) -> Image.Image | None:
        """Decode the image file at `path`, or return None."""
        ext = os.path.splitext(path)[1].lower()
        if ext in {".heic", ".heif"} and not self._pillow_heif_available:
            logger.warning("HEIC support unavailable, cannot load {}", path)
            return None
        try:
            with Image.open(path) as im:
                im.load()
                return im.copy()
        except (UnidentifiedImageError, OSError, ValueError) as ex:
            logger.debug("Load failed for {}: {}", path, ex)
            return None

    def gray_thumbnail_for_path(
        self, path: str, thumb_size: int | None = None
    ) -> Image.Image | None:
        """Cached grayscale thumbnail of the file at `path`."""
        side = thumb_size or self.thumb_size
        key = _compute_cache_key(path, side)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        image = self.load(path)
        if image is None:
            return None
        thumb = gray_thumbnail(image, side)
        self._cache.put(key, thumb)
        return thumb

    def similarity(
        self, a: Image.Image, b: Image.Image, thumb_size: int | None = None
    ) -> float:
        return tiny_thumbnail_similarity(a, b, thumb_size or self.thumb_size)

    def similarity_to_reference(
        self, image: Image.Image, reference_thumb: Image.Image
    ) -> float:
        """Score `image` against an already-reduced reference raster."""
        side = reference_thumb.size[0]
        return raster_similarity(gray_thumbnail(image, side), reference_thumb)
