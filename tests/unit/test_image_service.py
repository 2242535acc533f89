"""Unit tests for decoding and tiny-thumbnail similarity."""

from PIL import Image
import pytest

from infrastructure.image_service import (
    ImageService,
    gray_thumbnail,
    raster_similarity,
    tiny_thumbnail_similarity,
)


def _half_black(size: int = 64) -> Image.Image:
    image = Image.new("L", (size, size), 255)
    image.paste(0, (0, 0, size, size // 2))
    return image


class TestSimilarity:
    """Tests for the module-level comparison helpers."""

    def test_identical_solid_images(self) -> None:
        a = Image.new("L", (64, 64), 128)
        b = Image.new("L", (64, 64), 128)
        assert tiny_thumbnail_similarity(a, b) == 1.0

    def test_black_versus_white(self) -> None:
        assert tiny_thumbnail_similarity(
            Image.new("L", (64, 64), 0), Image.new("L", (64, 64), 255)
        ) == 0.0

    def test_half_differing(self) -> None:
        white = Image.new("L", (64, 64), 255)
        assert tiny_thumbnail_similarity(_half_black(), white) == 0.5

    def test_color_mode_does_not_matter(self) -> None:
        rgb = Image.new("RGB", (32, 32), (128, 128, 128))
        gray = Image.new("L", (32, 32), 128)
        assert tiny_thumbnail_similarity(rgb, gray) == 1.0

    def test_thumb_shape(self) -> None:
        thumb = gray_thumbnail(Image.new("RGB", (40, 20)), 8)
        assert thumb.size == (8, 8)
        assert thumb.mode == "L"

    def test_non_positive_size_rejected(self) -> None:
        with pytest.raises(ValueError):
            gray_thumbnail(Image.new("L", (8, 8)), 0)

    def test_raster_size_mismatch(self) -> None:
        with pytest.raises(ValueError):
            raster_similarity(Image.new("L", (4, 4)), Image.new("L", (8, 8)))


class TestImageService:
    """Tests for ImageService."""

    def test_decode_round_trip_keeps_similarity(self, png_bytes) -> None:
        service = ImageService()
        original = _half_black()

        decoded = service.decode(png_bytes(original))

        assert decoded is not None
        assert service.similarity(original, decoded) == 1.0

    def test_decode_garbage(self) -> None:
        assert ImageService().decode(b"definitely not an image") is None

    def test_reference_thumbnail_cached(self, tmp_path) -> None:
        path = tmp_path / "reference.png"
        _half_black().save(path)
        service = ImageService(thumb_size=8)

        first = service.gray_thumbnail_for_path(str(path))
        second = service.gray_thumbnail_for_path(str(path))

        assert first is not None
        assert first is second
        assert first.size == (8, 8)

    def test_missing_reference(self, tmp_path) -> None:
        assert ImageService().gray_thumbnail_for_path(str(tmp_path / "nope.png")) is None

    def test_similarity_to_reference(self, tmp_path) -> None:
        path = tmp_path / "reference.png"
        _half_black().save(path)
        service = ImageService()
        reference = service.gray_thumbnail_for_path(str(path))

        assert service.similarity_to_reference(_half_black(128), reference) == 1.0
        assert service.similarity_to_reference(Image.new("L", (64, 64), 255), reference) == 0.5
