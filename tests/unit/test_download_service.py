"""Unit tests for the download-and-match variant."""

from pathlib import Path

from PIL import Image
import pytest

from core.models import BatchOutcome
from core.services.scheduler import CancellationToken
from infrastructure.download_service import CANCELLED_MESSAGE, DownloadService
from infrastructure.image_service import ImageService

MATCH_URL = "https://cdn.example.test/img/match.png"
OTHER_URL = "https://cdn.example.test/img/other.png"
BROKEN_URL = "https://cdn.example.test/img/broken.png"


def _pattern() -> Image.Image:
    image = Image.new("RGB", (64, 64), (255, 255, 255))
    image.paste((0, 0, 0), (0, 0, 32, 64))
    return image


@pytest.fixture
def reference(tmp_path: Path) -> Path:
    path = tmp_path / "reference.png"
    _pattern().save(path)
    return path


@pytest.fixture
def csv_file(tmp_path: Path) -> Path:
    path = tmp_path / "urls.csv"
    path.write_text(
        "Item,ImageURL\n"
        f'A1,"{MATCH_URL}"\n'
        f"A2,{OTHER_URL}\n"
        "\n"
        f"A3,{BROKEN_URL}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def service(store, png_bytes) -> DownloadService:
    store.bodies[MATCH_URL] = png_bytes(_pattern())
    store.bodies[OTHER_URL] = png_bytes(Image.new("RGB", (64, 64), (0, 0, 0)))
    store.failing.add(BROKEN_URL)
    return DownloadService(store.client(), ImageService(), threshold=0.9)


class TestDownloadMatching:
    """Tests for DownloadService.download_matching."""

    @pytest.mark.asyncio
    async def test_saves_only_matches(self, service, csv_file, reference, tmp_path) -> None:
        destination = tmp_path / "out"
        messages: list[str] = []

        summary = await service.download_matching(
            str(csv_file),
            str(destination),
            str(reference),
            CancellationToken(),
            on_progress=lambda message, _c, _t: messages.append(message),
        )

        assert summary.outcome is BatchOutcome.COMPLETED
        assert not summary.failed
        assert (summary.total, summary.checked, summary.matched) == (3, 3, 1)
        assert summary.message == "Downloaded 1 matching images out of 3."
        assert summary.saved_paths == [str(destination / "match.png")]
        assert sorted(p.name for p in destination.iterdir()) == ["match.png"]
        assert messages[0] == "Preparing to download..."
        assert "Processed 3 of 3 images..." in messages
        assert messages[-1] == summary.message

    @pytest.mark.asyncio
    async def test_missing_csv(self, service, reference, tmp_path) -> None:
        summary = await service.download_matching(
            str(tmp_path / "missing.csv"), str(tmp_path), str(reference), CancellationToken()
        )

        assert summary.message == "Failed to read CSV file."
        assert summary.failed
        assert summary.checked == 0

    @pytest.mark.asyncio
    async def test_missing_reference(self, service, csv_file, tmp_path) -> None:
        missing = tmp_path / "nope.png"

        summary = await service.download_matching(
            str(csv_file), str(tmp_path), str(missing), CancellationToken()
        )

        assert summary.message == f"Reference image not found: {missing}"
        assert summary.failed

    @pytest.mark.asyncio
    async def test_header_only_csv(self, service, reference, tmp_path) -> None:
        csv_path = tmp_path / "empty.csv"
        csv_path.write_text("Item,ImageURL\n", encoding="utf-8")

        summary = await service.download_matching(
            str(csv_path), str(tmp_path), str(reference), CancellationToken()
        )

        assert summary.message == "CSV has no data rows."
        assert summary.failed
        assert summary.total == 0

    @pytest.mark.asyncio
    async def test_cancelled(self, service, csv_file, reference, tmp_path) -> None:
        token = CancellationToken()
        token.cancel()
        destination = tmp_path / "out"

        summary = await service.download_matching(
            str(csv_file), str(destination), str(reference), token
        )

        assert summary.outcome is BatchOutcome.CANCELLED
        assert summary.message == CANCELLED_MESSAGE
        assert summary.saved_paths == []
        assert list(destination.iterdir()) == []
