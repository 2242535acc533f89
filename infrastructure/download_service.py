"""Download images listed in a CSV, keeping those that look like a reference.

Used when no content hash of the wanted asset is known: every URL is fetched,
scored against a reference image with the tiny-thumbnail comparison and saved
when the score reaches the similarity threshold.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from pathlib import Path

from loguru import logger

from core.models import BatchOutcome
from core.services.interfaces import DownloadSummary
from core.services.scheduler import CancellationToken, ProgressCounter, run_fanout
from infrastructure.csv_repository import CsvUrlRepository
from infrastructure.image_service import ImageService
from infrastructure.remote_client import RemoteFetchError, RemoteStoreClient
from infrastructure.utils import download_filename

ProgressCallback = Callable[[str, int, int], None]

CANCELLED_MESSAGE = "Download cancelled by user"


class DownloadService:
    """Fetches CSV-listed URLs and saves visual matches of a reference image."""

    def __init__(
        self,
        client: RemoteStoreClient,
        image_service: ImageService,
        urls: CsvUrlRepository | None = None,
        threshold: float = 0.90,
        limit: int | None = None,
    ) -> None:
        self._client = client
        self._images = image_service
        self._urls = urls or CsvUrlRepository()
        self.threshold = threshold
        self._limit = limit

    async def download_matching(
        self,
        csv_path: str,
        destination: str,
        reference_path: str,
        token: CancellationToken,
        on_progress: ProgressCallback | None = None,
    ) -> DownloadSummary:
        """Download every CSV-listed image that matches the reference image."""

        def report(message: str, checked: int, total: int) -> None:
            if on_progress is not None:
                on_progress(message, checked, total)

        def fail(message: str) -> DownloadSummary:
            logger.error(message)
            report(message, 0, 0)
            return DownloadSummary(BatchOutcome.COMPLETED, 0, 0, 0, message, [], failed=True)

        try:
            urls = self._urls.read_urls(csv_path)
        except (OSError, UnicodeDecodeError) as ex:
            logger.error("Read CSV {} failed: {}", csv_path, ex)
            return fail("Failed to read CSV file.")

        reference = self._images.gray_thumbnail_for_path(reference_path)
        if reference is None:
            return fail(f"Reference image not found: {reference_path}")
        if not urls:
            return fail("CSV has no data rows.")

        total = len(urls)
        dest = Path(destination)
        dest.mkdir(parents=True, exist_ok=True)
        report("Preparing to download...", 0, total)

        checked = ProgressCounter()
        matched = ProgressCounter()

        async def process(url: str) -> str | None:
            saved: str | None = None
            if token.cancelled:
                return None
            try:
                data = await self._client.fetch_bytes(url)
            except RemoteFetchError as ex:
                logger.debug("Download failed: {}", ex)
                data = None
            if token.cancelled:
                return None
            if data is not None:
                image = self._images.decode(data)
                if image is not None:
                    score = self._images.similarity_to_reference(image, reference)
                    if score >= self.threshold and not token.cancelled:
                        target = dest / download_filename(url)
                        try:
                            target.write_bytes(data)
                        except OSError as ex:
                            logger.error("Write {} failed: {}", target, ex)
                        else:
                            saved = str(target)
                            await matched.increment()
                            logger.debug("Matched {} ({:.2f}) -> {}", url, score, target)
            done = await checked.increment()
            if not token.cancelled:
                report(f"Processed {done} of {total} images...", done, total)
            return saved

        result = await run_fanout([partial(process, url) for url in urls], token, self._limit)
        done = await checked.value()
        if result.cancelled:
            report(CANCELLED_MESSAGE, done, total)
            return DownloadSummary(
                BatchOutcome.CANCELLED, total, done, await matched.value(), CANCELLED_MESSAGE, []
            )

        saved_paths = [p for p in result.results if p]
        hits = await matched.value()
        message = f"Downloaded {hits} matching images out of {done}."
        logger.info(message)
        report(message, done, total)
        return DownloadSummary(BatchOutcome.COMPLETED, total, done, hits, message, saved_paths)
