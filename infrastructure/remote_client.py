"""HTTP access to the remote image store and placeholder-aware probing.

The store answers every address, serving a generic stand-in image where
nothing was uploaded. An asset counts as genuine only when the MD5 of the
returned body differs from the known placeholder hash.
"""

from __future__ import annotations

import hashlib

import httpx
from loguru import logger

from core.models import (
    DetailSlotScan,
    FetchOutcome,
    ImageRecord,
    ImageStatus,
    ProbeOutcome,
    ProbeVerdict,
    status_for_verdict,
)
from core.naming import DETAIL_SLOTS, normalize, split_extension
from core.remote_path import DEFAULT_BASE_URL, derive_remote_url
from core.services.scheduler import CancellationToken

DEFAULT_PLACEHOLDER_MD5 = "115485ffcdb7a6419a5751a6045b482f"
DEFAULT_TIMEOUT_SECONDS = 30.0


class RemoteFetchError(Exception):
    """A remote fetch did not produce a usable body."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


def content_hash(data: bytes) -> str:
    """Hex MD5 of `data`, used only for equality against known bodies."""
    return hashlib.md5(data).hexdigest()


class RemoteStoreClient:
    """Thin async wrapper over `httpx.AsyncClient` with timeout and retry budget.

    Pass `client` to share a connection pool or to inject a mock transport.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retries: int = 0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._timeout = timeout
        self._retries = max(0, int(retries))

    async def __aenter__(self) -> RemoteStoreClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_bytes(self, url: str) -> bytes:
        """GET `url` and return the body of a 2xx response.

        Raises:
            RemoteFetchError: On transport errors, timeouts, non-2xx status or
                an empty body, once the retry budget is spent.
        """
        attempt = 0
        while True:
            try:
                return await self._get_once(url)
            except RemoteFetchError as ex:
                if attempt >= self._retries:
                    raise
                attempt += 1
                logger.debug("Retrying {} after {}", url, ex.reason)

    async def _get_once(self, url: str) -> bytes:
        try:
            response = await self._client.get(url, timeout=self._timeout)
        except httpx.HTTPError as ex:
            raise RemoteFetchError(url, f"{type(ex).__name__}: {ex}") from ex
        if not response.is_success:
            raise RemoteFetchError(url, f"HTTP {response.status_code}")
        if not response.content:
            raise RemoteFetchError(url, "empty body")
        return response.content


class ExistenceProber:
    """Classifies remote assets as genuine or placeholder."""

    def __init__(
        self,
        client: RemoteStoreClient,
        placeholder_hash: str = DEFAULT_PLACEHOLDER_MD5,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self._client = client
        self.placeholder_hash = placeholder_hash.lower()
        self.base_url = base_url

    def url_for(self, name: str) -> str | None:
        """Remote URL for a local filename (normalized first)."""
        return derive_remote_url(normalize(name), self.base_url)

    async def fetch(self, url: str | None) -> FetchOutcome:
        """Fetch `url` and classify its body against the placeholder hash."""
        if url is None:
            return FetchOutcome(ProbeVerdict.UNMAPPABLE)
        try:
            data = await self._client.fetch_bytes(url)
        except RemoteFetchError as ex:
            logger.debug("Fetch failed for {}", ex)
            return FetchOutcome(ProbeVerdict.TRANSPORT_ERROR)
        digest = content_hash(data)
        if digest == self.placeholder_hash:
            return FetchOutcome(ProbeVerdict.PLACEHOLDER, digest)
        return FetchOutcome(ProbeVerdict.GENUINE, digest)

    async def exists(self, url: str | None) -> bool:
        return (await self.fetch(url)).exists

    async def scan_detail_slots(
        self, item_number: str, ext: str, token: CancellationToken
    ) -> DetailSlotScan | None:
        """Classify slots 001-008 of `item_number` as used or available.

        A slot is available only when the store serves the placeholder there.
        Fetch failures count as used. Returns None if cancelled mid-scan.
        """
        used: list[str] = []
        available: list[str] = []
        suffix = f".{ext}" if ext else ""
        for slot in DETAIL_SLOTS:
            if token.cancelled:
                return None
            url = derive_remote_url(f"{item_number}_{slot}{suffix}", self.base_url)
            if url is None:
                continue
            outcome = await self.fetch(url)
            if token.cancelled:
                return None
            if outcome.content_hash == self.placeholder_hash:
                available.append(slot)
            else:
                used.append(slot)
        return DetailSlotScan(used=tuple(used), available=tuple(available))

    async def probe_record(self, record: ImageRecord, token: CancellationToken) -> ProbeOutcome:
        """Check one record and its item's detail slots.

        The record is not modified; the returned outcome carries the new state.
        """
        cancelled = ProbeOutcome(record.id, record.status, cancelled=True)
        if token.cancelled:
            return cancelled

        normalized = normalize(record.proposed_name)
        url = derive_remote_url(normalized, self.base_url)
        if url is None:
            logger.warning("No remote path for {}", record.proposed_name)
            return ProbeOutcome(record.id, ImageStatus.ERROR, content_hash=None)

        outcome = await self.fetch(url)
        if token.cancelled:
            return cancelled

        base, ext = split_extension(normalized)
        item_number = base.split("_", 1)[0].split(".", 1)[0]
        scan = await self.scan_detail_slots(item_number, ext, token)
        if scan is None:
            return cancelled

        return ProbeOutcome(
            record_id=record.id,
            status=status_for_verdict(outcome.verdict),
            content_hash=outcome.content_hash,
            is_duplicate=outcome.exists,
            used_detail_slots=scan.used,
            available_detail_slots=scan.available,
            detail_slot_checked=True,
        )
