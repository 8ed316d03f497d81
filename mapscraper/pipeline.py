"""Run controller: discover links per query, extract details, flush batches."""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Sequence

from mapscraper.browser import BrowserSupervisor
from mapscraper.driver import open_page
from mapscraper.errors import BatchWriteError
from mapscraper.extractors.schemas import DetailRecord, LinkRecord, Query, RecordStatus
from mapscraper.logging_config import get_logger
from mapscraper.maps.detail import DetailExtractor
from mapscraper.maps.search import LinkDiscovery
from mapscraper.retry import RetryPolicy
from mapscraper.settings import ScraperSettings
from mapscraper.storage.batches import BatchStore
from mapscraper.storage.export import run_timestamp, write_results

LOGGER = get_logger(__name__)

Discover = Callable[[Query], Awaitable[list[LinkRecord]]]
Extract = Callable[[LinkRecord, Query], Awaitable[DetailRecord]]

FINAL_PARTITION = "final_batch"
PROGRESS_EVERY = 10


@dataclass(frozen=True)
class QueueItem:
    """One unit of extraction work; ``failed`` marks a query whose discovery exhausted its retries."""

    query: Query
    link: LinkRecord | None = None
    failed: bool = False
    error: str | None = None

    @property
    def partition_key(self) -> str:
        return f"{self.query.keyword}_{self.query.region}"


@dataclass
class RunStats:
    queries: int = 0
    links: int = 0
    processed: int = 0
    skipped: int = 0
    batches_written: int = 0
    statuses: Counter[str] = field(default_factory=Counter)
    failed_queries: list[str] = field(default_factory=list)

    def summary(self) -> str:
        status_text = ", ".join(f"{name}={count}" for name, count in sorted(self.statuses.items()))
        text = (
            f"queries={self.queries} links={self.links} processed={self.processed} "
            f"skipped={self.skipped} batches={self.batches_written} "
            f"statuses=[{status_text or 'none'}]"
        )
        if self.failed_queries:
            text += f" failed_queries={self.failed_queries}"
        return text


def error_record(item: QueueItem, exc: BaseException) -> DetailRecord:
    link = item.link or LinkRecord(href="")
    return DetailRecord(
        keyword=item.query.keyword,
        region=item.query.region,
        maps_url=link.href,
        name=link.display_text or link.aria_label or None,
        status=RecordStatus.ERROR,
        error=str(exc) or type(exc).__name__,
    )


class ScrapePipeline:
    """Two-phase run: bounded discovery, then barrier-chunked extraction.

    Records are buffered and handed to the ``BatchStore`` whenever
    ``flush_size`` of them are pending; whatever is left is flushed once the
    queue drains. A batch that fails to write stays pending and is retried with
    the next flush.
    """

    def __init__(
        self,
        settings: ScraperSettings,
        *,
        discover: Discover,
        extract: Extract,
        store: BatchStore,
        retry_policy: RetryPolicy | None = None,
        run_id: str | None = None,
        progress_every: int = PROGRESS_EVERY,
    ) -> None:
        self.settings = settings
        self.discover = discover
        self.extract = extract
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy.from_settings(settings)
        self.run_id = run_id or run_timestamp()
        self.progress_every = max(1, progress_every)
        self.stats = RunStats()
        self._pending: list[DetailRecord] = []
        self._batch_seq = 0

    @classmethod
    def for_browser(
        cls,
        settings: ScraperSettings,
        supervisor: BrowserSupervisor,
        store: BatchStore,
        **kwargs: Any,
    ) -> "ScrapePipeline":
        """Wire discovery and extraction to pages opened on the supervised browser."""

        retry_policy = kwargs.pop("retry_policy", None) or RetryPolicy.from_settings(settings)
        discovery = LinkDiscovery.from_settings(settings, retry_policy)
        extractor = DetailExtractor.from_settings(settings, retry_policy)
        block_resources = settings.block_resources and settings.headless

        async def _discover(query: Query) -> list[LinkRecord]:
            browser = await supervisor.acquire()
            async with open_page(
                browser,
                block_resources=block_resources,
                nav_timeout_ms=settings.nav_timeout_ms,
            ) as driver:
                return await discovery.fetch_links_for_query(driver, query)

        async def _extract(link: LinkRecord, query: Query) -> DetailRecord:
            browser = await supervisor.acquire()
            async with open_page(
                browser,
                block_resources=block_resources,
                nav_timeout_ms=settings.nav_timeout_ms,
            ) as driver:
                return await extractor.extract(driver, link, query)

        return cls(
            settings,
            discover=_discover,
            extract=_extract,
            store=store,
            retry_policy=retry_policy,
            **kwargs,
        )

    @property
    def pending(self) -> list[DetailRecord]:
        return list(self._pending)

    async def run(self, queries: Iterable[Query]) -> RunStats:
        query_list = list(queries)
        LOGGER.info(
            "Starting run %s | queries=%s searchers=%s workers=%s",
            self.run_id,
            len(query_list),
            self.settings.searchers,
            self.settings.workers,
        )
        items = await self.discover_all(query_list)
        await self.process_queue(items)
        self.flush(FINAL_PARTITION)
        if self._pending:
            LOGGER.error("%s records could not be written to temp storage", len(self._pending))
        LOGGER.info("Run %s finished | %s", self.run_id, self.stats.summary())
        return self.stats

    async def discover_all(self, queries: Sequence[Query]) -> list[QueueItem]:
        semaphore = asyncio.Semaphore(self.settings.searchers)
        self.stats.queries += len(queries)

        async def _discover_one(query: Query) -> list[QueueItem]:
            async with semaphore:
                try:
                    links = await self.retry_policy.run(
                        lambda: self.discover(query),
                        label=f"query '{query.text}'",
                    )
                except Exception as exc:
                    LOGGER.error("Search failed for %s: %s", query.text, exc)
                    self.stats.failed_queries.append(query.text)
                    return [QueueItem(query=query, failed=True, error=str(exc) or type(exc).__name__)]
                LOGGER.info("Queued %s links for %s", len(links), query.text)
                return [QueueItem(query=query, link=link) for link in links]

        results = await asyncio.gather(*(_discover_one(query) for query in queries))
        items = [item for group in results for item in group]
        self.stats.links += sum(1 for item in items if not item.failed)
        return items

    async def process_queue(self, items: Sequence[QueueItem]) -> None:
        chunk_size = self.settings.workers
        total = len(items)
        for start in range(0, total, chunk_size):
            chunk = items[start : start + chunk_size]
            await asyncio.gather(*(self._process_item(item, total) for item in chunk))

    async def _process_item(self, item: QueueItem, total: int) -> None:
        if item.failed or item.link is None:
            LOGGER.debug("Skipping failed query placeholder: %s", item.query.text)
            self.stats.skipped += 1
            return

        link = item.link
        try:
            record = await self.retry_policy.run(
                lambda: self.extract(link, item.query),
                label=link.href,
            )
        except Exception as exc:
            record = error_record(item, exc)

        self._pending.append(record)
        self.stats.processed += 1
        self.stats.statuses[record.status.value] += 1
        if self.stats.processed % self.progress_every == 0:
            LOGGER.info("Progress: %s/%s items processed", self.stats.processed, total)

        if len(self._pending) >= self.settings.flush_size:
            self.flush(item.partition_key)

    def flush(self, partition_key: str) -> Path | None:
        """Write every pending record as one batch; keep them pending on failure."""

        if not self._pending:
            return None
        self._batch_seq += 1
        batch_id = f"{self.run_id}-{self._batch_seq:05d}"
        records = list(self._pending)
        try:
            path = self.store.write_batch(records, partition_key, batch_id)
        except BatchWriteError as exc:
            LOGGER.error("Batch flush failed, keeping %s records pending: %s", len(records), exc)
            return None
        del self._pending[: len(records)]
        self.stats.batches_written += 1
        return path


def save_results(
    store: BatchStore,
    output_dir: str | Path,
    timestamp: str | None = None,
) -> tuple[Path, Path] | None:
    """Merge every batch file in *store* and export the result set."""

    records = store.merge_all()
    if not records:
        LOGGER.warning("No records to save.")
        return None
    LOGGER.info("Total unique records: %s", len(records))
    return write_results(records, output_dir, timestamp)


__all__ = [
    "QueueItem",
    "RunStats",
    "ScrapePipeline",
    "error_record",
    "save_results",
]
