"""
Rate-Limited Pagination

Walks every transactions page from 1 to total_pages, strictly one request at
a time, sleeping a random interval before each page after the first and a
longer fixed pause at every checkpoint.

Page 1 is fetched without a delay because it carries the page count. A failed
page aborts the whole walk; pages already fetched are discarded.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

from .config import ExportConfig
from .fetch_transactions import Page, Transaction

logger = logging.getLogger(__name__)


class PageFetcher(Protocol):
    async def fetch_page(self, page_index: int, total_pages: Optional[int] = None) -> Page:
        ...


@dataclass(frozen=True)
class Checkpoint:
    """Progress observed at a checkpoint pause."""

    pages_completed: int
    total_pages: int
    transactions_collected: int


class PaginationScheduler:
    """
    Fetches all pages sequentially with human-like pacing.

    Usage:
        scheduler = PaginationScheduler(client, ExportConfig())
        transactions = await scheduler.fetch_all()

    sleep, rng and on_checkpoint can be swapped out, e.g. to run the schedule
    in tests without waiting.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        config: Optional[ExportConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        on_checkpoint: Optional[Callable[[Checkpoint], None]] = None,
    ):
        self.fetcher = fetcher
        self.config = config or ExportConfig()
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.on_checkpoint = on_checkpoint
        self.total_pages: Optional[int] = None

    def random_delay_ms(self) -> int:
        """Pick a whole number of milliseconds in [min_delay_ms, max_delay_ms]."""
        return self.rng.randint(self.config.min_delay_ms, self.config.max_delay_ms)

    async def _pause(self, delay_ms: int) -> None:
        await self.sleep(delay_ms / 1000)

    def _log_plan(self, total_pages: int) -> None:
        cfg = self.config
        estimated_minutes = total_pages * cfg.mean_delay_ms / 60000
        logger.info("Starting slow export:")
        logger.info(f"   Total pages: {total_pages}")
        logger.info(f"   Estimated transactions: ~{total_pages * cfg.page_size}")
        logger.info(f"   Estimated time: ~{estimated_minutes:.1f} minutes")
        logger.info(
            f"   Delay between requests: {cfg.min_delay_ms / 1000:g}-{cfg.max_delay_ms / 1000:g} seconds"
        )

    async def fetch_all(self) -> list[Transaction]:
        """
        Fetch every page and return their transactions in fetch order.

        Raises:
            PageFetchError: for the first page that fails
        """
        cfg = self.config

        logger.info("Fetching first page to determine total pages...")
        first_page = await self.fetcher.fetch_page(1, None)
        total_pages = first_page.total_pages or 0
        self.total_pages = total_pages
        self._log_plan(total_pages)

        transactions = list(first_page.transactions)

        for page_index in range(2, total_pages + 1):
            delay_ms = self.random_delay_ms()
            logger.info(f"Waiting {delay_ms / 1000:.1f} seconds...")
            await self._pause(delay_ms)

            page = await self.fetcher.fetch_page(page_index, total_pages)
            transactions.extend(page.transactions)

            if page_index % cfg.checkpoint_interval_pages == 0 and page_index < total_pages:
                checkpoint = Checkpoint(
                    pages_completed=page_index,
                    total_pages=total_pages,
                    transactions_collected=len(transactions),
                )
                logger.info(
                    f"PROGRESS CHECK: {page_index}/{total_pages} pages complete "
                    f"({len(transactions)} transactions collected)"
                )
                if self.on_checkpoint:
                    self.on_checkpoint(checkpoint)
                logger.info(f"Taking a {cfg.checkpoint_delay_ms / 1000:g} second break...")
                await self._pause(cfg.checkpoint_delay_ms)

        logger.info(
            f"ALL DONE! Collected {len(transactions)} transactions from {max(total_pages, 1)} pages"
        )
        return transactions
