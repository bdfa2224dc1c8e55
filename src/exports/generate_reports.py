"""
Report Generation

Renders exported Koinly transactions as CSV in the Koinly universal import
layout and saves the result as "Koinly Transactions.csv".

Columns:
- Sent / Received / Fee: amount and currency symbol, empty when the side is absent
- Net Worth: Koinly's net value, always in the portfolio base currency
- Label: the Koinly transaction type
"""

from __future__ import annotations

import csv
import io
import logging
import random
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx

from src.koinly import (
    Checkpoint,
    ExportConfig,
    KoinlyClient,
    KoinlyCredentials,
    PaginationScheduler,
    Transaction,
)

logger = logging.getLogger(__name__)


EXPORT_FILENAME = "Koinly Transactions.csv"

CSV_HEADINGS = [
    "Date",
    "Sent Amount",
    "Sent Currency",
    "Received Amount",
    "Received Currency",
    "Fee Amount",
    "Fee Currency",
    "Net Worth Amount",
    "Net Worth Currency",
    "Label",
    "Description",
    "TxHash",
]


# =============================================================================
# CSV Export
# =============================================================================

def transaction_to_row(tx: Transaction, base_currency: str) -> list[str]:
    """Flatten a transaction into the 12 CSV columns."""
    return [
        tx.date or "",
        (tx.sent.amount or "") if tx.sent else "",
        tx.sent.symbol if tx.sent else "",
        (tx.received.amount or "") if tx.received else "",
        tx.received.symbol if tx.received else "",
        (tx.fee.amount or "") if tx.fee else "",
        tx.fee.symbol if tx.fee else "",
        tx.net_value or "",
        base_currency,
        tx.label or "",
        tx.description or "",
        tx.tx_hash or "",
    ]


def export_to_csv(
    base_currency: str,
    transactions: list[Transaction],
    output_path: Optional[Path] = None,
) -> str:
    """
    Render transactions to CSV, header first, one row per transaction.

    Fields containing commas, quotes or line breaks are quoted so free-text
    descriptions cannot shift the columns.

    Returns CSV content as string. Optionally writes to file.
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")

    writer.writerow(CSV_HEADINGS)
    for tx in transactions:
        writer.writerow(transaction_to_row(tx, base_currency))

    content = output.getvalue()

    if output_path:
        save_csv(content, output_path.parent, output_path.name)

    return content


def save_csv(content: str, output_dir: str | Path, filename: str = EXPORT_FILENAME) -> Path:
    """Write rendered CSV to output_dir/filename as UTF-8 and return the path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / filename

    with open(filepath, "w", newline="", encoding="utf-8") as f:
        f.write(content)

    logger.info(f"CSV file saved: {filepath}")
    return filepath


# =============================================================================
# Export Service (Orchestrator)
# =============================================================================

class ExportService:
    """
    Orchestrates the complete export workflow.

    Usage:
        service = ExportService(credentials, output_dir="./exports")
        result = await service.generate_export()
    """

    def __init__(
        self,
        credentials: KoinlyCredentials,
        output_dir: str | Path = ".",
        config: Optional[ExportConfig] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        rng: Optional[random.Random] = None,
        on_checkpoint: Optional[Callable[[Checkpoint], None]] = None,
    ):
        self.credentials = credentials
        self.output_dir = Path(output_dir)
        self.config = config or ExportConfig()
        self.base_url = base_url
        self.transport = transport
        self.sleep = sleep
        self.rng = rng
        self.on_checkpoint = on_checkpoint

    def _scheduler(self, client: KoinlyClient) -> PaginationScheduler:
        kwargs = {"rng": self.rng, "on_checkpoint": self.on_checkpoint}
        if self.sleep is not None:
            kwargs["sleep"] = self.sleep
        return PaginationScheduler(client, self.config, **kwargs)

    async def generate_export(self, filename: str = EXPORT_FILENAME) -> dict:
        """
        Complete export workflow: session, all pages, CSV, file.

        Any fetch error propagates and nothing is written.

        Returns dict with filename, filepath and transaction count.
        """
        started = datetime.now()
        logger.info("Starting slow Koinly export...")

        async with KoinlyClient(
            self.credentials,
            page_size=self.config.page_size,
            base_url=self.base_url,
            transport=self.transport,
        ) as client:
            session = await client.fetch_session()
            scheduler = self._scheduler(client)
            transactions = await scheduler.fetch_all()

        logger.debug(f"Transactions: {transactions}")

        content = export_to_csv(session.base_currency, transactions)
        filepath = save_csv(content, self.output_dir, filename)

        elapsed = (datetime.now() - started).total_seconds()
        logger.info(f"Export complete: {filename} ({len(transactions)} transactions in {elapsed:.0f}s)")

        return {
            "success": True,
            "filename": filename,
            "filepath": str(filepath),
            "transaction_count": len(transactions),
            "base_currency": session.base_currency,
            "total_pages": scheduler.total_pages,
        }
