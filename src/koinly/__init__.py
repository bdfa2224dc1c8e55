"""Koinly API access and rate-limited pagination."""

from .config import ExportConfig, KoinlyCredentials, parse_cookie_header
from .errors import (
    KoinlyExportError,
    MissingCredentialsError,
    PageFetchError,
    SessionFetchError,
)
from .fetch_transactions import (
    AssetAmount,
    Transaction,
    Page,
    Session,
    KoinlyClient,
    build_headers,
)
from .pagination import Checkpoint, PaginationScheduler

__all__ = [
    "ExportConfig",
    "KoinlyCredentials",
    "parse_cookie_header",
    "KoinlyExportError",
    "MissingCredentialsError",
    "PageFetchError",
    "SessionFetchError",
    "AssetAmount",
    "Transaction",
    "Page",
    "Session",
    "KoinlyClient",
    "build_headers",
    "Checkpoint",
    "PaginationScheduler",
]
