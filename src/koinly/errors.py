"""Exceptions raised during an export run. None of them are retried."""


class KoinlyExportError(Exception):
    """Base class for export failures."""


class MissingCredentialsError(KoinlyExportError):
    """The API token or portfolio id could not be resolved."""


class SessionFetchError(KoinlyExportError):
    """The session descriptor could not be fetched or read."""


class PageFetchError(KoinlyExportError):
    """A transactions page could not be fetched or read."""

    def __init__(self, page_index: int, message: str = ""):
        self.page_index = page_index
        super().__init__(message or f"Fetch failed for page={page_index}")
