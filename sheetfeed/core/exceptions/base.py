"""sheetfeed core exception classes."""

from typing import Any


class SheetFeedError(Exception):
    """Base class for every error raised by the refresh pipeline."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        """Initialise the error.

        Args:
            message: human readable message
            error_code: stable machine readable code
            details: extra context for logs
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Return the body the HTTP layer sends when nothing is cached."""

        return {"error": self.message}


class FetchError(SheetFeedError):
    """Retrieving the remote document failed."""

    def __init__(
        self,
        message: str,
        url: str,
        error_code: str = "FETCH_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details["url"] = url
        super().__init__(message, error_code, super_details)
        self.url = url


class NetworkError(FetchError):
    """Transport level failure (DNS, connection, TLS, timeout, proxy)."""

    def __init__(
        self,
        message: str,
        url: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, url, "NETWORK_ERROR", details)


class HttpStatusError(FetchError):
    """The upstream answered with a non-success status."""

    def __init__(
        self,
        url: str,
        status_code: int,
        status_text: str = "",
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details["status_code"] = status_code
        super_details["status_text"] = status_text
        message = f"Upstream request failed: {status_code} {status_text}".rstrip()
        super().__init__(message, url, "HTTP_STATUS_ERROR", super_details)
        self.status_code = status_code
        self.status_text = status_text


class ParseError(SheetFeedError):
    """The document could not be parsed as a table."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if line is not None:
            super_details["line"] = line
        super().__init__(message, "PARSE_ERROR", super_details)
        self.line = line


class EmptyDatasetError(SheetFeedError):
    """The document parsed cleanly but holds no data rows."""

    def __init__(
        self,
        message: str = "Document contains no data rows",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "EMPTY_DATASET", details)
