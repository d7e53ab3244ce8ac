"""Custom exception hierarchy for the site proxy."""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class UpstreamError(ProxyError):
    """Raised when the site backend cannot serve a request.

    Attributes:
        message: Error message
        url: Backend URL the request was sent to (optional)
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class UpstreamUnreachable(UpstreamError):
    """Raised on DNS, connection or timeout failures reaching the backend."""


class MalformedUpstreamJSON(ProxyError):
    """Backend returned a body that is not the JSON we expected."""


class MissingExpectedShape(MalformedUpstreamJSON):
    """Backend JSON parsed fine but lacks the keys we descend into."""


class CompressionError(ProxyError):
    """Re-encoding a rewritten body failed."""
