"""Shared protocol definitions."""

from typing import Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard)."""

    def log_request(self, method: str, url: str) -> None: ...
    def log_proxy_target(self, url: str) -> None: ...
    def log_response(self, path: str, status: int, branch: str) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...
