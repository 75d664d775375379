"""Custom exceptions for scheduler console operations"""

from typing import Optional


class VineConsoleError(Exception):
    """Base exception for scheduler console operations"""
    pass


class ValidationError(VineConsoleError):
    """Input rejected on the client before any request was sent"""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class RemoteError(VineConsoleError):
    """Scheduler service returned a non-2xx response or could not be reached"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class StaleResponseDiscarded(VineConsoleError):
    """A response arrived for a request that has since been superseded"""
    def __init__(self, stream: str, seq: int, latest: int):
        self.stream = stream
        self.seq = seq
        self.latest = latest
        super().__init__(f"Discarded stale {stream} response (seq={seq}, latest={latest})")
