"""Rate limiter protocol."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class RateLimiter(Protocol):
    """Protocol for per-client attempt counters over a decay window."""

    def allow(self, client: str) -> bool:
        """Check if the client has attempts left in its current window."""
        ...

    def consume(self, client: str, amount: int = 1) -> None:
        """Add ``amount`` attempts to the client's current window."""
        ...

    def remaining(self, client: str) -> int:
        """Attempts left in the current window."""
        ...

    def available_in(self, client: str) -> int:
        """Seconds until the client may call again (0 if not limited)."""
        ...

    def clear(self, client: str) -> None:
        """Reset the client's window."""
        ...
