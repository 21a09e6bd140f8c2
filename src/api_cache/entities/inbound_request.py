"""Inbound HTTP request value object."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class InboundRequestEntity:
    """Framework-independent view of a webhook delivery.

    Attributes:
        method: HTTP method, upper-case
        headers: Request headers with lower-case names
        query: Query string parameters
        body: Raw request body
        source_address: Peer address of the connection
        path: Request path, for logging
    """

    method: str
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    source_address: str | None = None
    path: str = ""

    @property
    def client_ip(self) -> str:
        """Resolve the caller address through proxy headers.

        Order: ``CF-Connecting-IP``, first hop of ``X-Forwarded-For``,
        then the connection's source address.
        """
        forwarded = self.headers.get("cf-connecting-ip")
        if forwarded:
            return forwarded.strip()
        forwarded_for = self.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return self.source_address or ""

    def replay_context(self) -> dict[str, object]:
        """Context needed to replay this delivery by hand."""
        return {
            "method": self.method,
            "path": self.path,
            "query": dict(self.query),
            "user_agent": self.headers.get("user-agent", ""),
            "ip_address": self.client_ip,
        }
