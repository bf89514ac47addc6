"""Single-use decision tickets.

A ticket moves one way, from unconsumed to consumed. Redemption checks run
in a fixed priority: unknown id, then expiry, then replay, then the caller's
choice. Only the last step mutates the ticket.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable

from kasbah_guard.utils.ids import new_ticket_id


class RedeemOutcome(enum.Enum):
    """Closed set of redemption results with their wire decision and reason."""

    ALLOWED = ("ALLOW", "user allowed")
    DENIED_USER_CHOICE = ("DENY", "user blocked")
    DENIED_EXPIRED = ("DENY", "expired ticket")
    DENIED_REPLAY = ("DENY", "replay blocked")
    DENIED_UNKNOWN = ("DENY", "unknown ticket")
    DENIED_DEFAULT = ("DENY", "default deny")

    def __init__(self, decision: str, reason: str) -> None:
        self.decision = decision
        self.reason = reason

    @property
    def allowed(self) -> bool:
        return self is RedeemOutcome.ALLOWED


@dataclass
class Ticket:
    id: str
    expires_at: int
    risk_score: int
    metadata: dict[str, Any] = field(default_factory=dict)
    consumed: bool = False

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class IssuedTicket:
    """What the caller learns about a freshly issued ticket."""

    id: str
    expires_at: int
    risk_score: int


class TicketStore:
    """Map of ticket id to ticket. Not thread-safe; callers hold the state lock."""

    def __init__(
        self,
        ttl_ms: int,
        id_factory: Callable[[], str] = new_ticket_id,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._ttl_ms = ttl_ms
        self._id_factory = id_factory
        self._tickets: dict[str, Ticket] = {}

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def __len__(self) -> int:
        return len(self._tickets)

    def issue(self, metadata: dict[str, Any], risk_score: int, now: int) -> IssuedTicket:
        ticket = Ticket(
            id=self._id_factory(),
            expires_at=now + self._ttl_ms,
            risk_score=risk_score,
            metadata=metadata,
        )
        self._tickets[ticket.id] = ticket
        return IssuedTicket(id=ticket.id, expires_at=ticket.expires_at, risk_score=risk_score)

    def redeem(self, ticket_id: str, choice: str, now: int) -> RedeemOutcome:
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            return RedeemOutcome.DENIED_UNKNOWN
        # Expiry is derived from time, never stored, so it wins over replay.
        if ticket.is_expired(now):
            return RedeemOutcome.DENIED_EXPIRED
        if ticket.consumed:
            return RedeemOutcome.DENIED_REPLAY

        ticket.consumed = True
        if choice.upper() == "ALLOW":
            return RedeemOutcome.ALLOWED
        return RedeemOutcome.DENIED_USER_CHOICE

    def get(self, ticket_id: str) -> Ticket | None:
        """Return a copy of the stored ticket, for inspection only."""
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            return None
        return Ticket(
            id=ticket.id,
            expires_at=ticket.expires_at,
            risk_score=ticket.risk_score,
            metadata=dict(ticket.metadata),
            consumed=ticket.consumed,
        )
