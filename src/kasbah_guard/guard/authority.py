"""Decision authority: issues single-use tickets and adjudicates them.

All mutable state (tickets, events, counters) lives in one
:class:`AuthorityState` guarded by a single lock. Each public operation takes
the lock once for its critical section. JSON parsing and risk scoring happen
outside it.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from kasbah_guard.errors import InvalidRequestError
from kasbah_guard.guard.events import DEFAULT_MAX_EVENTS, Event, EventLog
from kasbah_guard.guard.requests import ConsumeRequest, DecideRequest
from kasbah_guard.guard.risk import Verdict, score_text
from kasbah_guard.guard.stats import StatsCounters, StatsSnapshot
from kasbah_guard.guard.tickets import RedeemOutcome, TicketStore
from kasbah_guard.utils.ids import new_ticket_id
from kasbah_guard.utils.time import now_ms

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 60_000
DEFAULT_SERVICE_NAME = "kasbah-guard-local"
DEFAULT_PORT = 8788


def parse_json_body(raw: bytes | str) -> Any:
    """Decode a request body, raising :class:`InvalidRequestError` if it is not JSON."""
    try:
        return json.loads(raw)
    except (ValueError, RecursionError, TypeError) as exc:
        raise InvalidRequestError() from exc


@dataclass
class AuthorityState:
    tickets: TicketStore
    events: EventLog
    stats: StatsCounters = field(default_factory=StatsCounters)
    lock: threading.Lock = field(default_factory=threading.Lock)


@dataclass(frozen=True)
class DecideResult:
    ticket: str
    exp_ms: int
    risk: int
    preflight: Verdict
    reason: str

    def to_response(self) -> dict[str, Any]:
        return {
            "ok": True,
            "decision": "PENDING",
            "ticket": self.ticket,
            "exp_ms": self.exp_ms,
            "risk": self.risk,
            "preflight": self.preflight,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ConsumeResult:
    outcome: RedeemOutcome

    @property
    def decision(self) -> str:
        return self.outcome.decision

    @property
    def reason(self) -> str:
        return self.outcome.reason

    def to_response(self) -> dict[str, Any]:
        return {"ok": True, "decision": self.decision, "reason": self.reason}


class DecisionAuthority:
    """Orchestrates risk scoring, ticket issuance, redemption and auditing."""

    def __init__(
        self,
        state: AuthorityState | None = None,
        *,
        ttl_ms: int = DEFAULT_TTL_MS,
        max_events: int = DEFAULT_MAX_EVENTS,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = new_ticket_id,
        service_name: str = DEFAULT_SERVICE_NAME,
        port: int = DEFAULT_PORT,
    ) -> None:
        if state is None:
            state = AuthorityState(
                tickets=TicketStore(ttl_ms, id_factory=id_factory),
                events=EventLog(max_events),
            )
        self._state = state
        self._clock = clock
        self.service_name = service_name
        self.port = port

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "DecisionAuthority":
        return cls(
            ttl_ms=settings.guard.ticket_ttl_seconds * 1000,
            max_events=settings.guard.max_events,
            service_name=settings.server.service_name,
            port=settings.server.port,
            **kwargs,
        )

    def record_startup(self) -> None:
        with self._state.lock:
            self._state.events.record(
                "STARTUP",
                {"message": "Kasbah Guard local authority started", "port": self.port},
                self._clock(),
            )
        logger.info("Decision authority started on port %d", self.port)

    def decide(self, payload: Any) -> DecideResult:
        """Issue a ticket for a decision request.

        ``payload`` is the already-parsed JSON body.
        """
        request = DecideRequest.from_payload(payload)
        assessment = score_text(request.preview)
        secret_count = request.secret_count

        metadata = request.ticket_metadata()
        metadata["preflight"] = assessment.verdict
        metadata["reason"] = assessment.reason

        state = self._state
        with state.lock:
            issued = state.tickets.issue(metadata, assessment.risk, self._clock())
            if secret_count > 0:
                state.stats.record_secrets_flagged()
            state.events.record(
                "DECIDE",
                {
                    "ticket": issued.id,
                    "exp_ms": issued.expires_at,
                    "product": request.product,
                    "host": request.host,
                    "action": request.action,
                    "risk": issued.risk_score,
                    "preflight": assessment.verdict,
                    "reason": assessment.reason,
                    "secrets": secret_count,
                },
                self._clock(),
            )

        logger.info(
            "Issued ticket %s risk=%d preflight=%s secrets=%d",
            issued.id,
            issued.risk_score,
            assessment.verdict,
            secret_count,
        )
        return DecideResult(
            ticket=issued.id,
            exp_ms=issued.expires_at,
            risk=issued.risk_score,
            preflight=assessment.verdict,
            reason=assessment.reason,
        )

    def consume(self, payload: Any) -> ConsumeResult:
        """Redeem a ticket. Every path that is not an explicit allow denies."""
        request = ConsumeRequest.from_payload(payload)
        ticket_id = request.ticket

        state = self._state
        with state.lock:
            if ticket_id is None:
                outcome = RedeemOutcome.DENIED_DEFAULT
            else:
                outcome = state.tickets.redeem(ticket_id, request.choice, self._clock())
            state.stats.record_redemption(outcome)
            state.events.record(
                "CONSUME",
                {
                    "ticket": ticket_id or "",
                    "decision": outcome.decision,
                    "reason": outcome.reason,
                    "choice": request.choice,
                },
                self._clock(),
            )

        if outcome is RedeemOutcome.DENIED_REPLAY:
            logger.warning("Replay blocked for ticket %s", ticket_id)
        else:
            logger.info(
                "Redeemed ticket %s decision=%s reason=%s",
                ticket_id,
                outcome.decision,
                outcome.reason,
            )
        return ConsumeResult(outcome)

    def status(self) -> dict[str, Any]:
        stats = self.stats()
        return {
            "ok": True,
            "service": self.service_name,
            "port": self.port,
            "ts_ms": self._clock(),
            "stats": stats.to_dict(),
        }

    def events(self) -> list[Event]:
        with self._state.lock:
            return self._state.events.snapshot()

    def stats(self) -> StatsSnapshot:
        with self._state.lock:
            return self._state.stats.snapshot()
