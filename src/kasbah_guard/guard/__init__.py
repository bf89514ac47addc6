"""Ticket lifecycle and risk-assessment core."""

from kasbah_guard.guard.authority import (
    AuthorityState,
    ConsumeResult,
    DecideResult,
    DecisionAuthority,
    parse_json_body,
)
from kasbah_guard.guard.events import Event, EventLog
from kasbah_guard.guard.risk import RiskAssessment, score_text
from kasbah_guard.guard.stats import StatsCounters, StatsSnapshot
from kasbah_guard.guard.tickets import RedeemOutcome, Ticket, TicketStore

__all__ = [
    "AuthorityState",
    "ConsumeResult",
    "DecideResult",
    "DecisionAuthority",
    "Event",
    "EventLog",
    "RedeemOutcome",
    "RiskAssessment",
    "StatsCounters",
    "StatsSnapshot",
    "Ticket",
    "TicketStore",
    "parse_json_body",
]
