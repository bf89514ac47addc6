"""Aggregate counters over the authority's lifetime."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from kasbah_guard.guard.tickets import RedeemOutcome


@dataclass(frozen=True)
class StatsSnapshot:
    total: int
    allowed: int
    denied: int
    replay_blocked: int
    secrets_caught: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class StatsCounters:
    """Monotonic counters. ``total == allowed + denied`` always holds."""

    def __init__(self) -> None:
        self.total = 0
        self.allowed = 0
        self.denied = 0
        self.replay_blocked = 0
        self.secrets_caught = 0

    def record_redemption(self, outcome: RedeemOutcome) -> None:
        self.total += 1
        if outcome.allowed:
            self.allowed += 1
            return
        self.denied += 1
        if outcome is RedeemOutcome.DENIED_REPLAY:
            self.replay_blocked += 1

    def record_secrets_flagged(self) -> None:
        self.secrets_caught += 1

    def snapshot(self) -> StatsSnapshot:
        return StatsSnapshot(
            total=self.total,
            allowed=self.allowed,
            denied=self.denied,
            replay_blocked=self.replay_blocked,
            secrets_caught=self.secrets_caught,
        )
