from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from kasbah_guard.errors import InvalidRequestError
from kasbah_guard.guard.authority import DecisionAuthority, parse_json_body


def test_decide_issues_pending_ticket(authority: DecisionAuthority, clock) -> None:
    result = authority.decide({"product": "chatgpt", "meta": {"preview": "hello"}})

    assert result.ticket == "ticket-1"
    assert result.exp_ms == clock.now + 60_000
    assert result.to_response() == {
        "ok": True,
        "decision": "PENDING",
        "ticket": "ticket-1",
        "exp_ms": clock.now + 60_000,
        "risk": 10,
        "preflight": "ALLOW",
        "reason": "no issues detected",
    }


def test_sensitive_preview_scenario(authority: DecisionAuthority) -> None:
    decided = authority.decide({"meta": {"preview": "my api_key=sk-123"}})
    assert decided.risk >= 85
    assert decided.preflight == "WARN"

    first = authority.consume({"ticket": decided.ticket, "choice": "ALLOW"})
    assert (first.decision, first.reason) == ("ALLOW", "user allowed")

    second = authority.consume({"ticket": decided.ticket, "choice": "ALLOW"})
    assert (second.decision, second.reason) == ("DENY", "replay blocked")


def test_expired_ticket_scenario(authority: DecisionAuthority, clock) -> None:
    decided = authority.decide({"meta": {"preview": ""}})
    assert (decided.risk, decided.preflight, decided.reason) == (10, "ALLOW", "no issues detected")

    clock.advance(60_001)
    result = authority.consume({"ticket": decided.ticket, "choice": "ALLOW"})
    assert (result.decision, result.reason) == ("DENY", "expired ticket")


def test_unknown_ticket_counts_once(authority: DecisionAuthority) -> None:
    before = authority.stats()
    result = authority.consume({"ticket": "never-issued", "choice": "ALLOW"})
    after = authority.stats()

    assert (result.decision, result.reason) == ("DENY", "unknown ticket")
    assert after.total == before.total + 1
    assert after.denied == before.denied + 1


def test_missing_fields_deny(authority: DecisionAuthority) -> None:
    assert authority.consume({}).reason == "unknown ticket"
    assert authority.consume([1, 2]).reason == "unknown ticket"
    garbled = authority.consume({"ticket": 12345, "choice": "ALLOW"})
    assert (garbled.decision, garbled.reason) == ("DENY", "default deny")


def test_missing_choice_defaults_to_deny(authority: DecisionAuthority) -> None:
    decided = authority.decide({})
    result = authority.consume({"ticket": decided.ticket})
    assert (result.decision, result.reason) == ("DENY", "user blocked")
    assert authority.events()[0].data["choice"] == "DENY"


def test_secrets_caught_uses_caller_scan(authority: DecisionAuthority) -> None:
    authority.decide({"meta": {"preview": "password=x", "secrets": []}})
    authority.decide({"meta": {"preview": "nothing here", "secrets": ["API Key"]}})
    authority.decide({"meta": {"secrets": "not-a-list"}})
    assert authority.stats().secrets_caught == 1


def test_events_record_decide_and_consume(authority: DecisionAuthority) -> None:
    authority.record_startup()
    decided = authority.decide(
        {"product": "claude", "host": "claude.ai", "action": "chat.send",
         "meta": {"preview": "token abc", "secrets": ["Token"]}}
    )
    authority.consume({"ticket": decided.ticket, "choice": "allow"})

    events = authority.events()
    assert [e.kind for e in events] == ["CONSUME", "DECIDE", "STARTUP"]
    assert events[0].data == {
        "ticket": decided.ticket,
        "decision": "ALLOW",
        "reason": "user allowed",
        "choice": "ALLOW",
    }
    decide_data = events[1].data
    assert decide_data["ticket"] == decided.ticket
    assert decide_data["risk"] == decided.risk
    assert decide_data["preflight"] == "WARN"
    assert decide_data["reason"] == "sensitive pattern: token"
    assert decide_data["secrets"] == 1
    assert "preview" not in decide_data
    assert events[2].data["port"] == 8788


def test_event_log_bounded(authority: DecisionAuthority) -> None:
    for _ in range(120):
        authority.consume({"ticket": "x"})
    events = authority.events()
    assert len(events) == 50
    assert all(a.ts_ms >= b.ts_ms for a, b in zip(events, events[1:]))


def test_stats_invariants_after_mixed_traffic(authority: DecisionAuthority, clock) -> None:
    tickets = [authority.decide({}).ticket for _ in range(4)]
    authority.consume({"ticket": tickets[0], "choice": "ALLOW"})
    authority.consume({"ticket": tickets[0], "choice": "ALLOW"})
    authority.consume({"ticket": tickets[1], "choice": "DENY"})
    clock.advance(120_000)
    authority.consume({"ticket": tickets[2], "choice": "ALLOW"})
    authority.consume({"ticket": "missing"})

    stats = authority.stats()
    assert stats.total == 5
    assert stats.total == stats.allowed + stats.denied
    assert stats.allowed == 1
    assert stats.replay_blocked == 1
    assert stats.replay_blocked <= stats.denied


def test_status_reports_identity_and_stats(authority: DecisionAuthority, clock) -> None:
    status = authority.status()
    assert status["ok"] is True
    assert status["service"] == "kasbah-guard-local"
    assert status["port"] == 8788
    assert status["ts_ms"] == clock.now
    assert status["stats"]["total"] == 0


def test_concurrent_redemptions_allow_at_most_once() -> None:
    authority = DecisionAuthority()
    ticket = authority.decide({}).ticket

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(
            pool.map(
                lambda _: authority.consume({"ticket": ticket, "choice": "ALLOW"}),
                range(64),
            )
        )

    decisions = [r.decision for r in results]
    assert decisions.count("ALLOW") == 1
    assert sum(r.reason == "replay blocked" for r in results) == 63
    stats = authority.stats()
    assert stats.total == 64
    assert stats.replay_blocked == 63


def test_parse_json_body() -> None:
    assert parse_json_body(b'{"a": 1}') == {"a": 1}
    deeply_nested = b"[" * 100_000 + b"]" * 100_000
    for raw in (b"", b"{not json", b"\xff\xfe\xfa", deeply_nested):
        with pytest.raises(InvalidRequestError, match="invalid JSON"):
            parse_json_body(raw)


def test_from_settings(settings) -> None:
    settings.guard.ticket_ttl_seconds = 5
    settings.server.port = 9999
    authority = DecisionAuthority.from_settings(settings, clock=lambda: 1000)

    result = authority.decide({})
    assert result.exp_ms == 6000
    assert authority.status()["port"] == 9999
