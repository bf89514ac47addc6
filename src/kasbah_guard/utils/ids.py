"""Ticket identifier generation."""

from __future__ import annotations

from uuid import uuid4


def new_ticket_id() -> str:
    """Return a fresh UUID-formatted ticket id.

    Ids are only unique with overwhelming probability; collisions are not
    checked. They are trusted solely because callers reach the authority over
    loopback.
    """
    return str(uuid4())
