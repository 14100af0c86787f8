"""Typed models for Cloud Foundry v3 audit events."""

from __future__ import annotations

import datetime as dt
import typing as typ

import msgspec

ANONYMIZED_ACTOR_NAME = "¯\\_(ツ)_/¯"

# Timestamps without an offset are rejected at decode time.
AwareDatetime = typ.Annotated[dt.datetime, msgspec.Meta(tz=True)]


class Actor(msgspec.Struct, frozen=True, kw_only=True):
    """User or system resource that performed the audited action."""

    guid: str
    type: str
    name: str = ""


class Target(msgspec.Struct, frozen=True, kw_only=True):
    """Resource the audited action was performed on."""

    guid: str
    type: str
    name: str = ""


class ScopeRef(msgspec.Struct, frozen=True, kw_only=True):
    """Reference to the space or organization an event occurred in."""

    guid: str


class AuditEvent(msgspec.Struct, frozen=True, kw_only=True):
    """A single audit record as returned by ``/v3/audit_events``.

    ``space`` and ``organization`` are ``None`` when the event did not occur
    within one; ``data`` is passed through untouched.
    """

    guid: str
    type: str
    actor: Actor
    target: Target
    created_at: AwareDatetime
    updated_at: AwareDatetime | None = None
    data: typ.Any = None
    space: ScopeRef | None = None
    organization: ScopeRef | None = None


class PageLink(msgspec.Struct, frozen=True, kw_only=True):
    """Hyperlink to another page of results."""

    href: str = ""


class Pagination(msgspec.Struct, frozen=True, kw_only=True):
    """Pagination block of a v3 list response."""

    next: PageLink | None = None


class AuditEventPage(msgspec.Struct, frozen=True, kw_only=True):
    """One page of audit events, newest first."""

    resources: list[AuditEvent] = msgspec.field(default_factory=list)
    pagination: Pagination = msgspec.field(default_factory=Pagination)

    @property
    def next_href(self) -> str | None:
        """Return the next page link, or ``None`` on the last page."""
        link = self.pagination.next
        if link is None or not link.href:
            return None
        return link.href


def anonymize(event: AuditEvent) -> AuditEvent:
    """Return a copy of ``event`` with the actor name scrubbed."""
    actor = msgspec.structs.replace(event.actor, name=ANONYMIZED_ACTOR_NAME)
    return msgspec.structs.replace(event, actor=actor)
