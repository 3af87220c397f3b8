from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class MemberSession:
    """B2B member (plus organization) from an authenticate or session call."""

    member_id: str | None = None
    email: str | None = None
    name: str | None = None
    organization_name: str | None = None
    organization_slug: str | None = None


@dataclass(frozen=True)
class FlatUser:
    user_id: str | None = None
    email: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class UnknownIdentity:
    pass


AuthIdentity = MemberSession | FlatUser | UnknownIdentity


def _text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first(value: Any) -> dict[str, Any]:
    if isinstance(value, list) and value:
        return _dict(value[0])
    return {}


def _full_name(raw: dict[str, Any]) -> str | None:
    return _text(f"{raw.get('first_name') or ''} {raw.get('last_name') or ''}")


def is_authenticated_response(raw: dict[str, Any] | None) -> bool:
    if not raw:
        return False
    return bool(raw.get("member_id") or raw.get("member"))


def _member_session(raw: dict[str, Any]) -> MemberSession:
    member = _dict(raw.get("member"))
    profile = _dict(_first(member.get("oauth_registrations")).get("profile_data"))
    metadata = _dict(member.get("untrusted_metadata"))
    org = _dict(raw.get("organization")) or _dict(member.get("organization"))

    return MemberSession(
        member_id=_text(member.get("member_id") or member.get("id")),
        email=_text(member.get("email_address") or member.get("email") or profile.get("email")),
        name=_text(
            member.get("name")
            or profile.get("name")
            or metadata.get("name")
            or _full_name(member)
        ),
        organization_name=_text(org.get("organization_name") or org.get("name")),
        organization_slug=_text(org.get("organization_slug") or org.get("slug")),
    )


def classify_identity(raw: dict[str, Any] | None) -> AuthIdentity:
    """Pick the single interpretation of a loosely-typed auth result.

    A ``member`` key selects :class:`MemberSession`; otherwise flat fields
    select :class:`FlatUser`; an empty result is :class:`UnknownIdentity`.
    """

    if not raw:
        return UnknownIdentity()

    if raw.get("member"):
        return _member_session(raw)

    user = FlatUser(
        user_id=_text(raw.get("member_id") or raw.get("user_id") or raw.get("id")),
        email=_text(
            raw.get("email") or raw.get("email_address") or _first(raw.get("emails")).get("email")
        ),
        name=_text(raw.get("name") or _full_name(raw)),
    )
    if user == FlatUser():
        return UnknownIdentity()
    return user


def _short_id(value: str) -> str:
    return f"{value[:8]}..."


def display_lines(identity: AuthIdentity) -> list[tuple[str, str]]:
    lines: list[tuple[str, str]] = []

    match identity:
        case MemberSession():
            if identity.email:
                lines.append(("Email", identity.email))
            if identity.name:
                lines.append(("Name", identity.name))
            if identity.organization_name:
                lines.append(("Organization", identity.organization_name))
            if identity.organization_slug:
                lines.append(("Org Slug", identity.organization_slug))
            if identity.member_id:
                lines.append(("Member ID", _short_id(identity.member_id)))
        case FlatUser():
            if identity.email:
                lines.append(("Email", identity.email))
            if identity.name:
                lines.append(("Name", identity.name))
            if identity.user_id:
                lines.append(("ID", _short_id(identity.user_id)))
        case _:
            pass

    return lines
