# Overview: Route display strings and operations-team suggestion by destination.

from __future__ import annotations

from typing import Any

ROUTE_SEPARATOR = " → "

KSA_KEYWORDS = ("saudi", "riyadh", "jeddah", "dammam", "ksa", "arabia")
UAE_KEYWORDS = ("dubai", "abu dhabi", "uae", "emirates", "sharjah")


def _field(request: Any, name: str):
    if isinstance(request, dict):
        return request.get(name)
    return getattr(request, name, None)


def format_destinations(request: Any) -> str:
    """
    Display string for a request's destination(s).

    Multi-leg trips join their legs with an arrow; otherwise the single
    destination field is returned unchanged. Accepts a model or a dict and
    never raises on a missing/empty destinations list.
    """
    destinations = _field(request, "destinations")
    if isinstance(destinations, (list, tuple)) and len(destinations) > 0:
        return ROUTE_SEPARATOR.join(str(d) for d in destinations)
    return _field(request, "destination")


def format_route(request: Any) -> str:
    return f"{_field(request, 'origin')}{ROUTE_SEPARATOR}{format_destinations(request)}"


def suggest_operations_team(destination: str | None) -> str:
    """
    Advisory team for a destination: KSA keywords are checked first, then
    UAE; anything else defaults to the KSA team.
    """
    dest_lower = (destination or "").lower()

    if any(keyword in dest_lower for keyword in KSA_KEYWORDS):
        return "operations_ksa"
    if any(keyword in dest_lower for keyword in UAE_KEYWORDS):
        return "operations_uae"

    return "operations_ksa"
