"""Ticket vitals: every requested dependent plus a flattened primary record.

Unlike the booking row, which only carries the first dependent, the ticket
keeps one entry per dependent so the provider sees everyone being seen.
"""

from collections.abc import Mapping
from datetime import date
from typing import Any

from src.hm_booking.domain.models import HealthProfile
from src.hm_booking.domain.vitals import VitalsSnapshot


def dependent_overlay(
    dependent_id: str,
    primary_id: str | None,
    per_dependent: Mapping[str, Mapping[str, Any]] | None,
    client_vitals: Mapping[str, Any] | None,
) -> Mapping[str, Any] | None:
    """Own override; the top-level override only reaches the primary dependent."""
    own = per_dependent.get(dependent_id) if per_dependent else None
    if own:
        return own
    if dependent_id == primary_id:
        return client_vitals
    return None


def build_ticket_vitals(
    payer_profile: HealthProfile | None,
    dependents: list[HealthProfile],
    dependent_ids: list[str],
    per_dependent: Mapping[str, Mapping[str, Any]] | None,
    client_vitals: Mapping[str, Any] | None,
    today: date | None = None,
) -> tuple[list[dict[str, Any]], dict[str, Any]]:
    """Return (per-dependent entries, primary vitals).

    With dependents requested the primary record is the first found entry.
    Without, it is the payer profile; the top-level override is only used
    when there is no profile at all.
    """
    if dependent_ids:
        primary_id = dependent_ids[0]
        entries: list[dict[str, Any]] = []
        for member in dependents:
            overlay = dependent_overlay(member.id, primary_id, per_dependent, client_vitals)
            snapshot = VitalsSnapshot.from_profile(member).overlay(overlay)
            entries.append({
                "id": member.id,
                "full_name": member.full_name or "",
                **snapshot.as_ticket_vitals(today),
            })
        if not entries:
            return [], {}
        primary = {k: v for k, v in entries[0].items() if k not in ("id", "full_name")}
        return entries, primary

    if payer_profile is not None:
        return [], VitalsSnapshot.from_profile(payer_profile).as_ticket_vitals(today)
    if client_vitals:
        return [], VitalsSnapshot().overlay(client_vitals).as_ticket_vitals(today)
    return [], {}
