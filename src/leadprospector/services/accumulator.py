"""
Deduplicated, insertion-ordered lead collection plus the multi-select set.

Dedup is keyed on the normalised email (trimmed, lower-cased). The selection
is always a subset of the accumulated leads.
"""
from __future__ import annotations

from typing import Iterator

from leadprospector.models.lead import Lead, normalize_email

UNKNOWN_NAME = "Unknown"
_MISSING = "n/a"


class LeadAccumulator:
    def __init__(self) -> None:
        self._leads: dict[str, Lead] = {}
        self._selected: dict[str, None] = {}    # ordered set, selection order

    def __len__(self) -> int:
        return len(self._leads)

    def __iter__(self) -> Iterator[Lead]:
        return iter(self._leads.values())

    def __contains__(self, email: object) -> bool:
        return isinstance(email, str) and normalize_email(email) in self._leads

    @property
    def results(self) -> list[Lead]:
        return list(self._leads.values())

    @property
    def selected(self) -> list[Lead]:
        return [self._leads[key] for key in self._selected]

    def add_result(self, lead: Lead) -> bool:
        """Append `lead` unless its email is already present. Returns True if added."""
        if lead.key in self._leads:
            return False
        self._leads[lead.key] = lead
        return True

    def discard(self, email: str) -> None:
        key = normalize_email(email)
        self._leads.pop(key, None)
        self._selected.pop(key, None)

    def clear(self) -> None:
        self._leads.clear()
        self._selected.clear()

    # ── Selection ─────────────────────────────────────────────────────────────

    def is_selected(self, email: str) -> bool:
        return normalize_email(email) in self._selected

    def toggle_select(self, email: str) -> bool:
        """
        Flip selection for one lead and return its new membership.

        Raises:
            KeyError: If no accumulated lead has this email.
        """
        key = normalize_email(email)
        if key not in self._leads:
            raise KeyError(f"No discovered lead with email {email!r}")
        if key in self._selected:
            del self._selected[key]
            return False
        self._selected[key] = None
        return True

    def select_all(self) -> None:
        for key in self._leads:
            self._selected.setdefault(key, None)

    def select_none(self) -> None:
        self._selected.clear()

    def toggle_select_all(self) -> None:
        """Clear the selection when everything is selected, otherwise select everything."""
        if len(self._selected) == len(self._leads):
            self.select_none()
        else:
            self.select_all()

    # ── Export ────────────────────────────────────────────────────────────────

    def export_emails_only(self) -> str:
        return ", ".join(lead.email for lead in self.selected)

    def export_full_details(self) -> str:
        return "\n".join(
            f"{lead.name or UNKNOWN_NAME} "
            f"({lead.role or _MISSING} @ {lead.company or _MISSING}) - {lead.email}"
            for lead in self.selected
        )

    def recent_exclusions(self, limit: int) -> list[str]:
        """Last `limit` name-or-company tokens, used as the next batch's hint."""
        if limit <= 0:
            return []
        tokens = [lead.name or lead.company for lead in self._leads.values()]
        return [t for t in tokens if t][-limit:]
