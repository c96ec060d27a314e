"""
Alert stream: filtering, ranking and selection that survive recomputation.

Alerts and conflicts are rebuilt every tick, so selection is stored as
identifiers (pair key, alert id) and re-resolved against each new set
rather than kept as references to records of a previous tick.
"""
import logging
from typing import Iterable, Optional, Union

from alert_engine.schemas import (
    Alert,
    AlertType,
    Conflict,
    SeparationAlert,
    Severity,
    pair_key,
)

logger = logging.getLogger(__name__)


def filter_alerts(
    alerts: Iterable[Alert], enabled: dict[str, bool], min_severity: Severity
) -> list[Alert]:
    """Alerts whose kind is enabled and whose severity reaches the minimum."""
    min_rank = Severity(min_severity).rank
    return [
        a for a in alerts
        if enabled.get(a.type, False) and a.severity.rank >= min_rank
    ]


def rank_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Most severe first; order within a severity is preserved."""
    return sorted(alerts, key=lambda a: -a.severity.rank)


def unique_conflicts(alerts: Iterable[Alert]) -> list[Conflict]:
    """Conflicts carried by separation alerts, one per unordered pair, most urgent first."""
    by_key: dict[str, Conflict] = {}
    for alert in alerts:
        if isinstance(alert, SeparationAlert):
            conflict = alert.conflict
            existing = by_key.get(conflict.key)
            if existing is None or conflict.first_breach_s < existing.first_breach_s:
                by_key[conflict.key] = conflict
    return sorted(by_key.values(), key=lambda c: (c.first_breach_s, c.key))


def dedupe_separation(alerts: Iterable[Alert]) -> list[Alert]:
    """Keep the first separation alert per unordered pair; other kinds pass through."""
    seen: set[str] = set()
    out = []
    for alert in alerts:
        if isinstance(alert, SeparationAlert):
            key = alert.conflict.key
            if key in seen:
                continue
            seen.add(key)
        out.append(alert)
    return out


class AlertStream:
    """
    Holds the latest published alerts plus the operator's filters and selection.

    Selection rules:
    - a selected conflict stays selected for as long as its pair is visible,
      even if a more urgent conflict appears
    - otherwise the most urgent visible conflict is selected, or none
    - a selected alert id that is no longer visible is cleared
    """

    def __init__(self):
        self._alerts: list[Alert] = []
        self._visible: list[Alert] = []
        self._visible_conflicts: list[Conflict] = []
        self.enabled: dict[str, bool] = {t.value: True for t in AlertType}
        self.min_severity: Severity = Severity.INFO
        self.selected_conflict_key: Optional[str] = None
        self.selected_alert_id: Optional[str] = None

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def alerts(self) -> list[Alert]:
        """Every alert of the last publish, unfiltered."""
        return list(self._alerts)

    @property
    def visible_alerts(self) -> list[Alert]:
        return list(self._visible)

    @property
    def visible_conflicts(self) -> list[Conflict]:
        return list(self._visible_conflicts)

    @property
    def selected_conflict(self) -> Optional[Conflict]:
        """The current tick's record for the selected pair."""
        if self.selected_conflict_key is None:
            return None
        for conflict in self._visible_conflicts:
            if conflict.key == self.selected_conflict_key:
                return conflict
        return None

    @property
    def selected_alert(self) -> Optional[Alert]:
        if self.selected_alert_id is None:
            return None
        for alert in self._visible:
            if alert.id == self.selected_alert_id:
                return alert
        return None

    # =========================================================================
    # Publishing
    # =========================================================================

    def publish(self, alerts: Iterable[Alert]):
        """Replace the alert set with a freshly computed one and reconcile selection."""
        self._alerts = dedupe_separation(alerts)
        self._refresh()

    def clear(self):
        self._alerts = []
        self._refresh()

    def _refresh(self):
        self._visible = rank_alerts(filter_alerts(self._alerts, self.enabled, self.min_severity))
        self._visible_conflicts = unique_conflicts(self._visible)
        self._reconcile_selection()

    def _reconcile_selection(self):
        visible_keys = {c.key for c in self._visible_conflicts}
        if self.selected_conflict_key not in visible_keys:
            previous = self.selected_conflict_key
            self.selected_conflict_key = (
                self._visible_conflicts[0].key if self._visible_conflicts else None
            )
            if previous is not None and previous != self.selected_conflict_key:
                logger.debug(f"Conflict {previous} no longer visible, selected {self.selected_conflict_key}")

        if self.selected_alert_id is not None:
            if not any(a.id == self.selected_alert_id for a in self._visible):
                self.selected_alert_id = None

    # =========================================================================
    # Mutators
    # =========================================================================

    def set_kind_enabled(self, kind: Union[AlertType, str], enabled: bool):
        self.enabled[AlertType(kind).value] = bool(enabled)
        self._refresh()

    def set_min_severity(self, severity: Union[Severity, str]):
        self.min_severity = Severity(severity)
        self._refresh()

    def select_conflict(self, conflict: Union[Conflict, str, None]) -> bool:
        """
        Select a conflict by record or pair key. Returns False (selection
        unchanged) when the pair is not currently visible.
        """
        if conflict is None:
            self.selected_conflict_key = None
            return True
        key = conflict.key if isinstance(conflict, Conflict) else conflict
        if "|" in key:
            key = pair_key(*key.split("|", 1))
        if not any(c.key == key for c in self._visible_conflicts):
            return False
        self.selected_conflict_key = key
        return True

    def select_alert(self, alert_id: Optional[str]) -> bool:
        """Select a visible alert; a separation alert also selects its conflict."""
        if alert_id is None:
            self.selected_alert_id = None
            return True
        alert = next((a for a in self._visible if a.id == alert_id), None)
        if alert is None:
            return False
        self.selected_alert_id = alert_id
        if isinstance(alert, SeparationAlert):
            self.selected_conflict_key = alert.conflict.key
        return True
