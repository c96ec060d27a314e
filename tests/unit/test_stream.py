"""Tests for alert filtering, ranking and selection"""
import pytest

from alert_engine.schemas import (
    AlertType,
    CongestionAlert,
    Conflict,
    SeparationAlert,
    Severity,
    VerticalAlert,
)
from alert_engine.services.stream import (
    AlertStream,
    dedupe_separation,
    filter_alerts,
    rank_alerts,
    unique_conflicts,
)


def sep(a, b, first_breach_s, severity=Severity.WARNING, time_s=1000):
    conflict = Conflict(
        a_id=a, b_id=b, cpa_lat=45.0, cpa_lon=-73.0,
        first_breach_s=first_breach_s, min_h_nm=2.0, min_v_ft=300,
    )
    return SeparationAlert(
        id=f"sep-{conflict.key}-{time_s}", severity=severity, title="Separation risk",
        details="", involved_ids=[a, b], lat=45.0, lon=-73.0, time_s=time_s, conflict=conflict,
    )


def vertical(aircraft_id, severity=Severity.CAUTION, time_s=1000):
    return VerticalAlert(
        id=f"vertical-{aircraft_id}-{time_s}", severity=severity, title="High vertical rate",
        details="", involved_ids=[aircraft_id], lat=45.0, lon=-73.0, time_s=time_s,
        vertical_rate_fpm=2000,
    )


def congestion(severity=Severity.CAUTION, time_s=1000):
    return CongestionAlert(
        id=f"congestion-{time_s}", severity=severity, title="Congestion", details="",
        involved_ids=[], lat=45.0, lon=-73.0, time_s=time_s, count=12, radius_nm=20,
    )


ALL_ENABLED = {t.value: True for t in AlertType}


class TestFilterAndRank:
    """Tests for the pure filter/rank helpers"""

    def test_filter_by_kind(self):
        alerts = [sep("A", "B", 60), vertical("C")]
        enabled = dict(ALL_ENABLED, vertical=False)

        assert [a.type for a in filter_alerts(alerts, enabled, Severity.INFO)] == ["separation"]

    def test_filter_by_min_severity(self):
        alerts = [sep("A", "B", 60, Severity.INFO), vertical("C", Severity.CAUTION), congestion(Severity.WARNING)]

        caution = filter_alerts(alerts, ALL_ENABLED, Severity.CAUTION)
        assert [a.severity for a in caution] == [Severity.CAUTION, Severity.WARNING]
        assert filter_alerts(alerts, ALL_ENABLED, "warning")[0].type == "congestion"

    def test_rank_is_stable_within_severity(self):
        alerts = [
            vertical("A", Severity.CAUTION),
            vertical("B", Severity.WARNING),
            vertical("C", Severity.CAUTION),
            vertical("D", Severity.INFO),
            vertical("E", Severity.WARNING),
        ]
        ranked = rank_alerts(alerts)

        assert [a.involved_ids[0] for a in ranked] == ["B", "E", "A", "C", "D"]

    def test_unique_conflicts_keeps_most_urgent(self):
        alerts = [sep("A", "B", 300), sep("B", "A", 120), sep("C", "D", 200), vertical("E")]
        conflicts = unique_conflicts(alerts)

        assert [(c.key, c.first_breach_s) for c in conflicts] == [("A|B", 120), ("C|D", 200)]

    def test_dedupe_separation(self):
        alerts = [sep("A", "B", 60), sep("B", "A", 120), vertical("A"), vertical("A")]
        deduped = dedupe_separation(alerts)

        assert [a.type for a in deduped] == ["separation", "vertical", "vertical"]
        assert deduped[0].conflict.first_breach_s == 60


class TestAlertStreamViews:
    """Tests for published alert views"""

    def test_publish_ranks_and_filters(self):
        stream = AlertStream()
        stream.publish([vertical("A", Severity.CAUTION), sep("B", "C", 60, Severity.WARNING)])

        assert [a.type for a in stream.visible_alerts] == ["separation", "vertical"]
        assert len(stream.alerts) == 2

    def test_publish_dedupes_pairs(self):
        stream = AlertStream()
        stream.publish([sep("A", "B", 60), sep("B", "A", 90)])

        assert len(stream.alerts) == 1
        assert [c.key for c in stream.visible_conflicts] == ["A|B"]

    def test_disabled_kind_hidden_but_retained(self):
        stream = AlertStream()
        stream.publish([vertical("A"), congestion()])
        stream.set_kind_enabled(AlertType.VERTICAL, False)

        assert [a.type for a in stream.visible_alerts] == ["congestion"]
        assert len(stream.alerts) == 2

        stream.set_kind_enabled("vertical", True)
        assert len(stream.visible_alerts) == 2

    def test_min_severity(self):
        stream = AlertStream()
        stream.set_min_severity("warning")
        stream.publish([vertical("A", Severity.CAUTION), vertical("B", Severity.WARNING)])

        assert [a.involved_ids for a in stream.visible_alerts] == [["B"]]

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            AlertStream().set_kind_enabled("volcano", False)

    def test_clear(self):
        stream = AlertStream()
        stream.publish([sep("A", "B", 60)])
        stream.clear()

        assert stream.alerts == []
        assert stream.selected_conflict_key is None


class TestConflictSelection:
    """Tests for conflict selection across recomputation"""

    def test_defaults_to_most_urgent(self):
        stream = AlertStream()
        stream.publish([sep("C", "D", 300, Severity.CAUTION), sep("A", "B", 120)])

        assert stream.selected_conflict_key == "A|B"
        assert stream.selected_conflict.first_breach_s == 120

    def test_none_without_conflicts(self):
        stream = AlertStream()
        stream.publish([vertical("A")])

        assert stream.selected_conflict_key is None
        assert stream.selected_conflict is None

    def test_selection_survives_more_urgent_conflict(self):
        """A|B stays selected while it remains visible"""
        stream = AlertStream()
        stream.publish([sep("A", "B", 300, Severity.CAUTION)])
        assert stream.selected_conflict_key == "A|B"

        stream.publish([sep("C", "D", 30), sep("A", "B", 240, Severity.CAUTION, time_s=1060)])

        assert stream.selected_conflict_key == "A|B"
        # Resolved against the new tick's record
        assert stream.selected_conflict.first_breach_s == 240

    def test_falls_back_when_pair_disappears(self):
        stream = AlertStream()
        stream.publish([sep("A", "B", 120), sep("C", "D", 300)])
        assert stream.select_conflict("C|D")

        stream.publish([sep("A", "B", 60), sep("E", "F", 30)])

        assert stream.selected_conflict_key == "E|F"

    def test_filter_hiding_selected_pair(self):
        stream = AlertStream()
        stream.publish([sep("A", "B", 120)])
        stream.set_kind_enabled("separation", False)

        assert stream.selected_conflict_key is None
        assert stream.visible_conflicts == []

    def test_select_by_record_or_either_key_order(self):
        stream = AlertStream()
        stream.publish([sep("A", "B", 120), sep("C", "D", 300)])

        assert stream.select_conflict("D|C")
        assert stream.selected_conflict_key == "C|D"
        assert stream.select_conflict(stream.visible_conflicts[0])
        assert stream.selected_conflict_key == "A|B"

    def test_select_invisible_conflict_rejected(self):
        stream = AlertStream()
        stream.publish([sep("A", "B", 120)])

        assert stream.select_conflict("X|Y") is False
        assert stream.selected_conflict_key == "A|B"

    def test_select_none_clears(self):
        stream = AlertStream()
        stream.publish([sep("A", "B", 120)])

        assert stream.select_conflict(None)
        assert stream.selected_conflict is None


class TestAlertSelection:
    """Tests for alert selection"""

    def test_select_separation_alert_selects_conflict(self):
        stream = AlertStream()
        stream.publish([sep("A", "B", 60), sep("C", "D", 200, Severity.CAUTION)])

        assert stream.select_alert("sep-C|D-1000")
        assert stream.selected_alert.id == "sep-C|D-1000"
        assert stream.selected_conflict_key == "C|D"

    def test_select_other_alert_keeps_conflict(self):
        stream = AlertStream()
        stream.publish([sep("A", "B", 60), vertical("E")])

        assert stream.select_alert("vertical-E-1000")
        assert stream.selected_conflict_key == "A|B"

    def test_unknown_alert_rejected(self):
        stream = AlertStream()
        stream.publish([vertical("E")])

        assert stream.select_alert("nope") is False
        assert stream.selected_alert_id is None

    def test_selected_alert_kept_while_id_repeats(self):
        stream = AlertStream()
        stream.publish([vertical("E")])
        stream.select_alert("vertical-E-1000")

        stream.publish([vertical("E"), vertical("F")])
        assert stream.selected_alert_id == "vertical-E-1000"

    def test_selected_alert_cleared_when_gone(self):
        stream = AlertStream()
        stream.publish([vertical("E")])
        stream.select_alert("vertical-E-1000")

        stream.publish([vertical("E", time_s=1060)])
        assert stream.selected_alert_id is None
        assert stream.selected_alert is None
