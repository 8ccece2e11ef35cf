"""Tests for the alert system."""

import dataclasses
from itertools import product

import pytest

from ecu911.alerts.system import (
    AUTO_EXPIRED_REASON,
    AlertSeverity,
    AlertSystem,
    AlertType,
)
from ecu911.core.entities import ProvinceId


@pytest.fixture
def alerts(clock) -> AlertSystem:
    return AlertSystem(clock=clock)


@pytest.fixture
def suggestion(analyzer, collapsed_guayas, idle_manabi):
    return analyzer.generate_redistribution_suggestions([collapsed_guayas, idle_manabi])[0]


def _raise_distinct(alerts, n):
    """Raise n alerts with distinct (type, province) pairs."""
    pairs = list(product(AlertType, ProvinceId))
    for alert_type, province in pairs[:n]:
        alerts.raise_alert(alert_type, AlertSeverity.LOW, "t", "m", province.value)


class TestCapacityRules:
    """Test threshold rules over capacity analyses."""

    def test_collapse(self, alerts, collapsed_guayas):
        """Collapse raises a critical alert plus a response-time alert."""
        raised = alerts.evaluate_capacity(collapsed_guayas)
        types = {a.type: a for a in raised}
        assert set(types) == {AlertType.CAPACITY_CRITICAL, AlertType.RESPONSE_TIME_HIGH}
        assert types[AlertType.CAPACITY_CRITICAL].severity == AlertSeverity.CRITICAL
        assert types[AlertType.CAPACITY_CRITICAL].province_id == "guayas"
        assert types[AlertType.CAPACITY_CRITICAL].data["personnel_needed"] == 17
        assert types[AlertType.RESPONSE_TIME_HIGH].severity == AlertSeverity.HIGH

    def test_overload(self, alerts, overloaded_pichincha):
        """90-100% utilisation is a high-severity overload."""
        raised = alerts.evaluate_capacity(overloaded_pichincha)
        overload = [a for a in raised if a.type == AlertType.CAPACITY_OVERLOAD]
        assert len(overload) == 1
        assert overload[0].severity == AlertSeverity.HIGH

    def test_warning(self, alerts, analyzer):
        """80-90% utilisation is a medium warning."""
        analysis = analyzer.analyze_province_capacity("loja", 50, 102 * 24, 521154)
        raised = alerts.evaluate_capacity(analysis)
        assert AlertType.CAPACITY_WARNING in {a.type for a in raised}

    def test_underutilised(self, alerts, idle_manabi):
        """Low utilisation with real headcount is a low alert."""
        raised = alerts.evaluate_capacity(idle_manabi)
        assert [(a.type, a.severity) for a in raised] == [
            (AlertType.CAPACITY_UNDERUTILIZED, AlertSeverity.LOW)
        ]
        assert raised[0].data["excess_personnel"] == 77

    def test_small_underutilised_province_ignored(self, alerts, analyzer):
        """Ten or fewer staff never raise an underutilisation alert."""
        analysis = analyzer.analyze_province_capacity("napo", 10, 24, 133705)
        assert alerts.evaluate_capacity(analysis) == []

    def test_response_time_medium(self, alerts, analyzer):
        """Moderate overrun is medium severity."""
        analysis = dataclasses.replace(
            analyzer.analyze_province_capacity("loja", 50, 60 * 24, 521154),
            avg_response_time_minutes=20.0,
        )
        raised = alerts.evaluate_capacity(analysis)
        response = [a for a in raised if a.type == AlertType.RESPONSE_TIME_HIGH]
        assert response[0].severity == AlertSeverity.MEDIUM


class TestSuggestionRule:
    """Test alerts for redistribution suggestions."""

    @pytest.mark.parametrize("priority,severity", [
        (9, AlertSeverity.CRITICAL),
        (10, AlertSeverity.CRITICAL),
        (8, AlertSeverity.HIGH),
        (7, AlertSeverity.MEDIUM),
    ])
    def test_severity_mapping(self, alerts, suggestion, priority, severity):
        alert = alerts.evaluate_redistribution_suggestion(
            dataclasses.replace(suggestion, priority=priority)
        )
        assert alert.severity == severity
        assert alert.type == AlertType.REDISTRIBUTION_SUGGESTED
        assert alert.province_id == "guayas"
        assert alert.data["personnel"] == 9

    def test_low_priority_ignored(self, alerts, suggestion):
        """Below priority 7 nothing is raised."""
        assert alerts.evaluate_redistribution_suggestion(
            dataclasses.replace(suggestion, priority=6)
        ) is None
        assert alerts.get_active_alerts() == []


class TestDeduplication:
    """Test near-duplicate merging."""

    def test_same_analysis_twice(self, alerts, analyzer, clock):
        """Second evaluation refreshes the first alert in place."""
        first = analyzer.analyze_province_capacity("pichincha", 50, 114 * 24, 3228233)
        second = analyzer.analyze_province_capacity("pichincha", 50, 110.4 * 24, 3228233)

        alerts.evaluate_capacity(first)
        clock.advance(2)
        alerts.evaluate_capacity(second)

        overloads = alerts.get_active_alerts(alert_type=AlertType.CAPACITY_OVERLOAD)
        assert len(overloads) == 1
        assert overloads[0].data["utilization_rate"] == pytest.approx(92.0)
        assert overloads[0].timestamp == clock()

    def test_outside_window_inserts(self, alerts, idle_manabi, clock):
        """After five minutes a fresh alert is inserted."""
        alerts.evaluate_capacity(idle_manabi)
        clock.advance(6)
        alerts.evaluate_capacity(idle_manabi)
        assert len(alerts.get_active_alerts()) == 2

    def test_other_province_not_merged(self, alerts, analyzer):
        """Different provinces are different alerts."""
        alerts.evaluate_capacity(analyzer.analyze_province_capacity("manabi", 100, 960, 1562079))
        alerts.evaluate_capacity(analyzer.analyze_province_capacity("azuay", 100, 960, 881394))
        assert len(alerts.get_active_alerts()) == 2

    def test_listeners_not_notified_for_merges(self, alerts, idle_manabi):
        """Only new alerts are fanned out."""
        received = []
        alerts.subscribe(received.append)
        alerts.evaluate_capacity(idle_manabi)
        alerts.evaluate_capacity(idle_manabi)
        assert len(received) == 1


class TestRetention:
    """Test the active cap, expiry and history."""

    def test_cap_moves_overflow_to_history(self, alerts):
        """60 distinct alerts: 50 active newest-first, 10 in history."""
        _raise_distinct(alerts, 60)
        active = alerts.get_active_alerts()
        assert len(active) == 50
        assert [a.id for a in active] == [f"alert-{n}" for n in range(60, 10, -1)]
        history = alerts.get_alert_history(limit=100)
        assert len(history) == 10
        assert {a.id for a in history} == {f"alert-{n}" for n in range(1, 11)}

    def test_expiry(self, alerts, idle_manabi, clock):
        """Unresolved alerts older than an hour expire on the next insert."""
        old = alerts.evaluate_capacity(idle_manabi)[0]
        clock.advance(61)
        alerts.raise_alert(AlertType.SYSTEM_ERROR, AlertSeverity.HIGH, "Loader", "bad file")

        assert [a.type for a in alerts.get_active_alerts()] == [AlertType.SYSTEM_ERROR]
        assert old.resolved
        assert old.resolved_reason == AUTO_EXPIRED_REASON
        assert alerts.get_alert_history()[0] is old

    def test_not_expired_within_ttl(self, alerts, idle_manabi, clock):
        """Alerts younger than the TTL survive."""
        alerts.evaluate_capacity(idle_manabi)
        clock.advance(59)
        alerts.raise_alert(AlertType.SYSTEM_ERROR, AlertSeverity.HIGH, "Loader", "bad file")
        assert len(alerts.get_active_alerts()) == 2

    def test_history_limit(self, clock):
        """History is bounded."""
        from ecu911.core.config import AlertConfig

        alerts = AlertSystem(AlertConfig(max_active=1, history_limit=3), clock=clock)
        _raise_distinct(alerts, 10)
        assert len(alerts.get_active_alerts()) == 1
        assert len(alerts.get_alert_history()) == 3

    def test_history_limit_argument(self, alerts):
        _raise_distinct(alerts, 60)
        assert len(alerts.get_alert_history(limit=4)) == 4


class TestCommands:
    """Test acknowledge, resolve, subscribe and statistics."""

    def test_acknowledge(self, alerts, idle_manabi, clock):
        alert = alerts.evaluate_capacity(idle_manabi)[0]
        assert alerts.acknowledge_alert(alert.id, "operator-7")
        assert alert.acknowledged
        assert alert.acknowledged_by == "operator-7"
        assert alert.acknowledged_at == clock()
        assert alerts.acknowledge_alert(alert.id)
        assert not alerts.acknowledge_alert("alert-999")

    def test_resolve(self, alerts, idle_manabi):
        alert = alerts.evaluate_capacity(idle_manabi)[0]
        assert alerts.resolve_alert(alert.id, "staff moved", "supervisor")
        assert alerts.get_active_alerts() == []
        assert alert.resolved_reason == "staff moved"
        assert alerts.get_alert_history()[0] is alert
        assert not alerts.resolve_alert(alert.id)

    def test_resolve_province(self, alerts, collapsed_guayas, idle_manabi):
        alerts.evaluate_capacity(collapsed_guayas)
        alerts.evaluate_capacity(idle_manabi)
        assert alerts.resolve_province_alerts("guayas", "handled") == 2
        assert [a.province_id for a in alerts.get_active_alerts()] == ["manabi"]

    def test_listener_isolation(self, alerts, idle_manabi):
        """A failing listener does not block the others."""
        received = []

        def broken(alert):
            raise RuntimeError("listener crashed")

        alerts.subscribe(broken)
        alerts.subscribe(received.append)
        alert = alerts.evaluate_capacity(idle_manabi)[0]
        assert received == [alert]

    def test_unsubscribe(self, alerts, idle_manabi):
        received = []
        unsubscribe = alerts.subscribe(received.append)
        unsubscribe()
        unsubscribe()
        alerts.evaluate_capacity(idle_manabi)
        assert received == []

    def test_filters(self, alerts, collapsed_guayas, idle_manabi):
        alerts.evaluate_capacity(collapsed_guayas)
        alerts.evaluate_capacity(idle_manabi)
        assert len(alerts.get_active_alerts(severity=AlertSeverity.CRITICAL)) == 1
        assert len(alerts.get_active_alerts(province_id="guayas")) == 2
        assert len(alerts.get_active_alerts(
            alert_type=AlertType.CAPACITY_UNDERUTILIZED, province_id="guayas")) == 0

    def test_statistics(self, alerts, collapsed_guayas, idle_manabi):
        alerts.evaluate_capacity(collapsed_guayas)
        low = alerts.evaluate_capacity(idle_manabi)[0]
        alerts.acknowledge_alert(low.id)

        stats = alerts.get_alert_statistics()
        assert stats.total == 3
        assert (stats.critical, stats.high, stats.medium, stats.low) == (1, 1, 0, 1)
        assert stats.by_province == {"guayas": 2, "manabi": 1}
        assert stats.by_type[AlertType.CAPACITY_CRITICAL] == 1
        assert (stats.acknowledged, stats.unacknowledged) == (1, 2)

    def test_clear_all(self, alerts, collapsed_guayas):
        alerts.evaluate_capacity(collapsed_guayas)
        alerts.clear_all_alerts()
        assert alerts.get_active_alerts() == []
        assert len(alerts.get_alert_history()) == 2

    def test_summary(self, alerts, collapsed_guayas):
        alerts.evaluate_capacity(collapsed_guayas)
        summary = alerts.generate_summary()
        assert "Active alerts: 2" in summary
        assert "capacity_critical: 1" in summary
