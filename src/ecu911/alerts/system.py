"""Rule-based alert system for province capacity and redistribution.

Turns capacity analyses and redistribution suggestions into alerts,
merges near-duplicates raised within a short window, caps the active list
and expires stale alerts into a bounded history.

Alert lifecycle:
    created -> (acknowledged) -> resolved | expired

Example usage:
    alerts = AlertSystem(clock=engine.now)
    unsubscribe = alerts.subscribe(lambda a: print(f"[{a.severity.value}] {a.title}"))

    for analysis in analyses:
        alerts.evaluate_capacity(analysis)

    print(alerts.generate_summary())
    unsubscribe()
"""

import itertools
import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from ecu911.analysis.redistribution import CapacityAnalysis, RedistributionSuggestion
from ecu911.core.config import AlertConfig
from ecu911.core.reference import province_name

logger = logging.getLogger(__name__)


class AlertType(Enum):
    """Alert taxonomy."""
    CAPACITY_CRITICAL = "capacity_critical"          # Utilisation at or past 100%
    CAPACITY_OVERLOAD = "capacity_overload"
    CAPACITY_WARNING = "capacity_warning"
    CAPACITY_UNDERUTILIZED = "capacity_underutilized"
    RESPONSE_TIME_HIGH = "response_time_high"
    REDISTRIBUTION_SUGGESTED = "redistribution_suggested"
    SYSTEM_ERROR = "system_error"


class AlertSeverity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class Alert:
    """A single alert. Mutable: acknowledgement, resolution and
    de-duplication update it in place."""
    id: str
    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    timestamp: datetime
    province_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    resolved_reason: Optional[str] = None
    resolved_by: Optional[str] = None


@dataclass
class AlertStatistics:
    """Counts over the currently active alerts."""
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    by_type: Dict[AlertType, int] = field(default_factory=dict)
    by_province: Dict[str, int] = field(default_factory=dict)
    acknowledged: int = 0
    unacknowledged: int = 0


AlertListener = Callable[[Alert], None]

AUTO_EXPIRED_REASON = "auto-expired"


class AlertSystem:
    """Evaluates alert rules and manages the active/history alert lists.

    Active alerts are kept newest-first. When the active list exceeds
    `config.max_active`, the oldest entries move to history. History is
    also newest-first and bounded by `config.history_limit`.

    Attributes:
        config: Thresholds and retention settings.
    """

    def __init__(
        self,
        config: Optional[AlertConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize alert system.

        Args:
            config: Alert settings. Uses defaults if None.
            clock: Time source for timestamps, de-duplication and expiry.
                Share the simulation clock to keep all three consistent.
        """
        self.config = config or AlertConfig()
        self._clock = clock or datetime.now
        self._alerts: List[Alert] = []
        self._history: Deque[Alert] = deque(maxlen=self.config.history_limit)
        self._listeners: List[AlertListener] = []
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Rule evaluation
    # ------------------------------------------------------------------

    def evaluate_capacity(self, analysis: CapacityAnalysis) -> List[Alert]:
        """Apply threshold rules to one province's capacity analysis.

        At most one utilisation alert (collapse, overload or warning) is
        raised, plus independent response-time and underutilisation alerts.

        Returns:
            The alerts raised or refreshed by this evaluation.
        """
        cfg = self.config
        name = province_name(analysis.province_id)
        rate = analysis.utilization_rate
        response = analysis.avg_response_time_minutes
        raised = []

        if rate >= cfg.collapse_utilization:
            raised.append(self.raise_alert(
                AlertType.CAPACITY_CRITICAL,
                AlertSeverity.CRITICAL,
                title=f"System collapsed in {name}",
                message=(
                    f"{name} is at {rate:.1f}% utilisation. "
                    f"{analysis.personnel_difference} additional staff needed URGENTLY. "
                    f"Average wait: {response:.1f} minutes."
                ),
                province_id=analysis.province_id,
                data={
                    "utilization_rate": rate,
                    "personnel_needed": analysis.personnel_difference,
                    "current_personnel": analysis.current_personnel,
                    "emergencies_per_hour": analysis.emergencies_per_hour,
                },
            ))
        elif rate >= cfg.overload_utilization:
            raised.append(self.raise_alert(
                AlertType.CAPACITY_OVERLOAD,
                AlertSeverity.HIGH,
                title=f"Overload in {name}",
                message=(
                    f"{name} is operating at {rate:.1f}% of capacity. "
                    f"Redistributing {analysis.personnel_difference} staff is recommended. "
                    f"Current wait: {response:.1f} minutes."
                ),
                province_id=analysis.province_id,
                data={
                    "utilization_rate": rate,
                    "personnel_recommended": analysis.personnel_difference,
                    "current_personnel": analysis.current_personnel,
                },
            ))
        elif rate >= cfg.warning_utilization:
            raised.append(self.raise_alert(
                AlertType.CAPACITY_WARNING,
                AlertSeverity.MEDIUM,
                title=f"Limited capacity in {name}",
                message=(
                    f"{name} is close to its capacity limit ({rate:.1f}%). "
                    f"Consider preparing a transfer of {analysis.personnel_difference} staff."
                ),
                province_id=analysis.province_id,
                data={
                    "utilization_rate": rate,
                    "personnel_recommended": analysis.personnel_difference,
                },
            ))

        if response > cfg.target_response_minutes:
            severe = response > cfg.severe_response_minutes
            raised.append(self.raise_alert(
                AlertType.RESPONSE_TIME_HIGH,
                AlertSeverity.HIGH if severe else AlertSeverity.MEDIUM,
                title=f"High response time in {name}",
                message=(
                    f"Average response time in {name} is {response:.1f} minutes, "
                    f"above the {cfg.target_response_minutes:.0f} minute target."
                ),
                province_id=analysis.province_id,
                data={
                    "avg_response_time": response,
                    "target_response_time": cfg.target_response_minutes,
                },
            ))

        if (rate < cfg.underutilized_utilization
                and analysis.current_personnel > cfg.underutilized_min_personnel):
            excess = abs(analysis.personnel_difference)
            raised.append(self.raise_alert(
                AlertType.CAPACITY_UNDERUTILIZED,
                AlertSeverity.LOW,
                title=f"Underutilised resources in {name}",
                message=(
                    f"{name} is only at {rate:.1f}% utilisation. "
                    f"{excess} staff could be redistributed to other provinces."
                ),
                province_id=analysis.province_id,
                data={"utilization_rate": rate, "excess_personnel": excess},
            ))

        return raised

    def evaluate_redistribution_suggestion(
        self, suggestion: RedistributionSuggestion
    ) -> Optional[Alert]:
        """Raise an alert for a high-priority suggestion, else return None."""
        if suggestion.priority < self.config.suggestion_min_priority:
            return None

        if suggestion.priority >= 9:
            severity = AlertSeverity.CRITICAL
        elif suggestion.priority >= 8:
            severity = AlertSeverity.HIGH
        else:
            severity = AlertSeverity.MEDIUM

        source = province_name(suggestion.from_province)
        target = province_name(suggestion.to_province)
        return self.raise_alert(
            AlertType.REDISTRIBUTION_SUGGESTED,
            severity,
            title=f"Redistribution recommended: {source} -> {target}",
            message=(
                f"{suggestion.reason}. "
                f"Transfer {suggestion.total_personnel} staff. "
                f"Expected improvement: {suggestion.estimated_improvement_percentage:.1f}%. "
                f"Distance: {suggestion.distance_km:.0f} km."
            ),
            province_id=suggestion.to_province,
            data={
                "suggestion_id": suggestion.id,
                "from_province": suggestion.from_province,
                "to_province": suggestion.to_province,
                "personnel": suggestion.total_personnel,
                "breakdown": {c.value: n for c, n in suggestion.personnel_breakdown.items()},
                "impact_score": suggestion.impact_score,
                "priority": suggestion.priority,
            },
        )

    # ------------------------------------------------------------------
    # Insertion, de-duplication and expiry
    # ------------------------------------------------------------------

    def raise_alert(
        self,
        alert_type: AlertType,
        severity: AlertSeverity,
        title: str,
        message: str,
        province_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Alert:
        """Insert an alert, or refresh a recent unresolved one of the same
        type and province.

        Listeners are only notified for genuinely new alerts.

        Returns:
            The inserted alert, or the existing alert that absorbed it.
        """
        now = self._clock()
        self._expire_stale(now)

        existing = self._find_recent(alert_type, province_id, now)
        if existing is not None:
            existing.message = message
            existing.data = dict(data or {})
            existing.timestamp = now
            logger.debug(f"Refreshed alert {existing.id} ({alert_type.value}, {province_id})")
            return existing

        alert = Alert(
            id=f"alert-{next(self._ids)}",
            type=alert_type,
            severity=severity,
            title=title,
            message=message,
            timestamp=now,
            province_id=province_id,
            data=dict(data or {}),
        )
        self._alerts.insert(0, alert)

        if len(self._alerts) > self.config.max_active:
            overflow = self._alerts[self.config.max_active:]
            del self._alerts[self.config.max_active:]
            for old in overflow:
                self._history.appendleft(old)

        logger.debug(f"Raised {severity.value} alert {alert.id}: {title}")
        self._notify(alert)
        return alert

    def _find_recent(
        self, alert_type: AlertType, province_id: Optional[str], now: datetime
    ) -> Optional[Alert]:
        window = timedelta(minutes=self.config.dedup_window_minutes)
        for alert in self._alerts:
            if (alert.type == alert_type
                    and alert.province_id == province_id
                    and not alert.resolved
                    and now - alert.timestamp < window):
                return alert
        return None

    def _expire_stale(self, now: datetime) -> None:
        ttl = timedelta(minutes=self.config.expiry_minutes)
        expired = [a for a in self._alerts if not a.resolved and now - a.timestamp > ttl]
        if not expired:
            return
        for alert in expired:
            alert.resolved = True
            alert.resolved_at = now
            alert.resolved_reason = AUTO_EXPIRED_REASON
            self._history.appendleft(alert)
        expired_ids = {a.id for a in expired}
        self._alerts = [a for a in self._alerts if a.id not in expired_ids]
        logger.info(f"Expired {len(expired)} stale alert(s)")

    def _notify(self, alert: Alert) -> None:
        for listener in list(self._listeners):
            try:
                listener(alert)
            except Exception as e:
                logger.warning(f"Alert listener error for {alert.id}: {e}")

    # ------------------------------------------------------------------
    # Queries and commands
    # ------------------------------------------------------------------

    def get_active_alerts(
        self,
        severity: Optional[AlertSeverity] = None,
        alert_type: Optional[AlertType] = None,
        province_id: Optional[str] = None,
    ) -> List[Alert]:
        """Unresolved alerts, newest first, optionally filtered."""
        alerts = [a for a in self._alerts if not a.resolved]
        if severity is not None:
            alerts = [a for a in alerts if a.severity == severity]
        if alert_type is not None:
            alerts = [a for a in alerts if a.type == alert_type]
        if province_id is not None:
            alerts = [a for a in alerts if a.province_id == province_id]
        return alerts

    def get_alert_history(self, limit: int = 50) -> List[Alert]:
        """Most recent resolved/expired/overflowed alerts, newest first."""
        return list(itertools.islice(self._history, max(0, limit)))

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        for alert in self._alerts:
            if alert.id == alert_id:
                return alert
        return None

    def get_alert_statistics(self) -> AlertStatistics:
        """Aggregate counts over the active list (computed on demand)."""
        active = self.get_active_alerts()
        severities = Counter(a.severity for a in active)
        acknowledged = sum(1 for a in active if a.acknowledged)
        return AlertStatistics(
            total=len(active),
            critical=severities[AlertSeverity.CRITICAL],
            high=severities[AlertSeverity.HIGH],
            medium=severities[AlertSeverity.MEDIUM],
            low=severities[AlertSeverity.LOW],
            by_type=dict(Counter(a.type for a in active)),
            by_province=dict(Counter(a.province_id for a in active if a.province_id)),
            acknowledged=acknowledged,
            unacknowledged=len(active) - acknowledged,
        )

    def acknowledge_alert(self, alert_id: str, acknowledged_by: Optional[str] = None) -> bool:
        """Mark an active alert acknowledged. False if not found."""
        alert = self.get_alert(alert_id)
        if alert is None:
            return False
        alert.acknowledged = True
        alert.acknowledged_at = self._clock()
        alert.acknowledged_by = acknowledged_by
        return True

    def resolve_alert(
        self,
        alert_id: str,
        reason: Optional[str] = None,
        resolved_by: Optional[str] = None,
    ) -> bool:
        """Resolve an active alert and move it to history. False if not found."""
        alert = self.get_alert(alert_id)
        if alert is None:
            return False
        alert.resolved = True
        alert.resolved_at = self._clock()
        alert.resolved_reason = reason
        alert.resolved_by = resolved_by
        self._alerts.remove(alert)
        self._history.appendleft(alert)
        return True

    def resolve_province_alerts(self, province_id: str, reason: Optional[str] = None) -> int:
        """Resolve every active alert for a province; returns how many."""
        targets = [a.id for a in self._alerts if a.province_id == province_id]
        for alert_id in targets:
            self.resolve_alert(alert_id, reason)
        return len(targets)

    def clear_all_alerts(self) -> None:
        """Move every active alert to history, oldest first, unresolved."""
        for alert in reversed(self._alerts):
            self._history.appendleft(alert)
        self._alerts = []

    def subscribe(self, listener: AlertListener) -> Callable[[], None]:
        """Register a listener for new alerts.

        Returns:
            A callable that unsubscribes the listener (safe to call twice).
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def generate_summary(self) -> str:
        """Plain-text summary of active alerts for logs or a status panel."""
        stats = self.get_alert_statistics()
        lines = [
            "ECU-911 ALERT SUMMARY",
            "=" * 40,
            f"Active alerts: {stats.total}",
            "",
            "By severity:",
            f"  critical: {stats.critical}",
            f"  high:     {stats.high}",
            f"  medium:   {stats.medium}",
            f"  low:      {stats.low}",
            "",
            "Status:",
            f"  acknowledged: {stats.acknowledged}",
            f"  pending:      {stats.unacknowledged}",
        ]
        if stats.by_type:
            lines.append("")
            lines.append("By type:")
            for alert_type, count in stats.by_type.items():
                lines.append(f"  - {alert_type.value}: {count}")
        return "\n".join(lines)
