"""Alert rules, de-duplication and history."""

from ecu911.alerts.system import (
    Alert,
    AlertSeverity,
    AlertStatistics,
    AlertSystem,
    AlertType,
)

__all__ = ["Alert", "AlertSeverity", "AlertStatistics", "AlertSystem", "AlertType"]
