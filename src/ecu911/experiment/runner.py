"""Headless session runners.

`run_session` drives one dispatch centre for a number of ticks and
condenses the outcome into an executive summary. `multiple_sessions`
repeats that with consecutive seeds and `summarize_sessions` turns the
collected metrics into confidence intervals.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import numpy as np
import pandas as pd
from scipy import stats

from ecu911.alerts.system import AlertStatistics
from ecu911.analysis.redistribution import RedistributionSuggestion
from ecu911.core.config import SystemConfig
from ecu911.core.entities import AgentStatus
from ecu911.model.centre import DispatchCentre

logger = logging.getLogger(__name__)

DEFAULT_METRICS = [
    "total_emergencies", "resolved_emergencies", "active_emergencies",
    "pending_emergencies", "resolution_rate", "active_alerts",
]


@dataclass
class SessionSummary:
    """Outcome of one headless session.

    Attributes:
        ticks: Ticks executed.
        simulated_ms: Simulated time covered.
        total_emergencies: Emergencies generated (active + resolved).
        resolved_emergencies: Emergencies resolved.
        active_emergencies: Emergencies still open.
        pending_emergencies: Open emergencies never assigned.
        agent_status: Agent count per status at the end.
        alert_statistics: Active-alert aggregates at the end.
        top_suggestions: Highest-ranked redistribution suggestions.
    """
    ticks: int
    simulated_ms: float
    total_emergencies: int
    resolved_emergencies: int
    active_emergencies: int
    pending_emergencies: int
    agent_status: Dict[AgentStatus, int] = field(default_factory=dict)
    alert_statistics: AlertStatistics = field(default_factory=AlertStatistics)
    top_suggestions: List[RedistributionSuggestion] = field(default_factory=list)

    @property
    def resolution_rate(self) -> float:
        if self.total_emergencies == 0:
            return 0.0
        return self.resolved_emergencies / self.total_emergencies

    def to_metrics(self) -> Dict[str, float]:
        return {
            "total_emergencies": self.total_emergencies,
            "resolved_emergencies": self.resolved_emergencies,
            "active_emergencies": self.active_emergencies,
            "pending_emergencies": self.pending_emergencies,
            "resolution_rate": self.resolution_rate,
            "active_alerts": self.alert_statistics.total,
        }

    def summary(self) -> str:
        lines = [
            f"Session: {self.ticks} ticks ({self.simulated_ms / 1000:.0f} s simulated)",
            f"Emergencies: {self.total_emergencies} total, {self.resolved_emergencies} resolved "
            f"({self.resolution_rate:.0%}), {self.pending_emergencies} unassigned",
            "Agents: " + ", ".join(
                f"{status.value}={n}" for status, n in self.agent_status.items()
            ),
            f"Active alerts: {self.alert_statistics.total} "
            f"({self.alert_statistics.critical} critical)",
        ]
        for s in self.top_suggestions:
            lines.append(
                f"  -> {s.total_personnel} staff {s.from_province} -> {s.to_province} "
                f"(priority {s.priority}, impact {s.impact_score:.1f})"
            )
        return "\n".join(lines)


def run_session(
    centre: DispatchCentre,
    n_ticks: int = 100,
    delta_ms: float = 1000.0,
    evaluate_every: Optional[int] = None,
    top_n: int = 5,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> SessionSummary:
    """Tick a centre `n_ticks` times and summarise.

    Args:
        centre: Dispatch centre to drive (mutated in place).
        n_ticks: Number of ticks.
        delta_ms: Simulated milliseconds per tick.
        evaluate_every: Also run the alert rules every this many ticks.
            Alert rules always run once at the end.
        top_n: Suggestions to keep in the summary.
        progress_callback: Optional callback(current_tick, total_ticks).

    Returns:
        SessionSummary of the final state.
    """
    start_ms = centre.engine.elapsed_ms
    for i in range(n_ticks):
        centre.tick(delta_ms)
        if evaluate_every and (i + 1) % evaluate_every == 0:
            centre.evaluate_alerts()
        if progress_callback is not None:
            progress_callback(i + 1, n_ticks)

    analyses = centre.capacity_analyses()
    suggestions = centre.redistribution_suggestions(analyses)
    centre.evaluate_alerts(analyses, suggestions)

    state = centre.get_state()
    summary = SessionSummary(
        ticks=n_ticks,
        simulated_ms=centre.engine.elapsed_ms - start_ms,
        total_emergencies=state.total_emergencies,
        resolved_emergencies=state.resolved_count,
        active_emergencies=len(state.active_emergencies),
        pending_emergencies=len(centre.engine.pending_emergencies()),
        agent_status=state.agent_status_counts(),
        alert_statistics=centre.get_alert_statistics(),
        top_suggestions=suggestions[:top_n],
    )
    logger.info(
        f"Session finished: {summary.total_emergencies} emergencies, "
        f"{summary.resolved_emergencies} resolved"
    )
    return summary


def multiple_sessions(
    config: Optional[SystemConfig] = None,
    n_reps: int = 10,
    n_ticks: int = 100,
    delta_ms: float = 1000.0,
    metric_names: Optional[List[str]] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Dict[str, List[float]]:
    """Run independent sessions with seeds base_seed + rep.

    Returns:
        Dictionary mapping metric names to values across sessions.
    """
    config = config or SystemConfig()
    metric_names = metric_names or DEFAULT_METRICS
    results: Dict[str, List[float]] = {name: [] for name in metric_names}

    for rep in range(n_reps):
        rep_config = copy.deepcopy(config)
        rep_config.simulation.random_seed = config.simulation.random_seed + rep
        metrics = run_session(DispatchCentre(rep_config), n_ticks, delta_ms).to_metrics()
        for name in metric_names:
            if name in metrics:
                results[name].append(float(metrics[name]))
        if progress_callback is not None:
            progress_callback(rep + 1, n_reps)

    return results


def confidence_interval(values: List[float], confidence: float = 0.95) -> Dict[str, float]:
    """Student-t confidence interval for the mean of `values`."""
    n = len(values)
    if n < 2:
        mean = float(values[0]) if n == 1 else 0.0
        return {"mean": mean, "std": 0.0, "ci_lower": mean, "ci_upper": mean, "n": n}

    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    half_width = float(stats.t.ppf((1 + confidence) / 2, df=n - 1) * stats.sem(arr))
    return {
        "mean": mean,
        "std": float(arr.std(ddof=1)),
        "ci_lower": mean - half_width,
        "ci_upper": mean + half_width,
        "n": n,
    }


def summarize_sessions(results: Dict[str, List[float]], confidence: float = 0.95) -> pd.DataFrame:
    """One row per metric with mean, std and CI bounds."""
    df = pd.DataFrame.from_dict(
        {name: confidence_interval(values, confidence) for name, values in results.items()},
        orient="index",
    )
    df.index.name = "metric"
    return df
