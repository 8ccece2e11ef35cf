"""Dispatch centre: engine, datasets, analyzer and alerts wired together.

The centre is the single entry point for a host application. It owns one
simulation engine and shares the engine clock with the analyzer and the
alert system, so suggestion timestamps, alert de-duplication and expiry
all run on simulated time.

Hourly demand per province, in order of preference:
1. Loaded incident dataset: records per distinct date.
2. Session observations: emergencies generated in the province,
   extrapolated to 24 h once at least an hour has been simulated.
3. Reference national incidents per day, apportioned by population.

Example usage:
    centre = DispatchCentre()
    centre.load_personnel_data(Path("personal_articulado_provincia_2025.csv").read_text())
    centre.subscribe_to_alerts(print)

    for _ in range(60):
        centre.tick(1000)

    analyses = centre.capacity_analyses()
    suggestions = centre.redistribution_suggestions(analyses)
    centre.evaluate_alerts(analyses, suggestions)
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Union

import pandas as pd

from ecu911.alerts.system import Alert, AlertListener, AlertStatistics, AlertSystem
from ecu911.analysis.redistribution import (
    CapacityAnalysis,
    RedistributionAnalyzer,
    RedistributionSuggestion,
    ValidationResult,
)
from ecu911.core.config import SystemConfig
from ecu911.core.entities import ProvinceId, ServiceCategory
from ecu911.core.reference import (
    DEFAULT_SERVICE,
    PROVINCES,
    REFERENCE_NATIONAL_INCIDENTS,
    as_province,
    as_service,
)
from ecu911.data.incidents import IncidentRecord, daily_incident_rate, load_incident_csv
from ecu911.data.personnel import PersonnelByProvince, PersonnelDataLoader
from ecu911.model.engine import SimulationEngine
from ecu911.model.state import SimulationState

logger = logging.getLogger(__name__)

MS_PER_HOUR = 3_600_000
MIN_OBSERVATION_HOURS = 1.0
DAYS_PER_YEAR = 365


class DispatchCentre:
    """Facade over the engine, personnel data, analyzer and alert system.

    Attributes:
        config: Complete configuration.
        engine: Simulation engine (owner of the clock).
        personnel: Personnel dataset loader.
        analyzer: Capacity and redistribution analyzer.
        alerts: Alert system.
    """

    def __init__(self, config: Optional[SystemConfig] = None) -> None:
        self.config = config or SystemConfig()
        self.engine = SimulationEngine(self.config.simulation)
        self.personnel = PersonnelDataLoader()
        self.analyzer = RedistributionAnalyzer(self.config.queueing, clock=self.engine.now)
        self.alerts = AlertSystem(self.config.alerts, clock=self.engine.now)
        self._daily_rates: Optional[pd.Series] = None
        self._national_population = sum(p.population for p in PROVINCES.values())

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def load_personnel_data(self, csv_content: str) -> List[PersonnelByProvince]:
        return self.personnel.load_from_csv(csv_content)

    def load_incident_data(self, csv_content: str) -> List[IncidentRecord]:
        """Parse an incident dataset and feed it to the engine and demand model."""
        records = load_incident_csv(csv_content)
        self.engine.load_csv_data(records)
        self._daily_rates = daily_incident_rate(records)
        return records

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def tick(self, delta_ms: float = 1000.0) -> None:
        self.engine.tick(delta_ms)

    def redistribute_agents(
        self,
        from_province: Union[ProvinceId, str],
        to_province: Union[ProvinceId, str],
        service: Union[ServiceCategory, str],
        count: int,
    ) -> bool:
        return self.engine.redistribute_agents(from_province, to_province, service, count)

    def get_state(self) -> SimulationState:
        return self.engine.get_state()

    # ------------------------------------------------------------------
    # Demand and capacity
    # ------------------------------------------------------------------

    def daily_demand(self, province: Union[ProvinceId, str]) -> float:
        """Expected incidents per 24 h for a province."""
        province = as_province(province)
        if self._daily_rates is not None:
            return float(self._daily_rates.get(province.value, 0.0))

        elapsed_hours = self.engine.elapsed_ms / MS_PER_HOUR
        if elapsed_hours >= MIN_OBSERVATION_HOURS:
            observed = sum(
                1 for e in [*self.engine.emergencies, *self.engine.resolved_emergencies]
                if e.province == province
            )
            return observed / elapsed_hours * 24

        share = PROVINCES[province].population / self._national_population
        return REFERENCE_NATIONAL_INCIDENTS / DAYS_PER_YEAR * share

    def headcount(self, province: Union[ProvinceId, str]) -> int:
        """Dataset headcount when personnel data is loaded, else engine agents."""
        province = as_province(province)
        if self.personnel.is_loaded:
            return self.personnel.total_personnel(province)
        return len(self.engine.get_agents_by_province(province))

    def capacity_analyses(self) -> List[CapacityAnalysis]:
        """Analyse every province (reference order)."""
        return [
            self.analyzer.analyze_province_capacity(
                province.id,
                self.headcount(province.id),
                self.daily_demand(province.id),
                province.population,
            )
            for province in PROVINCES.values()
        ]

    def redistribution_suggestions(
        self, analyses: Optional[List[CapacityAnalysis]] = None
    ) -> List[RedistributionSuggestion]:
        if analyses is None:
            analyses = self.capacity_analyses()
        return self.analyzer.generate_redistribution_suggestions(analyses)

    def validate_suggestion(
        self,
        suggestion: RedistributionSuggestion,
        analyses: Optional[List[CapacityAnalysis]] = None,
    ) -> ValidationResult:
        by_province = self._index(analyses)
        source = by_province.get(suggestion.from_province)
        if source is None:
            return ValidationResult(False, f"No capacity analysis for {suggestion.from_province}")
        return self.analyzer.validate_redistribution(suggestion, source)

    def apply_suggestion(
        self,
        suggestion: RedistributionSuggestion,
        service: Union[ServiceCategory, str] = DEFAULT_SERVICE,
        count: Optional[int] = None,
    ) -> bool:
        """Validate a suggestion and start the matching agent relocation.

        Suggestions sized from a loaded personnel dataset count real staff,
        while the engine only holds a small pool of agents per service. By
        default the total is rescaled to the source province's pool for
        `service` (see `engine_transfer_size`).

        Args:
            suggestion: Transfer to apply.
            service: Agent service category to move.
            count: Agents to move (defaults to the rescaled suggestion total).

        Returns:
            True if the relocation started.
        """
        verdict = self.validate_suggestion(suggestion)
        if not verdict:
            logger.warning(f"Suggestion {suggestion.id} rejected: {verdict.reason}")
            return False
        amount = self.engine_transfer_size(suggestion, service) if count is None else count
        return self.engine.redistribute_agents(
            suggestion.from_province, suggestion.to_province, service, amount
        )

    def engine_transfer_size(
        self,
        suggestion: RedistributionSuggestion,
        service: Union[ServiceCategory, str] = DEFAULT_SERVICE,
    ) -> int:
        """Suggestion total in engine agents of one service.

        Unchanged without personnel data. With it, scaled by the ratio of
        the source's engine agents for `service` to its dataset headcount.
        """
        amount = suggestion.total_personnel
        if not self.personnel.is_loaded:
            return amount
        staff = self.personnel.total_personnel(suggestion.from_province)
        if staff <= 0:
            return amount
        service = as_service(service)
        pool = sum(
            1 for a in self.engine.get_agents_by_province(suggestion.from_province)
            if a.service == service
        )
        return max(1, math.floor(amount * pool / staff + 0.5))

    def _index(self, analyses: Optional[List[CapacityAnalysis]]) -> Dict[str, CapacityAnalysis]:
        if analyses is None:
            analyses = self.capacity_analyses()
        return {a.province_id: a for a in analyses}

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def evaluate_alerts(
        self,
        analyses: Optional[List[CapacityAnalysis]] = None,
        suggestions: Optional[List[RedistributionSuggestion]] = None,
    ) -> List[Alert]:
        """Run every alert rule over the current analyses and suggestions."""
        if analyses is None:
            analyses = self.capacity_analyses()
        if suggestions is None:
            suggestions = self.redistribution_suggestions(analyses)

        raised: List[Alert] = []
        for analysis in analyses:
            raised.extend(self.alerts.evaluate_capacity(analysis))
        for suggestion in suggestions:
            alert = self.alerts.evaluate_redistribution_suggestion(suggestion)
            if alert is not None:
                raised.append(alert)
        return raised

    def subscribe_to_alerts(self, listener: AlertListener) -> Callable[[], None]:
        return self.alerts.subscribe(listener)

    def acknowledge_alert(self, alert_id: str, acknowledged_by: Optional[str] = None) -> bool:
        return self.alerts.acknowledge_alert(alert_id, acknowledged_by)

    def get_alert_statistics(self) -> AlertStatistics:
        return self.alerts.get_alert_statistics()
