"""Capacity analysis and personnel redistribution suggestions.

Combines the M/M/c model with per-province demand to score each
province's staffing, then greedily pairs overloaded provinces with
underutilised ones to propose transfers.

Algorithm for suggestions:
1. Overloaded = status CRITICAL/OVERLOADED with a positive deficit,
   most urgent first.
2. Underutilised = status UNDERUTILIZED with a surplus, least utilised first.
3. Every (overloaded, underutilised) pair proposes
   min(floor(30% of surplus), ceil(50% of deficit)) staff.
4. Each proposal is scored for impact, costed and explained.
5. Sorted by priority, then impact.

Example usage:
    analyzer = RedistributionAnalyzer()
    analyses = [
        analyzer.analyze_province_capacity(pid, staff, last_24h, population)
        for pid, staff, last_24h, population in provinces
    ]
    for suggestion in analyzer.generate_redistribution_suggestions(analyses):
        verdict = analyzer.validate_redistribution(suggestion, by_id[suggestion.from_province])
"""

import itertools
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

from ecu911.analysis.queueing import (
    QueueAnalysis,
    analyze_queue_performance,
    classify,
    utilization,
)
from ecu911.core.config import QueueingConfig
from ecu911.core.entities import CapacityStatus, PersonnelCategory, ProvinceId
from ecu911.core.reference import PROVINCES, lookup_province, province_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityAnalysis:
    """Staffing assessment for one province.

    Attributes:
        province_id: Province key (id value or slug).
        current_personnel: Headcount used as server count.
        recommended_personnel: Headcount holding rho at the optimal target.
        personnel_difference: recommended - current (positive = deficit).
        utilization_rate: rho in percent.
        emergencies_per_hour: Arrival rate lambda.
        emergencies_last_24h: Demand over the last day.
        emergencies_per_100k: Daily demand per 100,000 inhabitants.
        personnel_per_100k: Staff per 100,000 inhabitants.
        emergencies_per_personnel: Daily demand per staff member.
        avg_response_time_minutes: Queue wait plus travel offset.
        queue_analysis: Underlying M/M/c metrics.
        status: Capacity classification.
        priority: Redistribution urgency, 1-10 (10 = most urgent).
    """
    province_id: str
    current_personnel: int
    recommended_personnel: int
    personnel_difference: int
    utilization_rate: float
    emergencies_per_hour: float
    emergencies_last_24h: float
    emergencies_per_100k: float
    personnel_per_100k: float
    emergencies_per_personnel: float
    avg_response_time_minutes: float
    queue_analysis: QueueAnalysis
    status: CapacityStatus
    priority: int


@dataclass(frozen=True)
class RedistributionSuggestion:
    """A proposed transfer of staff between two provinces."""
    id: str
    from_province: str
    to_province: str
    total_personnel: int
    personnel_breakdown: Dict[PersonnelCategory, int]
    reason: str
    priority: int
    impact_score: float
    distance_km: float
    estimated_improvement_percentage: float
    current_utilization: float
    projected_utilization: float
    cost: float
    timestamp: datetime


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a suggestion; `reason` explains a rejection."""
    valid: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


class RedistributionAnalyzer:
    """Queueing-based capacity scoring and transfer suggestions.

    Attributes:
        config: Model constants and heuristics.
    """

    def __init__(
        self,
        config: Optional[QueueingConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize analyzer.

        Args:
            config: Queueing model settings. Uses defaults if None.
            clock: Source of suggestion timestamps (wall clock if None).
        """
        self.config = config or QueueingConfig()
        self._clock = clock or datetime.now
        self._suggestion_ids = itertools.count(1)

    def analyze_queue_performance(
        self, emergencies_per_hour: float, available_personnel: int
    ) -> QueueAnalysis:
        return analyze_queue_performance(emergencies_per_hour, available_personnel, self.config)

    def analyze_province_capacity(
        self,
        province_id: Union[ProvinceId, str],
        current_personnel: int,
        emergencies_last_24h: float,
        population: int,
    ) -> CapacityAnalysis:
        """Assess one province's staffing against its demand.

        Args:
            province_id: Province key.
            current_personnel: Total staff in the province.
            emergencies_last_24h: Incidents over the last 24 hours.
            population: Inhabitants, for per-100k normalisation.

        Returns:
            CapacityAnalysis for the province.
        """
        key = province_id.value if isinstance(province_id, ProvinceId) else province_id
        per_hour = emergencies_last_24h / 24
        queue = self.analyze_queue_performance(per_hour, current_personnel)
        difference = queue.recommended_personnel - current_personnel

        if current_personnel > 0:
            per_personnel = emergencies_last_24h / current_personnel
        else:
            per_personnel = math.inf if emergencies_last_24h > 0 else 0.0

        return CapacityAnalysis(
            province_id=key,
            current_personnel=current_personnel,
            recommended_personnel=queue.recommended_personnel,
            personnel_difference=difference,
            utilization_rate=queue.utilization_percentage,
            emergencies_per_hour=per_hour,
            emergencies_last_24h=emergencies_last_24h,
            emergencies_per_100k=self._per_100k(emergencies_last_24h, population),
            personnel_per_100k=self._per_100k(current_personnel, population),
            emergencies_per_personnel=per_personnel,
            avg_response_time_minutes=queue.avg_wait_time_minutes + self.config.travel_offset_minutes,
            queue_analysis=queue,
            status=classify(queue.utilization_factor, self.config),
            priority=self.calculate_priority(queue, difference),
        )

    @staticmethod
    def _per_100k(value: float, population: int) -> float:
        return value / population * 100_000 if population > 0 else 0.0

    def calculate_priority(self, analysis: QueueAnalysis, personnel_difference: int) -> int:
        """Redistribution urgency on a 1-10 scale."""
        rho = analysis.utilization_factor
        priority = 5
        if rho >= 1.0:
            priority = 10
        elif rho >= 0.95:
            priority = 9
        elif rho >= 0.90:
            priority = 8
        elif rho >= 0.80:
            priority = 7
        elif rho >= 0.70:
            priority = 6
        elif rho < 0.30:
            priority = 3
        elif rho < 0.40:
            priority = 4

        gap = abs(personnel_difference) / analysis.recommended_personnel
        if gap > 0.5:
            priority += 2
        elif gap > 0.3:
            priority += 1

        return max(1, min(10, priority))

    def generate_redistribution_suggestions(
        self, capacity_analyses: List[CapacityAnalysis]
    ) -> List[RedistributionSuggestion]:
        """Pair overloaded and underutilised provinces into transfers.

        Args:
            capacity_analyses: One analysis per province.

        Returns:
            Suggestions sorted by priority, then impact score (both descending).
        """
        overloaded = sorted(
            (a for a in capacity_analyses
             if a.personnel_difference > 0
             and a.status in (CapacityStatus.CRITICAL, CapacityStatus.OVERLOADED)),
            key=lambda a: a.priority,
            reverse=True,
        )
        underutilized = sorted(
            (a for a in capacity_analyses
             if a.personnel_difference < 0 and a.status == CapacityStatus.UNDERUTILIZED),
            key=lambda a: a.utilization_rate,
        )

        suggestions = []
        for target in overloaded:
            for source in underutilized:
                amount = self.transfer_amount(source, target)
                if amount <= 0:
                    continue
                suggestions.append(self._build_suggestion(source, target, amount))

        suggestions.sort(key=lambda s: (s.priority, s.impact_score), reverse=True)
        logger.debug(
            f"{len(suggestions)} suggestions from {len(overloaded)} overloaded / "
            f"{len(underutilized)} underutilised provinces"
        )
        return suggestions

    def transfer_amount(self, source: CapacityAnalysis, target: CapacityAnalysis) -> int:
        """min(floor(share of source surplus), ceil(share of target deficit))."""
        surplus = abs(source.personnel_difference)
        deficit = target.personnel_difference
        return min(
            math.floor(surplus * self.config.surplus_share),
            math.ceil(deficit * self.config.deficit_cover),
        )

    def _build_suggestion(
        self, source: CapacityAnalysis, target: CapacityAnalysis, amount: int
    ) -> RedistributionSuggestion:
        distance = self.calculate_province_distance(source.province_id, target.province_id)
        projected = self.calculate_projected_utilization(target, amount)
        return RedistributionSuggestion(
            id=f"sugg-{source.province_id}-{target.province_id}-{next(self._suggestion_ids)}",
            from_province=source.province_id,
            to_province=target.province_id,
            total_personnel=amount,
            personnel_breakdown=self.suggest_personnel_breakdown(amount),
            reason=self.generate_reason(target, source),
            priority=target.priority,
            impact_score=self.calculate_impact_score(amount, target, distance),
            distance_km=distance,
            estimated_improvement_percentage=self._improvement(target.utilization_rate, projected),
            current_utilization=target.utilization_rate,
            projected_utilization=projected,
            cost=self.estimate_redistribution_cost(amount, distance),
            timestamp=self._clock(),
        )

    def calculate_province_distance(self, province_a: str, province_b: str) -> float:
        """Straight-line km between schematic province centres."""
        a, b = lookup_province(province_a), lookup_province(province_b)
        if a is None or b is None:
            return self.config.default_distance_km
        pa, pb = PROVINCES[a].coordinates, PROVINCES[b].coordinates
        return math.hypot(pa.x - pb.x, pa.y - pb.y) * self.config.km_per_unit

    def calculate_impact_score(
        self, amount: int, target: CapacityAnalysis, distance_km: float
    ) -> float:
        """Impact of a transfer on a 0-100 scale.

        40% utilisation excess at target, 30% target priority, 20% deficit
        coverage, 10% proximity.
        """
        excess = (target.utilization_rate - self.config.optimal_utilization * 100) / 100
        utilization_score = min(40.0, excess * 40)
        priority_score = target.priority / 10 * 30
        coverage_score = min(20.0, amount / target.personnel_difference * 20)
        distance_score = max(0.0, 10 - distance_km / 100)
        return max(0.0, min(100.0, utilization_score + priority_score + coverage_score + distance_score))

    def suggest_personnel_breakdown(self, total: int) -> Dict[PersonnelCategory, int]:
        """Split a transfer total by national proportions.

        Largest-remainder rounding, so the parts always sum to `total`.
        Categories without a proportion get 0.
        """
        proportions = {
            PersonnelCategory(k): v for k, v in self.config.breakdown_proportions.items()
        }
        exact = {c: total * proportions.get(c, 0.0) for c in PersonnelCategory}
        breakdown = {c: math.floor(v) for c, v in exact.items()}
        leftover = total - sum(breakdown.values())
        by_remainder = sorted(
            PersonnelCategory, key=lambda c: (exact[c] - breakdown[c], proportions.get(c, 0.0)),
            reverse=True,
        )
        for category in by_remainder[:leftover]:
            breakdown[category] += 1
        return breakdown

    def generate_reason(self, target: CapacityAnalysis, source: CapacityAnalysis) -> str:
        """Human-readable justification assembled from triggering conditions."""
        target_name = province_name(target.province_id)
        reasons = []
        if target.utilization_rate >= 100:
            reasons.append(
                f"System collapsed in {target_name} ({target.utilization_rate:.1f}% utilisation)"
            )
        elif target.utilization_rate >= self.config.critical_utilization * 100:
            reasons.append(
                f"Severe overload in {target_name} ({target.utilization_rate:.1f}% utilisation)"
            )
        else:
            reasons.append(f"Resource optimisation in {target_name}")

        if target.queue_analysis.avg_wait_time_minutes > 10:
            reasons.append(
                f"Critical wait time: {target.queue_analysis.avg_wait_time_minutes:.1f} minutes"
            )

        if source.utilization_rate < self.config.min_utilization * 100:
            reasons.append(
                f"{province_name(source.province_id)} has spare capacity "
                f"({source.utilization_rate:.1f}% utilisation)"
            )
        return ". ".join(reasons)

    def calculate_projected_utilization(self, target: CapacityAnalysis, additional: int) -> float:
        """Target utilisation (percent) after receiving `additional` staff."""
        rho = utilization(
            target.emergencies_per_hour, target.current_personnel + additional, self.config
        )
        return rho * 100

    @staticmethod
    def _improvement(current: float, projected: float) -> float:
        if current <= 0 or math.isinf(current):
            return 0.0
        return (current - projected) / current * 100

    def estimate_redistribution_cost(self, personnel: int, distance_km: float) -> float:
        """Base + transport + adaptation cost, arbitrary units."""
        return (
            personnel * self.config.cost_per_person
            + personnel * distance_km * self.config.cost_per_person_km
            + personnel * self.config.adaptation_cost_per_person
        )

    def validate_redistribution(
        self, suggestion: RedistributionSuggestion, source_capacity: CapacityAnalysis
    ) -> ValidationResult:
        """Check a transfer is feasible for the source province.

        Rejected when it exceeds the allowed share of the source's headcount,
        or when the remaining staff would run at or above the critical
        utilisation.
        """
        source_name = province_name(suggestion.from_province)
        max_transfer = math.floor(source_capacity.current_personnel * self.config.max_source_share)
        if suggestion.total_personnel > max_transfer:
            return ValidationResult(
                valid=False,
                reason=(
                    f"Cannot transfer more than {self.config.max_source_share:.0%} of "
                    f"{source_name} staff (maximum: {max_transfer} people)"
                ),
            )

        remaining = source_capacity.current_personnel - suggestion.total_personnel
        rho = utilization(source_capacity.emergencies_per_hour, remaining, self.config)
        if rho >= self.config.critical_utilization:
            return ValidationResult(
                valid=False,
                reason=f"Transfer would leave {source_name} overloaded ({rho * 100:.1f}% utilisation)",
            )

        return ValidationResult(valid=True)
