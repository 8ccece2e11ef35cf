"""Tests for capacity analysis and redistribution suggestions."""

import dataclasses
from datetime import datetime

import pytest

from ecu911.analysis.queueing import analyze_queue_performance
from ecu911.core.entities import CapacityStatus, PersonnelCategory


class TestCapacityAnalysis:
    """Test per-province capacity scoring."""

    def test_collapsed_province(self, collapsed_guayas):
        """rho = 1.0 is critical with priority 10."""
        a = collapsed_guayas
        assert a.emergencies_per_hour == pytest.approx(120)
        assert a.utilization_rate == pytest.approx(100.0)
        assert a.status == CapacityStatus.CRITICAL
        assert a.recommended_personnel == 67
        assert a.personnel_difference == 17
        assert a.priority == 10

    def test_underutilised_province(self, idle_manabi):
        """Low rho with a large surplus."""
        a = idle_manabi
        assert a.status == CapacityStatus.UNDERUTILIZED
        assert a.recommended_personnel == 23
        assert a.personnel_difference == -77
        # base 3 for rho < 0.3, +2 for a gap over half the recommendation
        assert a.priority == 5

    def test_normalised_rates(self, idle_manabi):
        """Per-100k and per-staff metrics."""
        a = idle_manabi
        assert a.emergencies_per_100k == pytest.approx(960 / 1562079 * 100_000)
        assert a.personnel_per_100k == pytest.approx(100 / 1562079 * 100_000)
        assert a.emergencies_per_personnel == pytest.approx(9.6)

    def test_response_time_adds_travel_offset(self, idle_manabi):
        """Response time is queue wait plus five minutes."""
        wait = idle_manabi.queue_analysis.avg_wait_time_minutes
        assert idle_manabi.avg_response_time_minutes == pytest.approx(wait + 5)

    def test_zero_population(self, analyzer):
        """Zero population gives zero densities rather than an error."""
        a = analyzer.analyze_province_capacity("galapagos", 5, 10, 0)
        assert a.emergencies_per_100k == 0.0
        assert a.personnel_per_100k == 0.0


class TestPriority:
    """Test the 1-10 urgency score."""

    @pytest.mark.parametrize("rate,expected", [
        (24, 3),     # rho 0.20
        (42, 4),     # rho 0.35
        (60, 5),     # rho 0.50
        (90, 6),     # rho 0.75
        (102, 7),    # rho 0.85
        (110.4, 8),  # rho 0.92
        (115.2, 9),  # rho 0.96
        (130, 10),   # rho > 1
    ])
    def test_bands(self, analyzer, rate, expected):
        """Priority climbs with utilisation."""
        queue = analyze_queue_performance(rate, 50)
        assert analyzer.calculate_priority(queue, 0) == expected

    def test_gap_bumps_and_clamp(self, analyzer):
        """Large gaps add up to two points, clamped at 10."""
        queue = analyze_queue_performance(60, 50)  # recommended 34
        assert analyzer.calculate_priority(queue, 11) == 6   # 32% gap
        assert analyzer.calculate_priority(queue, -20) == 7  # 59% gap
        high = analyze_queue_performance(115.2, 50)
        assert analyzer.calculate_priority(high, 60) == 10


class TestSuggestions:
    """Test greedy pairing of overloaded and underutilised provinces."""

    def test_single_pair(self, analyzer, collapsed_guayas, idle_manabi, clock):
        """Transfer = min(floor(30% surplus), ceil(50% deficit))."""
        suggestions = analyzer.generate_redistribution_suggestions([collapsed_guayas, idle_manabi])
        assert len(suggestions) == 1
        s = suggestions[0]
        assert (s.from_province, s.to_province) == ("manabi", "guayas")
        assert s.total_personnel == 9
        assert s.priority == 10
        assert s.timestamp == clock()

    def test_metrics(self, analyzer, collapsed_guayas, idle_manabi):
        """Distance, projection, improvement, impact and cost."""
        s = analyzer.generate_redistribution_suggestions([collapsed_guayas, idle_manabi])[0]
        distance = (7 ** 2 + 20 ** 2) ** 0.5 * 15
        assert s.distance_km == pytest.approx(distance)
        assert s.current_utilization == pytest.approx(100.0)
        assert s.projected_utilization == pytest.approx(120 / (59 * 2.4) * 100)
        assert s.estimated_improvement_percentage == pytest.approx(100 - s.projected_utilization)
        expected_impact = 10 + 30 + 9 / 17 * 20 + (10 - distance / 100)
        assert s.impact_score == pytest.approx(expected_impact)
        assert s.cost == pytest.approx(9 * 100 + 9 * distance + 9 * 50)

    def test_breakdown_sums_to_total(self, analyzer, collapsed_guayas, idle_manabi):
        """Largest-remainder split keeps the exact total."""
        s = analyzer.generate_redistribution_suggestions([collapsed_guayas, idle_manabi])[0]
        assert sum(s.personnel_breakdown.values()) == 9
        assert s.personnel_breakdown[PersonnelCategory.POLICE] == 3
        assert s.personnel_breakdown[PersonnelCategory.RED_CROSS] == 0

    def test_breakdown_proportions(self, analyzer):
        """Round totals follow the national mix."""
        breakdown = analyzer.suggest_personnel_breakdown(100)
        assert sum(breakdown.values()) == 100
        assert breakdown[PersonnelCategory.POLICE] == 35
        assert breakdown[PersonnelCategory.OPERATORS] == 25
        assert breakdown[PersonnelCategory.MUNICIPAL] == 2
        assert sum(analyzer.suggest_personnel_breakdown(1).values()) == 1

    def test_sorted_by_priority(
        self, analyzer, collapsed_guayas, overloaded_pichincha, idle_manabi
    ):
        """Most urgent target first."""
        suggestions = analyzer.generate_redistribution_suggestions(
            [idle_manabi, overloaded_pichincha, collapsed_guayas]
        )
        assert [s.to_province for s in suggestions] == ["guayas", "pichincha"]
        assert suggestions[0].priority >= suggestions[1].priority
        assert len({s.id for s in suggestions}) == 2

    def test_reason_text(self, analyzer, collapsed_guayas, idle_manabi):
        """Reason names the triggering conditions."""
        s = analyzer.generate_redistribution_suggestions([collapsed_guayas, idle_manabi])[0]
        assert "collapsed in Guayas" in s.reason
        assert "Critical wait time" in s.reason
        assert "Manabí has spare capacity" in s.reason

    def test_no_pairs(self, analyzer, idle_manabi, collapsed_guayas):
        """Nothing to pair, nothing suggested."""
        assert analyzer.generate_redistribution_suggestions([]) == []
        assert analyzer.generate_redistribution_suggestions([idle_manabi]) == []
        assert analyzer.generate_redistribution_suggestions([collapsed_guayas]) == []

    def test_small_surplus_skipped(self, analyzer, collapsed_guayas):
        """A surplus too small to give 30% of is skipped."""
        small = analyzer.analyze_province_capacity("napo", 4, 24, 133705)  # rho ~0.1, surplus 3
        assert small.personnel_difference == -3
        assert analyzer.generate_redistribution_suggestions([collapsed_guayas, small]) == []


class TestValidation:
    """Test feasibility checks for the source province."""

    def test_valid(self, analyzer, collapsed_guayas, idle_manabi):
        """A modest transfer from an idle province is accepted."""
        s = analyzer.generate_redistribution_suggestions([collapsed_guayas, idle_manabi])[0]
        result = analyzer.validate_redistribution(s, idle_manabi)
        assert result.valid
        assert result.reason is None
        assert bool(result)

    def test_share_cap(self, analyzer, collapsed_guayas, idle_manabi):
        """More than 30% of the source headcount is rejected."""
        s = analyzer.generate_redistribution_suggestions([collapsed_guayas, idle_manabi])[0]
        result = analyzer.validate_redistribution(
            dataclasses.replace(s, total_personnel=31), idle_manabi
        )
        assert not result.valid
        assert "30%" in result.reason

    def test_source_overload(self, analyzer, collapsed_guayas, idle_manabi):
        """Leaving the source overloaded is rejected."""
        source = analyzer.analyze_province_capacity("manabi", 20, 40 * 24, 1562079)
        s = analyzer.generate_redistribution_suggestions([collapsed_guayas, idle_manabi])[0]
        result = analyzer.validate_redistribution(
            dataclasses.replace(s, total_personnel=6), source
        )
        assert not result.valid
        assert "overloaded" in result.reason

    def test_critical_boundary(self, analyzer, collapsed_guayas, idle_manabi):
        """Exactly reaching the critical threshold is rejected."""
        source = analyzer.analyze_province_capacity("manabi", 30, 54 * 24, 1562079)
        s = analyzer.generate_redistribution_suggestions([collapsed_guayas, idle_manabi])[0]
        result = analyzer.validate_redistribution(
            dataclasses.replace(s, total_personnel=5), source
        )
        assert not result.valid


def test_default_clock_is_wall_time():
    """Without a clock, timestamps are wall time."""
    from ecu911.analysis.redistribution import RedistributionAnalyzer

    analyzer = RedistributionAnalyzer()
    guayas = analyzer.analyze_province_capacity("guayas", 50, 2880, 4387434)
    manabi = analyzer.analyze_province_capacity("manabi", 100, 960, 1562079)
    before = datetime.now()
    s = analyzer.generate_redistribution_suggestions([guayas, manabi])[0]
    assert s.timestamp >= before
