"""Tabular (pandas) views of analyses, suggestions and agent distribution."""

from typing import List

import pandas as pd

from ecu911.analysis.redistribution import CapacityAnalysis, RedistributionSuggestion
from ecu911.core.entities import PersonnelCategory, ServiceCategory
from ecu911.core.reference import province_name
from ecu911.model.engine import Distribution

CAPACITY_COLUMNS = [
    "province_id", "province", "status", "priority", "current_personnel",
    "recommended_personnel", "personnel_difference", "utilization_rate",
    "emergencies_per_hour", "emergencies_last_24h", "emergencies_per_100k",
    "personnel_per_100k", "avg_wait_minutes", "avg_response_time_minutes",
    "probability_of_waiting",
]

SUGGESTION_COLUMNS = [
    "id", "from_province", "to_province", "total_personnel", "priority",
    "impact_score", "distance_km", "current_utilization", "projected_utilization",
    "estimated_improvement_percentage", "cost", "reason",
]


def capacity_frame(analyses: List[CapacityAnalysis]) -> pd.DataFrame:
    """One row per province, most urgent first."""
    rows = [
        {
            "province_id": a.province_id,
            "province": province_name(a.province_id),
            "status": a.status.value,
            "priority": a.priority,
            "current_personnel": a.current_personnel,
            "recommended_personnel": a.recommended_personnel,
            "personnel_difference": a.personnel_difference,
            "utilization_rate": a.utilization_rate,
            "emergencies_per_hour": a.emergencies_per_hour,
            "emergencies_last_24h": a.emergencies_last_24h,
            "emergencies_per_100k": a.emergencies_per_100k,
            "personnel_per_100k": a.personnel_per_100k,
            "avg_wait_minutes": a.queue_analysis.avg_wait_time_minutes,
            "avg_response_time_minutes": a.avg_response_time_minutes,
            "probability_of_waiting": a.queue_analysis.probability_of_waiting,
        }
        for a in analyses
    ]
    df = pd.DataFrame(rows, columns=CAPACITY_COLUMNS)
    return df.sort_values(
        ["priority", "utilization_rate"], ascending=False, kind="stable"
    ).reset_index(drop=True)


def suggestions_frame(
    suggestions: List[RedistributionSuggestion], include_breakdown: bool = True
) -> pd.DataFrame:
    """One row per suggestion, in the given order.

    With `include_breakdown`, one extra column per personnel category.
    """
    columns = list(SUGGESTION_COLUMNS)
    if include_breakdown:
        columns += [c.value for c in PersonnelCategory]

    rows = []
    for s in suggestions:
        row = {name: getattr(s, name) for name in SUGGESTION_COLUMNS}
        if include_breakdown:
            row.update({c.value: s.personnel_breakdown.get(c, 0) for c in PersonnelCategory})
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def distribution_frame(distribution: Distribution) -> pd.DataFrame:
    """Province x service count matrix with a `total` column."""
    df = pd.DataFrame.from_dict(
        {
            province.value: {service.value: n for service, n in by_service.items()}
            for province, by_service in distribution.items()
        },
        orient="index",
        columns=[s.value for s in ServiceCategory],
    ).fillna(0).astype(int)
    df.index.name = "province_id"
    df["total"] = df.sum(axis=1)
    return df
