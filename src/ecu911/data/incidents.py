"""Historical incident dataset loader.

One row per ECU-911 incident: date, province, canton, parish code, parish,
service type display name, subtype, weekday, day of month, month, year.
"""

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional

import pandas as pd

from ecu911.core.entities import ProvinceId, ServiceCategory
from ecu911.core.reference import map_service_type, normalize_province_name
from ecu911.data.parsing import read_delimited, to_int_column

logger = logging.getLogger(__name__)

INCIDENT_COLUMNS = [
    "date", "province", "canton", "parish_code", "parish", "service_type",
    "subtype", "day_of_week", "day_of_month", "month", "year",
]


@dataclass(frozen=True)
class IncidentRecord:
    """A single historical incident row as published."""
    date: str
    province: str
    canton: str
    parish_code: str
    parish: str
    service_type: str
    subtype: str
    day_of_week: str
    day_of_month: int
    month: int
    year: int

    @property
    def province_id(self) -> ProvinceId:
        """Reference province (Pichincha when the name is unknown)."""
        return normalize_province_name(self.province)

    @property
    def service(self) -> ServiceCategory:
        """Service category (security when the name is unknown)."""
        return map_service_type(self.service_type)


def load_incident_csv(csv_content: str) -> List[IncidentRecord]:
    """Parse incident text into records, skipping short rows.

    Args:
        csv_content: Raw delimited text including header row.

    Returns:
        Records in file order. Non-numeric day/month/year become 0.
    """
    table = read_delimited(
        csv_content,
        min_fields=len(INCIDENT_COLUMNS),
        width=len(INCIDENT_COLUMNS),
    )
    frame = table.frame.set_axis(INCIDENT_COLUMNS, axis=1)
    for col in ("day_of_month", "month", "year"):
        frame[col] = to_int_column(frame[col])

    records = [IncidentRecord(**row) for row in frame.to_dict(orient="records")]
    logger.info(f"Loaded {len(records)} incident records ({table.skipped_rows} rows skipped)")
    return records


def incidents_frame(records: List[IncidentRecord]) -> pd.DataFrame:
    """Records plus resolved province/service ids as a DataFrame."""
    frame = pd.DataFrame(
        [asdict(r) for r in records], columns=INCIDENT_COLUMNS
    )
    frame["province_id"] = [r.province_id.value for r in records]
    frame["service_id"] = [r.service.value for r in records]
    return frame


def daily_incident_rate(records: List[IncidentRecord]) -> Optional[pd.Series]:
    """Mean incidents per day per province over the dataset's distinct dates.

    Returns:
        Series indexed by province id value, or None if there are no records.
    """
    if not records:
        return None
    frame = incidents_frame(records)
    n_days = max(1, frame["date"].nunique())
    return frame.groupby("province_id").size() / n_days
