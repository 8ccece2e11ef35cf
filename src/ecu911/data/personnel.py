"""Personnel-by-province dataset loader.

Parses the ECU-911 articulated personnel table (one row per province,
one column per institution) into typed records, computes national totals
and answers staffing questions per service type.

Example usage:
    loader = PersonnelDataLoader()
    loader.load_from_csv(Path("personal_articulado_provincia_2025.csv").read_text())

    loader.get_national_totals()[PersonnelCategory.POLICE]
    loader.personnel_for_service("guayas", ServiceCategory.SANITARIA)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import pandas as pd

from ecu911.core.entities import PersonnelCategory, ProvinceId, ServiceCategory
from ecu911.core.reference import lookup_province, province_slug
from ecu911.data.parsing import read_delimited, to_int_column

logger = logging.getLogger(__name__)

# province, 8 categories, total, notes
PERSONNEL_COLUMNS = 11
MIN_PERSONNEL_FIELDS = 10
PERSONNEL_SENTINELS = ("TOTAL", "DISTRIBUCIÓN", "DISTRIBUTION")

ALL_SERVICES = "all"

# Which service a category primarily staffs; operators staff everything
CATEGORY_TO_SERVICE: Dict[PersonnelCategory, Union[ServiceCategory, str]] = {
    PersonnelCategory.OPERATORS: ALL_SERVICES,
    PersonnelCategory.POLICE: ServiceCategory.SEGURIDAD,
    PersonnelCategory.ARMED_FORCES: ServiceCategory.MILITAR,
    PersonnelCategory.MEDICAL: ServiceCategory.SANITARIA,
    PersonnelCategory.FIRE: ServiceCategory.SINIESTROS,
    PersonnelCategory.TRAFFIC: ServiceCategory.TRANSITO,
    PersonnelCategory.RED_CROSS: ServiceCategory.SANITARIA,
    PersonnelCategory.MUNICIPAL: ServiceCategory.MUNICIPAL,
}

# Which categories can staff a service (many-to-many)
SERVICE_TO_CATEGORIES: Dict[ServiceCategory, List[PersonnelCategory]] = {
    ServiceCategory.SEGURIDAD: [
        PersonnelCategory.POLICE, PersonnelCategory.ARMED_FORCES, PersonnelCategory.OPERATORS,
    ],
    ServiceCategory.TRANSITO: [
        PersonnelCategory.TRAFFIC, PersonnelCategory.POLICE, PersonnelCategory.OPERATORS,
    ],
    ServiceCategory.SANITARIA: [
        PersonnelCategory.MEDICAL, PersonnelCategory.RED_CROSS, PersonnelCategory.OPERATORS,
    ],
    ServiceCategory.MUNICIPAL: [PersonnelCategory.MUNICIPAL, PersonnelCategory.OPERATORS],
    ServiceCategory.SINIESTROS: [PersonnelCategory.FIRE, PersonnelCategory.OPERATORS],
    ServiceCategory.MILITAR: [PersonnelCategory.ARMED_FORCES, PersonnelCategory.OPERATORS],
    ServiceCategory.RIESGOS: [
        PersonnelCategory.FIRE, PersonnelCategory.ARMED_FORCES, PersonnelCategory.OPERATORS,
    ],
}


@dataclass
class PersonnelByProvince:
    """Staffing counts for one province.

    Attributes:
        province: Canonical province id value, or a best-effort slug when
            the dataset names a province outside the reference list.
        counts: Headcount per personnel category (every category present).
        total: Precomputed total as published in the dataset.
        notes: Free-text notes column.
    """
    province: str
    counts: Dict[PersonnelCategory, int] = field(
        default_factory=lambda: {c: 0 for c in PersonnelCategory}
    )
    total: int = 0
    notes: str = ""

    @property
    def province_id(self) -> Optional[ProvinceId]:
        """Reference province, or None for unmapped slugs."""
        return lookup_province(self.province)

    def __getitem__(self, category: PersonnelCategory) -> int:
        return self.counts.get(category, 0)


class PersonnelDataLoader:
    """Loads and queries per-province personnel counts.

    Attributes:
        skipped_rows: Malformed rows dropped by the last load.
    """

    def __init__(self) -> None:
        self._records: List[PersonnelByProvince] = []
        self._by_province: Dict[str, PersonnelByProvince] = {}
        self._national_totals: Dict[PersonnelCategory, int] = {c: 0 for c in PersonnelCategory}
        self.skipped_rows = 0

    @property
    def is_loaded(self) -> bool:
        return bool(self._records)

    def load_from_csv(self, csv_content: str) -> List[PersonnelByProvince]:
        """Parse personnel text, replacing anything previously loaded.

        Rows with fewer than ten fields are skipped; absent or non-numeric
        counts default to zero. Parsing stops at the national total /
        distribution trailer.

        Args:
            csv_content: Raw delimited text including header row.

        Returns:
            The parsed records in file order.
        """
        table = read_delimited(
            csv_content,
            min_fields=MIN_PERSONNEL_FIELDS,
            width=PERSONNEL_COLUMNS,
            sentinels=PERSONNEL_SENTINELS,
        )
        frame = table.frame
        categories = list(PersonnelCategory)
        total_col = len(categories) + 1
        for col in range(1, total_col + 1):
            frame[col] = to_int_column(frame[col])

        records = []
        for row in frame.itertuples(index=False):
            records.append(PersonnelByProvince(
                province=province_slug(row[0]),
                counts={c: int(row[i]) for i, c in enumerate(categories, start=1)},
                total=int(row[total_col]),
                notes=row[total_col + 1],
            ))

        self._records = records
        self._by_province = {r.province: r for r in records}
        self.skipped_rows = table.skipped_rows
        self._calculate_national_totals()

        logger.info(
            f"Loaded personnel for {len(records)} provinces "
            f"({sum(r.total for r in records)} staff, {self.skipped_rows} rows skipped)"
        )
        return list(records)

    def _calculate_national_totals(self) -> None:
        self._national_totals = {
            c: sum(r[c] for r in self._records) for c in PersonnelCategory
        }

    def get_province_personnel(
        self, province: Union[ProvinceId, str]
    ) -> Optional[PersonnelByProvince]:
        """Record for one province, or None if absent."""
        key = province.value if isinstance(province, ProvinceId) else province
        return self._by_province.get(key)

    def get_all_personnel(self) -> List[PersonnelByProvince]:
        return list(self._records)

    def get_national_totals(self) -> Dict[PersonnelCategory, int]:
        """Column-wise sum across all provinces, per category."""
        return dict(self._national_totals)

    @staticmethod
    def map_personnel_to_service_type(
        category: PersonnelCategory,
    ) -> Union[ServiceCategory, str]:
        """Primary service for a category ("all" for operators)."""
        return CATEGORY_TO_SERVICE.get(category, ALL_SERVICES)

    @staticmethod
    def categories_for_service(service: ServiceCategory) -> List[PersonnelCategory]:
        return list(SERVICE_TO_CATEGORIES.get(service, [PersonnelCategory.OPERATORS]))

    def personnel_for_service(
        self, province: Union[ProvinceId, str], service: ServiceCategory
    ) -> int:
        """Staff in a province able to attend a service type.

        Sums every category that can staff the service, so the same person
        is counted under several services. Unknown provinces yield 0.
        """
        record = self.get_province_personnel(province)
        if record is None:
            return 0
        return sum(record[c] for c in self.categories_for_service(service))

    def total_personnel(self, province: Union[ProvinceId, str]) -> int:
        record = self.get_province_personnel(province)
        return record.total if record else 0

    def province_distribution_percentage(self) -> Dict[str, float]:
        """Share of national staff per province, in percent."""
        national = sum(r.total for r in self._records)
        if national == 0:
            return {r.province: 0.0 for r in self._records}
        return {r.province: r.total / national * 100 for r in self._records}

    def personnel_density(self, province: Union[ProvinceId, str], population: int) -> float:
        """Staff per 100,000 inhabitants."""
        if population <= 0:
            return 0.0
        return self.total_personnel(province) / population * 100_000

    def to_frame(self) -> pd.DataFrame:
        """One row per province, one column per category plus total."""
        return pd.DataFrame([
            {
                "province": r.province,
                **{c.value: r[c] for c in PersonnelCategory},
                "total": r.total,
                "notes": r.notes,
            }
            for r in self._records
        ], columns=["province", *[c.value for c in PersonnelCategory], "total", "notes"])
