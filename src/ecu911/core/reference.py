"""Reference data: provinces, service types and name normalisation.

Province coordinates are a schematic layout in abstract units, not
latitude/longitude. Service type counts are the national incident totals
for the reference period and drive both agent sizing and emergency mix.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from ecu911.core.entities import Coordinates, ProvinceId, ServiceCategory


@dataclass(frozen=True)
class Province:
    """Immutable province reference record."""
    id: ProvinceId
    name: str
    coordinates: Coordinates
    population: int


@dataclass(frozen=True)
class ServiceType:
    """Immutable service type reference record.

    Attributes:
        id: Service category key.
        name: Display name as it appears in incident datasets.
        count: Incidents recorded nationally in the reference period.
        priority: 1 = highest.
    """
    id: ServiceCategory
    name: str
    count: int
    priority: int


SERVICE_TYPES: Dict[ServiceCategory, ServiceType] = {
    s.id: s for s in [
        ServiceType(ServiceCategory.SEGURIDAD, "Seguridad Ciudadana", 181765, 1),
        ServiceType(ServiceCategory.TRANSITO, "Tránsito y Movilidad", 34780, 2),
        ServiceType(ServiceCategory.SANITARIA, "Gestión Sanitaria", 32434, 1),
        ServiceType(ServiceCategory.MUNICIPAL, "Servicios Municipales", 10541, 3),
        ServiceType(ServiceCategory.SINIESTROS, "Gestión de Siniestros", 4354, 1),
        ServiceType(ServiceCategory.MILITAR, "Servicio Militar", 4185, 2),
        ServiceType(ServiceCategory.RIESGOS, "Gestión de Riesgos", 1007, 1),
    ]
}

# Sum of SERVICE_TYPES counts (269,066)
REFERENCE_NATIONAL_INCIDENTS = sum(s.count for s in SERVICE_TYPES.values())


PROVINCES: Dict[ProvinceId, Province] = {
    p.id: p for p in [
        Province(ProvinceId.AZUAY, "Azuay", Coordinates(38, 68), 881394),
        Province(ProvinceId.BOLIVAR, "Bolívar", Coordinates(28, 55), 209933),
        Province(ProvinceId.CANAR, "Cañar", Coordinates(35, 62), 281396),
        Province(ProvinceId.CARCHI, "Carchi", Coordinates(35, 8), 186869),
        Province(ProvinceId.CHIMBORAZO, "Chimborazo", Coordinates(32, 55), 524004),
        Province(ProvinceId.COTOPAXI, "Cotopaxi", Coordinates(30, 42), 488716),
        Province(ProvinceId.EL_ORO, "El Oro", Coordinates(28, 75), 715751),
        Province(ProvinceId.ESMERALDAS, "Esmeraldas", Coordinates(22, 12), 643654),
        Province(ProvinceId.GALAPAGOS, "Galápagos", Coordinates(5, 35), 33042),
        Province(ProvinceId.GUAYAS, "Guayas", Coordinates(22, 62), 4387434),
        Province(ProvinceId.IMBABURA, "Imbabura", Coordinates(32, 18), 476257),
        Province(ProvinceId.LOJA, "Loja", Coordinates(40, 80), 521154),
        Province(ProvinceId.LOS_RIOS, "Los Ríos", Coordinates(22, 52), 921763),
        Province(ProvinceId.MANABI, "Manabí", Coordinates(15, 42), 1562079),
        Province(ProvinceId.MORONA_SANTIAGO, "Morona Santiago", Coordinates(55, 68), 196535),
        Province(ProvinceId.NAPO, "Napo", Coordinates(55, 38), 133705),
        Province(ProvinceId.ORELLANA, "Orellana", Coordinates(68, 38), 161338),
        Province(ProvinceId.PASTAZA, "Pastaza", Coordinates(60, 52), 114202),
        Province(ProvinceId.PICHINCHA, "Pichincha", Coordinates(30, 28), 3228233),
        Province(ProvinceId.SANTA_ELENA, "Santa Elena", Coordinates(12, 58), 401178),
        Province(ProvinceId.SANTO_DOMINGO, "Santo Domingo", Coordinates(24, 32), 458580),
        Province(ProvinceId.SUCUMBIOS, "Sucumbíos", Coordinates(58, 18), 230503),
        Province(ProvinceId.TUNGURAHUA, "Tungurahua", Coordinates(35, 48), 590600),
        Province(ProvinceId.ZAMORA_CHINCHIPE, "Zamora Chinchipe", Coordinates(52, 80), 120416),
    ]
}

DEFAULT_PROVINCE = ProvinceId.PICHINCHA
DEFAULT_SERVICE = ServiceCategory.SEGURIDAD


# Subtype vocabulary used when an emergency is synthesised without data
SUBTYPES: Dict[ServiceCategory, List[str]] = {
    ServiceCategory.SEGURIDAD: [
        "Robo", "Asalto", "Violencia Doméstica", "Alteración del Orden", "Sospechoso",
    ],
    ServiceCategory.TRANSITO: [
        "Accidente", "Vehículo Averiado", "Congestión", "Señalización", "Control",
    ],
    ServiceCategory.SANITARIA: [
        "Emergencia Médica", "Traslado", "Parto", "Intoxicación", "Heridas",
    ],
    ServiceCategory.MUNICIPAL: [
        "Alumbrado", "Alcantarillado", "Basura", "Vías", "Permisos",
    ],
    ServiceCategory.SINIESTROS: [
        "Incendio Estructural", "Incendio Forestal", "Rescate", "Materiales Peligrosos",
    ],
    ServiceCategory.MILITAR: [
        "Apoyo Operativo", "Control", "Seguridad", "Patrullaje",
    ],
    ServiceCategory.RIESGOS: [
        "Inundación", "Deslizamiento", "Sismo", "Evacuación", "Alerta",
    ],
}


def fold_name(name: str) -> str:
    """Case-fold, strip accents and collapse whitespace/underscores to '_'.

    >>> fold_name("  Los Ríos ")
    'los_rios'
    """
    decomposed = unicodedata.normalize("NFKD", name.strip().casefold())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"[\s_]+", "_", stripped).strip("_")


# Folded spellings that don't match a ProvinceId value directly
_PROVINCE_ALIASES: Dict[str, ProvinceId] = {
    "santo_domingo_de_los_tsachilas": ProvinceId.SANTO_DOMINGO,
    "zamora": ProvinceId.ZAMORA_CHINCHIPE,
    "morona": ProvinceId.MORONA_SANTIAGO,
}

_PROVINCE_LOOKUP: Dict[str, ProvinceId] = {
    **{p.value: p for p in ProvinceId},
    **_PROVINCE_ALIASES,
}


def lookup_province(name: str) -> Optional[ProvinceId]:
    """Map a free-text province name to its id, or None if unknown."""
    return _PROVINCE_LOOKUP.get(fold_name(name))


def normalize_province_name(name: str, default: ProvinceId = DEFAULT_PROVINCE) -> ProvinceId:
    """Map a free-text province name to its id, falling back to `default`."""
    return lookup_province(name) or default


def province_slug(name: str) -> str:
    """Canonical id value for known provinces, best-effort slug otherwise."""
    province = lookup_province(name)
    return province.value if province else fold_name(name)


_SERVICE_BY_NAME: Dict[str, ServiceCategory] = {
    **{fold_name(s.name): s.id for s in SERVICE_TYPES.values()},
    **{s.value: s for s in ServiceCategory},
}


def map_service_type(service_name: str, default: ServiceCategory = DEFAULT_SERVICE) -> ServiceCategory:
    """Map an incident dataset service display name to its category."""
    return _SERVICE_BY_NAME.get(fold_name(service_name), default)


def as_province(value: Union[ProvinceId, str]) -> ProvinceId:
    """Coerce an id or its string value to ProvinceId.

    Raises:
        ValueError: If the value is not one of the 24 provinces.
    """
    if isinstance(value, ProvinceId):
        return value
    return ProvinceId(value)


def as_service(value: Union[ServiceCategory, str]) -> ServiceCategory:
    """Coerce an id or its string value to ServiceCategory.

    Raises:
        ValueError: If the value is not one of the seven categories.
    """
    if isinstance(value, ServiceCategory):
        return value
    return ServiceCategory(value)


def province_name(province: Union[ProvinceId, str, None]) -> str:
    """Display name for a province id, or the raw value if unknown."""
    if province is None:
        return "Unknown"
    if isinstance(province, ProvinceId):
        return PROVINCES[province].name
    known = lookup_province(province)
    return PROVINCES[known].name if known else province
