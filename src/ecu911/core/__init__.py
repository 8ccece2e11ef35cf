"""Core foundation layer: entities, reference data, configuration, sampling."""

from ecu911.core.entities import (
    AgentStatus,
    CapacityStatus,
    Coordinates,
    EmergencyStatus,
    PersonnelCategory,
    ProvinceId,
    ServiceCategory,
)
from ecu911.core.reference import (
    PROVINCES,
    SERVICE_TYPES,
    Province,
    ServiceType,
    normalize_province_name,
    map_service_type,
)
from ecu911.core.config import (
    SimulationConfig,
    QueueingConfig,
    AlertConfig,
    SystemConfig,
    load_config,
    save_config,
)
from ecu911.core.sampling import WeightedSampler

__all__ = [
    "AgentStatus",
    "CapacityStatus",
    "Coordinates",
    "EmergencyStatus",
    "PersonnelCategory",
    "ProvinceId",
    "ServiceCategory",
    "PROVINCES",
    "SERVICE_TYPES",
    "Province",
    "ServiceType",
    "normalize_province_name",
    "map_service_type",
    "SimulationConfig",
    "QueueingConfig",
    "AlertConfig",
    "SystemConfig",
    "load_config",
    "save_config",
    "WeightedSampler",
]
