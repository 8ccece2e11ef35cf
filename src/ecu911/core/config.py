"""Simulation, queueing and alert configuration.

All tunables live in plain dataclasses whose defaults reproduce the
reference behaviour. Configurations can be persisted to and loaded from
YAML or JSON so a control room can keep site-specific thresholds.

Example usage:
    from ecu911.core.config import load_config

    config = load_config(Path("config/quito.yaml"))
    centre = DispatchCentre(config)
"""

import json
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import yaml

from ecu911.core.entities import PersonnelCategory


@dataclass
class SimulationConfig:
    """Discrete-event engine parameters.

    Attributes:
        random_seed: Master seed for reproducibility.
        epoch: Simulated "day one"; the clock starts here.
        emergency_probability: Chance a tick generates one emergency.
        resolution_probability: Chance per tick an assigned emergency resolves.
        position_jitter: Spread (schematic units) around a province centre.
        min_travel_ms: Shortest relocation journey.
        max_travel_ms: Every relocating agent has arrived this long after dispatch.
        travel_ms_per_unit: Journey time per schematic unit of distance.
        stagger_ms: Start offset between consecutive agents of a cohort.
        frame_interval_ms: Animation frame spacing for relocation updates.
        retry_pending: Retry assignment for pending emergencies every tick.
    """
    random_seed: int = 42
    epoch: datetime = datetime(2025, 11, 1, 0, 0, 0)
    emergency_probability: float = 0.3
    resolution_probability: float = 0.1
    position_jitter: float = 5.0
    min_travel_ms: float = 3000.0
    max_travel_ms: float = 6000.0
    travel_ms_per_unit: float = 100.0
    stagger_ms: float = 100.0
    frame_interval_ms: float = 50.0
    retry_pending: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.epoch, str):
            self.epoch = datetime.fromisoformat(self.epoch)
        for name in ("emergency_probability", "resolution_probability"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.min_travel_ms <= 0 or self.max_travel_ms < self.min_travel_ms:
            raise ValueError(
                f"Invalid travel bounds: {self.min_travel_ms}-{self.max_travel_ms} ms"
            )
        if self.frame_interval_ms <= 0:
            raise ValueError("frame_interval_ms must be positive")
        if self.stagger_ms < 0:
            raise ValueError("stagger_ms must be non-negative")


# National personnel mix used to break a transfer total into categories
DEFAULT_BREAKDOWN_PROPORTIONS: Dict[str, float] = {
    PersonnelCategory.POLICE.value: 0.35,
    PersonnelCategory.OPERATORS.value: 0.25,
    PersonnelCategory.MEDICAL.value: 0.15,
    PersonnelCategory.TRAFFIC.value: 0.10,
    PersonnelCategory.FIRE.value: 0.08,
    PersonnelCategory.ARMED_FORCES.value: 0.05,
    PersonnelCategory.MUNICIPAL.value: 0.02,
}


@dataclass
class QueueingConfig:
    """M/M/c capacity model and redistribution heuristics.

    Utilisation thresholds are fractions (0.75 = 75%).
    """
    service_time_minutes: float = 25.0
    optimal_utilization: float = 0.75
    critical_utilization: float = 0.90
    min_utilization: float = 0.40
    travel_offset_minutes: float = 5.0
    km_per_unit: float = 15.0
    default_distance_km: float = 500.0

    # Suggestion sizing
    surplus_share: float = 0.3       # Max share of a source's surplus to move
    deficit_cover: float = 0.5       # Share of a target's deficit to cover
    max_source_share: float = 0.3    # Validation cap on source headcount

    # Cost model (arbitrary currency units)
    cost_per_person: float = 100.0
    cost_per_person_km: float = 1.0
    adaptation_cost_per_person: float = 50.0

    breakdown_proportions: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_BREAKDOWN_PROPORTIONS)
    )

    def __post_init__(self) -> None:
        if self.service_time_minutes <= 0:
            raise ValueError("service_time_minutes must be positive")
        if not 0 < self.min_utilization <= self.optimal_utilization <= self.critical_utilization:
            raise ValueError(
                "Utilisation thresholds must satisfy 0 < min <= optimal <= critical"
            )
        total = sum(self.breakdown_proportions.values())
        if abs(total - 1.0) > 0.001:
            raise ValueError(f"breakdown_proportions must sum to 1.0, got {total}")

    @property
    def service_rate(self) -> float:
        """mu: incidents served per hour by one responder."""
        return 60.0 / self.service_time_minutes


@dataclass
class AlertConfig:
    """Alert rule thresholds and retention."""
    max_active: int = 50
    expiry_minutes: float = 60.0
    dedup_window_minutes: float = 5.0
    history_limit: int = 200

    collapse_utilization: float = 100.0      # percentage
    overload_utilization: float = 90.0
    warning_utilization: float = 80.0
    underutilized_utilization: float = 40.0
    underutilized_min_personnel: int = 10

    target_response_minutes: float = 15.0
    severe_response_minutes: float = 30.0

    suggestion_min_priority: int = 7

    def __post_init__(self) -> None:
        if self.max_active < 1:
            raise ValueError("max_active must be at least 1")
        if self.history_limit < 0:
            raise ValueError("history_limit must be non-negative")


@dataclass
class SystemConfig:
    """Complete configuration for a dispatch centre."""
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    queueing: QueueingConfig = field(default_factory=QueueingConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemConfig":
        """Build from a nested mapping; missing sections use defaults."""
        data = data or {}
        return cls(
            simulation=SimulationConfig(**data.get("simulation", {})),
            queueing=QueueingConfig(**data.get("queueing", {})),
            alerts=AlertConfig(**data.get("alerts", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["simulation"]["epoch"] = self.simulation.epoch.isoformat()
        return data


def load_config(config_path: Path) -> SystemConfig:
    """Load configuration from YAML or JSON file.

    Args:
        config_path: Path to configuration file (.yaml, .yml, or .json)

    Returns:
        SystemConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is not supported or values are invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        if config_path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif config_path.suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(
                f"Unsupported config format: {config_path.suffix}. "
                "Use .yaml, .yml, or .json"
            )

    return SystemConfig.from_dict(data)


def save_config(config: SystemConfig, config_path: Path) -> None:
    """Save configuration to YAML or JSON file.

    Raises:
        ValueError: If file format is not supported
    """
    config_path = Path(config_path)
    data = config.to_dict()

    if config_path.suffix not in (".yaml", ".yml", ".json"):
        raise ValueError(
            f"Unsupported config format: {config_path.suffix}. "
            "Use .yaml, .yml, or .json"
        )

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        if config_path.suffix == ".json":
            json.dump(data, f, indent=2)
        else:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def get_default_config_path() -> Path:
    """Get default configuration file path.

    Checks in order:
    1. ECU911_CONFIG environment variable
    2. ./config/ecu911.yaml in the working directory
    """
    if env_path := os.environ.get("ECU911_CONFIG"):
        return Path(env_path)
    return Path.cwd() / "config" / "ecu911.yaml"
