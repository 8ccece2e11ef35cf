"""Engine state snapshots handed to subscribers."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Tuple

from ecu911.core.entities import AgentStatus, ProvinceId, ServiceCategory
from ecu911.model.agent import Agent, Emergency


@dataclass
class ProvinceStatistics:
    """Running per-province counters.

    Attributes:
        province: Province id.
        emergencies: Incidents attributed to the province (dataset counts
            after a data load, plus every emergency generated since).
        agents: Agents currently assigned to the province.
        avg_response_time: Placeholder, always 0 in the engine.
        by_type: Incidents per service category (all seven present).
    """
    province: ProvinceId
    emergencies: int = 0
    agents: int = 0
    avg_response_time: float = 0.0
    by_type: Dict[ServiceCategory, int] = field(
        default_factory=lambda: {s: 0 for s in ServiceCategory}
    )

    def copy(self) -> "ProvinceStatistics":
        return ProvinceStatistics(
            province=self.province,
            emergencies=self.emergencies,
            agents=self.agents,
            avg_response_time=self.avg_response_time,
            by_type=dict(self.by_type),
        )


@dataclass(frozen=True)
class SimulationState:
    """Read-only view of the engine at one instant.

    Entities are copies; mutating them does not affect the engine.
    """
    current_time: datetime
    active_emergencies: Tuple[Emergency, ...]
    resolved_emergencies: Tuple[Emergency, ...]
    agents: Tuple[Agent, ...]
    statistics: Tuple[ProvinceStatistics, ...]

    @property
    def total_emergencies(self) -> int:
        return len(self.active_emergencies) + len(self.resolved_emergencies)

    @property
    def resolved_count(self) -> int:
        return len(self.resolved_emergencies)

    def agent_status_counts(self) -> Dict[AgentStatus, int]:
        counts = {s: 0 for s in AgentStatus}
        for agent in self.agents:
            counts[agent.status] += 1
        return counts
