"""Responder and emergency entities."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ecu911.core.entities import (
    AgentStatus,
    Coordinates,
    EmergencyStatus,
    ProvinceId,
    ServiceCategory,
)


@dataclass
class Agent:
    """A responder in the fixed agent pool.

    Attributes:
        id: Unique id, "{province}-{service}-{n}".
        service: Service category the agent attends.
        status: Lifecycle state.
        province: Province the agent is currently assigned to.
        position: Schematic map position.
        name: Display name.
        avatar: Sequential badge code.
        current_emergency_id: Emergency being attended (RESPONDING only).
        relocating_from: Origin province (RELOCATING only).
        relocating_to: Destination province (RELOCATING only).
        relocating_progress: Journey fraction in [0, 1] (RELOCATING only).
    """
    id: str
    service: ServiceCategory
    status: AgentStatus
    province: ProvinceId
    position: Coordinates
    name: str = ""
    avatar: str = ""
    current_emergency_id: Optional[str] = None

    relocating_from: Optional[ProvinceId] = None
    relocating_to: Optional[ProvinceId] = None
    relocating_progress: Optional[float] = None

    @property
    def is_available(self) -> bool:
        return self.status == AgentStatus.AVAILABLE

    def begin_relocation(self, origin: ProvinceId, destination: ProvinceId) -> None:
        self.status = AgentStatus.RELOCATING
        self.relocating_from = origin
        self.relocating_to = destination
        self.relocating_progress = 0.0

    def finish_relocation(self, position: Coordinates) -> None:
        """Arrive: adopt the destination province and clear journey fields."""
        self.province = self.relocating_to
        self.position = position
        self.status = AgentStatus.AVAILABLE
        self.relocating_from = None
        self.relocating_to = None
        self.relocating_progress = None

    def snapshot(self) -> "Agent":
        return replace(self)


@dataclass
class Emergency:
    """An incident moving through pending -> assigned -> resolved.

    Attributes:
        id: Sequential id, "em-{n}".
        service: Service category required.
        subtype: Incident subtype label.
        province: Province of the incident.
        canton: Canton name (free text).
        parish: Parish name (free text).
        timestamp: Simulated creation time.
        status: Lifecycle state.
        priority: Service priority (1 = highest).
        assigned_agent_id: Agent attending, once assigned.
    """
    id: str
    service: ServiceCategory
    subtype: str
    province: ProvinceId
    canton: str
    parish: str
    timestamp: datetime
    status: EmergencyStatus = EmergencyStatus.PENDING
    priority: int = 2
    assigned_agent_id: Optional[str] = None
    resolved_at: Optional[datetime] = None

    @property
    def is_assigned(self) -> bool:
        return self.status in (EmergencyStatus.ASSIGNED, EmergencyStatus.RESPONDING)

    def snapshot(self) -> "Emergency":
        return replace(self)
