"""Discrete-event dispatch simulation engine.

Owns the agent pool, the active/resolved emergency lists and a simulated
clock. Time only moves when the caller invokes `tick(delta_ms)`; the clock
is a SimPy environment measured in milliseconds from the configured epoch.
Relocation journeys are SimPy processes that wake once per animation frame
and recompute progress from their absolute start time and duration.

Per tick:
1. Advance the clock, running every relocation frame due on the way.
2. (Optional) retry assignment for pending emergencies.
3. With probability p_emergency, generate one emergency and assign it.
4. Each assigned emergency resolves with probability p_resolution,
   freeing its agent.
5. Notify subscribers with a state snapshot.

Example usage:
    engine = SimulationEngine(SimulationConfig(random_seed=7))
    unsubscribe = engine.subscribe(lambda state: print(state.total_emergencies))

    for _ in range(100):
        engine.tick(1000)

    engine.redistribute_agents("manabi", "guayas", "seguridad", 3)
"""

import itertools
import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import simpy

from ecu911.core.config import SimulationConfig
from ecu911.core.entities import (
    AgentStatus,
    Coordinates,
    EmergencyStatus,
    ProvinceId,
    ServiceCategory,
)
from ecu911.core.reference import (
    PROVINCES,
    REFERENCE_NATIONAL_INCIDENTS,
    SERVICE_TYPES,
    SUBTYPES,
    as_province,
    as_service,
)
from ecu911.core.sampling import WeightedSampler, count_weights
from ecu911.data.incidents import IncidentRecord
from ecu911.model.agent import Agent, Emergency
from ecu911.model.relocation import interpolate, progress_at, travel_duration_ms
from ecu911.model.state import ProvinceStatistics, SimulationState

logger = logging.getLogger(__name__)

AGENT_NAMES = [
    "Juan P.", "María G.", "Carlos R.", "Ana M.", "Luis F.",
    "Carmen S.", "Pedro L.", "Sofia V.", "Diego A.", "Laura C.",
    "Miguel T.", "Isabel N.", "Jorge E.", "Patricia D.", "Roberto H.",
    "Valentina Q.", "Fernando B.", "Gabriela O.", "Andrés M.", "Daniela P.",
]

StateListener = Callable[[SimulationState], None]
Distribution = Dict[ProvinceId, Dict[ServiceCategory, int]]


class SimulationEngine:
    """Single owner of all mutable simulation state.

    Attributes:
        config: Engine parameters.
        env: SimPy environment; `env.now` is elapsed simulated milliseconds.
        rng: Seeded generator behind every random draw.
        agents: Fixed agent pool, in creation order.
        emergencies: Active (pending or assigned) emergencies.
        resolved_emergencies: Resolved emergencies, in resolution order.
        province_stats: Running counters per province.
    """

    def __init__(self, config: Optional[SimulationConfig] = None) -> None:
        self.config = config or SimulationConfig()
        self.env = simpy.Environment()
        self.rng = np.random.default_rng(self.config.random_seed)

        self.agents: List[Agent] = []
        self._agents_by_id: Dict[str, Agent] = {}
        self.emergencies: List[Emergency] = []
        self.resolved_emergencies: List[Emergency] = []

        self._incidents: List[IncidentRecord] = []
        self._incidents_by_month: Dict[int, List[IncidentRecord]] = {}
        self._province_samplers: Dict[ServiceCategory, WeightedSampler[ProvinceId]] = {}
        self._service_sampler = WeightedSampler.from_mapping(
            {s: t.count for s, t in SERVICE_TYPES.items()}
        )
        self._population_sampler = WeightedSampler.from_mapping(
            {p: rec.population for p, rec in PROVINCES.items()}
        )

        self.province_stats: Dict[ProvinceId, ProvinceStatistics] = {}
        self._listeners: List[StateListener] = []
        self._emergency_ids = itertools.count(1)

        self._initialize_agents()
        self._initialize_stats()

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def _initialize_agents(self) -> None:
        """Size the pool from population and each service's incident share."""
        index = 0
        for province in PROVINCES.values():
            base = max(3, province.population // 100_000)
            for service in SERVICE_TYPES.values():
                count = max(1, math.ceil(base * service.count / REFERENCE_NATIONAL_INCIDENTS))
                for i in range(count):
                    agent = Agent(
                        id=f"{province.id.value}-{service.id.value}-{i}",
                        service=service.id,
                        status=AgentStatus.AVAILABLE,
                        province=province.id,
                        position=self._scatter(province.coordinates),
                        name=f"{AGENT_NAMES[index % len(AGENT_NAMES)]} {index // len(AGENT_NAMES) + 1}",
                        avatar=f"AG-{index + 1:03d}",
                    )
                    self.agents.append(agent)
                    self._agents_by_id[agent.id] = agent
                    index += 1
        logger.info(f"Initialised {len(self.agents)} agents across {len(PROVINCES)} provinces")

    def _initialize_stats(self) -> None:
        self.province_stats = {p: ProvinceStatistics(province=p) for p in PROVINCES}
        for province in PROVINCES:
            self._refresh_agent_count(province)

    def _scatter(self, centre: Coordinates) -> Coordinates:
        jitter = self.config.position_jitter
        return Coordinates(
            centre.x + (self.rng.random() - 0.5) * jitter,
            centre.y + (self.rng.random() - 0.5) * jitter,
        )

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        """Current simulated time."""
        return self.config.epoch + timedelta(milliseconds=self.env.now)

    @property
    def elapsed_ms(self) -> float:
        return self.env.now

    def advance(self, delta_ms: float) -> None:
        """Move the clock forward, running relocation frames due on the way.

        Events scheduled exactly at the target time are processed.
        """
        if delta_ms < 0:
            raise ValueError(f"delta_ms must be non-negative, got {delta_ms}")
        target = self.env.now + delta_ms
        while self.env.peek() <= target:
            self.env.step()
        if self.env.now < target:
            self.env.run(until=target)

    def tick(self, delta_ms: float = 1000.0) -> None:
        """Advance simulated time by `delta_ms` and run one generation and
        resolution round."""
        self.advance(delta_ms)

        if self.config.retry_pending:
            for emergency in self.pending_emergencies():
                self.assign_agent(emergency)

        if self.rng.random() < self.config.emergency_probability:
            emergency = self.generate_emergency()
            self.emergencies.append(emergency)
            self.assign_agent(emergency)
            stats = self.province_stats[emergency.province]
            stats.emergencies += 1
            stats.by_type[emergency.service] += 1

        for emergency in list(self.emergencies):
            if emergency.is_assigned and self.rng.random() < self.config.resolution_probability:
                self.resolve_emergency(emergency.id)

        self._notify()

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def load_csv_data(self, records: Sequence[IncidentRecord]) -> None:
        """Replace the historical incident dataset.

        Province incident counters are reset to the dataset's counts, and
        per-service province weights are rebuilt for generation.
        """
        self._incidents = list(records)
        self._incidents_by_month = {}
        for record in self._incidents:
            self._incidents_by_month.setdefault(record.month, []).append(record)

        by_service: Dict[ServiceCategory, List[ProvinceId]] = {}
        for record in self._incidents:
            by_service.setdefault(record.service, []).append(record.province_id)
        self._province_samplers = {
            service: WeightedSampler.from_mapping(count_weights(provinces))
            for service, provinces in by_service.items()
        }

        for province, stats in self.province_stats.items():
            stats.by_type = {s: 0 for s in ServiceCategory}
            stats.emergencies = 0
        for record in self._incidents:
            stats = self.province_stats[record.province_id]
            stats.by_type[record.service] += 1
            stats.emergencies += 1

        logger.info(f"Loaded {len(self._incidents)} incident records into the engine")

    @property
    def has_incident_data(self) -> bool:
        return bool(self._incidents)

    # ------------------------------------------------------------------
    # Generation, assignment and resolution
    # ------------------------------------------------------------------

    def generate_emergency(self) -> Emergency:
        """Create (but do not register) one emergency at the current time."""
        if self._incidents:
            candidates = self._incidents_by_month.get(self.now().month) or self._incidents
            record = candidates[int(self.rng.integers(len(candidates)))]
            service = record.service
            province = record.province_id
            subtype = record.subtype or self._random_subtype(service)
            canton, parish = record.canton, record.parish
        else:
            service = self._service_sampler.sample(self.rng)
            province = self.sample_province(service)
            subtype = self._random_subtype(service)
            canton = f"Canton {int(self.rng.integers(1, 11))}"
            parish = f"Parroquia {int(self.rng.integers(1, 21))}"

        emergency = Emergency(
            id=f"em-{next(self._emergency_ids)}",
            service=service,
            subtype=subtype,
            province=province,
            canton=canton,
            parish=parish,
            timestamp=self.now(),
            priority=SERVICE_TYPES[service].priority,
        )
        logger.debug(f"Generated {emergency.id}: {service.value} in {province.value}")
        return emergency

    def sample_province(self, service: ServiceCategory) -> ProvinceId:
        """Province for a service: dataset share if known, else population."""
        sampler = self._province_samplers.get(service)
        if sampler is not None and not sampler.is_empty:
            return sampler.sample(self.rng)
        return self._population_sampler.sample(self.rng)

    def _random_subtype(self, service: ServiceCategory) -> str:
        options = SUBTYPES.get(service) or ["General"]
        return options[int(self.rng.integers(len(options)))]

    def assign_agent(self, emergency: Emergency) -> Optional[Agent]:
        """Assign the first available matching agent, same province first.

        Returns:
            The assigned agent, or None (emergency stays pending).
        """
        candidates = [
            a for a in self.agents if a.is_available and a.service == emergency.service
        ]
        agent = next((a for a in candidates if a.province == emergency.province), None)
        if agent is None and candidates:
            agent = candidates[0]
        if agent is None:
            logger.debug(f"No {emergency.service.value} agent available for {emergency.id}")
            return None

        agent.status = AgentStatus.RESPONDING
        agent.current_emergency_id = emergency.id
        emergency.status = EmergencyStatus.ASSIGNED
        emergency.assigned_agent_id = agent.id
        return agent

    def resolve_emergency(self, emergency_id: str) -> bool:
        """Resolve an active emergency and free its agent."""
        emergency = next((e for e in self.emergencies if e.id == emergency_id), None)
        if emergency is None:
            return False

        emergency.status = EmergencyStatus.RESOLVED
        emergency.resolved_at = self.now()
        self.emergencies.remove(emergency)
        self.resolved_emergencies.append(emergency)

        agent = self._agents_by_id.get(emergency.assigned_agent_id or "")
        if agent is not None:
            agent.status = AgentStatus.AVAILABLE
            agent.current_emergency_id = None
        return True

    def pending_emergencies(self) -> List[Emergency]:
        return [e for e in self.emergencies if e.status == EmergencyStatus.PENDING]

    def set_agent_busy(self, agent_id: str, busy: bool = True) -> bool:
        """Toggle an agent between AVAILABLE and BUSY.

        Agents that are responding or relocating are left untouched.
        """
        agent = self._agents_by_id.get(agent_id)
        if agent is None:
            return False
        current, new = (
            (AgentStatus.AVAILABLE, AgentStatus.BUSY) if busy
            else (AgentStatus.BUSY, AgentStatus.AVAILABLE)
        )
        if agent.status != current:
            return False
        agent.status = new
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Redistribution
    # ------------------------------------------------------------------

    def redistribute_agents(
        self,
        from_province: Union[ProvinceId, str],
        to_province: Union[ProvinceId, str],
        service: Union[ServiceCategory, str],
        count: int,
    ) -> bool:
        """Send `count` available agents from one province to another.

        All-or-nothing: if fewer than `count` matching agents are available,
        nothing changes and False is returned.

        Raises:
            ValueError: If a province or service id is not recognised.
        """
        origin, destination = as_province(from_province), as_province(to_province)
        service = as_service(service)

        if count < 1 or origin == destination:
            logger.warning(
                f"Rejected redistribution of {count} {service.value} agents "
                f"{origin.value} -> {destination.value}"
            )
            return False

        available = [
            a for a in self.agents
            if a.province == origin and a.service == service and a.is_available
        ]
        if len(available) < count:
            logger.warning(
                f"Not enough available {service.value} agents in {origin.value}: "
                f"requested {count}, available {len(available)}"
            )
            return False

        cfg = self.config
        max_delay = cfg.max_travel_ms - cfg.min_travel_ms
        for i, agent in enumerate(available[:count]):
            start = agent.position
            end = self._scatter(PROVINCES[destination].coordinates)
            delay = min(i * cfg.stagger_ms, max_delay)
            duration = travel_duration_ms(
                start, end, cfg.travel_ms_per_unit, cfg.min_travel_ms, cfg.max_travel_ms - delay
            )
            agent.begin_relocation(origin, destination)
            self.env.process(self._relocate(agent, start, end, delay, duration))

        logger.info(
            f"Relocating {count} {service.value} agents {origin.value} -> {destination.value}"
        )
        self._notify()
        return True

    def _relocate(
        self,
        agent: Agent,
        start: Coordinates,
        end: Coordinates,
        delay_ms: float,
        duration_ms: float,
    ):
        """SimPy process for one agent's journey.

        Yields SimPy events and should be started with env.process().
        """
        if delay_ms > 0:
            yield self.env.timeout(delay_ms)
        start_ms = self.env.now
        frame = self.config.frame_interval_ms

        while True:
            progress = progress_at(start_ms, duration_ms, self.env.now)
            remaining = start_ms + duration_ms - self.env.now
            if progress >= 1.0 or remaining <= 0:
                break
            agent.relocating_progress = progress
            agent.position = interpolate(start, end, progress)
            self._notify()
            yield self.env.timeout(min(frame, remaining))

        origin = agent.relocating_from
        agent.finish_relocation(end)
        self._refresh_agent_count(origin)
        self._refresh_agent_count(agent.province)
        logger.debug(f"Agent {agent.id} arrived in {agent.province.value}")
        self._notify()

    def _refresh_agent_count(self, province: ProvinceId) -> None:
        self.province_stats[province].agents = sum(
            1 for a in self.agents if a.province == province
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        return self._agents_by_id.get(agent_id)

    def get_agents_by_province(self, province: Union[ProvinceId, str]) -> List[Agent]:
        province = as_province(province)
        return [a for a in self.agents if a.province == province]

    def get_relocating_agents(self) -> List[Agent]:
        return [a for a in self.agents if a.status == AgentStatus.RELOCATING]

    def get_province_stats(self) -> List[ProvinceStatistics]:
        return [s.copy() for s in self.province_stats.values()]

    def get_agent_distribution(self) -> Distribution:
        """Agent counts per province and service (every cell present)."""
        distribution = {p: {s: 0 for s in ServiceCategory} for p in PROVINCES}
        for agent in self.agents:
            distribution[agent.province][agent.service] += 1
        return distribution

    def suggest_optimal_distribution(self) -> Distribution:
        """Reallocate each service's pool in proportion to observed demand.

        Each cell is round(pool * province_share) with a floor of 1, so the
        suggestion can exceed the pool size. Services without any recorded
        demand get 1 per province.
        """
        pool = {s: 0 for s in ServiceCategory}
        for agent in self.agents:
            pool[agent.service] += 1
        total_demand = {
            s: sum(stats.by_type[s] for stats in self.province_stats.values())
            for s in ServiceCategory
        }

        suggestion: Distribution = {}
        for province, stats in self.province_stats.items():
            suggestion[province] = {}
            for service in ServiceCategory:
                share = stats.by_type[service] / (total_demand[service] or 1)
                suggestion[province][service] = max(1, math.floor(pool[service] * share + 0.5))
        return suggestion

    def get_state(self) -> SimulationState:
        """Snapshot of the whole engine; entities are copies."""
        return SimulationState(
            current_time=self.now(),
            active_emergencies=tuple(e.snapshot() for e in self.emergencies),
            resolved_emergencies=tuple(e.snapshot() for e in self.resolved_emergencies),
            agents=tuple(a.snapshot() for a in self.agents),
            statistics=tuple(self.get_province_stats()),
        )

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a snapshot listener; returns its unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.warning(f"State listener error: {e}")
