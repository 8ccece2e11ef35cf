"""SimPy model layer: agents, emergencies, engine and dispatch centre."""

from ecu911.model.agent import Agent, Emergency
from ecu911.model.state import ProvinceStatistics, SimulationState
from ecu911.model.engine import SimulationEngine
from ecu911.model.centre import DispatchCentre

__all__ = [
    "Agent",
    "Emergency",
    "ProvinceStatistics",
    "SimulationState",
    "SimulationEngine",
    "DispatchCentre",
]
