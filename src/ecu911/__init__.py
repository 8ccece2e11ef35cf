"""
ECU-911 dispatch simulator.

A discrete-event simulation of Ecuador's 911 emergency dispatch network
with an M/M/c capacity analyzer and redistribution advisor, built with
SimPy, NumPy, SciPy and pandas.
"""

__version__ = "0.1.0"

from ecu911.core.config import SystemConfig
from ecu911.model.centre import DispatchCentre
from ecu911.model.engine import SimulationEngine

__all__ = ["SystemConfig", "DispatchCentre", "SimulationEngine", "__version__"]
