"""Pytest fixtures for ECU-911 simulator tests."""

from datetime import datetime, timedelta

import pytest

from ecu911.analysis.redistribution import RedistributionAnalyzer
from ecu911.core.config import SimulationConfig
from ecu911.model.engine import SimulationEngine


PERSONNEL_CSV = "\ufeff" + """Provincia,Personal ECU 911,Policía Nacional,Fuerzas Armadas,Médicos MSP/IESS,Bomberos,Personal Tránsito,Cruz Roja,Agentes Municipales,Total,Observaciones
Pichincha,120,800,150,200,100,90,40,30,1530,"Quito, zona norte"
Guayas,150,1000,200,250,120,110,50,40,1920,

"Santo Domingo de los Tsáchilas",20,100,10,30,15,10,5,5,195,
Galápagos,5,20,,x,3,2,1,0,31,Islas
Bad Row,1,2,3
TOTAL NACIONAL,295,1920,360,480,238,212,96,75,3676,
DISTRIBUCIÓN POR INSTITUCIÓN,8%,52%,10%,13%,6%,6%,3%,2%,100%,
Azuay,1,1,1,1,1,1,1,1,8,after the trailer
"""

INCIDENT_CSV = """fecha,provincia,canton,cod_parroquia,parroquia,servicio,subtipo,dia_semana,dia_mes,mes,anio
2025-11-01,Guayas,Guayaquil,090150,Tarqui,Seguridad Ciudadana,Robo,sábado,1,11,2025
2025-11-01,Pichincha,Quito,170150,Iñaquito,Gestión Sanitaria,Traslado,sábado,1,11,2025
2025-11-02,Guayas,Guayaquil,090150,Tarqui,Tránsito y Movilidad,Accidente,domingo,2,11,2025
2025-10-15,Azuay,Cuenca,010150,"El Sagrario, centro",Seguridad Ciudadana,,miércoles,15,10,2025
short,row
2025-11-02,Atlantis,X,0,Y,Desconocido,Algo,domingo,2,once,2025
"""


class FakeClock:
    """Manually advanced clock for alert timing tests."""

    def __init__(self, start: datetime = datetime(2025, 11, 1)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, minutes: float) -> None:
        self.current += timedelta(minutes=minutes)


@pytest.fixture
def default_seed() -> int:
    """Default random seed for reproducible tests."""
    return 42


@pytest.fixture
def engine(default_seed) -> SimulationEngine:
    """Engine with default generation behaviour."""
    return SimulationEngine(SimulationConfig(random_seed=default_seed))


@pytest.fixture
def quiet_engine(default_seed) -> SimulationEngine:
    """Engine that never generates or resolves emergencies on its own."""
    return SimulationEngine(SimulationConfig(
        random_seed=default_seed,
        emergency_probability=0.0,
        resolution_probability=0.0,
    ))


@pytest.fixture
def personnel_csv() -> str:
    return PERSONNEL_CSV


@pytest.fixture
def incident_csv() -> str:
    return INCIDENT_CSV


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def analyzer(clock) -> RedistributionAnalyzer:
    return RedistributionAnalyzer(clock=clock)


@pytest.fixture
def collapsed_guayas(analyzer):
    """Guayas: 50 staff, 120 incidents/hour (rho = 1.0)."""
    return analyzer.analyze_province_capacity("guayas", 50, 120 * 24, 4387434)


@pytest.fixture
def overloaded_pichincha(analyzer):
    """Pichincha: 50 staff, 110 incidents/hour (rho ~ 0.917)."""
    return analyzer.analyze_province_capacity("pichincha", 50, 110 * 24, 3228233)


@pytest.fixture
def idle_manabi(analyzer):
    """Manabi: 100 staff, 40 incidents/hour (rho ~ 0.167)."""
    return analyzer.analyze_province_capacity("manabi", 100, 40 * 24, 1562079)
