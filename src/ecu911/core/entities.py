"""Core entity definitions for the simulation.

This module contains enums and basic types that are used across
the codebase, placed here to avoid circular imports.
"""

from enum import Enum
from typing import NamedTuple


class ProvinceId(Enum):
    """Ecuador's 24 provinces. Values are the stable dataset keys."""
    AZUAY = "azuay"
    BOLIVAR = "bolivar"
    CANAR = "canar"
    CARCHI = "carchi"
    CHIMBORAZO = "chimborazo"
    COTOPAXI = "cotopaxi"
    EL_ORO = "el_oro"
    ESMERALDAS = "esmeraldas"
    GALAPAGOS = "galapagos"
    GUAYAS = "guayas"
    IMBABURA = "imbabura"
    LOJA = "loja"
    LOS_RIOS = "los_rios"
    MANABI = "manabi"
    MORONA_SANTIAGO = "morona_santiago"
    NAPO = "napo"
    ORELLANA = "orellana"
    PASTAZA = "pastaza"
    PICHINCHA = "pichincha"
    SANTA_ELENA = "santa_elena"
    SANTO_DOMINGO = "santo_domingo"
    SUCUMBIOS = "sucumbios"
    TUNGURAHUA = "tungurahua"
    ZAMORA_CHINCHIPE = "zamora_chinchipe"


class ServiceCategory(Enum):
    """The seven ECU-911 emergency service categories."""
    SEGURIDAD = "seguridad"      # Citizen security
    TRANSITO = "transito"        # Traffic and mobility
    SANITARIA = "sanitaria"      # Health
    MUNICIPAL = "municipal"      # Municipal services
    SINIESTROS = "siniestros"    # Fire / hazardous materials
    MILITAR = "militar"          # Military support
    RIESGOS = "riesgos"          # Risk management (floods, landslides)


class PersonnelCategory(Enum):
    """Personnel categories in the per-province staffing dataset.

    Declaration order matches the column order of the dataset.
    """
    OPERATORS = "personal_ecu911"        # Call-centre operators, staff any service
    POLICE = "policia_nacional"
    ARMED_FORCES = "fuerzas_armadas"
    MEDICAL = "medicos_msp_iess"
    FIRE = "bomberos"
    TRAFFIC = "personal_transito"
    RED_CROSS = "cruz_roja"
    MUNICIPAL = "agentes_municipales"


class AgentStatus(Enum):
    """Responder lifecycle states."""
    AVAILABLE = "available"
    BUSY = "busy"              # Reserved for external layers
    RESPONDING = "responding"
    RELOCATING = "relocating"


class EmergencyStatus(Enum):
    """Emergency lifecycle: pending -> assigned -> resolved."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    RESPONDING = "responding"  # Alias of ASSIGNED
    RESOLVED = "resolved"


class CapacityStatus(Enum):
    """Province capacity classification from the queueing model."""
    CRITICAL = "critical"            # rho >= 1.0, unstable queue
    OVERLOADED = "overloaded"        # rho >= critical utilisation
    OPTIMAL = "optimal"
    UNDERUTILIZED = "underutilized"


class Coordinates(NamedTuple):
    """Position on the schematic (non-geographic) map layout."""
    x: float
    y: float
