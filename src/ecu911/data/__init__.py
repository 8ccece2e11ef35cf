"""Dataset layer: personnel and incident loaders."""

from ecu911.data.personnel import PersonnelByProvince, PersonnelDataLoader
from ecu911.data.incidents import IncidentRecord, load_incident_csv, daily_incident_rate

__all__ = [
    "PersonnelByProvince",
    "PersonnelDataLoader",
    "IncidentRecord",
    "load_incident_csv",
    "daily_incident_rate",
]
