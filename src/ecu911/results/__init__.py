"""Results layer: tabular views."""

from ecu911.results.tables import capacity_frame, distribution_frame, suggestions_frame

__all__ = ["capacity_frame", "distribution_frame", "suggestions_frame"]
