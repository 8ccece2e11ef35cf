"""Experiment layer: headless session runners."""

from ecu911.experiment.runner import (
    SessionSummary,
    multiple_sessions,
    run_session,
    summarize_sessions,
)

__all__ = ["SessionSummary", "multiple_sessions", "run_session", "summarize_sessions"]
