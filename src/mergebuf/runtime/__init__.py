"""Runtime services (telemetry) shared by every mergebuf layer."""

from . import telemetry

__all__ = ["telemetry"]
