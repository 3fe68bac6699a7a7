from .diagnostics import DiagnosticsService
from .report import SweepEntry, SweepReport
from .sweep import ReconciliationSweep

__all__ = ["DiagnosticsService", "ReconciliationSweep", "SweepEntry", "SweepReport"]
