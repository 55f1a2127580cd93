"""
Domain models for the provisioning core.

All models are re-exported here for convenient access:

    from devsetup.core.models import Action, Receipt, Phase, Settings
"""

from devsetup.core.models.action import Action, Receipt
from devsetup.core.models.phase import (
    COMPLETE,
    OrchestratorReport,
    Phase,
    PhaseContext,
    PhaseStatus,
)
from devsetup.core.models.report import StepReport, StepResult
from devsetup.core.models.settings import Application, SetupPaths, Settings, ZshPlugin

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # phase.py
    "COMPLETE",
    "OrchestratorReport",
    "Phase",
    "PhaseContext",
    "PhaseStatus",
    # report.py
    "StepReport",
    "StepResult",
    # settings.py
    "Application",
    "SetupPaths",
    "Settings",
    "ZshPlugin",
]
