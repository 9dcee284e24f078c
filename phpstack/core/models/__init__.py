"""
Domain models — Pydantic types for a provisioning run.

    from phpstack.core.models import InvokingIdentity, StepRecord, ProvisionConfig
"""

from phpstack.core.models.config import ProvisionConfig
from phpstack.core.models.identity import InvokingIdentity
from phpstack.core.models.step import StepOutcome, StepRecord
from phpstack.core.models.unit import (
    InstallableUnit,
    UnitKind,
    package_units,
    runtime_units,
)

__all__ = [
    "InstallableUnit",
    "InvokingIdentity",
    "ProvisionConfig",
    "StepOutcome",
    "StepRecord",
    "UnitKind",
    "package_units",
    "runtime_units",
]
