"""AumOS governance controls engine.

Resolves organization-wide (tenant) governance controls against
per-environment overrides and computes compliance scores and violations.
"""

from aumos_governance_controls.engine import GovernanceControlsEngine, create_default_engine
from aumos_governance_controls.errors import GovernanceError, NotFoundError, ValidationError

__all__ = [
    "GovernanceControlsEngine",
    "GovernanceError",
    "NotFoundError",
    "ValidationError",
    "create_default_engine",
]
