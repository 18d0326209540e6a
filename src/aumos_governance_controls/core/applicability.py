"""Applicability matching between controls and environments.

Pure functions with no shared state; safe to call from concurrent reads.
"""

from collections.abc import Iterable

from aumos_governance_controls.core.models import WILDCARD, EnvironmentContext, GovernanceControl


def _matches(declared: Iterable[str], value: str) -> bool:
    declared_values = set(declared)
    return WILDCARD in declared_values or value in declared_values


def applies(control: GovernanceControl, environment: EnvironmentContext) -> bool:
    """Decide whether a control's declared applicability covers an environment.

    The environment type and region must each be listed (or covered by the
    ``*`` wildcard). Roles are declarative only: live role checks belong to
    the authorization layer, so the role dimension never excludes a control.

    Args:
        control: The control to test.
        environment: The target environment.

    Returns:
        True if the control applies to the environment.
    """
    scope = control.applies_to
    if not _matches(scope.environment_types, environment.type):
        return False
    if not _matches(scope.regions, environment.region):
        return False
    return True
