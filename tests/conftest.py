"""Test fixtures for aumos-governance-controls.

Provides:
- engine: An empty GovernanceControlsEngine
- seeded_engine: An engine loaded with the bundled default catalog
- make_control: Factory for GovernanceControl records
- make_environment: Factory for EnvironmentContext records
"""

from collections.abc import Callable
from typing import Any

import pytest

from aumos_governance_controls.core.models import EnvironmentContext, GovernanceControl
from aumos_governance_controls.engine import GovernanceControlsEngine


def build_control(control_id: str = "ctrl-1", **fields: Any) -> GovernanceControl:
    """Create a fully specified tenant-style GovernanceControl.

    Args:
        control_id: Control identifier.
        **fields: Field values overriding the defaults below.

    Returns:
        A GovernanceControl instance.
    """
    values: dict[str, Any] = {
        "id": control_id,
        "name": f"Control {control_id}",
        "type": "security",
        "status": "enabled",
        "priority": "medium",
        "enforcement": "warn",
        "override_allowed": True,
        "inheritance_allowed": True,
        "required_at_tenant": False,
    }
    values.update(fields)
    return GovernanceControl(**values)


def build_environment(environment_id: str = "E1", **fields: Any) -> EnvironmentContext:
    """Create an EnvironmentContext with deterministic defaults.

    Args:
        environment_id: Environment identifier.
        **fields: Field values overriding the defaults below.

    Returns:
        An EnvironmentContext instance.
    """
    values: dict[str, Any] = {
        "id": environment_id,
        "name": f"Environment {environment_id}",
        "type": "dev",
        "region": "East US",
        "parent_tenant": "tenant-main",
        "compliance_level": "relaxed",
    }
    values.update(fields)
    return EnvironmentContext(**values)


@pytest.fixture()
def make_control() -> Callable[..., GovernanceControl]:
    """Return the GovernanceControl factory."""
    return build_control


@pytest.fixture()
def make_environment() -> Callable[..., EnvironmentContext]:
    """Return the EnvironmentContext factory."""
    return build_environment


@pytest.fixture()
def engine() -> GovernanceControlsEngine:
    """Create an engine with no environments and no controls."""
    return GovernanceControlsEngine()


@pytest.fixture()
def seeded_engine() -> GovernanceControlsEngine:
    """Create an engine loaded with the bundled default catalog."""
    engine = GovernanceControlsEngine()
    engine.load_default_catalog()
    return engine
