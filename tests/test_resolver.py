"""Tests for applicability matching and inheritance resolution.

Covers:
- applies(): environment type, region, wildcard and role dimensions
- merge_controls(): enforcement floor, configuration union, status patching
- effective_controls(): provenance, conflicts, ordering, exclusions
- describe_inheritance() / inheritance_matrix()
"""

import pytest

from aumos_governance_controls.core.applicability import applies
from aumos_governance_controls.core.configuration import merge_configuration
from aumos_governance_controls.core.models import GovernanceControl
from aumos_governance_controls.core.resolver import merge_controls
from aumos_governance_controls.errors import NotFoundError


# ---------------------------------------------------------------------------
# Applicability
# ---------------------------------------------------------------------------


class TestApplies:
    """Tests for the applicability matcher."""

    def test_wildcards_apply_everywhere(self, make_control, make_environment) -> None:
        control = make_control("c1")
        for environment_type in ("prod", "test", "dev", "sandbox"):
            assert applies(control, make_environment(type=environment_type, region="Mars"))

    def test_environment_type_must_be_listed(self, make_control, make_environment) -> None:
        control = make_control("c1", applies_to={"environment_types": ["prod", "test"]})
        assert applies(control, make_environment(type="prod"))
        assert not applies(control, make_environment(type="dev"))

    def test_region_must_be_listed(self, make_control, make_environment) -> None:
        control = make_control("c1", applies_to={"regions": ["East US"]})
        assert applies(control, make_environment(region="East US"))
        assert not applies(control, make_environment(region="West US"))

    def test_both_dimensions_must_match(self, make_control, make_environment) -> None:
        control = make_control(
            "c1", applies_to={"environment_types": ["prod"], "regions": ["East US"]}
        )
        assert not applies(control, make_environment(type="prod", region="West US"))
        assert not applies(control, make_environment(type="dev", region="East US"))

    def test_roles_never_exclude(self, make_control, make_environment) -> None:
        """Role lists are declarative only and never exclude a control."""
        control = make_control("c1", applies_to={"user_roles": ["finance"]})
        assert applies(control, make_environment())

    def test_empty_type_list_matches_nothing(self, make_control, make_environment) -> None:
        control = make_control("c1", applies_to={"environment_types": []})
        assert not applies(control, make_environment(type="prod"))


# ---------------------------------------------------------------------------
# Merge policy
# ---------------------------------------------------------------------------


class TestMergeControls:
    """Tests for the tenant + override merge policy."""

    def test_configuration_union(self, make_control) -> None:
        """{a:1,b:2} merged with {b:9,c:3} yields {a:1,b:9,c:3}."""
        tenant = make_control("c1", configuration={"a": 1, "b": 2})
        override = GovernanceControl(id="c1", configuration={"b": 9, "c": 3})

        merged = merge_controls(tenant, override)

        assert merged.configuration == {"a": 1, "b": 9, "c": 3}
        assert list(merged.configuration) == ["a", "b", "c"]
        assert tenant.configuration == {"a": 1, "b": 2}

    def test_merge_configuration_does_not_share_nested_values(self) -> None:
        base = {"retention": {"audit": 84}}
        merged = merge_configuration(base, {})
        merged["retention"]["audit"] = 1
        assert base == {"retention": {"audit": 84}}

    def test_strict_enforcement_is_a_floor(self, make_control) -> None:
        tenant = make_control("c1", enforcement="strict")
        for requested in ("warn", "audit"):
            override = GovernanceControl(id="c1", enforcement=requested)
            assert merge_controls(tenant, override).enforcement == "strict"

    def test_non_strict_enforcement_can_be_overridden(self, make_control) -> None:
        tenant = make_control("c1", enforcement="warn")
        override = GovernanceControl(id="c1", enforcement="audit")
        assert merge_controls(tenant, override).enforcement == "audit"

    def test_absent_enforcement_keeps_tenant_value(self, make_control) -> None:
        """An override that does not set enforcement does not apply the default."""
        tenant = make_control("c1", enforcement="audit")
        override = GovernanceControl(id="c1", status="disabled")
        assert merge_controls(tenant, override).enforcement == "audit"

    def test_status_from_override_when_present(self, make_control) -> None:
        tenant = make_control("c1", status="enabled")
        assert merge_controls(tenant, GovernanceControl(id="c1", status="disabled")).status == (
            "disabled"
        )
        assert merge_controls(tenant, GovernanceControl(id="c1")).status == "enabled"

    def test_other_fields_come_from_tenant(self, make_control) -> None:
        tenant = make_control("c1", type="data", priority="critical", name="Tenant Name")
        override = GovernanceControl(
            id="c1", type="cost", priority="low", name="Override Name", status="disabled"
        )

        merged = merge_controls(tenant, override)

        assert merged.type == "data"
        assert merged.priority == "critical"
        assert merged.name == "Tenant Name"
        assert merged.level == "environment"


# ---------------------------------------------------------------------------
# Effective controls
# ---------------------------------------------------------------------------


class TestEffectiveControls:
    """Tests for InheritanceResolver.effective_controls."""

    def test_unknown_environment_is_not_found(self, engine) -> None:
        with pytest.raises(NotFoundError):
            engine.effective_controls("missing")

    def test_no_override_returns_tenant_control_unchanged(
        self, engine, make_control, make_environment
    ) -> None:
        engine.upsert_environment(make_environment("E1"))
        stored = engine.put_tenant_control(
            make_control("c1", configuration={"limit": 5}, enforcement="audit")
        )

        (effective,) = engine.effective_controls("E1")

        assert effective.provenance == "tenant"
        assert effective.level == "tenant"
        assert effective.conflicts == []
        assert effective.as_control() == stored

    def test_mfa_override_against_non_overridable_control(
        self, engine, make_control, make_environment
    ) -> None:
        """The tenant control wins and a scope conflict is attached."""
        engine.upsert_environment(make_environment("E1", type="prod", compliance_level="strict"))
        stored = engine.put_tenant_control(
            make_control(
                "mfa", override_allowed=False, enforcement="strict", status="enabled"
            )
        )
        engine.put_environment_control("E1", GovernanceControl(id="mfa", status="disabled"))

        (effective,) = engine.effective_controls("E1")

        assert effective.status == "enabled"
        assert effective.provenance == "tenant"
        assert effective.as_control() == stored
        assert len(effective.conflicts) == 1
        conflict = effective.conflicts[0]
        assert conflict.control_id == "mfa"
        assert conflict.environment_id == "E1"
        assert conflict.conflict_type == "scope"
        assert conflict.resolution == "tenant_wins"

    def test_non_overridable_configuration_is_never_altered(
        self, engine, make_control, make_environment
    ) -> None:
        engine.upsert_environment(make_environment("E1"))
        engine.put_tenant_control(
            make_control("c1", override_allowed=False, configuration={"timeout": 8})
        )
        engine.put_environment_control(
            "E1", GovernanceControl(id="c1", configuration={"timeout": 24, "extra": True})
        )

        (effective,) = engine.effective_controls("E1")

        assert effective.configuration == {"timeout": 8}

    def test_overridable_control_is_merged(self, engine, make_control, make_environment) -> None:
        engine.upsert_environment(make_environment("E1"))
        engine.put_tenant_control(make_control("c1", configuration={"a": 1, "b": 2}))
        engine.put_environment_control(
            "E1", GovernanceControl(id="c1", configuration={"b": 9, "c": 3})
        )

        (effective,) = engine.effective_controls("E1")

        assert effective.provenance == "environment-override"
        assert effective.level == "environment"
        assert effective.configuration == {"a": 1, "b": 9, "c": 3}
        assert effective.conflicts == []

    def test_weakening_strict_enforcement_records_conflict(
        self, engine, make_control, make_environment
    ) -> None:
        engine.upsert_environment(make_environment("E1"))
        engine.put_tenant_control(make_control("c1", enforcement="strict"))
        engine.put_environment_control("E1", GovernanceControl(id="c1", enforcement="audit"))

        (effective,) = engine.effective_controls("E1")

        assert effective.enforcement == "strict"
        assert [(c.conflict_type, c.resolution) for c in effective.conflicts] == [
            ("enforcement", "tenant_wins")
        ]

    def test_disabled_tenant_controls_are_excluded(
        self, engine, make_control, make_environment
    ) -> None:
        engine.upsert_environment(make_environment("E1"))
        engine.put_tenant_control(make_control("off", status="disabled"))
        engine.put_tenant_control(make_control("on"))
        assert [c.id for c in engine.effective_controls("E1")] == ["on"]

    def test_inapplicable_tenant_controls_are_excluded(
        self, engine, make_control, make_environment
    ) -> None:
        engine.upsert_environment(make_environment("E1", type="sandbox", region="West US"))
        engine.put_tenant_control(make_control("prod-only", applies_to={"environment_types": ["prod"]}))
        engine.put_tenant_control(make_control("east-only", applies_to={"regions": ["East US"]}))
        engine.put_tenant_control(make_control("everywhere"))
        assert [c.id for c in engine.effective_controls("E1")] == ["everywhere"]

    def test_override_of_excluded_tenant_control_is_not_emitted(
        self, engine, make_control, make_environment
    ) -> None:
        """Only records with no tenant counterpart become environment-only controls."""
        engine.upsert_environment(make_environment("E1", type="dev"))
        engine.put_tenant_control(make_control("prod-only", applies_to={"environment_types": ["prod"]}))
        engine.put_environment_control("E1", GovernanceControl(id="prod-only", status="enabled"))
        assert engine.effective_controls("E1") == []

    def test_environment_only_controls_follow_tenant_controls(
        self, engine, make_control, make_environment
    ) -> None:
        engine.upsert_environment(make_environment("E1"))
        engine.put_environment_control("E1", make_control("local-b", type="cost"))
        engine.put_tenant_control(make_control("tenant-a"))
        engine.put_tenant_control(make_control("tenant-b"))
        engine.put_environment_control("E1", make_control("local-a", type="data"))

        effective = engine.effective_controls("E1")

        assert [c.id for c in effective] == ["tenant-a", "tenant-b", "local-b", "local-a"]
        assert [c.provenance for c in effective] == [
            "tenant",
            "tenant",
            "environment",
            "environment",
        ]
        assert all(c.level == "environment" for c in effective[2:])

    def test_overrides_are_scoped_to_their_environment(
        self, engine, make_control, make_environment
    ) -> None:
        engine.upsert_environment(make_environment("E1"))
        engine.upsert_environment(make_environment("E2"))
        engine.put_tenant_control(make_control("c1"))
        engine.put_environment_control("E1", GovernanceControl(id="c1", status="disabled"))

        assert engine.effective_controls("E1")[0].status == "disabled"
        assert engine.effective_controls("E2")[0].status == "enabled"

    def test_resolution_reflects_later_environment_update(
        self, engine, make_control, make_environment
    ) -> None:
        """Effective controls are recomputed on demand, never cached."""
        engine.upsert_environment(make_environment("E1", type="dev"))
        engine.put_tenant_control(make_control("prod-only", applies_to={"environment_types": ["prod"]}))
        assert engine.effective_controls("E1") == []

        engine.update_environment("E1", type="prod")
        assert [c.id for c in engine.effective_controls("E1")] == ["prod-only"]


# ---------------------------------------------------------------------------
# Inheritance description
# ---------------------------------------------------------------------------


class TestDescribeInheritance:
    """Tests for describe_inheritance and inheritance_matrix."""

    def test_chain_and_conflicts(self, engine, make_control, make_environment) -> None:
        for environment_id in ("E1", "E2", "E3"):
            engine.upsert_environment(make_environment(environment_id))
        engine.put_tenant_control(make_control("mfa", override_allowed=False))
        engine.put_environment_control("E3", GovernanceControl(id="mfa", status="disabled"))
        engine.put_environment_control("E1", GovernanceControl(id="mfa", status="disabled"))

        inheritance = engine.describe_inheritance("mfa")

        assert inheritance.inheritance_chain == ["tenant", "E1", "E3"]
        assert set(inheritance.environment_overrides) == {"E1", "E3"}
        assert [c.environment_id for c in inheritance.conflicts] == ["E1", "E3"]
        assert all(c.resolution == "tenant_wins" for c in inheritance.conflicts)

    def test_overridable_control_has_no_conflicts(
        self, engine, make_control, make_environment
    ) -> None:
        engine.upsert_environment(make_environment("E1"))
        engine.put_tenant_control(make_control("c1"))
        engine.put_environment_control("E1", GovernanceControl(id="c1", status="disabled"))

        inheritance = engine.describe_inheritance("c1")

        assert inheritance.inheritance_chain == ["tenant", "E1"]
        assert inheritance.conflicts == []

    def test_unknown_control(self, engine) -> None:
        with pytest.raises(NotFoundError):
            engine.describe_inheritance("missing")

    def test_matrix_covers_every_tenant_control(self, seeded_engine) -> None:
        matrix = seeded_engine.inheritance_matrix()
        assert [entry.control_id for entry in matrix] == [
            "global-security-baseline",
            "global-cost-controls",
            "global-data-governance",
        ]
        assert all(entry.inheritance_chain == ["tenant"] for entry in matrix)
