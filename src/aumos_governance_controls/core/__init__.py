"""Core governance control resolution and compliance logic.

Modules:
- models: Pydantic domain models
- catalog: Environment catalog
- registry: Tenant controls and environment overrides
- applicability: Control-to-environment matching
- configuration: Configuration merge and typed views
- resolver: Inheritance resolution and conflict recording
- validator: Compliance scoring and violations
- reporter: Dashboard aggregates
"""
