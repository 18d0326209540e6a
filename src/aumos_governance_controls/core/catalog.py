"""Environment catalog: metadata for every governed environment.

The catalog holds an immutable mapping that is replaced wholesale on every
write (copy-on-write). Readers take the current mapping reference without
locking; writers serialize on a lock while building the next mapping.
Environments are never deleted.
"""

import threading
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import pydantic

from aumos_governance_controls.core.models import EnvironmentContext
from aumos_governance_controls.errors import NotFoundError, ValidationError
from aumos_governance_controls.observability import get_logger

logger = get_logger(__name__)


def _coerce_environment(data: EnvironmentContext | Mapping[str, Any]) -> EnvironmentContext:
    if isinstance(data, EnvironmentContext):
        return data.model_copy(deep=True)
    try:
        return EnvironmentContext.model_validate(data)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(
            message=f"Invalid environment definition: {first['msg']}",
            field=field,
        ) from exc


class EnvironmentCatalog:
    """In-memory catalog of EnvironmentContext records keyed by id."""

    def __init__(self) -> None:
        self._environments: Mapping[str, EnvironmentContext] = MappingProxyType({})
        self._write_lock = threading.Lock()

    def snapshot(self) -> Mapping[str, EnvironmentContext]:
        """Return the current read-only mapping of environments.

        The returned records are shared with the catalog and must be treated
        as read-only.
        """
        return self._environments

    def list_environments(self) -> list[EnvironmentContext]:
        """Return copies of all environments in insertion order."""
        return [env.model_copy(deep=True) for env in self._environments.values()]

    def find_environment(self, environment_id: str) -> EnvironmentContext | None:
        """Return a copy of an environment, or None if it is unknown."""
        environment = self._environments.get(environment_id)
        return environment.model_copy(deep=True) if environment is not None else None

    def get_environment(self, environment_id: str) -> EnvironmentContext:
        """Return a copy of an environment.

        Raises:
            NotFoundError: If no environment has the given id.
        """
        environment = self.find_environment(environment_id)
        if environment is None:
            raise NotFoundError(
                message=f"Environment '{environment_id}' not found",
                field="environment_id",
            )
        return environment

    def upsert_environment(
        self, environment: EnvironmentContext | Mapping[str, Any]
    ) -> EnvironmentContext:
        """Create or fully replace an environment.

        Args:
            environment: The environment definition.

        Returns:
            A copy of the stored environment.

        Raises:
            ValidationError: If the definition is malformed.
        """
        record = _coerce_environment(environment)
        with self._write_lock:
            is_new = record.id not in self._environments
            updated = dict(self._environments)
            updated[record.id] = record
            self._environments = MappingProxyType(updated)

        logger.info(
            "Environment created" if is_new else "Environment replaced",
            environment_id=record.id,
            environment_type=record.type,
            region=record.region,
        )
        return record.model_copy(deep=True)

    def update_environment(self, environment_id: str, **changes: Any) -> EnvironmentContext:
        """Apply a partial metadata update to an existing environment.

        Args:
            environment_id: The environment to update.
            **changes: Field values to replace. ``id`` cannot be changed.

        Returns:
            A copy of the updated environment.

        Raises:
            NotFoundError: If the environment does not exist.
            ValidationError: If the changes produce an invalid environment.
        """
        if "id" in changes and changes["id"] != environment_id:
            raise ValidationError(message="Environment id cannot be changed", field="id")

        with self._write_lock:
            current = self._environments.get(environment_id)
            if current is None:
                raise NotFoundError(
                    message=f"Environment '{environment_id}' not found",
                    field="environment_id",
                )
            record = _coerce_environment({**current.model_dump(), **changes})
            updated = dict(self._environments)
            updated[environment_id] = record
            self._environments = MappingProxyType(updated)

        logger.info(
            "Environment updated",
            environment_id=environment_id,
            changed_fields=sorted(changes),
        )
        return record.model_copy(deep=True)
