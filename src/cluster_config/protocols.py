"""Collaborator protocols consumed by the resolution engine, and their lookup errors.

The engine never owns cluster, stack or component data. It reads them through
the three protocols below; implementations live outside the engine (a
database-backed registry in production, ``cluster_config.memory`` in tests and
the CLI).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cluster_config.models import ActualState, ConfigurationRecord
    from cluster_config.stack import PropertyInfo
    from cluster_config.types import ComponentKey, StackId


class ClusterConfigLookupError(LookupError):
    """Base class for unresolvable cluster, host, stack or service references."""


class UnknownClusterError(ClusterConfigLookupError):
    def __init__(self, cluster_id: str) -> None:
        self.cluster_id = cluster_id
        super().__init__(f"Unknown cluster '{cluster_id}'")


class UnknownHostError(ClusterConfigLookupError):
    def __init__(self, hostname: str, cluster_id: str | None = None) -> None:
        self.hostname = hostname
        where = f" in cluster '{cluster_id}'" if cluster_id else ""
        super().__init__(f"Unknown host '{hostname}'{where}")


class UnknownStackError(ClusterConfigLookupError):
    def __init__(self, stack: StackId) -> None:
        self.stack = stack
        super().__init__(f"Unknown stack '{stack}'")


class UnknownServiceError(ClusterConfigLookupError):
    def __init__(self, service: str, stack: StackId) -> None:
        self.service = service
        super().__init__(f"Unknown service '{service}' in stack '{stack}'")


class UnknownComponentError(ClusterConfigLookupError):
    def __init__(self, component: str, service: str) -> None:
        self.component = component
        super().__init__(f"Unknown component '{component}' of service '{service}'")


@runtime_checkable
class ClusterState(Protocol):
    def desired_state(self, cluster_id: str) -> dict[str, str]: ...

    def config_record(
        self, cluster_id: str, config_type: str, tag: str
    ) -> ConfigurationRecord | None: ...

    def config_group_overrides(
        self, cluster_id: str, hostname: str
    ) -> dict[str, dict[int, str]]: ...

    def desired_stack(self, cluster_id: str) -> StackId: ...


@runtime_checkable
class StackMetadata(Protocol):
    def depends_on(
        self,
        stack: StackId,
        service: str,
        config_type: str,
        *,
        component: str | None = None,
    ) -> bool: ...

    def depends_on_any_key(
        self, stack: StackId, service: str, config_type: str, keys: Iterable[str]
    ) -> bool: ...

    def any_service_declares_property(self, stack: StackId, config_type: str) -> bool: ...

    def has_component(self, stack: StackId, service: str, component: str) -> bool: ...

    def properties_with_type(self, stack: StackId, property_type: str) -> list[PropertyInfo]: ...


@runtime_checkable
class ComponentState(Protocol):
    def actual_state(self, component: ComponentKey) -> ActualState | None: ...

    def restart_required(self, component: ComponentKey) -> bool: ...
