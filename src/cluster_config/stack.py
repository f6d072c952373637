"""Stack catalog: services, components and the configuration they declare.

The catalog answers the dependency questions the staleness evaluator asks
(does this service or component care about a configuration type, or about
specific keys of it) and a few property lookups used by tooling.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from pydantic import BaseModel

from cluster_config.protocols import UnknownServiceError, UnknownStackError
from cluster_config.types import SERVICE_CONFIG_FILE_SUFFIX, StackId

if TYPE_CHECKING:
    from collections.abc import Iterable


def config_type_from_filename(filename: str) -> str:
    """Map a stack property file name to its configuration type.

    >>> config_type_from_filename("hdfs-site.xml")
    'hdfs-site'
    """
    index = filename.find(SERVICE_CONFIG_FILE_SUFFIX)
    return filename if index < 0 else filename[:index]


class PropertyInfo(BaseModel):
    """A property declared by a stack definition."""

    name: str
    filename: str
    value: str | None = None
    property_types: list[str] = []

    @property
    def config_type(self) -> str:
        return config_type_from_filename(self.filename)


class ComponentInfo(BaseModel):
    name: str
    config_types: list[str] = []

    def has_config_type(self, config_type: str) -> bool:
        return config_type in self.config_types


class ServiceInfo(BaseModel):
    name: str
    config_dependencies: list[str] = []
    properties: list[PropertyInfo] = []
    components: list[ComponentInfo] = []

    def has_config_dependency(self, config_type: str) -> bool:
        return config_type in self.config_dependencies

    def has_dependency_and_property_for(self, config_type: str, keys: Iterable[str]) -> bool:
        """True when the service depends on the type and declares any of ``keys`` in it."""
        if not self.has_config_dependency(config_type):
            return False
        declared = {p.name for p in self.properties if p.config_type == config_type}
        return any(key in declared for key in keys)

    def get_component(self, name: str) -> ComponentInfo | None:
        for component in self.components:
            if component.name == name:
                return component
        return None


class StackInfo(BaseModel):
    name: str
    version: str
    services: list[ServiceInfo] = []
    properties: list[PropertyInfo] = []

    @property
    def stack_id(self) -> StackId:
        return StackId(self.name, self.version)

    def get_service(self, name: str) -> ServiceInfo | None:
        for service in self.services:
            if service.name == name:
                return service
        return None


class StackCatalog:
    """In-memory registry of stack definitions, implementing ``StackMetadata``."""

    def __init__(self) -> None:
        self._stacks: dict[StackId, StackInfo] = {}
        self._lock = threading.Lock()

    def register(self, stack: StackInfo) -> None:
        with self._lock:
            if stack.stack_id in self._stacks:
                raise ValueError(f"Stack '{stack.stack_id}' is already registered")
            self._stacks[stack.stack_id] = stack

    def get(self, stack: StackId) -> StackInfo:
        with self._lock:
            info = self._stacks.get(stack)
        if info is None:
            raise UnknownStackError(stack)
        return info

    def service(self, stack: StackId, service: str) -> ServiceInfo:
        info = self.get(stack).get_service(service)
        if info is None:
            raise UnknownServiceError(service, stack)
        return info

    def __len__(self) -> int:
        return len(self._stacks)

    # StackMetadata

    def depends_on(
        self,
        stack: StackId,
        service: str,
        config_type: str,
        *,
        component: str | None = None,
    ) -> bool:
        info = self.service(stack, service)
        if component is None:
            return info.has_config_dependency(config_type)
        component_info = info.get_component(component)
        return component_info is not None and component_info.has_config_type(config_type)

    def depends_on_any_key(
        self, stack: StackId, service: str, config_type: str, keys: Iterable[str]
    ) -> bool:
        return self.service(stack, service).has_dependency_and_property_for(config_type, keys)

    def any_service_declares_property(self, stack: StackId, config_type: str) -> bool:
        return any(
            p.config_type == config_type for s in self.get(stack).services for p in s.properties
        )

    def has_component(self, stack: StackId, service: str, component: str) -> bool:
        return self.service(stack, service).get_component(component) is not None

    # Property lookups

    def service_properties(self, stack: StackId, service: str) -> list[PropertyInfo]:
        return list(self.service(stack, service).properties)

    def stack_properties(self, stack: StackId) -> list[PropertyInfo]:
        return list(self.get(stack).properties)

    def find_config_types_by_property_name(
        self,
        stack: StackId,
        property_name: str,
        *,
        services: Iterable[str] | None = None,
    ) -> set[str]:
        """Configuration types declaring ``property_name``.

        Searches the given services (all services of the stack by default)
        plus the stack-level properties.
        """
        info = self.get(stack)
        names = set(services) if services is not None else {s.name for s in info.services}
        candidates = [p for s in info.services if s.name in names for p in s.properties]
        candidates += info.properties
        return {p.config_type for p in candidates if p.name == property_name}

    def property_value_from_stack(
        self, stack: StackId, config_type: str, property_name: str
    ) -> str | None:
        """Default value the stack definition gives a property, if any."""
        info = self.get(stack)
        for prop in [p for s in info.services for p in s.properties] + info.properties:
            if prop.name == property_name and prop.config_type == config_type:
                return prop.value
        return None

    def property_owner_service(
        self, stack: StackId, config_type: str, property_name: str
    ) -> str | None:
        """Name of the first service declaring the property in ``config_type``."""
        for service in self.get(stack).services:
            for prop in service.properties:
                if prop.name == property_name and prop.config_type == config_type:
                    return service.name
        return None

    def properties_with_type(self, stack: StackId, property_type: str) -> list[PropertyInfo]:
        """Service and stack-level properties tagged with ``property_type`` (e.g. ``PASSWORD``)."""
        info = self.get(stack)
        every = [p for s in info.services for p in s.properties] + info.properties
        return [p for p in every if property_type in p.property_types]
