"""In-memory cluster and component state, implementing the collaborator protocols."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from pydantic import BaseModel

from cluster_config.models import ActualState
from cluster_config.protocols import UnknownClusterError, UnknownHostError

if TYPE_CHECKING:
    from cluster_config.models import AppliedConfig, ConfigurationRecord
    from cluster_config.types import ComponentKey, StackId


class ConfigGroup(BaseModel):
    """Hosts sharing a set of configuration overrides (type → tag)."""

    group_id: int
    name: str = ""
    hosts: set[str] = set()
    configurations: dict[str, str] = {}


class _Cluster:
    def __init__(self, stack: StackId) -> None:
        self.stack = stack
        self.hosts: set[str] = set()
        self.desired: dict[str, str] = {}
        self.records: dict[tuple[str, str], ConfigurationRecord] = {}
        self.groups: dict[int, ConfigGroup] = {}


class InMemoryClusterState:
    """Clusters, their configuration records, desired tags and config groups."""

    def __init__(self) -> None:
        self._clusters: dict[str, _Cluster] = {}
        self._lock = threading.RLock()

    def add_cluster(self, cluster_id: str, stack: StackId) -> None:
        with self._lock:
            if cluster_id in self._clusters:
                raise ValueError(f"Cluster '{cluster_id}' already exists")
            self._clusters[cluster_id] = _Cluster(stack)

    def add_host(self, cluster_id: str, hostname: str) -> None:
        with self._lock:
            self._cluster(cluster_id).hosts.add(hostname)

    def add_record(self, cluster_id: str, record: ConfigurationRecord) -> None:
        """Store a record; a (type, tag) pair can never be re-used."""
        with self._lock:
            cluster = self._cluster(cluster_id)
            key = (record.config_type, record.tag)
            if key in cluster.records:
                raise ValueError(
                    f"Config '{record.config_type}' already has a record tagged '{record.tag}'"
                )
            cluster.records[key] = record

    def remove_record(self, cluster_id: str, config_type: str, tag: str) -> None:
        with self._lock:
            self._cluster(cluster_id).records.pop((config_type, tag), None)

    def set_desired(self, cluster_id: str, config_type: str, tag: str) -> None:
        with self._lock:
            self._cluster(cluster_id).desired[config_type] = tag

    def add_config_group(self, cluster_id: str, group: ConfigGroup) -> None:
        with self._lock:
            cluster = self._cluster(cluster_id)
            unknown = group.hosts - cluster.hosts
            if unknown:
                raise UnknownHostError(sorted(unknown)[0], cluster_id)
            cluster.groups[group.group_id] = group

    # ClusterState

    def desired_state(self, cluster_id: str) -> dict[str, str]:
        with self._lock:
            return dict(self._cluster(cluster_id).desired)

    def config_record(
        self, cluster_id: str, config_type: str, tag: str
    ) -> ConfigurationRecord | None:
        with self._lock:
            return self._cluster(cluster_id).records.get((config_type, tag))

    def config_group_overrides(self, cluster_id: str, hostname: str) -> dict[str, dict[int, str]]:
        with self._lock:
            cluster = self._cluster(cluster_id)
            if hostname not in cluster.hosts:
                raise UnknownHostError(hostname, cluster_id)
            overrides: dict[str, dict[int, str]] = {}
            for group in cluster.groups.values():
                if hostname not in group.hosts:
                    continue
                for config_type, tag in group.configurations.items():
                    overrides.setdefault(config_type, {})[group.group_id] = tag
            return overrides

    def desired_stack(self, cluster_id: str) -> StackId:
        with self._lock:
            return self._cluster(cluster_id).stack

    def _cluster(self, cluster_id: str) -> _Cluster:
        cluster = self._clusters.get(cluster_id)
        if cluster is None:
            raise UnknownClusterError(cluster_id)
        return cluster


class InMemoryComponentState:
    """Applied configuration and restart flags per component instance."""

    def __init__(self) -> None:
        self._actual: dict[ComponentKey, ActualState] = {}
        self._restart: dict[ComponentKey, bool] = {}
        self._lock = threading.Lock()

    def set_actual_state(self, component: ComponentKey, state: ActualState) -> None:
        with self._lock:
            self._actual[component] = state

    def record_applied(
        self, component: ComponentKey, config_type: str, applied: AppliedConfig
    ) -> None:
        with self._lock:
            current = self._actual.get(component) or ActualState()
            configs = {**current.configs, config_type: applied}
            self._actual[component] = ActualState(configs=configs)

    def set_restart_required(self, component: ComponentKey, required: bool) -> None:
        with self._lock:
            self._restart[component] = required

    # ComponentState

    def actual_state(self, component: ComponentKey) -> ActualState | None:
        with self._lock:
            return self._actual.get(component)

    def restart_required(self, component: ComponentKey) -> bool:
        with self._lock:
            return self._restart.get(component, False)
