"""Cluster snapshot documents: a YAML/JSON picture of stacks, clusters and components.

A snapshot is loaded into the in-memory collaborators so the engine can be
driven from a file (CLI, fixtures). Example:

    stacks:
      - name: HDP
        version: "2.1"
        services:
          - name: HDFS
            config_dependencies: [hdfs-site]
            components: [{name: DATANODE, config_types: [hdfs-site]}]
    clusters:
      - cluster_id: c1
        stack: {name: HDP, version: "2.1"}
        hosts: [host1]
        records:
          - {config_type: hdfs-site, tag: v1, properties: {dfs.replication: "3"}}
        desired: {hdfs-site: v1}
    components:
      - cluster_id: c1
        hostname: host1
        service_name: HDFS
        component_name: DATANODE
        actual: {hdfs-site: {default_tag: v1}}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, ValidationError

from cluster_config.memory import ConfigGroup, InMemoryClusterState, InMemoryComponentState
from cluster_config.models import ActualState, AppliedConfig, ConfigurationRecord
from cluster_config.protocols import ClusterConfigLookupError
from cluster_config.stack import StackCatalog, StackInfo
from cluster_config.types import ComponentKey, StackId

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised when a snapshot document cannot be parsed or is inconsistent."""


class StackRef(BaseModel):
    name: str
    version: str

    def to_stack_id(self) -> StackId:
        return StackId(self.name, self.version)


class ClusterDocument(BaseModel):
    cluster_id: str
    stack: StackRef
    hosts: list[str] = []
    records: list[ConfigurationRecord] = []
    desired: dict[str, str] = {}
    config_groups: list[ConfigGroup] = []


class ComponentDocument(BaseModel):
    cluster_id: str
    hostname: str
    service_name: str
    component_name: str
    restart_required: bool = False
    actual: dict[str, AppliedConfig] | None = None

    def key(self) -> ComponentKey:
        return ComponentKey(self.cluster_id, self.hostname, self.service_name, self.component_name)


@dataclass(frozen=True)
class SnapshotState:
    """The three collaborators built from one snapshot."""

    cluster_state: InMemoryClusterState
    stack_metadata: StackCatalog
    component_state: InMemoryComponentState


class ClusterSnapshot(BaseModel):
    stacks: list[StackInfo] = []
    clusters: list[ClusterDocument] = []
    components: list[ComponentDocument] = []

    def build(self) -> SnapshotState:
        catalog = StackCatalog()
        clusters = InMemoryClusterState()
        components = InMemoryComponentState()

        try:
            for stack in self.stacks:
                catalog.register(stack)

            for doc in self.clusters:
                clusters.add_cluster(doc.cluster_id, doc.stack.to_stack_id())
                for host in doc.hosts:
                    clusters.add_host(doc.cluster_id, host)
                for record in doc.records:
                    clusters.add_record(doc.cluster_id, record)
                for config_type, tag in doc.desired.items():
                    if clusters.config_record(doc.cluster_id, config_type, tag) is None:
                        logger.warning(
                            "Cluster %s desires %s:%s which has no record",
                            doc.cluster_id,
                            config_type,
                            tag,
                        )
                    clusters.set_desired(doc.cluster_id, config_type, tag)
                for group in doc.config_groups:
                    clusters.add_config_group(doc.cluster_id, group)
        except (ValueError, ClusterConfigLookupError) as e:
            raise SnapshotError(str(e)) from e

        for doc in self.components:
            key = doc.key()
            if doc.actual is not None:
                components.set_actual_state(key, ActualState(configs=doc.actual))
            components.set_restart_required(key, doc.restart_required)

        return SnapshotState(
            cluster_state=clusters, stack_metadata=catalog, component_state=components
        )


def parse_snapshot(text: str, *, fmt: str = "yaml") -> ClusterSnapshot:
    """Parse a snapshot from YAML (the default) or JSON text."""
    try:
        data = json.loads(text) if fmt == "json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SnapshotError(f"Malformed {fmt} snapshot: {e}") from e
    try:
        return ClusterSnapshot.model_validate(data or {})
    except ValidationError as e:
        raise SnapshotError(f"Invalid snapshot: {e}") from e


def load_snapshot(path: Path) -> ClusterSnapshot:
    fmt = "json" if path.suffix == ".json" else "yaml"
    return parse_snapshot(path.read_text(), fmt=fmt)
