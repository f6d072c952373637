"""Pytest configuration and fixtures for the cluster-config tests.

The sample stack mirrors a small Hadoop-style deployment:

- HDFS depends on hdfs-site, core-site and the legacy global type, and
  declares the global keys hdfs_log_dir_prefix / namenode_heapsize.
- ZOOKEEPER depends on zoo.cfg and global (key zk_user).
- GANGLIA has no service-level dependencies; its monitor component reads
  ganglia-env directly.
"""

import pytest

from cluster_config.memory import InMemoryClusterState, InMemoryComponentState
from cluster_config.models import ConfigurationRecord
from cluster_config.resolver import TagResolver
from cluster_config.stack import (
    ComponentInfo,
    PropertyInfo,
    ServiceInfo,
    StackCatalog,
    StackInfo,
)
from cluster_config.staleness import StalenessEvaluator
from cluster_config.types import ComponentKey, StackId

HDP_21 = StackId("HDP", "2.1")
CLUSTER = "c1"


def sample_stack() -> StackInfo:
    return StackInfo(
        name="HDP",
        version="2.1",
        services=[
            ServiceInfo(
                name="HDFS",
                config_dependencies=["hdfs-site", "core-site", "global"],
                properties=[
                    PropertyInfo(name="dfs.replication", filename="hdfs-site.xml", value="3"),
                    PropertyInfo(name="fs.defaultFS", filename="core-site.xml"),
                    PropertyInfo(
                        name="hdfs_log_dir_prefix", filename="global.xml", value="/var/log/hadoop"
                    ),
                    PropertyInfo(name="namenode_heapsize", filename="global.xml", value="1024m"),
                ],
                components=[
                    ComponentInfo(name="DATANODE", config_types=["hdfs-site"]),
                    ComponentInfo(name="NAMENODE", config_types=["hdfs-site", "core-site"]),
                ],
            ),
            ServiceInfo(
                name="ZOOKEEPER",
                config_dependencies=["zoo.cfg", "global"],
                properties=[
                    PropertyInfo(name="tickTime", filename="zoo.cfg.xml", value="2000"),
                    PropertyInfo(name="zk_user", filename="global.xml", value="zookeeper"),
                ],
                components=[ComponentInfo(name="ZOOKEEPER_SERVER", config_types=["zoo.cfg"])],
            ),
            ServiceInfo(
                name="GANGLIA",
                components=[ComponentInfo(name="GANGLIA_MONITOR", config_types=["ganglia-env"])],
            ),
        ],
        properties=[
            PropertyInfo(
                name="hadoop.security.auth_to_local",
                filename="core-site.xml",
                property_types=["PASSWORD"],
            ),
        ],
    )


@pytest.fixture
def stack_catalog() -> StackCatalog:
    catalog = StackCatalog()
    catalog.register(sample_stack())
    return catalog


@pytest.fixture
def cluster_state() -> InMemoryClusterState:
    state = InMemoryClusterState()
    state.add_cluster(CLUSTER, HDP_21)
    for host in ("host1", "host2"):
        state.add_host(CLUSTER, host)

    for record in (
        ConfigurationRecord(
            config_type="hdfs-site",
            tag="v1",
            properties={"dfs.replication": "3", "dfs.blocksize": "134217728"},
            attributes={"final": {"dfs.replication": "true"}},
        ),
        ConfigurationRecord(
            config_type="hdfs-site", tag="v2", properties={"dfs.replication": "2"}
        ),
        ConfigurationRecord(
            config_type="global",
            tag="v1",
            properties={
                "hdfs_log_dir_prefix": "/var/log/hadoop",
                "zk_user": "zookeeper",
                "unrelated_key": "x",
            },
        ),
        ConfigurationRecord(config_type="zoo.cfg", tag="v1", properties={"tickTime": "2000"}),
    ):
        state.add_record(CLUSTER, record)

    state.set_desired(CLUSTER, "hdfs-site", "v1")
    state.set_desired(CLUSTER, "zoo.cfg", "v1")
    return state


@pytest.fixture
def component_state() -> InMemoryComponentState:
    return InMemoryComponentState()


@pytest.fixture
def resolver(cluster_state) -> TagResolver:
    return TagResolver(cluster_state)


@pytest.fixture
def evaluator(cluster_state, stack_catalog, component_state) -> StalenessEvaluator:
    return StalenessEvaluator(cluster_state, stack_catalog, component_state)


@pytest.fixture
def datanode() -> ComponentKey:
    return ComponentKey(CLUSTER, "host1", "HDFS", "DATANODE")


SNAPSHOT_YAML = """\
stacks:
  - name: HDP
    version: "2.1"
    services:
      - name: HDFS
        config_dependencies: [hdfs-site, global]
        properties:
          - {name: hdfs_log_dir_prefix, filename: global.xml}
        components:
          - {name: DATANODE, config_types: [hdfs-site]}
clusters:
  - cluster_id: c1
    stack: {name: HDP, version: "2.1"}
    hosts: [host1, host2]
    records:
      - config_type: hdfs-site
        tag: v1
        properties: {dfs.replication: "3", dfs.blocksize: "134217728"}
        attributes: {final: {dfs.replication: "true"}}
      - config_type: hdfs-site
        tag: g1
        properties: {dfs.replication: "1", DELETED_dfs.blocksize: ""}
    desired: {hdfs-site: v1}
    config_groups:
      - group_id: 1
        name: small-disks
        hosts: [host1]
        configurations: {hdfs-site: g1}
components:
  - cluster_id: c1
    hostname: host1
    service_name: HDFS
    component_name: DATANODE
    actual:
      hdfs-site: {default_tag: v1, group_overrides: {1: g1}}
  - cluster_id: c1
    hostname: host2
    service_name: HDFS
    component_name: DATANODE
    actual:
      hdfs-site: {default_tag: v0}
"""


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "snapshot.yaml"
    path.write_text(SNAPSHOT_YAML)
    return path
