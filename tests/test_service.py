"""Tests for the ConfigService facade and its cache wiring."""

import pytest
from whenever import Instant, TimeDelta

from cluster_config.cache import CachePolicy
from cluster_config.memory import ConfigGroup
from cluster_config.models import ActualState, AppliedConfig, ConfigurationRecord
from cluster_config.service import ConfigService
from cluster_config.stack import PropertyInfo, ServiceInfo, StackCatalog, StackInfo
from cluster_config.types import ComponentKey
from tests.conftest import CLUSTER


class Clock:
    def __init__(self) -> None:
        self.now = Instant.from_timestamp(1_700_000_000)

    def __call__(self) -> Instant:
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def service(cluster_state, stack_catalog, component_state, clock):
    return ConfigService(
        cluster_state,
        stack_catalog,
        component_state,
        policy=CachePolicy(ttl_seconds=60),
        clock=clock,
    )


def _applied(tag):
    return ActualState(configs={"hdfs-site": AppliedConfig(default_tag=tag)})


def test_effective_properties_and_attributes(service, cluster_state):
    cluster_state.add_record(
        CLUSTER,
        ConfigurationRecord(config_type="hdfs-site", tag="g1", properties={"dfs.replication": "1"}),
    )
    cluster_state.add_config_group(
        CLUSTER, ConfigGroup(group_id=1, hosts={"host1"}, configurations={"hdfs-site": "g1"})
    )
    assert service.effective_properties(CLUSTER, "host1")["hdfs-site"]["dfs.replication"] == "1"
    assert service.effective_attributes(CLUSTER, "host1")["hdfs-site"] == {"final": {}}
    assert service.desired_tags(CLUSTER, "host1")["hdfs-site"].group_tags == {1: "g1"}


def test_explain_properties(service):
    explanations = {e.config_type: e for e in service.explain_properties(CLUSTER, "host2")}
    assert explanations["zoo.cfg"].effective() == {"tickTime": "2000"}


class TestCachedStaleness:
    def test_result_is_cached_until_invalidated(self, service, component_state, datanode):
        component_state.set_actual_state(datanode, _applied("v1"))
        assert service.is_stale(datanode) is False

        component_state.set_actual_state(datanode, _applied("v2"))
        assert service.is_stale(datanode) is False

        service.invalidate(datanode)
        assert service.is_stale(datanode) is True

    def test_invalidate_host(self, service, component_state, datanode):
        component_state.set_actual_state(datanode, _applied("v1"))
        service.is_stale(datanode)
        component_state.set_restart_required(datanode, True)
        service.invalidate_host("host1")
        assert service.is_stale(datanode) is True

    def test_ttl_bounds_missed_invalidation(self, service, component_state, datanode, clock):
        component_state.set_actual_state(datanode, _applied("v1"))
        service.is_stale(datanode)
        component_state.set_actual_state(datanode, _applied("v2"))
        clock.now = clock.now + TimeDelta(seconds=60)
        assert service.is_stale(datanode) is True

    def test_invalidate_all(self, service, component_state, datanode):
        other = ComponentKey(CLUSTER, "host2", "HDFS", "DATANODE")
        for key in (datanode, other):
            component_state.set_actual_state(key, _applied("v1"))
            service.is_stale(key)
        assert len(service.cache) == 2
        service.invalidate_all()
        assert len(service.cache) == 0

    def test_explain_staleness_bypasses_cache(self, service, component_state, datanode):
        component_state.set_actual_state(datanode, _applied("v1"))
        service.is_stale(datanode)
        component_state.set_actual_state(datanode, _applied("v2"))
        assert service.explain_staleness(datanode).stale

    def test_lookup_errors_propagate(self, service, component_state):
        ghost = ComponentKey(CLUSTER, "host1", "HDFS", "GHOST")
        component_state.set_actual_state(ghost, _applied("v1"))
        with pytest.raises(LookupError):
            service.is_stale(ghost)
        assert ghost not in service.cache


class TestPropertyValuesWithType:
    def test_collects_stack_level_password_values(self, service, cluster_state):
        cluster_state.add_record(
            CLUSTER,
            ConfigurationRecord(
                config_type="core-site",
                tag="v1",
                properties={"hadoop.security.auth_to_local": "RULE:[1:$1]"},
            ),
        )
        cluster_state.set_desired(CLUSTER, "core-site", "v1")
        assert service.property_values_with_type(CLUSTER, "PASSWORD") == {"RULE:[1:$1]"}

    def test_collects_service_level_values(self, cluster_state, component_state):
        catalog = StackCatalog()
        catalog.register(
            StackInfo(
                name="HDP",
                version="2.1",
                services=[
                    ServiceInfo(
                        name="HDFS",
                        properties=[
                            PropertyInfo(
                                name="dfs.replication",
                                filename="hdfs-site.xml",
                                property_types=["PASSWORD"],
                            ),
                            PropertyInfo(
                                name="dfs.secret",
                                filename="hdfs-site.xml",
                                property_types=["PASSWORD"],
                            ),
                        ],
                    )
                ],
            )
        )
        service = ConfigService(cluster_state, catalog, component_state)
        # dfs.secret is not in the desired record and is skipped
        assert service.property_values_with_type(CLUSTER, "PASSWORD") == {"3"}

    def test_missing_desired_record_yields_nothing(self, service):
        assert service.property_values_with_type(CLUSTER, "PASSWORD") == set()

    def test_unknown_cluster(self, service):
        with pytest.raises(LookupError):
            service.property_values_with_type("c404", "PASSWORD")
