"""Property tests for tag resolution and staleness decisions."""

from hypothesis import given, settings
from hypothesis import strategies as st

from cluster_config.memory import ConfigGroup, InMemoryClusterState, InMemoryComponentState
from cluster_config.models import ActualState, AppliedConfig, ConfigurationRecord
from cluster_config.resolver import TagResolver
from cluster_config.stack import StackCatalog
from cluster_config.staleness import StalenessEvaluator
from cluster_config.types import ComponentKey
from tests.conftest import CLUSTER, HDP_21, sample_stack

from .strategies import effective_tag_sets, group_tag_maps, property_maps, version_tags

DATANODE = ComponentKey(CLUSTER, "host1", "HDFS", "DATANODE")
TAGS = ["v1", "v2", "v3", "g1", "g2", "g3"]


def _cluster(layers=None):
    """Cluster whose hdfs-site has a record for every tag in TAGS."""
    state = InMemoryClusterState()
    state.add_cluster(CLUSTER, HDP_21)
    state.add_host(CLUSTER, "host1")
    layers = layers or {}
    for tag in TAGS:
        state.add_record(
            CLUSTER,
            ConfigurationRecord(config_type="hdfs-site", tag=tag, properties=layers.get(tag, {})),
        )
    state.set_desired(CLUSTER, "hdfs-site", "v1")
    return state


def _add_groups(state, groups, order=None):
    for group_id in order or sorted(groups):
        state.add_config_group(
            CLUSTER,
            ConfigGroup(
                group_id=group_id, hosts={"host1"}, configurations={"hdfs-site": groups[group_id]}
            ),
        )


def _evaluator(state, component_state):
    catalog = StackCatalog()
    catalog.register(sample_stack())
    return StalenessEvaluator(state, catalog, component_state)


@given(tag_set=effective_tag_sets)
def test_applied_config_round_trips_tag_values(tag_set):
    applied = AppliedConfig(default_tag=tag_set.cluster_tag, group_overrides=tag_set.group_tags)
    assert applied.to_tag_set().tag_values() == tag_set.tag_values()
    assert applied.to_tag_set().slots() == tag_set.slots()


@settings(max_examples=50)
@given(groups=group_tag_maps)
def test_applying_desired_tags_is_never_stale(groups):
    state = _cluster()
    _add_groups(state, groups)
    desired = TagResolver(state).resolve_desired_tags(CLUSTER, "host1")["hdfs-site"]

    component_state = InMemoryComponentState()
    component_state.set_actual_state(
        DATANODE,
        ActualState(
            configs={
                "hdfs-site": AppliedConfig(
                    default_tag=desired.cluster_tag, group_overrides=desired.group_tags
                )
            }
        ),
    )
    assert not _evaluator(state, component_state).is_stale(DATANODE)


@settings(max_examples=50)
@given(groups=group_tag_maps, applied_tag=version_tags)
def test_restart_required_is_always_stale(groups, applied_tag):
    state = _cluster()
    _add_groups(state, groups)
    component_state = InMemoryComponentState()
    component_state.set_actual_state(
        DATANODE, ActualState(configs={"hdfs-site": AppliedConfig(default_tag=applied_tag)})
    )
    component_state.set_restart_required(DATANODE, True)
    assert _evaluator(state, component_state).is_stale(DATANODE)


@settings(max_examples=50)
@given(
    groups=group_tag_maps,
    layers=st.fixed_dictionaries({tag: property_maps for tag in TAGS}),
    data=st.data(),
)
def test_effective_properties_ignore_group_registration_order(groups, layers, data):
    order = data.draw(st.permutations(sorted(groups)))

    ordered = _cluster(layers)
    _add_groups(ordered, groups)
    shuffled = _cluster(layers)
    _add_groups(shuffled, groups, order=order)

    def effective(state):
        resolver = TagResolver(state)
        tags = resolver.resolve_desired_tags(CLUSTER, "host1")
        return resolver.effective_config_properties(CLUSTER, tags)

    assert effective(ordered) == effective(shuffled)
