"""ConfigService: the single entry point wiring resolver, evaluator and cache.

Construct one per process with the three collaborators and a cache policy:

    service = ConfigService(cluster_state, stack_metadata, component_state,
                            policy=ClusterConfigSettings().cache_policy())
    service.is_stale(ComponentKey("c1", "host1", "HDFS", "DATANODE"))

Callers must invalidate whenever applied state, restart flags or config
group membership change for a host; the TTL only bounds how long a missed
invalidation can go unnoticed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from whenever import Instant

from cluster_config.cache import CachePolicy, StaleResultCache
from cluster_config.explain import PropertyExplanation
from cluster_config.resolver import TagResolver
from cluster_config.staleness import StalenessEvaluator

if TYPE_CHECKING:
    from collections.abc import Callable

    from cluster_config.explain import StalenessReport
    from cluster_config.merge import Attributes
    from cluster_config.protocols import ClusterState, ComponentState, StackMetadata
    from cluster_config.resolver import DesiredTags
    from cluster_config.types import ComponentKey


class ConfigService:
    """Resolves effective configuration and answers staleness queries."""

    def __init__(
        self,
        cluster_state: ClusterState,
        stack_metadata: StackMetadata,
        component_state: ComponentState,
        *,
        policy: CachePolicy | None = None,
        clock: Callable[[], Instant] | None = None,
    ) -> None:
        self._cluster_state = cluster_state
        self._stack_metadata = stack_metadata
        self._resolver = TagResolver(cluster_state)
        self._evaluator = StalenessEvaluator(
            cluster_state, stack_metadata, component_state, resolver=self._resolver
        )
        self._cache = StaleResultCache(
            self._evaluator.is_stale, policy or CachePolicy(), clock=clock or Instant.now
        )

    @property
    def resolver(self) -> TagResolver:
        return self._resolver

    @property
    def cache(self) -> StaleResultCache:
        return self._cache

    def desired_tags(self, cluster_id: str, hostname: str) -> DesiredTags:
        return self._resolver.resolve_desired_tags(cluster_id, hostname)

    def effective_properties(self, cluster_id: str, hostname: str) -> dict[str, dict[str, str]]:
        tags = self.desired_tags(cluster_id, hostname)
        return self._resolver.effective_config_properties(cluster_id, tags)

    def effective_attributes(self, cluster_id: str, hostname: str) -> dict[str, Attributes]:
        tags = self.desired_tags(cluster_id, hostname)
        return self._resolver.effective_config_attributes(cluster_id, tags)

    def explain_properties(self, cluster_id: str, hostname: str) -> list[PropertyExplanation]:
        tags = self.desired_tags(cluster_id, hostname)
        traces = self._resolver.trace_effective_properties(cluster_id, tags)
        return [
            PropertyExplanation(config_type=config_type, traces=config_traces)
            for config_type, config_traces in traces.items()
        ]

    def property_values_with_type(self, cluster_id: str, property_type: str) -> set[str]:
        """Desired values of every property the stack tags with ``property_type``.

        Used to collect e.g. PASSWORD values for masking.
        """
        stack = self._cluster_state.desired_stack(cluster_id)
        typed = self._stack_metadata.properties_with_type(stack, property_type)
        return self._resolver.desired_property_values(cluster_id, typed)

    def is_stale(self, component: ComponentKey) -> bool:
        """Cached staleness decision for ``component``."""
        return self._cache.get(component)

    def explain_staleness(self, component: ComponentKey) -> StalenessReport:
        """Uncached staleness decision with the verdicts behind it."""
        return self._evaluator.evaluate(component)

    def invalidate(self, component: ComponentKey) -> None:
        self._cache.invalidate(component)

    def invalidate_host(self, hostname: str) -> None:
        self._cache.invalidate_host(hostname)

    def invalidate_all(self) -> None:
        self._cache.invalidate_all()
