"""Staleness evaluation: decide whether applied configuration has fallen behind.

A component is stale when:
- its restart-required flag is set, or
- for some desired configuration type:
  - the type was never applied and the service (or the component) needs it
  - the applied tags differ from the desired tags and the service (or the
    component) depends on the type

The legacy ``global`` type is compared key-by-key instead: only keys the
service declares can make it stale.

If the host belongs to a config group carrying a record for the type, the
cluster-level tag is ignored on both sides; group configuration governs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cluster_config.explain import StalenessReport, TypeVerdict
from cluster_config.merge import changed_keys, merge_key_names
from cluster_config.protocols import UnknownComponentError
from cluster_config.resolver import TagResolver
from cluster_config.types import GLOBAL_CONFIG_TYPE, StaleReason

if TYPE_CHECKING:
    from cluster_config.models import AppliedConfig, EffectiveTagSet
    from cluster_config.protocols import ClusterState, ComponentState, StackMetadata
    from cluster_config.types import ComponentKey, StackId

logger = logging.getLogger(__name__)


class StalenessEvaluator:
    """Compares desired against applied configuration for one component."""

    def __init__(
        self,
        cluster_state: ClusterState,
        stack_metadata: StackMetadata,
        component_state: ComponentState,
        *,
        resolver: TagResolver | None = None,
    ) -> None:
        self._cluster_state = cluster_state
        self._stack_metadata = stack_metadata
        self._component_state = component_state
        self._resolver = resolver or TagResolver(cluster_state)

    def is_stale(self, component: ComponentKey) -> bool:
        return self.evaluate(component).stale

    def evaluate(self, component: ComponentKey) -> StalenessReport:
        if self._component_state.restart_required(component):
            return StalenessReport(
                component=component, stale=True, reason=StaleReason.RESTART_REQUIRED
            )

        actual = self._component_state.actual_state(component)
        if actual is None or actual.is_empty():
            return StalenessReport(
                component=component, stale=False, reason=StaleReason.NOT_DEPLOYED
            )

        stack = self._cluster_state.desired_stack(component.cluster_id)
        if not self._stack_metadata.has_component(
            stack, component.service_name, component.component_name
        ):
            raise UnknownComponentError(component.component_name, component.service_name)

        desired = self._resolver.resolve_desired_tags(component.cluster_id, component.hostname)

        verdicts: list[TypeVerdict] = []
        for config_type, tags in desired.items():
            applied = actual.configs.get(config_type)
            if applied is None:
                verdict = self._judge_unapplied(component, stack, config_type, tags)
            else:
                verdict = self._judge_applied(component, stack, config_type, tags, applied)
            verdicts.append(verdict)
            logger.debug(
                "%s %s: %s (stale=%s)", component, config_type, verdict.reason, verdict.stale
            )
            if verdict.stale:
                return StalenessReport(
                    component=component, stale=True, reason=verdict.reason, verdicts=verdicts
                )

        return StalenessReport(
            component=component, stale=False, reason=StaleReason.UP_TO_DATE, verdicts=verdicts
        )

    def _judge_unapplied(
        self,
        component: ComponentKey,
        stack: StackId,
        config_type: str,
        tags: EffectiveTagSet,
    ) -> TypeVerdict:
        """Desired type was never applied to the component."""
        service = component.service_name

        if not self._stack_metadata.depends_on(stack, service, config_type):
            stale = self._stack_metadata.depends_on(
                stack, service, config_type, component=component.component_name
            )
            reason = StaleReason.COMPONENT_CONFIG_MISSING if stale else StaleReason.NOT_REQUIRED
            return TypeVerdict(config_type=config_type, stale=stale, reason=reason)

        if config_type == GLOBAL_CONFIG_TYPE:
            cluster_id = component.cluster_id
            keys = merge_key_names(
                self._cluster_state.config_record(cluster_id, config_type, tag)
                for tag in tags.all_tags()
            )
            stale = self._stack_metadata.depends_on_any_key(
                stack, service, config_type, keys
            ) or not self._stack_metadata.any_service_declares_property(stack, config_type)
            reason = StaleReason.LEGACY_KEYS_PENDING if stale else StaleReason.LEGACY_KEYS_UNRELATED
            return TypeVerdict(
                config_type=config_type, stale=stale, reason=reason, keys=sorted(keys)
            )

        return TypeVerdict(config_type=config_type, stale=True, reason=StaleReason.CONFIG_MISSING)

    def _judge_applied(
        self,
        component: ComponentKey,
        stack: StackId,
        config_type: str,
        tags: EffectiveTagSet,
        applied: AppliedConfig,
    ) -> TypeVerdict:
        """Desired type was applied; compare the applied tags."""
        cluster_id = component.cluster_id
        service = component.service_name
        actual_tags = applied.to_tag_set()

        group_specific = self._resolver.has_group_specific_configs(
            cluster_id, component.hostname, config_type
        )
        include_cluster = not group_specific
        if tags.tag_values(include_cluster=include_cluster) == actual_tags.tag_values(
            include_cluster=include_cluster
        ):
            return TypeVerdict(config_type=config_type, stale=False, reason=StaleReason.UP_TO_DATE)

        if config_type == GLOBAL_CONFIG_TYPE:
            changed = changed_keys(
                self._resolver.effective_properties_for(cluster_id, config_type, tags),
                self._resolver.effective_properties_for(cluster_id, config_type, actual_tags),
            )
            stale = bool(changed) and self._stack_metadata.depends_on_any_key(
                stack, service, config_type, changed
            )
            reason = StaleReason.LEGACY_KEYS_CHANGED if stale else StaleReason.LEGACY_KEYS_UNRELATED
            return TypeVerdict(
                config_type=config_type, stale=stale, reason=reason, keys=sorted(changed)
            )

        stale = self._stack_metadata.depends_on(
            stack, service, config_type
        ) or self._stack_metadata.depends_on(
            stack, service, config_type, component=component.component_name
        )
        reason = StaleReason.TAG_MISMATCH if stale else StaleReason.NOT_REQUIRED
        return TypeVerdict(config_type=config_type, stale=stale, reason=reason)
