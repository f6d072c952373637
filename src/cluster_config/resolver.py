"""Tag resolution: which configuration versions apply to a host.

Rules:
1. Start from the cluster desired config for every type.
2. Layer config-group overrides for the host on top of it.

Host-component config mappings are never consulted.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cluster_config.merge import (
    Attributes,
    clone_attributes,
    merge_properties,
    override_attributes,
    trace_layers,
)
from cluster_config.models import EffectiveTagSet

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from cluster_config.models import PropertyTrace
    from cluster_config.protocols import ClusterState
    from cluster_config.stack import PropertyInfo

logger = logging.getLogger(__name__)

DesiredTags = dict[str, EffectiveTagSet]


class TagResolver:
    """Resolves effective tags and effective values for a cluster/host pair."""

    def __init__(self, cluster_state: ClusterState) -> None:
        self._cluster_state = cluster_state

    def resolve_desired_tags(self, cluster_id: str, hostname: str) -> DesiredTags:
        """Return type → EffectiveTagSet, ordered by type name.

        Types whose cluster tag names a missing record are skipped.
        """
        desired = self._cluster_state.desired_state(cluster_id)
        host_overrides = self._cluster_state.config_group_overrides(cluster_id, hostname)

        resolved: DesiredTags = {}
        for config_type in sorted(desired):
            tag = desired[config_type]
            record = self._cluster_state.config_record(cluster_id, config_type, tag)
            if record is None:
                logger.debug(
                    "Skipping %s: desired tag %s has no record in cluster %s",
                    config_type,
                    tag,
                    cluster_id,
                )
                continue
            resolved[config_type] = EffectiveTagSet(
                cluster_tag=record.tag,
                group_tags=dict(host_overrides.get(config_type, {})),
            )
        return resolved

    def has_group_specific_configs(self, cluster_id: str, hostname: str, config_type: str) -> bool:
        """True when a config group the host belongs to has a record for the type."""
        overrides = self._cluster_state.config_group_overrides(cluster_id, hostname)
        return any(
            self._cluster_state.config_record(cluster_id, config_type, tag) is not None
            for tag in overrides.get(config_type, {}).values()
        )

    def effective_config_properties(
        self, cluster_id: str, tags: Mapping[str, EffectiveTagSet]
    ) -> dict[str, dict[str, str]]:
        """Merge every type's override layers into one property map."""
        return {
            config_type: self.effective_properties_for(cluster_id, config_type, tag_set)
            for config_type, tag_set in tags.items()
        }

    def effective_properties_for(
        self, cluster_id: str, config_type: str, tag_set: EffectiveTagSet
    ) -> dict[str, str]:
        properties: dict[str, str] = {}
        if tag_set.cluster_tag is not None:
            record = self._cluster_state.config_record(cluster_id, config_type, tag_set.cluster_tag)
            if record is not None:
                properties = dict(record.properties)
        for _, tag in tag_set.overrides():
            override = self._cluster_state.config_record(cluster_id, config_type, tag)
            if override is not None:
                properties = merge_properties(properties, override.properties)
        return properties

    def effective_config_attributes(
        self, cluster_id: str, tags: Mapping[str, EffectiveTagSet]
    ) -> dict[str, Attributes]:
        """Merge every type's attribute layers; types without a cluster record are omitted."""
        attributes: dict[str, Attributes] = {}
        for config_type, tag_set in tags.items():
            if tag_set.cluster_tag is None:
                continue
            record = self._cluster_state.config_record(cluster_id, config_type, tag_set.cluster_tag)
            if record is None:
                continue
            merged = clone_attributes(record.attributes, None)
            for _, tag in tag_set.overrides():
                override = self._cluster_state.config_record(cluster_id, config_type, tag)
                merged = override_attributes(override, merged)
            attributes[config_type] = merged
        return attributes

    def trace_effective_properties(
        self, cluster_id: str, tags: Mapping[str, EffectiveTagSet]
    ) -> dict[str, list[PropertyTrace]]:
        """Per type, the provenance of every effective or retracted property."""
        traces: dict[str, list[PropertyTrace]] = {}
        for config_type, tag_set in tags.items():
            layers: list[tuple[str, dict[str, str]]] = []
            if tag_set.cluster_tag is not None:
                record = self._cluster_state.config_record(
                    cluster_id, config_type, tag_set.cluster_tag
                )
                if record is not None:
                    layers.append((f"cluster:{record.tag}", record.properties))
            for group_id, tag in tag_set.overrides():
                override = self._cluster_state.config_record(cluster_id, config_type, tag)
                if override is not None:
                    layers.append((f"group:{group_id}:{tag}", override.properties))
            traces[config_type] = trace_layers(layers)
        return traces

    def desired_property_values(
        self, cluster_id: str, properties: Iterable[PropertyInfo]
    ) -> set[str]:
        """Cluster-level desired values of stack-declared ``properties``.

        Properties whose type has no desired record, or whose record lacks
        the key, are skipped.
        """
        desired = self._cluster_state.desired_state(cluster_id)
        values: set[str] = set()
        for prop in properties:
            tag = desired.get(prop.config_type)
            record = (
                self._cluster_state.config_record(cluster_id, prop.config_type, tag)
                if tag is not None
                else None
            )
            if record is None or prop.name not in record.properties:
                logger.debug("No desired value for %s/%s", prop.config_type, prop.name)
                continue
            values.add(record.properties[prop.name])
        return values
