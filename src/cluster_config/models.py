"""Configuration data models: records, effective tag sets, applied state."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from cluster_config.types import CLUSTER_DEFAULT_TAG


class ConfigurationRecord(BaseModel):
    """One immutable snapshot of a configuration type's values.

    Identified by (config_type, tag). ``attributes`` maps an attribute name
    (e.g. ``final``) to property name → attribute value.
    """

    model_config = ConfigDict(frozen=True)

    config_type: str
    tag: str
    properties: dict[str, str] = {}
    attributes: dict[str, dict[str, str]] = {}


class EffectiveTagSet(BaseModel):
    """Resolved tags for one configuration type on one host.

    The cluster tag occupies the reserved ``tag`` slot; every config group
    override occupies a slot keyed by its group id.
    """

    cluster_tag: str | None = None
    group_tags: dict[int, str] = {}

    def slots(self) -> dict[str, str]:
        slots: dict[str, str] = {}
        if self.cluster_tag is not None:
            slots[CLUSTER_DEFAULT_TAG] = self.cluster_tag
        for group_id, tag in self.overrides():
            slots[str(group_id)] = tag
        return slots

    def overrides(self) -> list[tuple[int, str]]:
        """Group overrides in merge order (ascending group id)."""
        return sorted(self.group_tags.items())

    def tag_values(self, *, include_cluster: bool = True) -> set[str]:
        values = set(self.group_tags.values())
        if include_cluster and self.cluster_tag is not None:
            values.add(self.cluster_tag)
        return values

    def all_tags(self) -> list[str]:
        tags = [self.cluster_tag] if self.cluster_tag is not None else []
        return tags + [tag for _, tag in self.overrides()]


class AppliedConfig(BaseModel):
    """Tags a component instance was last deployed with for one type."""

    default_tag: str | None = None
    group_overrides: dict[int, str] = {}

    def to_tag_set(self) -> EffectiveTagSet:
        return EffectiveTagSet(cluster_tag=self.default_tag, group_tags=dict(self.group_overrides))


class ActualState(BaseModel):
    configs: dict[str, AppliedConfig] = {}

    def is_empty(self) -> bool:
        return not self.configs


class PropertyTrace(BaseModel):
    """Where an effective property value came from."""

    key: str
    value: str | None
    source: str
    deleted: bool = False
    chain: list[str]
