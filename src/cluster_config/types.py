"""Reserved names and identity types shared across cluster_config."""

from dataclasses import dataclass
from enum import StrEnum

# Reserved slot holding the cluster-wide tag inside an EffectiveTagSet
CLUSTER_DEFAULT_TAG = "tag"

# Override keys carrying this prefix retract the inherited property
DELETED_PREFIX = "DELETED_"

# Deprecated global namespace, compared key-by-key instead of tag-by-tag
GLOBAL_CONFIG_TYPE = "global"

# Stack property files are named "<config type>.xml"
SERVICE_CONFIG_FILE_SUFFIX = ".xml"

ConfigType = str
VersionTag = str
GroupId = int


class StaleReason(StrEnum):
    RESTART_REQUIRED = "restart_required"
    NOT_DEPLOYED = "not_deployed"
    UP_TO_DATE = "up_to_date"
    NOT_REQUIRED = "not_required"
    CONFIG_MISSING = "config_missing"
    COMPONENT_CONFIG_MISSING = "component_config_missing"
    LEGACY_KEYS_PENDING = "legacy_keys_pending"
    LEGACY_KEYS_CHANGED = "legacy_keys_changed"
    LEGACY_KEYS_UNRELATED = "legacy_keys_unrelated"
    TAG_MISMATCH = "tag_mismatch"


@dataclass(frozen=True)
class StackId:
    """A stack definition identified by name and version (e.g. HDP 2.1)."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}-{self.version}"


@dataclass(frozen=True)
class ComponentKey:
    """Stable identity of one component instance running on a host."""

    cluster_id: str
    hostname: str
    service_name: str
    component_name: str

    def __str__(self) -> str:
        return f"{self.cluster_id}/{self.hostname}/{self.service_name}/{self.component_name}"
