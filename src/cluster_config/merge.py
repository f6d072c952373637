"""Property and attribute merging across override layers.

Layering is strictly outward: the cluster record is the base, each config
group override is applied on top of the result of the previous layer.

Merge policy:
- a plain override key inserts or replaces the property
- an override key prefixed with ``DELETED_`` retracts the property
- attribute flags of a property an override touches survive only if the
  override redeclares them

Every function returns a new mapping; inputs are never mutated and ``None``
is treated as an empty mapping.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from cluster_config.models import PropertyTrace
from cluster_config.types import DELETED_PREFIX

if TYPE_CHECKING:
    from cluster_config.models import ConfigurationRecord

Attributes = dict[str, dict[str, str]]


def is_deletion_marker(key: str) -> bool:
    return key.startswith(DELETED_PREFIX)


def strip_deletion_marker(key: str) -> str:
    return key[len(DELETED_PREFIX) :] if is_deletion_marker(key) else key


def merge_properties(
    base: Mapping[str, str] | None,
    override: Mapping[str, str] | None,
) -> dict[str, str]:
    """Layer ``override`` on top of ``base``.

    >>> merge_properties({"a": "1", "b": "2"}, {"DELETED_a": "", "c": "3"})
    {'b': '2', 'c': '3'}
    """
    merged = dict(base or {})
    for key, value in (override or {}).items():
        if is_deletion_marker(key):
            merged.pop(strip_deletion_marker(key), None)
        else:
            merged[key] = value
    return merged


def clone_attributes(
    source: Mapping[str, Mapping[str, str]] | None,
    target: Mapping[str, Mapping[str, str]] | None,
) -> Attributes:
    """Deep-merge ``source`` into a copy of ``target``.

    Missing attribute buckets are created; existing target entries are only
    ever replaced, never removed.
    """
    merged: Attributes = {name: dict(values) for name, values in (target or {}).items()}
    for name, values in (source or {}).items():
        merged.setdefault(name, {}).update(values)
    return merged


def override_attributes(
    override_record: ConfigurationRecord | None,
    persisted: Mapping[str, Mapping[str, str]] | None,
) -> Attributes:
    """Apply one override layer's attributes on top of ``persisted``.

    An attribute inherited from a lower layer is dropped for every property
    the override touches, unless the override redeclares it.
    """
    if override_record is None:
        return clone_attributes(None, persisted)

    declared = override_record.attributes
    merged = clone_attributes(declared, persisted)
    touched = {strip_deletion_marker(key) for key in override_record.properties}

    for name, values in merged.items():
        redeclared = declared.get(name, {})
        for key in touched:
            if key not in redeclared:
                values.pop(key, None)
    return merged


def apply_custom_property(
    configurations: Mapping[str, Mapping[str, str]] | None,
    config_type: str,
    name: str,
    value: str,
    *,
    deleted: bool = False,
) -> dict[str, dict[str, str]]:
    """Return ``configurations`` with one property set on ``config_type``.

    With ``deleted`` the property is stored under its deletion marker so that
    merging the result as an override retracts it.
    """
    result = {t: dict(props) for t, props in (configurations or {}).items()}
    properties = result.setdefault(config_type, {})
    key = f"{DELETED_PREFIX}{name}" if deleted else name
    properties.pop(key, None)
    properties[key] = value
    return result


def changed_keys(
    desired: Mapping[str, str] | None,
    actual: Mapping[str, str] | None,
) -> set[str]:
    """Keys whose value differs between the two maps, including one-sided keys."""
    desired = desired or {}
    actual = actual or {}
    return {
        key
        for key in desired.keys() | actual.keys()
        if key not in desired or key not in actual or desired[key] != actual[key]
    }


def merge_key_names(records: Iterable[ConfigurationRecord | None]) -> set[str]:
    """Union of the raw property keys declared by ``records``."""
    names: set[str] = set()
    for record in records:
        if record is not None:
            names.update(record.properties)
    return names


def trace_layers(layers: Iterable[tuple[str, Mapping[str, str] | None]]) -> list[PropertyTrace]:
    """Replay ``merge_properties`` over named layers, recording provenance.

    ``layers`` is ordered base first, e.g. ``[("cluster:v1", {...}),
    ("group:3:v7", {...})]``. Retracted keys are reported with ``deleted``
    set and no value.
    """
    traces: dict[str, PropertyTrace] = {}
    for layer, properties in layers:
        for raw_key, value in (properties or {}).items():
            key = strip_deletion_marker(raw_key)
            chain = traces[key].chain if key in traces else []
            deleted = is_deletion_marker(raw_key)
            traces[key] = PropertyTrace(
                key=key,
                value=None if deleted else value,
                source=layer,
                deleted=deleted,
                chain=[*chain, layer],
            )
    return [traces[key] for key in sorted(traces)]
