"""Explanations: why a component is stale, where an effective value came from.

All output is template-based and deterministic.
"""

from __future__ import annotations

from pydantic import BaseModel

from cluster_config.models import PropertyTrace  # noqa: TC001
from cluster_config.types import ComponentKey, StaleReason  # noqa: TC001


class TypeVerdict(BaseModel):
    """Decision for a single configuration type."""

    config_type: str
    stale: bool
    reason: StaleReason
    keys: list[str] = []


class StalenessReport(BaseModel):
    """Outcome of one staleness evaluation, with the verdicts that led to it.

    Evaluation stops at the first stale type, so ``verdicts`` only lists the
    types examined up to that point.
    """

    component: ComponentKey
    stale: bool
    reason: StaleReason
    verdicts: list[TypeVerdict] = []

    @property
    def stale_type(self) -> str | None:
        for verdict in self.verdicts:
            if verdict.stale:
                return verdict.config_type
        return None

    def to_text(self) -> str:
        state = "STALE" if self.stale else "up to date"
        lines = [f"Component: {self.component}", f"  Status: {state} ({self.reason.value})"]
        if self.verdicts:
            lines.append("")
            lines.append("Configuration types:")
            for v in self.verdicts:
                marker = "✗" if v.stale else "✓"
                line = f"  {marker} {v.config_type}: {v.reason.value}"
                if v.keys:
                    line += f" [{', '.join(v.keys)}]"
                lines.append(line)
        return "\n".join(lines)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)


class PropertyExplanation(BaseModel):
    """Provenance of every property of one configuration type."""

    config_type: str
    traces: list[PropertyTrace]

    def effective(self) -> dict[str, str]:
        return {t.key: t.value for t in self.traces if not t.deleted and t.value is not None}

    def to_text(self) -> str:
        lines = [f"Type: {self.config_type}"]
        for t in self.traces:
            if t.deleted:
                lines.append(f"  {t.key}: <deleted> (by {t.source})")
            else:
                lines.append(f"  {t.key} = {t.value} (source: {t.source})")
            if len(t.chain) > 1:
                lines.append(f"    Chain: {' → '.join(t.chain)}")
        return "\n".join(lines)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)
