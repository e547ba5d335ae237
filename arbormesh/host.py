"""
Glue for hosting generated trees in an application.

A host keeps one shared TreeSettings and any number of tree instances, each
with its own seed and an optional local settings override. The override is
resolved here, before generation, so the generator only ever sees one
complete configuration.
"""

from dataclasses import dataclass

from arbormesh.buffers import IndexWidth
from arbormesh.config import TreeSettings
from arbormesh.engine import TreeMesh, generate


@dataclass(frozen=True)
class TreeInstance:
    """One hosted tree."""

    seed: int = 0
    settings: TreeSettings | None = None  # None falls back to the shared settings


def resolve_settings(
    local: TreeSettings | None, shared: TreeSettings
) -> TreeSettings:
    """Local override if present, otherwise the shared default."""
    return local if local is not None else shared


def build_instance(
    instance: TreeInstance,
    shared: TreeSettings,
    index_width: IndexWidth = IndexWidth.U16,
) -> TreeMesh:
    """Resolve an instance's settings and generate its meshes."""
    settings = resolve_settings(instance.settings, shared)
    return generate(settings, instance.seed, index_width)
