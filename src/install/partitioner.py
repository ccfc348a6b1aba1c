# src/install/partitioner.py - v1
"""Split declared dependencies into managed and carried-over sets.

An entry is managed only when its exact (name, version spec) pair is in
the managed list. A managed name recorded at another version is carried
over and therefore installed twice: once pinned by the managed install,
then again at its recorded spec. That case is reported as ``shadowed``
and logged, but the classification itself is left unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from ngupgrade.core.models import DependencyEntry, DependencyKind, Partition

logger = logging.getLogger(__name__)


def partition(
    manifest_map: Mapping[str, str],
    managed_list: Iterable[DependencyEntry],
    kind: DependencyKind = "dependencies",
) -> Partition:
    """Classify every entry of ``manifest_map``, preserving its order."""
    managed_pairs = {entry.pair for entry in managed_list}
    managed_names = {name for name, _ in managed_pairs}

    result = Partition(kind=kind)
    for name, version_spec in manifest_map.items():
        entry = DependencyEntry(name=name, version_spec=version_spec)
        if entry.pair in managed_pairs:
            result.managed.append(entry)
            continue
        result.other.append(entry)
        if name in managed_names:
            result.shadowed.append(name)
            logger.warning(
                "%s %s is on the managed list at another version; "
                "it will also be reinstalled at %s",
                kind, name, version_spec,
            )

    logger.info(
        "%s: %d managed, %d carried over",
        kind, len(result.managed), len(result.other),
    )
    return result
