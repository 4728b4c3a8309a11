"""Main comparison engine for SnapDiff."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from .exceptions import ValidationError
from .masker import Masker
from .models import (
    EngineConfig,
    EntityDiffResult,
    EntityTypeDescriptor,
    Report,
    SavedSnapshot,
    Section,
    Strategy,
)
from .registry import default_registry
from .strategies import entity_compare, flat_compare

_log = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with a trailing Z."""
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


class SnapDiffEngine:
    """
    Registry-driven comparison of two configuration snapshots.

    Every registry entry names a collection in the snapshot root and the
    strategy used to compare it:

    - entity: records are matched by an id field, then diffed per property;
      child collections are compared recursively within matched parents
    - flat: records are compared as multisets

    The result is one section per entry, in registry order.
    """

    def __init__(
        self,
        registry: Optional[Iterable[EntityTypeDescriptor]] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], str]] = None
    ):
        """
        Initialize the engine.

        Args:
            registry: Entity type descriptors (bundled registry if not provided)
            config: Engine configuration (uses defaults if not provided)
            clock: Returns the report timestamp (UTC now if not provided)
        """
        self.registry = tuple(registry) if registry is not None else default_registry()
        self.config = config or EngineConfig()
        self.clock = clock or utc_timestamp
        self._masker = Masker(self.config.ignore_paths)

    def compare(self, saved: Any, current: Any) -> Report:
        """
        Compare two snapshots.

        Args:
            saved: The previously captured snapshot
            current: The snapshot to check against it

        Returns:
            Report with one section per registry entry
        """
        self._validate_inputs(saved, current)
        saved, current = self._masker.mask(saved, current)

        sections = []
        total_differences = 0

        for descriptor in self.registry:
            section = self.compare_section(
                descriptor,
                _collection(saved, descriptor.key, "saved"),
                _collection(current, descriptor.key, "current"),
            )
            total_differences += section.total_differences
            sections.append(section)

        _log.info("Compared %d section(s), %d difference(s) found",
                  len(sections), total_differences)

        return Report(
            timestamp=self.clock(),
            total_differences=total_differences,
            sections=sections,
        )

    def compare_saved(
        self,
        saved: SavedSnapshot,
        current: Any,
        current_server: str
    ) -> Report:
        """Compare a stored snapshot with a current one and record where both came from."""
        report = self.compare(saved.snapshot, current)
        report.saved_server = saved.server_url
        report.current_server = current_server
        report.saved_timestamp = saved.timestamp
        return report

    def compare_section(
        self,
        descriptor: EntityTypeDescriptor,
        saved: list,
        current: list
    ) -> Section:
        """
        Compare one collection according to its descriptor.

        Args:
            descriptor: Registry entry for the collection
            saved: Records from the saved side
            current: Records from the current side

        Returns:
            Section (with child sections for entity types that have children)
        """
        _log.debug("Comparing '%s' (%s): %d saved, %d current",
                   descriptor.key, descriptor.strategy.value, len(saved), len(current))

        if descriptor.strategy == Strategy.FLAT:
            return self._flat_section(descriptor, saved, current)
        return self._entity_section(descriptor, saved, current)

    def _flat_section(
        self,
        descriptor: EntityTypeDescriptor,
        saved: list,
        current: list
    ) -> Section:
        result = flat_compare(saved, current)
        return Section(
            key=descriptor.key,
            label=descriptor.label,
            strategy=Strategy.FLAT,
            summary=result.summary,
            missing=result.missing,
            extra=result.extra,
            total_differences=result.summary.missing + result.summary.extra,
        )

    def _entity_section(
        self,
        descriptor: EntityTypeDescriptor,
        saved: list,
        current: list
    ) -> Section:
        result = entity_compare(
            saved,
            current,
            id_field=descriptor.id_field or "id",
            exclude_keys=descriptor.child_keys,
            report_anomalies=self.config.report_anomalies,
        )

        child_sections = None
        child_differences = 0
        if descriptor.children:
            child_sections = self._compare_children(descriptor, result)
            child_differences = sum(c.total_differences for c in child_sections)

        summary = result.summary
        return Section(
            key=descriptor.key,
            label=descriptor.label,
            strategy=Strategy.ENTITY,
            summary=summary,
            missing=result.missing,
            extra=result.extra,
            matched=result.matched,
            child_sections=child_sections,
            warnings=result.warnings,
            total_differences=(
                summary.missing + summary.extra + summary.changed + child_differences
            ),
        )

    def _compare_children(
        self,
        descriptor: EntityTypeDescriptor,
        result: EntityDiffResult
    ) -> list[Section]:
        """Compare child collections of every parent present on both sides."""
        sections = []

        for match in result.matched:
            saved_parent = result.saved_index[match.id]
            current_parent = result.current_index[match.id]

            for child in descriptor.children:
                section = self.compare_section(
                    child,
                    _collection(saved_parent, child.key, "saved"),
                    _collection(current_parent, child.key, "current"),
                )
                section.parent_id = match.id
                section.parent_label = descriptor.label
                sections.append(section)

        return sections

    def _validate_inputs(self, saved: Any, current: Any):
        """Validate snapshot roots."""
        for side, snapshot in (("saved", saved), ("current", current)):
            if not isinstance(snapshot, dict):
                raise ValidationError(
                    f"{side} snapshot must be an object",
                    {"side": side, "type": type(snapshot).__name__}
                )


def _collection(container: dict, key: str, side: str) -> list:
    """Get a named collection, treating absent or null as empty."""
    value = container.get(key)
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)

    _log.warning("%s collection '%s' is %s, not a list; treated as empty",
                 side, key, type(value).__name__)
    return []


def compare(
    saved: Any,
    current: Any,
    registry: Optional[Iterable[EntityTypeDescriptor]] = None,
    config: Optional[EngineConfig] = None
) -> Report:
    """
    Convenience function to compare two snapshots.

    Args:
        saved: The previously captured snapshot
        current: The snapshot to check against it
        registry: Optional entity type descriptors
        config: Optional engine configuration

    Returns:
        Report
    """
    engine = SnapDiffEngine(registry, config)
    return engine.compare(saved, current)
