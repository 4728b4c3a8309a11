"""Comparison strategies: multiset diff and identity-keyed entity diff."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from .canonical import canonicalize, stringify_id, values_equal
from .models import (
    ABSENT,
    EntityDiffResult,
    EntityRef,
    EntitySummary,
    FlatDiffResult,
    FlatSummary,
    MatchedEntity,
    PropertyDifference,
    WarningEntry,
    WarningKind,
)

_log = logging.getLogger(__name__)


def flat_compare(saved: list, current: list) -> FlatDiffResult:
    """
    Compare two collections as multisets (order-insensitive, no identity).

    Records that canonicalize identically are interchangeable; only the
    surplus of each distinct record on either side is reported.

    Args:
        saved: Records from the saved snapshot
        current: Records from the current snapshot

    Returns:
        FlatDiffResult with surplus saved records in ``missing`` and
        surplus current records in ``extra``
    """
    saved_multiset = _build_multiset(saved)
    current_multiset = _build_multiset(current)

    missing = []
    extra = []

    for key, (count, value) in saved_multiset.items():
        current_count = current_multiset[key][0] if key in current_multiset else 0
        missing.extend([value] * max(0, count - current_count))

    for key, (count, value) in current_multiset.items():
        saved_count = saved_multiset[key][0] if key in saved_multiset else 0
        extra.extend([value] * max(0, count - saved_count))

    return FlatDiffResult(
        missing=missing,
        extra=extra,
        summary=FlatSummary(missing=len(missing), extra=len(extra)),
    )


def _build_multiset(records: Iterable[Any]) -> dict[str, list]:
    """Map canonical form -> [count, first record seen]."""
    multiset: dict[str, list] = {}
    for record in records:
        key = canonicalize(record)
        if key in multiset:
            multiset[key][0] += 1
        else:
            multiset[key] = [1, record]
    return multiset


def entity_compare(
    saved: list,
    current: list,
    id_field: str = "id",
    exclude_keys: Iterable[str] = (),
    report_anomalies: bool = True
) -> EntityDiffResult:
    """
    Compare two collections of identified entities.

    Phase 1 (presence): index both sides by id; ids only in saved are
    missing, ids only in current are extra.
    Phase 2 (properties): every id present on both sides gets a
    property-level diff.

    Args:
        saved: Entities from the saved snapshot
        current: Entities from the current snapshot
        id_field: Property that identifies an entity
        exclude_keys: Properties skipped in phase 2 (nested child collections)
        report_anomalies: Attach unidentified/duplicate records as warnings

    Returns:
        EntityDiffResult
    """
    warnings: Optional[list[WarningEntry]] = [] if report_anomalies else None
    saved_index = index_by_id(saved, id_field, "saved", warnings)
    current_index = index_by_id(current, id_field, "current", warnings)
    exclude = frozenset(exclude_keys)

    missing = [
        EntityRef(id=entity_id, entity=entity)
        for entity_id, entity in saved_index.items()
        if entity_id not in current_index
    ]
    extra = [
        EntityRef(id=entity_id, entity=entity)
        for entity_id, entity in current_index.items()
        if entity_id not in saved_index
    ]

    matched = []
    changed_count = 0
    in_sync_count = 0

    for entity_id, saved_entity in saved_index.items():
        if entity_id not in current_index:
            continue

        differences = diff_properties(
            saved_entity, current_index[entity_id], id_field, exclude
        )
        if differences:
            changed_count += 1
        else:
            in_sync_count += 1

        matched.append(MatchedEntity(id=entity_id, differences=differences))

    return EntityDiffResult(
        missing=missing,
        extra=extra,
        matched=matched,
        summary=EntitySummary(
            missing=len(missing),
            extra=len(extra),
            changed=changed_count,
            in_sync=in_sync_count,
        ),
        warnings=warnings or [],
        saved_index=saved_index,
        current_index=current_index,
    )


def index_by_id(
    records: Iterable[Any],
    id_field: str,
    side: str = "saved",
    warnings: Optional[list[WarningEntry]] = None
) -> dict[str, dict]:
    """
    Index records by their stringified id.

    Records without the id field (or with a null id) are left out. Later
    duplicates replace earlier ones.
    """
    index: dict[str, dict] = {}

    for position, record in enumerate(records):
        raw_id = record.get(id_field) if isinstance(record, dict) else None

        if raw_id is None:
            message = f"{side} record at index {position} has no '{id_field}' and was not compared"
            _log.warning(message)
            if warnings is not None:
                warnings.append(WarningEntry(
                    kind=WarningKind.UNIDENTIFIED_RECORD,
                    side=side,
                    message=message,
                    index=position,
                ))
            continue

        entity_id = stringify_id(raw_id)
        if entity_id in index:
            message = f"Duplicate {side} id '{entity_id}' at index {position}; last one wins"
            _log.warning(message)
            if warnings is not None:
                warnings.append(WarningEntry(
                    kind=WarningKind.DUPLICATE_ID,
                    side=side,
                    message=message,
                    index=position,
                    id=entity_id,
                ))

        index[entity_id] = record

    return index


def diff_properties(
    saved: dict,
    current: dict,
    id_field: str,
    exclude_keys: frozenset = frozenset()
) -> list[PropertyDifference]:
    """
    Compare all properties of two entities (except the id and excluded keys).

    Nested objects and arrays are compared whole by canonical form, never
    field by field.
    """
    diffs = []

    for key in sorted(set(saved) | set(current), key=str):
        if key == id_field or key in exclude_keys:
            continue

        in_saved = key in saved
        in_current = key in current

        if in_saved and not in_current:
            diffs.append(PropertyDifference(property=key, saved=saved[key], current=ABSENT))
        elif in_current and not in_saved:
            diffs.append(PropertyDifference(property=key, saved=ABSENT, current=current[key]))
        elif not values_equal(saved[key], current[key]):
            diffs.append(PropertyDifference(property=key, saved=saved[key], current=current[key]))

    return diffs
