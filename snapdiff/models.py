"""Data models for SnapDiff."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .exceptions import ValidationError


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class Strategy(Enum):
    ENTITY = "entity"
    FLAT = "flat"


class WarningKind(Enum):
    UNIDENTIFIED_RECORD = "UNIDENTIFIED_RECORD"
    DUPLICATE_ID = "DUPLICATE_ID"


class _Absent:
    """Marker for a property that one side of a comparison does not have."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "<absent>"


ABSENT = _Absent()


@dataclass(frozen=True)
class EntityTypeDescriptor:
    """One registry entry: how a named collection in a snapshot is compared."""
    key: str
    label: str
    strategy: Strategy = Strategy.ENTITY
    id_field: Optional[str] = None
    children: tuple[EntityTypeDescriptor, ...] = ()

    @property
    def child_keys(self) -> frozenset:
        return frozenset(child.key for child in self.children)

    def to_dict(self) -> dict:
        result = {
            "key": self.key,
            "label": self.label,
            "strategy": self.strategy.value,
        }
        if self.id_field is not None:
            result["idField"] = self.id_field
        if self.children:
            result["children"] = [c.to_dict() for c in self.children]
        return result


@dataclass
class EngineConfig:
    """Global configuration for the comparison engine."""
    ignore_paths: list[str] = field(default_factory=list)
    report_anomalies: bool = True
    log_level: LogLevel = LogLevel.WARN

    @classmethod
    def from_dict(cls, data: dict) -> EngineConfig:
        ignore_paths = data.get("ignorePaths") or []
        if isinstance(ignore_paths, str):
            ignore_paths = [ignore_paths]
        elif not isinstance(ignore_paths, list):
            raise ValidationError(
                "ignorePaths must be a JSONPath string or a list of them",
                {"type": type(ignore_paths).__name__}
            )

        report_anomalies = data.get("reportAnomalies", True)
        if not isinstance(report_anomalies, bool):
            raise ValidationError(
                "reportAnomalies must be true or false",
                {"value": report_anomalies}
            )

        level = str(data.get("logLevel", LogLevel.WARN.value)).upper()
        if level == "WARNING":
            level = "WARN"
        return cls(
            ignore_paths=list(ignore_paths),
            report_anomalies=report_anomalies,
            log_level=LogLevel(level),
        )


@dataclass
class PropertyDifference:
    """A single property that differs between a saved and a current entity."""
    property: str
    saved: Any = ABSENT
    current: Any = ABSENT

    def to_dict(self) -> dict:
        result = {"property": self.property}
        if self.saved is not ABSENT:
            result["saved"] = self.saved
        if self.current is not ABSENT:
            result["current"] = self.current
        return result

    @classmethod
    def from_dict(cls, data: dict) -> PropertyDifference:
        return cls(
            property=data["property"],
            saved=data["saved"] if "saved" in data else ABSENT,
            current=data["current"] if "current" in data else ABSENT,
        )


@dataclass
class EntityRef:
    """An identified entity present on only one side."""
    id: str
    entity: dict

    def to_dict(self) -> dict:
        return {"id": self.id, "entity": self.entity}

    @classmethod
    def from_dict(cls, data: dict) -> EntityRef:
        return cls(id=data["id"], entity=data["entity"])


@dataclass
class MatchedEntity:
    """An entity present on both sides, with its property differences."""
    id: str
    differences: list[PropertyDifference] = field(default_factory=list)

    @property
    def is_changed(self) -> bool:
        return len(self.differences) > 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "differences": [d.to_dict() for d in self.differences],
        }

    @classmethod
    def from_dict(cls, data: dict) -> MatchedEntity:
        return cls(
            id=data["id"],
            differences=[PropertyDifference.from_dict(d) for d in data.get("differences", [])],
        )


@dataclass
class WarningEntry:
    """An input anomaly noticed during comparison. Never counted as a difference."""
    kind: WarningKind
    side: str
    message: str
    index: Optional[int] = None
    id: Optional[str] = None

    def to_dict(self) -> dict:
        result = {
            "kind": self.kind.value,
            "side": self.side,
            "message": self.message,
        }
        if self.index is not None:
            result["index"] = self.index
        if self.id is not None:
            result["id"] = self.id
        return result

    @classmethod
    def from_dict(cls, data: dict) -> WarningEntry:
        return cls(
            kind=WarningKind(data["kind"]),
            side=data["side"],
            message=data["message"],
            index=data.get("index"),
            id=data.get("id"),
        )


@dataclass
class EntitySummary:
    missing: int = 0
    extra: int = 0
    changed: int = 0
    in_sync: int = 0

    def to_dict(self) -> dict:
        return {
            "missing": self.missing,
            "extra": self.extra,
            "changed": self.changed,
            "inSync": self.in_sync,
        }


@dataclass
class FlatSummary:
    missing: int = 0
    extra: int = 0

    def to_dict(self) -> dict:
        return {
            "missing": self.missing,
            "extra": self.extra,
        }


@dataclass
class FlatDiffResult:
    """Result of a multiset comparison."""
    missing: list[Any] = field(default_factory=list)
    extra: list[Any] = field(default_factory=list)
    summary: FlatSummary = field(default_factory=FlatSummary)


@dataclass
class EntityDiffResult:
    """Result of an identity-keyed comparison."""
    missing: list[EntityRef] = field(default_factory=list)
    extra: list[EntityRef] = field(default_factory=list)
    matched: list[MatchedEntity] = field(default_factory=list)
    summary: EntitySummary = field(default_factory=EntitySummary)
    warnings: list[WarningEntry] = field(default_factory=list)
    # id -> record, kept for recursing into matched parents
    saved_index: dict[str, dict] = field(default_factory=dict, repr=False)
    current_index: dict[str, dict] = field(default_factory=dict, repr=False)


@dataclass
class Section:
    """Diff result for one entity-type key, possibly with nested child sections."""
    key: str
    label: str
    strategy: Strategy
    summary: Union[EntitySummary, FlatSummary]
    missing: list[Any] = field(default_factory=list)
    extra: list[Any] = field(default_factory=list)
    total_differences: int = 0
    matched: Optional[list[MatchedEntity]] = None
    child_sections: Optional[list[Section]] = None
    parent_id: Optional[str] = None
    parent_label: Optional[str] = None
    warnings: list[WarningEntry] = field(default_factory=list)

    @property
    def direct_differences(self) -> int:
        """Differences found in this section, excluding child sections."""
        count = self.summary.missing + self.summary.extra
        if isinstance(self.summary, EntitySummary):
            count += self.summary.changed
        return count

    def to_dict(self) -> dict:
        is_entity = self.strategy == Strategy.ENTITY
        result = {
            "key": self.key,
            "label": self.label,
            "strategy": self.strategy.value,
            "summary": self.summary.to_dict(),
            "missing": [m.to_dict() for m in self.missing] if is_entity else list(self.missing),
            "extra": [e.to_dict() for e in self.extra] if is_entity else list(self.extra),
        }
        if self.matched is not None:
            result["matched"] = [m.to_dict() for m in self.matched]
        if self.child_sections is not None:
            result["childSections"] = [c.to_dict() for c in self.child_sections]
        if self.parent_id is not None:
            result["parentId"] = self.parent_id
            result["parentLabel"] = self.parent_label
        if self.warnings:
            result["warnings"] = [w.to_dict() for w in self.warnings]
        result["totalDifferences"] = self.total_differences
        return result

    @classmethod
    def from_dict(cls, data: dict) -> Section:
        strategy = Strategy(data["strategy"])
        summary_data = data.get("summary", {})

        if strategy == Strategy.ENTITY:
            summary = EntitySummary(
                missing=summary_data.get("missing", 0),
                extra=summary_data.get("extra", 0),
                changed=summary_data.get("changed", 0),
                in_sync=summary_data.get("inSync", 0),
            )
            missing = [EntityRef.from_dict(m) for m in data.get("missing", [])]
            extra = [EntityRef.from_dict(e) for e in data.get("extra", [])]
            matched = [MatchedEntity.from_dict(m) for m in data.get("matched", [])]
        else:
            summary = FlatSummary(
                missing=summary_data.get("missing", 0),
                extra=summary_data.get("extra", 0),
            )
            missing = list(data.get("missing", []))
            extra = list(data.get("extra", []))
            matched = None

        children = data.get("childSections")
        return cls(
            key=data["key"],
            label=data["label"],
            strategy=strategy,
            summary=summary,
            missing=missing,
            extra=extra,
            total_differences=data.get("totalDifferences", 0),
            matched=matched,
            child_sections=[cls.from_dict(c) for c in children] if children is not None else None,
            parent_id=data.get("parentId"),
            parent_label=data.get("parentLabel"),
            warnings=[WarningEntry.from_dict(w) for w in data.get("warnings", [])],
        )


@dataclass
class Report:
    """Complete comparison report."""
    timestamp: str
    total_differences: int = 0
    sections: list[Section] = field(default_factory=list)
    saved_server: Optional[str] = None
    current_server: Optional[str] = None
    saved_timestamp: Optional[str] = None

    @property
    def is_in_sync(self) -> bool:
        return self.total_differences == 0

    def section(self, key: str) -> Optional[Section]:
        """Return the top-level section for ``key``, if any."""
        for section in self.sections:
            if section.key == key:
                return section
        return None

    def to_dict(self) -> dict:
        result = {
            "timestamp": self.timestamp,
            "totalDifferences": self.total_differences,
            "sections": [s.to_dict() for s in self.sections],
        }
        if self.saved_server is not None:
            result["savedServer"] = self.saved_server
        if self.current_server is not None:
            result["currentServer"] = self.current_server
        if self.saved_timestamp is not None:
            result["savedTimestamp"] = self.saved_timestamp
        return result

    @classmethod
    def from_dict(cls, data: dict) -> Report:
        return cls(
            timestamp=data.get("timestamp", ""),
            total_differences=data.get("totalDifferences", 0),
            sections=[Section.from_dict(s) for s in data.get("sections", [])],
            saved_server=data.get("savedServer"),
            current_server=data.get("currentServer"),
            saved_timestamp=data.get("savedTimestamp"),
        )


@dataclass
class SavedSnapshot:
    """A snapshot persisted together with where and when it was captured."""
    snapshot: dict
    server_url: str
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "snapshot": self.snapshot,
            "serverUrl": self.server_url,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SavedSnapshot:
        return cls(
            snapshot=data["snapshot"],
            server_url=data.get("serverUrl", ""),
            timestamp=data.get("timestamp", ""),
        )
