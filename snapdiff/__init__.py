"""
SnapDiff - Configuration Snapshot Comparison Engine

Compares two point-in-time configuration exports of a server using a
declarative registry of entity types, and produces a sectioned diff report:
missing, extra and changed entities per type, with nested entity types
compared inside their matched parents.
"""

from .engine import SnapDiffEngine, compare
from .canonical import canonicalize, values_equal
from .strategies import entity_compare, flat_compare
from .models import (
    ABSENT,
    EngineConfig,
    EntityTypeDescriptor,
    Strategy,
    PropertyDifference,
    EntityRef,
    MatchedEntity,
    Section,
    Report,
    SavedSnapshot,
    WarningEntry,
    WarningKind,
)
from .registry import (
    default_registry,
    load_registry,
    parse_registry,
)
from .config import load_config
from .masker import Masker
from .storage import SnapshotStore
from .render import format_report
from .exceptions import (
    SnapDiffError,
    ValidationError,
    RegistryError,
    SnapshotLoadError,
)

__version__ = "1.0.0"
__all__ = [
    # Engine
    "SnapDiffEngine",
    "compare",
    "EngineConfig",
    # Strategies
    "canonicalize",
    "values_equal",
    "entity_compare",
    "flat_compare",
    # Registry
    "EntityTypeDescriptor",
    "Strategy",
    "default_registry",
    "load_registry",
    "parse_registry",
    "load_config",
    # Reports
    "ABSENT",
    "PropertyDifference",
    "EntityRef",
    "MatchedEntity",
    "Section",
    "Report",
    "WarningEntry",
    "WarningKind",
    "format_report",
    # Storage
    "SavedSnapshot",
    "SnapshotStore",
    "Masker",
    # Errors
    "SnapDiffError",
    "ValidationError",
    "RegistryError",
    "SnapshotLoadError",
]
