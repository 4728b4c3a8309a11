"""Entity registry: which collections a snapshot holds and how to compare them."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from .config import load_yaml
from .exceptions import RegistryError
from .models import EntityTypeDescriptor, Strategy

DEFAULT_REGISTRY_PATH = Path(__file__).with_name("registry.yaml")
DEFAULT_ID_FIELD = "id"


def parse_descriptor(data: Any, parent: Optional[str] = None) -> EntityTypeDescriptor:
    """
    Build a descriptor from its mapping form.

    Args:
        data: Mapping with key, label, strategy and optional idField/children
        parent: Key of the enclosing descriptor, for error messages

    Returns:
        EntityTypeDescriptor
    """
    where = parent or "<root>"
    if not isinstance(data, dict):
        raise RegistryError(where, f"entry must be a mapping, got {type(data).__name__}")

    key = data.get("key")
    if not isinstance(key, str) or not key:
        raise RegistryError(where, "entry has no 'key'")
    if parent:
        key_path = f"{parent}.{key}"
    else:
        key_path = key

    try:
        strategy = Strategy(data.get("strategy"))
    except ValueError:
        raise RegistryError(
            key_path,
            f"strategy must be 'entity' or 'flat', got {data.get('strategy')!r}"
        )

    id_field = data.get("idField")
    children_data = data.get("children") or []

    if strategy == Strategy.FLAT:
        if id_field is not None:
            raise RegistryError(key_path, "idField is only allowed with the entity strategy")
        if children_data:
            raise RegistryError(key_path, "children are only allowed with the entity strategy")
    else:
        id_field = id_field or DEFAULT_ID_FIELD
        if not isinstance(id_field, str):
            raise RegistryError(key_path, "idField must be a string")

    if not isinstance(children_data, list):
        raise RegistryError(key_path, "children must be a list")

    return EntityTypeDescriptor(
        key=key,
        label=str(data.get("label") or key),
        strategy=strategy,
        id_field=id_field,
        children=parse_registry(children_data, parent=key_path),
    )


def parse_registry(entries: Any, parent: Optional[str] = None) -> tuple[EntityTypeDescriptor, ...]:
    """
    Build an ordered registry from a list of entries.

    A mapping with an ``entities`` list is accepted at the top level.
    """
    if parent is None and isinstance(entries, dict):
        entries = entries.get("entities")
    if not isinstance(entries, list):
        raise RegistryError(parent or "<root>", "registry must be a list of entries")

    descriptors = tuple(parse_descriptor(entry, parent) for entry in entries)

    seen = set()
    for descriptor in descriptors:
        if descriptor.key in seen:
            raise RegistryError(descriptor.key, "duplicate key")
        seen.add(descriptor.key)

    return descriptors


def load_registry(path: str | Path) -> tuple[EntityTypeDescriptor, ...]:
    """Load a registry from a YAML or JSON file."""
    return parse_registry(load_yaml(path))


@lru_cache(maxsize=1)
def default_registry() -> tuple[EntityTypeDescriptor, ...]:
    """The bundled registry of migration framework export entity types."""
    return load_registry(DEFAULT_REGISTRY_PATH)
