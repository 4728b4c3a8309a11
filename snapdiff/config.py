"""Loading of YAML/JSON configuration files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import SnapshotLoadError, ValidationError
from .models import EngineConfig


def load_yaml(path: str | Path) -> Any:
    """Load a YAML or JSON file (JSON is valid YAML)."""
    path = Path(path)
    if not path.exists():
        raise SnapshotLoadError(str(path), "file not found")

    with open(path, 'r', encoding='utf-8') as f:
        content = f.read()

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SnapshotLoadError(str(path), f"failed to parse: {e}")


def load_config(path: str | Path) -> EngineConfig:
    """
    Load an EngineConfig from file.

    Example:
        ignorePaths:
          - "$..lastModified"
        reportAnomalies: true
        logLevel: INFO
    """
    data = load_yaml(path) or {}
    if not isinstance(data, dict):
        raise ValidationError(
            "Config file must contain a mapping",
            {"path": str(path), "type": type(data).__name__}
        )

    try:
        return EngineConfig.from_dict(data)
    except ValueError as e:
        raise ValidationError(f"Invalid config: {e}", {"path": str(path)})
