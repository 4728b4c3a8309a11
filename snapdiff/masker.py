"""Ignore masking: drop JSONPath-selected values from snapshots before comparison."""

from __future__ import annotations

import logging
from copy import deepcopy
from functools import lru_cache
from typing import Any, Iterable

from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError

from .exceptions import ValidationError

_log = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def compile_path(path: str):
    """Compile and cache a JSONPath expression."""
    try:
        return jsonpath_parse(path)
    except (JsonPathLexerError, JsonPathParserError) as e:
        raise ValidationError(f"Invalid JSONPath expression '{path}': {e}", {"path": path})


class Masker:
    """
    Removes ignored values from both snapshots.

    Each expression is evaluated against the snapshot root; matched object
    fields are deleted and matched array items are removed. Inputs are
    deep-copied, never modified.

    Usage:
        masker = Masker(["$..lastModified", "$.users[*].lastLogin"])
        saved, current = masker.mask(saved, current)
    """

    def __init__(self, ignore_paths: Iterable[str]):
        self.ignore_paths = list(ignore_paths)
        self._expressions = [compile_path(p) for p in self.ignore_paths]
        self.removed_count = 0

    def mask(self, saved: Any, current: Any) -> tuple[Any, Any]:
        """
        Apply masking to both snapshots.

        Returns:
            Tuple of (masked_saved, masked_current)
        """
        self.removed_count = 0
        if not self._expressions:
            return saved, current

        saved = self._mask_one(deepcopy(saved))
        current = self._mask_one(deepcopy(current))

        _log.debug("Masked %d value(s) using %d ignore path(s)",
                   self.removed_count, len(self._expressions))
        return saved, current

    def _mask_one(self, data: Any) -> Any:
        for expr in self._expressions:
            self._delete_matches(data, expr)
        return data

    def _delete_matches(self, data: Any, expr) -> None:
        """Delete every match of one expression from data, in place."""
        # id(list) -> (list, indices); indices are removed highest first
        pending_items: dict[int, tuple[list, set]] = {}

        for match in expr.find(data):
            if match.context is None:
                # The root itself cannot be removed
                continue

            container = match.context.value
            segment = match.path

            if isinstance(container, dict) and hasattr(segment, 'fields'):
                for name in segment.fields:
                    if name in container:
                        del container[name]
                        self.removed_count += 1
            elif isinstance(container, list):
                indices = getattr(segment, 'indices', None) or (getattr(segment, 'index', None),)
                _, targets = pending_items.setdefault(id(container), (container, set()))
                targets.update(i for i in indices if isinstance(i, int))

        for container, targets in pending_items.values():
            size = len(container)
            positions = {i + size if i < 0 else i for i in targets}
            for index in sorted(positions, reverse=True):
                if 0 <= index < size:
                    del container[index]
                    self.removed_count += 1
