"""Local store for a saved snapshot and the latest comparison report."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .engine import utc_timestamp
from .exceptions import SnapshotLoadError
from .models import Report, SavedSnapshot

_log = logging.getLogger(__name__)

SNAPSHOT_FILE = "saved_snapshot.json"
REPORT_FILE = "comparison_report.json"


def read_json(path: str | Path) -> Any:
    """Read a JSON document (e.g. a snapshot export) from file."""
    path = Path(path)
    if not path.exists():
        raise SnapshotLoadError(str(path), "file not found")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise SnapshotLoadError(str(path), f"invalid JSON: {e}")


def write_json(path: str | Path, data: Any):
    """Write a JSON document, creating parent directories.

    The document goes to a sibling temp file first and is then moved over
    ``path``, so readers never see a partly written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


class SnapshotStore:
    """
    Keeps one saved snapshot and one comparison report in a directory.

    Usage:
        store = SnapshotStore(".snapdiff")
        store.save_snapshot(export, "https://iris-a:52773")
        saved = store.load_snapshot()
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    @property
    def snapshot_path(self) -> Path:
        return self.directory / SNAPSHOT_FILE

    @property
    def report_path(self) -> Path:
        return self.directory / REPORT_FILE

    def save_snapshot(
        self,
        snapshot: dict,
        server_url: str,
        timestamp: Optional[str] = None
    ) -> SavedSnapshot:
        """Persist a snapshot together with its source server."""
        saved = SavedSnapshot(
            snapshot=snapshot,
            server_url=server_url,
            timestamp=timestamp or utc_timestamp(),
        )
        write_json(self.snapshot_path, saved.to_dict())
        _log.info("Saved snapshot from %s to %s", server_url, self.snapshot_path)
        return saved

    def load_snapshot(self) -> Optional[SavedSnapshot]:
        """Load the saved snapshot, or None if nothing has been saved."""
        if not self.snapshot_path.exists():
            return None
        data = read_json(self.snapshot_path)
        try:
            return SavedSnapshot.from_dict(data)
        except (KeyError, TypeError) as e:
            raise SnapshotLoadError(str(self.snapshot_path), f"not a saved snapshot: {e}")

    def save_report(self, report: Report):
        """Persist a comparison report."""
        write_json(self.report_path, report.to_dict())
        _log.info("Saved report to %s", self.report_path)

    def load_report(self) -> Optional[Report]:
        """Load the latest report, or None if no comparison has been stored."""
        if not self.report_path.exists():
            return None
        data = read_json(self.report_path)
        try:
            return Report.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotLoadError(str(self.report_path), f"not a comparison report: {e}")

    def clear(self):
        """Remove the saved snapshot and report."""
        for path in (self.snapshot_path, self.report_path):
            if path.exists():
                path.unlink()
                _log.info("Removed %s", path)
