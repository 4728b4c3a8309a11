"""Tests for SnapDiff registry, config, masking, storage, rendering and CLI."""

import json

import pytest
from snapdiff import (
    ABSENT,
    EngineConfig,
    Masker,
    RegistryError,
    Report,
    SnapDiffEngine,
    SnapshotLoadError,
    SnapshotStore,
    Strategy,
    ValidationError,
    default_registry,
    format_report,
    load_config,
    load_registry,
    parse_registry,
)
from snapdiff.cli import main
from snapdiff.models import LogLevel
from snapdiff.render import format_value
from snapdiff.storage import write_json

FIXED_TIME = "2025-01-01T00:00:00Z"


class TestRegistry:
    """Test registry parsing and validation."""

    def test_default_registry(self):
        """Test the bundled registry."""
        registry = default_registry()
        keys = [d.key for d in registry]
        assert keys[0] == "namespaceConfig"
        assert keys[-1] == "namespaces"

        namespaces = registry[-1]
        assert namespaces.child_keys == {"classes", "globals", "credentials", "productionItems", "lookups"}
        lookups = [c for c in namespaces.children if c.key == "lookups"][0]
        assert lookups.strategy == Strategy.FLAT
        assert lookups.id_field is None

    def test_id_field_defaults_to_id(self):
        """Test that idField defaults to "id"."""
        registry = parse_registry([{"key": "users", "label": "Users", "strategy": "entity"}])
        assert registry[0].id_field == "id"

    def test_label_defaults_to_key(self):
        """Test that label defaults to the key."""
        registry = parse_registry([{"key": "users", "strategy": "entity"}])
        assert registry[0].label == "users"

    def test_entities_mapping_accepted(self):
        """Test a registry given as an entities mapping."""
        registry = parse_registry({"entities": [{"key": "tasks", "strategy": "flat"}]})
        assert registry[0].key == "tasks"

    def test_unknown_strategy(self):
        """Test that an unknown strategy is rejected."""
        with pytest.raises(RegistryError) as exc:
            parse_registry([{"key": "users", "strategy": "fuzzy"}])
        assert exc.value.key == "users"

    def test_missing_key(self):
        """Test that an entry without a key is rejected."""
        with pytest.raises(RegistryError):
            parse_registry([{"label": "Users", "strategy": "entity"}])

    def test_flat_with_children_rejected(self):
        """Test that flat entries cannot have children."""
        with pytest.raises(RegistryError):
            parse_registry([{
                "key": "lookups", "strategy": "flat",
                "children": [{"key": "rows", "strategy": "flat"}],
            }])

    def test_flat_with_id_field_rejected(self):
        """Test that flat entries cannot have an idField."""
        with pytest.raises(RegistryError):
            parse_registry([{"key": "lookups", "strategy": "flat", "idField": "id"}])

    def test_duplicate_keys_rejected(self):
        """Test that duplicate keys are rejected."""
        with pytest.raises(RegistryError):
            parse_registry([
                {"key": "users", "strategy": "entity"},
                {"key": "users", "strategy": "flat"},
            ])

    def test_child_error_names_parent(self):
        """Test that child errors carry the parent key."""
        with pytest.raises(RegistryError) as exc:
            parse_registry([{
                "key": "namespaces", "strategy": "entity",
                "children": [{"key": "classes", "strategy": "bogus"}],
            }])
        assert exc.value.key == "namespaces.classes"

    def test_load_registry_yaml(self, tmp_path):
        """Test loading a registry from YAML."""
        path = tmp_path / "registry.yaml"
        path.write_text(
            "- key: users\n"
            "  label: Users\n"
            "  strategy: entity\n"
            "  idField: name\n"
        )
        registry = load_registry(path)
        assert registry[0].id_field == "name"

    def test_load_registry_missing_file(self, tmp_path):
        """Test loading a registry that does not exist."""
        with pytest.raises(SnapshotLoadError):
            load_registry(tmp_path / "nope.yaml")

    def test_descriptor_to_dict(self):
        """Test descriptor serialization."""
        registry = parse_registry([{
            "key": "namespaces", "label": "Namespaces", "strategy": "entity",
            "children": [{"key": "lookups", "label": "Lookups", "strategy": "flat"}],
        }])
        assert registry[0].to_dict() == {
            "key": "namespaces",
            "label": "Namespaces",
            "strategy": "entity",
            "idField": "id",
            "children": [{"key": "lookups", "label": "Lookups", "strategy": "flat"}],
        }


class TestConfig:
    """Test engine config loading."""

    def test_defaults(self):
        """Test default config values."""
        config = EngineConfig()
        assert config.ignore_paths == []
        assert config.report_anomalies is True
        assert config.log_level == LogLevel.WARN

    def test_load_yaml(self, tmp_path):
        """Test loading config from YAML."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "ignorePaths:\n"
            "  - \"$..lastModified\"\n"
            "reportAnomalies: false\n"
            "logLevel: debug\n"
        )
        config = load_config(path)
        assert config.ignore_paths == ["$..lastModified"]
        assert config.report_anomalies is False
        assert config.log_level == LogLevel.DEBUG

    def test_load_json(self, tmp_path):
        """Test loading config from JSON."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"logLevel": "warning"}))
        assert load_config(path).log_level == LogLevel.WARN

    def test_invalid_log_level(self, tmp_path):
        """Test that an unknown log level is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("logLevel: loud\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        """Test that a non-mapping config is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_single_ignore_path_string(self, tmp_path):
        """Test that a single ignorePaths string is one expression."""
        path = tmp_path / "config.yaml"
        path.write_text("ignorePaths: \"$..lastRun\"\n")
        assert load_config(path).ignore_paths == ["$..lastRun"]

    def test_single_ignore_path_masks_only_that_field(self, tmp_path):
        """Test that a bare ignorePaths name does not mask other collections."""
        path = tmp_path / "config.yaml"
        path.write_text("ignorePaths: users\n")
        config = load_config(path)
        assert config.ignore_paths == ["users"]

        registry = parse_registry([{"key": "u", "label": "U", "strategy": "flat"}])
        report = SnapDiffEngine(registry, config).compare({"u": [1]}, {"u": [2]})
        assert report.total_differences == 2

    def test_ignore_paths_wrong_type(self, tmp_path):
        """Test that ignorePaths must be a string or a list."""
        path = tmp_path / "config.yaml"
        path.write_text("ignorePaths:\n  lastRun: true\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_report_anomalies_must_be_bool(self, tmp_path):
        """Test that a quoted "false" is rejected for reportAnomalies."""
        path = tmp_path / "config.yaml"
        path.write_text("reportAnomalies: \"false\"\n")
        with pytest.raises(ValidationError):
            load_config(path)


class TestMasker:
    """Test JSONPath ignore masking."""

    def test_descendant_fields_removed(self):
        """Test removal of descendant fields."""
        saved = {"users": [{"id": "u1", "lastModified": "a", "profile": {"lastModified": "x"}}]}
        masked, _ = Masker(["$..lastModified"]).mask(saved, {})
        assert masked == {"users": [{"id": "u1", "profile": {}}]}

    def test_inputs_untouched(self):
        """Test that masking works on copies."""
        saved = {"users": [{"id": "u1", "lastLogin": "a"}]}
        current = {"users": [{"id": "u1", "lastLogin": "b"}]}
        masker = Masker(["$.users[*].lastLogin"])
        masked_saved, masked_current = masker.mask(saved, current)

        assert masked_saved == {"users": [{"id": "u1"}]}
        assert masked_current == {"users": [{"id": "u1"}]}
        assert saved["users"][0]["lastLogin"] == "a"
        assert masker.removed_count == 2

    def test_array_item_removed(self):
        """Test removal of an array item."""
        masked, _ = Masker(["$.lookups[0]"]).mask({"lookups": [{"k": "a"}, {"k": "b"}]}, {})
        assert masked == {"lookups": [{"k": "b"}]}

    def test_no_paths_is_passthrough(self):
        """Test that no paths returns the inputs as-is."""
        saved = {"users": []}
        masked, _ = Masker([]).mask(saved, {})
        assert masked is saved

    def test_invalid_expression(self):
        """Test that a bad JSONPath is rejected."""
        with pytest.raises(ValidationError):
            Masker(["users["])

    def test_engine_ignores_paths(self):
        """Test that the engine applies ignore paths."""
        registry = parse_registry([{"key": "tasks", "label": "Tasks", "strategy": "entity"}])
        engine = SnapDiffEngine(registry, EngineConfig(ignore_paths=["$..lastRun"]))
        report = engine.compare(
            {"tasks": [{"id": "t1", "lastRun": "monday", "cmd": "purge"}]},
            {"tasks": [{"id": "t1", "lastRun": "tuesday", "cmd": "purge"}]},
        )
        assert report.total_differences == 0


def make_report():
    registry = parse_registry([
        {"key": "users", "label": "Users", "strategy": "entity"},
        {"key": "roles", "label": "Roles", "strategy": "entity"},
        {
            "key": "namespaces", "label": "Namespaces", "strategy": "entity",
            "children": [{"key": "lookups", "label": "Lookup Tables", "strategy": "flat"}],
        },
    ])
    engine = SnapDiffEngine(registry, clock=lambda: FIXED_TIME)
    return engine.compare(
        {
            "users": [{"id": "u1", "name": "Ann", "note": "hi"}, {"id": "u2"}],
            "roles": [{"id": "r1"}],
            "namespaces": [{"id": "ns1", "lookups": [{"k": "a", "v": 1}]}],
        },
        {
            "users": [{"id": "u1", "name": "Ann2"}, {"id": "u2"}, {"id": "u3"}],
            "roles": [{"id": "r1"}],
            "namespaces": [{"id": "ns1", "lookups": []}],
        },
    )


class TestStore:
    """Test the local snapshot store."""

    def test_empty_store(self, tmp_path):
        """Test loading from an empty store."""
        store = SnapshotStore(tmp_path / "store")
        assert store.load_snapshot() is None
        assert store.load_report() is None

    def test_save_and_load_snapshot(self, tmp_path):
        """Test saving and loading a snapshot."""
        store = SnapshotStore(tmp_path / "store")
        store.save_snapshot({"users": [{"id": "u1"}]}, "https://iris-a", timestamp=FIXED_TIME)

        saved = store.load_snapshot()
        assert saved.snapshot == {"users": [{"id": "u1"}]}
        assert saved.server_url == "https://iris-a"
        assert saved.timestamp == FIXED_TIME

    def test_snapshot_gets_timestamp(self, tmp_path):
        """Test that a saved snapshot gets a UTC timestamp."""
        saved = SnapshotStore(tmp_path).save_snapshot({}, "srv")
        assert saved.timestamp.endswith("Z")

    def test_report_survives_storage(self, tmp_path):
        """Test saving and loading a report."""
        store = SnapshotStore(tmp_path)
        report = make_report()
        store.save_report(report)

        loaded = store.load_report()
        assert loaded.to_dict() == report.to_dict()
        note = loaded.section("users").matched[0].differences[1]
        assert note.property == "note"
        assert note.current is ABSENT

    def test_clear(self, tmp_path):
        """Test clearing the store."""
        store = SnapshotStore(tmp_path)
        store.save_snapshot({}, "srv")
        store.save_report(make_report())
        store.clear()
        assert store.load_snapshot() is None
        assert store.load_report() is None

    def test_corrupt_file(self, tmp_path):
        """Test loading a corrupt snapshot file."""
        store = SnapshotStore(tmp_path)
        store.snapshot_path.write_text("{not json")
        with pytest.raises(SnapshotLoadError):
            store.load_snapshot()

    def test_failed_write_keeps_previous_file(self, tmp_path):
        """Test that a failed write leaves the stored report intact."""
        store = SnapshotStore(tmp_path)
        report = make_report()
        store.save_report(report)

        with pytest.raises(TypeError):
            write_json(store.report_path, {"bad": object()})

        assert store.load_report().to_dict() == report.to_dict()
        assert sorted(p.name for p in tmp_path.iterdir()) == ["comparison_report.json"]


class TestRender:
    """Test text rendering."""

    def test_format_value(self):
        """Test value formatting."""
        assert format_value(ABSENT) == "<absent>"
        assert format_value(None) == "null"
        assert format_value("Ann") == "Ann"
        assert format_value(True) == "true"
        assert format_value({"b": 1, "a": [1]}) == '{"a": [1], "b": 1}'

    def test_in_sync_report(self):
        """Test rendering an in-sync report."""
        text = format_report(Report(timestamp=FIXED_TIME))
        assert "servers are in sync" in text

    def test_report_with_differences(self):
        """Test rendering a report with differences."""
        text = format_report(make_report())
        assert "3 differences found" in text
        assert "== Users [2] ==" in text
        assert "Extra in Current Server (1):" in text
        assert "- u3" in text
        assert "name: Ann -> Ann2" in text
        assert "note: hi -> <absent>" in text
        assert "1 item in sync: u2" in text
        assert "== Roles [in sync] ==" in text
        assert "Namespaces: ns1" in text
        assert '- {"k": "a", "v": 1}' in text


class TestCli:
    """Test the command line."""

    def write(self, path, data):
        path.write_text(json.dumps(data))
        return str(path)

    def test_save_compare_show_clear(self, tmp_path, capsys):
        """Test the save, compare, show and clear commands."""
        store = str(tmp_path / "store")
        saved = self.write(tmp_path / "a.json", {"users": [{"id": "u1", "name": "Ann"}]})
        current = self.write(tmp_path / "b.json", {"users": [{"id": "u1", "name": "Ann2"}]})

        assert main(["--store", store, "save", saved, "--server", "iris-a"]) == 0
        assert "Data saved from iris-a" in capsys.readouterr().out

        assert main(["--store", store, "compare", current, "--server", "iris-b"]) == 1
        out = capsys.readouterr().out
        assert "Saved Server:   iris-a" in out
        assert "Current Server: iris-b" in out
        assert "name: Ann -> Ann2" in out

        assert main(["--store", store, "show"]) == 0
        assert "name: Ann -> Ann2" in capsys.readouterr().out

        assert main(["--store", store, "clear"]) == 0
        assert main(["--store", store, "show"]) == 2

    def test_compare_in_sync(self, tmp_path, capsys):
        """Test compare exit code when in sync."""
        a = self.write(tmp_path / "a.json", {"roles": [{"id": "r1"}]})
        b = self.write(tmp_path / "b.json", {"roles": [{"id": "r1"}]})
        assert main(["--store", str(tmp_path), "compare", b, "--against", a]) == 0
        assert "in sync" in capsys.readouterr().out

    def test_compare_writes_json(self, tmp_path):
        """Test writing the report as JSON."""
        a = self.write(tmp_path / "a.json", {"roles": [{"id": "r1"}]})
        b = self.write(tmp_path / "b.json", {"roles": []})
        out = tmp_path / "report.json"

        code = main(["--store", str(tmp_path), "compare", b, "--against", a, "--json", str(out), "-q"])
        assert code == 1
        data = json.loads(out.read_text())
        assert data["totalDifferences"] == 1
        roles = [s for s in data["sections"] if s["key"] == "roles"][0]
        assert roles["missing"] == [{"id": "r1", "entity": {"id": "r1"}}]

    def test_compare_without_saved_snapshot(self, tmp_path, capsys):
        """Test compare with nothing saved."""
        b = self.write(tmp_path / "b.json", {})
        assert main(["--store", str(tmp_path / "empty"), "compare", b]) == 2
        assert "No saved data found" in capsys.readouterr().err

    def test_custom_registry_and_config(self, tmp_path):
        """Test compare with a custom registry and config."""
        registry = tmp_path / "registry.yaml"
        registry.write_text("- key: jobs\n  label: Jobs\n  strategy: flat\n")
        config = tmp_path / "config.yaml"
        config.write_text("ignorePaths: ['$.jobs[*].lastRun']\n")
        a = self.write(tmp_path / "a.json", {"jobs": [{"name": "x", "lastRun": 1}]})
        b = self.write(tmp_path / "b.json", {"jobs": [{"name": "x", "lastRun": 2}]})

        code = main([
            "--store", str(tmp_path), "--registry", str(registry), "--config", str(config),
            "compare", b, "--against", a, "-q",
        ])
        assert code == 0

    def test_invalid_snapshot(self, tmp_path, capsys):
        """Test saving a snapshot that is not an object."""
        a = self.write(tmp_path / "a.json", [1, 2, 3])
        assert main(["--store", str(tmp_path), "save", a]) == 2
        assert "Error:" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        """Test saving a snapshot that does not exist."""
        assert main(["--store", str(tmp_path), "save", str(tmp_path / "missing.json")]) == 2
        assert "file not found" in capsys.readouterr().err

    def test_compare_against_stores_report(self, tmp_path, capsys):
        """Test that show prints the report from a compare --against run."""
        store = str(tmp_path / "store")
        a = self.write(tmp_path / "a.json", {"roles": [{"id": "r1"}]})
        b = self.write(tmp_path / "b.json", {"roles": []})

        assert main(["--store", store, "compare", b, "--against", a, "-q"]) == 1
        capsys.readouterr()

        assert main(["--store", store, "show"]) == 0
        out = capsys.readouterr().out
        assert "1 difference" in out
        assert "- r1" in out
