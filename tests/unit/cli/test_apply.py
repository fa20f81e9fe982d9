"""Unit tests for apply command.

Tests for the CLI apply command implementation.
"""

import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from configset.cli.main import app
from configset.core.config import Settings
from configset.core.engine import ReconciliationEngine
from configset.store.base import StateStoreError
from configset.store.file import FileSetInfoStore
from fakes import FakeObjectClient, config_map, unavailable
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def manifest(tmp_path: Path) -> Path:
    """Manifest file with ConfigMaps a, b and c."""
    path = tmp_path / "app.yaml"
    path.write_text("\n---\n".join(json.dumps(config_map(n)) for n in ("a", "b", "c")))
    return path


@pytest.fixture
def patched(engine: ReconciliationEngine) -> Iterator[ReconciliationEngine]:
    """Route the apply command to the test engine with default settings."""
    with (
        patch("configset.cli.commands.apply.get_settings", return_value=Settings()),
        patch("configset.cli.commands.apply.require_engine", return_value=engine),
    ):
        yield engine


class TestApplyCommandHelp:
    """Tests for apply command help."""

    def test_apply_help_shows_options(self) -> None:
        """Apply help shows all available options."""
        result = runner.invoke(app, ["apply", "--help"])

        assert result.exit_code == 0
        for option in ("--filename", "--recursive", "--dry-run", "--force-conflicts", "--diff"):
            assert option in result.output

    def test_apply_requires_filename(self) -> None:
        """Apply fails without --filename."""
        result = runner.invoke(app, ["apply", "web"])

        assert result.exit_code != 0


class TestApplyCommand:
    """Tests for running apply."""

    def test_apply_streams_results(
        self,
        patched: ReconciliationEngine,
        manifest: Path,
        fake_client: FakeObjectClient,
        file_store: FileSetInfoStore,
    ) -> None:
        """Every applied object is reported and the set is recorded."""
        result = runner.invoke(app, ["apply", "web", "-f", str(manifest)])

        assert result.exit_code == 0, result.output
        assert "update: ns=default name=a apiVersion=v1 kind=ConfigMap: ok" in result.output
        assert "3 applied" in result.output
        assert fake_client.names() == {"a", "b", "c"}
        assert file_store.get("web") is not None

    def test_apply_reports_prune(
        self,
        patched: ReconciliationEngine,
        manifest: Path,
        tmp_path: Path,
    ) -> None:
        """Objects removed from the manifests are reported as deleted."""
        runner.invoke(app, ["apply", "web", "-f", str(manifest)])
        smaller = tmp_path / "smaller.yaml"
        smaller.write_text(json.dumps(config_map("a")))

        result = runner.invoke(app, ["apply", "web", "-f", str(smaller)])

        assert result.exit_code == 0, result.output
        assert "delete: ns=default name=c" in result.output
        assert "2 deleted" in result.output

    def test_apply_partial_failure_exits_1(
        self,
        patched: ReconciliationEngine,
        manifest: Path,
        fake_client: FakeObjectClient,
    ) -> None:
        """A failed object is reported and the command exits with 1."""
        fake_client.fail_apply["b"] = unavailable("connection refused")

        result = runner.invoke(app, ["apply", "web", "-f", str(manifest)])

        assert result.exit_code == 1
        assert "connection refused" in result.output
        assert "Failed to operate 1 of 3" in result.output

    def test_apply_dry_run(
        self,
        patched: ReconciliationEngine,
        manifest: Path,
        fake_client: FakeObjectClient,
        file_store: FileSetInfoStore,
    ) -> None:
        """Dry-run reports results without changing anything."""
        result = runner.invoke(app, ["apply", "web", "-f", str(manifest), "--dry-run"])

        assert result.exit_code == 0
        assert "Dry run" in result.output
        assert fake_client.names() == set()
        assert file_store.get("web") is None

    def test_apply_quiet_hides_successes(
        self,
        patched: ReconciliationEngine,
        manifest: Path,
    ) -> None:
        """--quiet suppresses per-object success lines."""
        result = runner.invoke(app, ["--quiet", "apply", "web", "-f", str(manifest)])

        assert result.exit_code == 0
        assert "name=a" not in result.output

    def test_apply_invalid_name(self, patched: ReconciliationEngine, manifest: Path) -> None:
        """Invalid set names exit with 1."""
        result = runner.invoke(app, ["apply", "Bad_Name", "-f", str(manifest)])

        assert result.exit_code == 1
        assert "Invalid config set name" in result.output

    def test_apply_missing_manifest(self, patched: ReconciliationEngine, tmp_path: Path) -> None:
        """A missing manifest exits with 1."""
        result = runner.invoke(app, ["apply", "web", "-f", str(tmp_path / "none.yaml")])

        assert result.exit_code == 1
        assert "Manifest not found" in result.output

    def test_apply_invalid_manifest(self, patched: ReconciliationEngine, tmp_path: Path) -> None:
        """An invalid manifest exits with 1 before touching the cluster."""
        path = tmp_path / "bad.yaml"
        path.write_text("apiVersion: v1\nkind: ConfigMap\nmetadata: {}\n")

        result = runner.invoke(app, ["apply", "web", "-f", str(path)])

        assert result.exit_code == 1
        assert "metadata.name" in result.output

    def test_apply_non_utf8_manifest(self, patched: ReconciliationEngine, tmp_path: Path) -> None:
        """A manifest that is not UTF-8 exits with 1 instead of crashing."""
        path = tmp_path / "bad.yaml"
        path.write_bytes(b"\xff\xfekind: ConfigMap\n")

        result = runner.invoke(app, ["apply", "web", "-f", str(path)])

        assert result.exit_code == 1
        assert not isinstance(result.exception, UnicodeDecodeError)
        assert "UTF-8" in result.output

    def test_apply_state_store_error(self, manifest: Path, fake_client: FakeObjectClient) -> None:
        """State store failures exit with 1."""
        store = MagicMock()
        store.get.side_effect = StateStoreError("secret unreadable")
        engine = ReconciliationEngine(fake_client, store)

        with (
            patch("configset.cli.commands.apply.get_settings", return_value=Settings()),
            patch("configset.cli.commands.apply.require_engine", return_value=engine),
        ):
            result = runner.invoke(app, ["apply", "web", "-f", str(manifest)])

        assert result.exit_code == 1
        assert "secret unreadable" in result.output


class TestApplyDiff:
    """Tests for apply --diff."""

    def test_diff_implies_dry_run(
        self,
        patched: ReconciliationEngine,
        manifest: Path,
        fake_client: FakeObjectClient,
    ) -> None:
        """--diff never changes the cluster and runs the diff program."""
        with patch("configset.cli.commands.apply.run_diff", return_value=0) as mock_diff:
            result = runner.invoke(app, ["apply", "web", "-f", str(manifest), "--diff"])

        assert result.exit_code == 0, result.output
        assert fake_client.names() == set()
        mock_diff.assert_called_once()

    def test_diff_exit_code_is_propagated(
        self,
        patched: ReconciliationEngine,
        manifest: Path,
    ) -> None:
        """The diff program's exit code becomes the command's exit code."""
        with patch("configset.cli.commands.apply.run_diff", return_value=1):
            result = runner.invoke(app, ["apply", "web", "-f", str(manifest), "--diff"])

        assert result.exit_code == 1

    def test_diff_writes_snapshots(
        self,
        patched: ReconciliationEngine,
        manifest: Path,
    ) -> None:
        """The diff program receives the new objects."""
        seen: dict[str, list[str]] = {}

        def fake_run(command: str, old: str, new: str) -> int:
            seen["old"] = sorted(p.name for p in Path(old).iterdir())
            seen["new"] = sorted(p.name for p in Path(new).iterdir())
            return 0

        with patch("configset.core.diff.run_shell", side_effect=fake_run):
            result = runner.invoke(app, ["apply", "web", "-f", str(manifest), "--diff"])

        assert result.exit_code == 0, result.output
        assert seen["old"] == []
        assert seen["new"] == [f"default_{n}__v1_ConfigMap.yaml" for n in ("a", "b", "c")]
