"""Tests for ripple.pipeline."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from conftest import write_manifest
from ripple.config import RepoConfig, RippleConfig
from ripple.errors import CircularDependencyError, ManifestError, NoChangesError
from ripple.pipeline import load_graph, plan_release, run_release
from ripple.runner import DelayConfirmation


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Two repos: engine (get-platform → engine-core → photon) and cli."""
    write_manifest(
        tmp_path,
        "engine/packages/get-platform/package.json",
        {"name": "@x/get-platform", "version": "0.1.0", "scripts": {"test": "jest"}},
    )
    write_manifest(
        tmp_path,
        "engine/packages/engine-core/package.json",
        {
            "name": "@x/engine-core",
            "version": "0.2.0",
            "dependencies": {"@x/get-platform": "0.1.0", "debug": "^4"},
            "scripts": {"test": "jest"},
        },
    )
    write_manifest(
        tmp_path,
        "engine/packages/photon/package.json",
        {
            "name": "@x/photon",
            "version": "2.0.0-alpha.1",
            "dependencies": {"@x/engine-core": "0.2.0"},
            "devDependencies": {"@x/sdk": "*"},
        },
    )
    write_manifest(
        tmp_path,
        "cli/package.json",
        {
            "name": "@x/cli",
            "version": "1.0.0",
            "devDependencies": {"@x/photon": "alpha"},
            "scripts": {"test": "jest"},
        },
    )
    write_manifest(
        tmp_path,
        "engine/packages/photon/node_modules/@x/sdk/package.json",
        {"name": "@x/sdk", "version": "9.9.9"},
    )
    return tmp_path


@pytest.fixture
def ws_config() -> RippleConfig:
    return RippleConfig(
        namespace="@x",
        manifests=["engine/packages/**/package.json", "cli/package.json"],
        repos=[RepoConfig(name="engine"), RepoConfig(name="cli")],
        core_packages=["@x/photon"],
        version_env="RIPPLE_VERSION",
    )


@pytest.fixture
def shell(mock_shell: MagicMock, workspace: Path) -> MagicMock:
    return mock_shell


class TestLoadGraph:
    def test_links_workspace(self, shell: MagicMock, ws_config: RippleConfig) -> None:
        graph = load_graph(ws_config, shell)

        assert set(graph) == {"@x/get-platform", "@x/engine-core", "@x/photon", "@x/cli"}
        assert graph["@x/get-platform"].used_by == ["@x/engine-core"]
        assert graph["@x/photon"].used_by_dev == ["@x/cli"]
        # node_modules copies are ignored, so @x/sdk stays outside the workspace
        assert graph["@x/photon"].uses_dev == ["@x/sdk"]

    def test_circular_dependency_aborts(
        self, shell: MagicMock, workspace: Path, ws_config: RippleConfig
    ) -> None:
        write_manifest(
            workspace,
            "engine/packages/get-platform/package.json",
            {"name": "@x/get-platform", "dependencies": {"@x/engine-core": "*"}},
        )

        with pytest.raises(CircularDependencyError):
            load_graph(ws_config, shell)

    def test_malformed_manifest_aborts(
        self, shell: MagicMock, workspace: Path, ws_config: RippleConfig
    ) -> None:
        (workspace / "cli/package.json").write_text("{")

        with pytest.raises(ManifestError):
            load_graph(ws_config, shell)

    def test_wrong_field_type_aborts(
        self, shell: MagicMock, workspace: Path, ws_config: RippleConfig
    ) -> None:
        write_manifest(workspace, "cli/package.json", {"name": "@x/cli", "version": 2})

        with pytest.raises(ManifestError, match="cli/package.json"):
            load_graph(ws_config, shell)


class TestPlanRelease:
    @patch("ripple.pipeline.latest_changes")
    def test_affected_batches(
        self, mock_changes: MagicMock, shell: MagicMock, ws_config: RippleConfig
    ) -> None:
        mock_changes.return_value = ["engine/packages/engine-core/src/index.ts"]

        graph, affected, batches = plan_release(ws_config, shell)

        assert len(graph) == 4
        assert set(affected) == {"@x/engine-core", "@x/photon", "@x/cli"}
        assert batches == [["@x/engine-core"], ["@x/photon"], ["@x/cli"]]
        assert mock_changes.call_args.args == (shell, ["engine", "cli"], False)

    @patch("ripple.pipeline.latest_changes")
    def test_all_repos_flag_forwarded(
        self, mock_changes: MagicMock, shell: MagicMock, ws_config: RippleConfig
    ) -> None:
        mock_changes.return_value = ["cli/index.ts"]

        plan_release(ws_config, shell, all_repos=True)

        assert mock_changes.call_args.args == (shell, ["engine", "cli"], True)

    @patch("ripple.pipeline.latest_changes")
    def test_skip_batches(
        self, mock_changes: MagicMock, shell: MagicMock, ws_config: RippleConfig
    ) -> None:
        mock_changes.return_value = ["engine/packages/get-platform/index.ts"]
        ws_config.skip_batches = 2

        _, affected, batches = plan_release(ws_config, shell)

        assert len(affected) == 4
        assert batches == [["@x/photon"], ["@x/cli"]]

    @patch("ripple.pipeline.latest_changes")
    def test_no_changes_aborts(
        self, mock_changes: MagicMock, shell: MagicMock, ws_config: RippleConfig
    ) -> None:
        mock_changes.return_value = []

        with pytest.raises(NoChangesError):
            plan_release(ws_config, shell)


class TestRunRelease:
    @patch("ripple.pipeline.latest_changes")
    def test_test_mode(
        self, mock_changes: MagicMock, shell: MagicMock, ws_config: RippleConfig
    ) -> None:
        mock_changes.return_value = ["engine/packages/get-platform/index.ts"]

        batches = run_release(ws_config, shell)

        assert batches[0] == ["@x/get-platform"]
        assert [c.args for c in shell.run.call_args_list] == [
            ("engine/packages/get-platform", "yarn test"),
            ("engine/packages/engine-core", "yarn test"),
            ("cli", "yarn test"),
        ]

    @patch("ripple.pipeline.latest_changes")
    def test_publish_mode(
        self, mock_changes: MagicMock, shell: MagicMock, ws_config: RippleConfig
    ) -> None:
        mock_changes.return_value = ["cli/src/index.ts", "engine/packages/photon/x.ts"]
        shell.capture.return_value = "2.0.0-alpha.5"
        confirmation = MagicMock()

        run_release(ws_config, shell, publish=True, confirmation=confirmation)

        confirmation.confirm.assert_called_once()
        commands = [c.args for c in shell.run.call_args_list]
        assert commands == [
            ("engine/packages/photon", "yarn publish --tag alpha --new-version 2.0.0-alpha.6"),
            ("cli", "yarn upgrade --latest --scope @x"),
            ("cli", "yarn publish --tag latest --new-version 1.0.1"),
        ]

    @patch("ripple.pipeline.publish_packages")
    @patch("ripple.pipeline.latest_changes")
    def test_default_confirmation_is_delay(
        self,
        mock_changes: MagicMock,
        mock_publish: MagicMock,
        shell: MagicMock,
        ws_config: RippleConfig,
    ) -> None:
        mock_changes.return_value = ["cli/src/index.ts"]

        run_release(ws_config, shell, publish=True)

        confirmation = mock_publish.call_args.args[5]
        assert isinstance(confirmation, DelayConfirmation)
