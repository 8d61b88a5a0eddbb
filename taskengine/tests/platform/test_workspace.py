"""Tests for LocalWorkspace and YamlConfiguration."""

import os

import pytest
import yaml

from taskengine.core.errors import ConfigurationError
from taskengine.platform.interfaces import Configuration, Workspace
from taskengine.platform.local import LocalWorkspace
from taskengine.platform.local.workspace import CONFIG_FILE_NAME, PROJECT_CONFIG_DIR
from taskengine.platform.models import ConfigurationTarget


@pytest.fixture
def local_workspace(workspace, tmp_path) -> LocalWorkspace:
    return LocalWorkspace(
        [str(workspace)],
        config_home=tmp_path / "config_home",
        config_defaults={"tools.timeout": 30, "ui.theme": "dark"},
    )


class TestLocalWorkspace:
    """Workspace roots and path conversion."""

    def test_satisfies_protocol(self, local_workspace):
        assert isinstance(local_workspace, Workspace)

    def test_folders(self, local_workspace, workspace):
        folders = local_workspace.folders

        assert len(folders) == 1
        assert folders[0].path == os.path.realpath(workspace)
        assert folders[0].name == "workspace"
        assert local_workspace.root_path == folders[0].path

    def test_path_conversion(self, local_workspace):
        root = local_workspace.root_path
        absolute = local_workspace.as_absolute_path("src/main.py")

        assert absolute == os.path.join(root, "src", "main.py")
        assert local_workspace.as_relative_path(absolute) == os.path.join("src", "main.py")
        assert local_workspace.get_workspace_folder(absolute).index == 0
        assert local_workspace.get_workspace_folder("/definitely/elsewhere") is None

    def test_no_folders(self):
        empty = LocalWorkspace([])

        assert empty.root_path is None
        assert empty.folders == []

    @pytest.mark.asyncio
    async def test_find_files(self, local_workspace, workspace):
        (workspace / ".git").mkdir()
        (workspace / ".git" / "config.py").write_text("x")

        python_files = await local_workspace.find_files("*.py")
        markdown_only = await local_workspace.find_files("*", exclude="*.py")

        assert python_files == [os.path.join(local_workspace.root_path, "src", "main.py")]
        assert [os.path.basename(p) for p in markdown_only] == ["README.md"]
        assert len(await local_workspace.find_files("*", max_results=1)) == 1


class TestYamlConfiguration:
    """Scoped configuration persisted as YAML."""

    def test_satisfies_protocol(self, local_workspace):
        assert isinstance(local_workspace.get_configuration(), Configuration)

    def test_defaults_and_sections(self, local_workspace):
        config = local_workspace.get_configuration()
        tools = local_workspace.get_configuration("tools")

        assert config.get("ui.theme") == "dark"
        assert config.get("missing", "fallback") == "fallback"
        assert tools.get("timeout") == 30
        assert tools.keys() == ["timeout"]
        assert not tools.has("theme")

    @pytest.mark.asyncio
    async def test_workspace_overrides_global(self, local_workspace, workspace, tmp_path):
        config = local_workspace.get_configuration()

        await config.update("tools.timeout", 60)
        await config.update("tools.timeout", 90, ConfigurationTarget.WORKSPACE)

        inspection = config.inspect("tools.timeout")
        assert config.get("tools.timeout") == 90
        assert inspection.default_value == 30
        assert inspection.global_value == 60
        assert inspection.workspace_value == 90

        project_file = workspace / PROJECT_CONFIG_DIR / CONFIG_FILE_NAME
        global_file = tmp_path / "config_home" / CONFIG_FILE_NAME
        assert yaml.safe_load(project_file.read_text()) == {"tools.timeout": 90}
        assert yaml.safe_load(global_file.read_text()) == {"tools.timeout": 60}

        # A fresh configuration reads the persisted files
        reloaded = local_workspace.get_configuration()
        assert reloaded.get_all()["tools.timeout"] == 90

    @pytest.mark.asyncio
    async def test_update_none_removes_key(self, local_workspace):
        config = local_workspace.get_configuration()
        await config.update("ui.theme", "light")
        await config.update("ui.theme", None)

        assert config.get("ui.theme") == "dark"

    @pytest.mark.asyncio
    async def test_change_listeners(self, local_workspace):
        config = local_workspace.get_configuration()
        changed = []

        def broken(key):
            raise RuntimeError("listener bug")

        config.on_did_change(broken)
        dispose = config.on_did_change(changed.append)
        await config.update("a.b", 1)
        dispose()
        await config.update("a.c", 2)

        assert changed == ["a.b"]

    @pytest.mark.asyncio
    async def test_workspace_target_without_workspace(self, tmp_path):
        config = LocalWorkspace([], config_home=tmp_path).get_configuration()

        with pytest.raises(ConfigurationError):
            await config.update("x", 1, ConfigurationTarget.WORKSPACE)

    def test_invalid_yaml(self, workspace, tmp_path):
        config_dir = workspace / PROJECT_CONFIG_DIR
        config_dir.mkdir()
        (config_dir / CONFIG_FILE_NAME).write_text("key: [unclosed")

        with pytest.raises(ConfigurationError):
            LocalWorkspace([str(workspace)], config_home=tmp_path).get_configuration()

    def test_non_mapping_yaml(self, workspace, tmp_path):
        config_dir = workspace / PROJECT_CONFIG_DIR
        config_dir.mkdir()
        (config_dir / CONFIG_FILE_NAME).write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            LocalWorkspace([str(workspace)], config_home=tmp_path).get_configuration()
