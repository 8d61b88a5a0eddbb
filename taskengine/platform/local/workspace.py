"""Local workspace and YAML-backed scoped configuration."""

import asyncio
import fnmatch
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import yaml  # type: ignore[import-untyped]

from taskengine.core.errors import ConfigurationError
from taskengine.core.errors.models import ConfigurationErrorContext
from taskengine.platform.interfaces import ConfigurationListener
from taskengine.platform.models import (
    ConfigurationInspection,
    ConfigurationTarget,
    WorkspaceFolder,
)

logger = logging.getLogger(__name__)

PROJECT_CONFIG_DIR = ".taskengine"
CONFIG_FILE_NAME = "config.yaml"

# Directories never descended into by find_files
IGNORED_DIRECTORIES = {".git", ".hg", ".svn", "__pycache__", "node_modules", ".venv", ".mypy_cache"}


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in configuration file {path}: {e}",
            config_context=ConfigurationErrorContext(
                config_key="*",
                config_section=str(path),
                expected_type="mapping",
                actual_value="unparseable",
            ),
            cause=e,
            component="configuration",
            operation="load",
        ) from e
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping",
            config_context=ConfigurationErrorContext(
                config_key="*",
                config_section=str(path),
                expected_type="mapping",
                actual_value=type(data).__name__,
            ),
            component="configuration",
            operation="load",
        )
    return data


class YamlConfiguration:
    """Two-scope configuration persisted as YAML files.

    Lookup order is workspace, then global, then the in-code defaults.
    Keys are dotted strings (``tools.execute_command.timeout``) stored
    flat in each file. A ``section`` prefixes every key.
    """

    def __init__(
        self,
        global_path: Path,
        workspace_path: Optional[Path],
        defaults: Optional[Dict[str, Any]] = None,
        section: Optional[str] = None,
    ):
        self.global_path = global_path
        self.workspace_path = workspace_path
        self.defaults = dict(defaults or {})
        self.section = section
        self._global = _load_yaml(global_path)
        self._workspace = _load_yaml(workspace_path) if workspace_path else {}
        self._listeners: List[ConfigurationListener] = []

    def _key(self, key: str) -> str:
        return f"{self.section}.{key}" if self.section else key

    def _in_section(self, full_key: str) -> bool:
        return not self.section or full_key.startswith(f"{self.section}.")

    def _strip(self, full_key: str) -> str:
        return full_key[len(self.section) + 1:] if self.section else full_key

    def get(self, key: str, default: Any = None) -> Any:
        full_key = self._key(key)
        for layer in (self._workspace, self._global, self.defaults):
            if full_key in layer:
                return layer[full_key]
        return default

    def has(self, key: str) -> bool:
        full_key = self._key(key)
        return any(full_key in layer for layer in (self._workspace, self._global, self.defaults))

    def inspect(self, key: str) -> ConfigurationInspection:
        full_key = self._key(key)
        return ConfigurationInspection(
            key=full_key,
            default_value=self.defaults.get(full_key),
            global_value=self._global.get(full_key),
            workspace_value=self._workspace.get(full_key),
        )

    async def update(
        self, key: str, value: Any, target: ConfigurationTarget = ConfigurationTarget.GLOBAL
    ) -> None:
        full_key = self._key(key)
        if target == ConfigurationTarget.WORKSPACE:
            if self.workspace_path is None:
                raise ConfigurationError(
                    "No workspace is open; cannot write workspace configuration",
                    config_context=ConfigurationErrorContext(
                        config_key=full_key,
                        config_section="workspace",
                        expected_type="workspace",
                        actual_value="none",
                    ),
                    component="configuration",
                    operation="update",
                )
            layer, path = self._workspace, self.workspace_path
        else:
            layer, path = self._global, self.global_path

        if value is None:
            layer.pop(full_key, None)
        else:
            layer[full_key] = value
        await asyncio.to_thread(self._write, path, dict(layer))
        logger.debug(f"Configuration updated: {full_key} ({target.value})")

        for listener in list(self._listeners):
            try:
                listener(full_key)
            except Exception as e:
                logger.error(f"Configuration listener failed for '{full_key}': {e}")

    @staticmethod
    def _write(path: Path, data: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=True)

    def keys(self) -> List[str]:
        all_keys = set(self.defaults) | set(self._global) | set(self._workspace)
        return sorted(self._strip(k) for k in all_keys if self._in_section(k))

    def get_all(self) -> Dict[str, Any]:
        return {key: self.get(key) for key in self.keys()}

    def on_did_change(self, listener: ConfigurationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose


class LocalWorkspace:
    """Workspace rooted at one or more local directories."""

    def __init__(
        self,
        roots: Sequence[str],
        config_home: Optional[Path] = None,
        config_defaults: Optional[Dict[str, Any]] = None,
    ):
        self._folders = [
            WorkspaceFolder(path=os.path.realpath(root), name=os.path.basename(os.path.realpath(root)), index=i)
            for i, root in enumerate(roots)
        ]
        self.config_home = config_home or Path.home() / PROJECT_CONFIG_DIR
        self.config_defaults = dict(config_defaults or {})

    @property
    def folders(self) -> List[WorkspaceFolder]:
        return list(self._folders)

    @property
    def root_path(self) -> Optional[str]:
        return self._folders[0].path if self._folders else None

    def get_workspace_folder(self, path: str) -> Optional[WorkspaceFolder]:
        absolute = os.path.realpath(path)
        for folder in self._folders:
            if absolute == folder.path or absolute.startswith(folder.path + os.sep):
                return folder
        return None

    def as_relative_path(self, path: str, include_folder_name: bool = False) -> str:
        folder = self.get_workspace_folder(path)
        if folder is None:
            return path
        relative = os.path.relpath(os.path.realpath(path), folder.path)
        if include_folder_name and len(self._folders) > 1:
            return os.path.join(folder.name, relative)
        return relative

    def as_absolute_path(self, path: str) -> str:
        if os.path.isabs(path) or self.root_path is None:
            return os.path.normpath(path)
        return os.path.normpath(os.path.join(self.root_path, path))

    async def find_files(
        self, include: str, exclude: Optional[str] = None, max_results: Optional[int] = None
    ) -> List[str]:
        return await asyncio.to_thread(self._find_files, include, exclude, max_results)

    def _find_files(self, include: str, exclude: Optional[str], max_results: Optional[int]) -> List[str]:
        results: List[str] = []
        for folder in self._folders:
            for dirpath, dirnames, filenames in os.walk(folder.path):
                dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
                for name in sorted(filenames):
                    full = os.path.join(dirpath, name)
                    relative = os.path.relpath(full, folder.path)
                    if not (fnmatch.fnmatch(relative, include) or fnmatch.fnmatch(name, include)):
                        continue
                    if exclude and (fnmatch.fnmatch(relative, exclude) or fnmatch.fnmatch(name, exclude)):
                        continue
                    results.append(full)
                    if max_results is not None and len(results) >= max_results:
                        return results
        return results

    def get_configuration(self, section: Optional[str] = None) -> YamlConfiguration:
        workspace_config = (
            Path(self.root_path) / PROJECT_CONFIG_DIR / CONFIG_FILE_NAME if self.root_path else None
        )
        return YamlConfiguration(
            global_path=self.config_home / CONFIG_FILE_NAME,
            workspace_path=workspace_config,
            defaults=self.config_defaults,
            section=section,
        )
