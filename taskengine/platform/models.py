"""Value objects exchanged across the platform boundary."""

from enum import Enum
from typing import Any, Optional

from pydantic import Field

from taskengine.core.models import StrictBaseModel


class FileChangeKind(str, Enum):
    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


class FileChangeEvent(StrictBaseModel):
    """One observed change under a watched path."""

    kind: FileChangeKind = Field(..., description="What happened")
    path: str = Field(..., description="Absolute path that changed")


class FileStat(StrictBaseModel):
    """File or directory statistics."""

    is_file: bool
    is_directory: bool
    size: int = Field(..., description="Size in bytes")
    mtime: float = Field(..., description="Modification time (epoch seconds)")
    ctime: float = Field(..., description="Change time (epoch seconds)")


class ConfigurationTarget(str, Enum):
    """Scope a configuration value is written to."""

    GLOBAL = "global"
    WORKSPACE = "workspace"


class ConfigurationInspection(StrictBaseModel):
    """Where a configuration value comes from."""

    key: str
    default_value: Optional[Any] = None
    global_value: Optional[Any] = None
    workspace_value: Optional[Any] = None


class WorkspaceFolder(StrictBaseModel):
    """An opened workspace root."""

    path: str = Field(..., description="Absolute folder path")
    name: str = Field(..., description="Display name (basename by default)")
    index: int = Field(..., description="Ordinal number of the folder")


class NotificationLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class CommandResult(StrictBaseModel):
    """Captured output of a finished process."""

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration: float = Field(..., description="Wall time in seconds")
    cwd: str

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class SystemSnapshot(StrictBaseModel):
    """Read-only description of the host, used in diagnostics and prompts."""

    app_name: str
    version: str
    platform: str = Field(..., description="win32, darwin, linux or other")
    arch: str
    locale: str
    hostname: str
    machine_id: str
    python_version: str
    cwd: str
    home_dir: str
    tmp_dir: str
    is_development: bool


class PageSnapshot(StrictBaseModel):
    """Result of a browser navigation."""

    url: str
    status: int
    title: Optional[str] = None
    text: str = ""
    content_type: Optional[str] = None
