"""Host description for diagnostics and prompt tailoring."""

import hashlib
import locale
import os
import platform
import socket
import sys
import tempfile
from typing import Optional

from taskengine.platform.models import SystemSnapshot


class LocalSystemInfo:
    """System information read from the running interpreter."""

    def __init__(self, app_name: Optional[str] = None, version: Optional[str] = None):
        self.app_name = app_name or os.environ.get("APP_NAME", "taskengine")
        self.version = version or os.environ.get("APP_VERSION", "0.1.0")
        self._machine_id: Optional[str] = None

    @property
    def machine_id(self) -> str:
        if self._machine_id is None:
            identifier = f"{socket.gethostname()}-{sys.platform}-{platform.machine()}"
            self._machine_id = hashlib.sha256(identifier.encode()).hexdigest()[:32]
        return self._machine_id

    @staticmethod
    def _platform() -> str:
        if sys.platform.startswith("win"):
            return "win32"
        if sys.platform == "darwin":
            return "darwin"
        if sys.platform.startswith("linux"):
            return "linux"
        return "other"

    @staticmethod
    def _locale() -> str:
        lang = os.environ.get("LANG") or (locale.getlocale()[0] or "en")
        return lang.split(".")[0].replace("_", "-") or "en"

    def snapshot(self) -> SystemSnapshot:
        return SystemSnapshot(
            app_name=self.app_name,
            version=self.version,
            platform=self._platform(),
            arch=platform.machine() or "unknown",
            locale=self._locale(),
            hostname=socket.gethostname(),
            machine_id=self.machine_id,
            python_version=platform.python_version(),
            cwd=os.getcwd(),
            home_dir=os.path.expanduser("~"),
            tmp_dir=tempfile.gettempdir(),
            is_development=os.environ.get("TASKENGINE_ENV", "production") == "development",
        )

    def get_env(self, name: str) -> Optional[str]:
        return os.environ.get(name)
