"""Resolution of the devicectl executable inside an Xcode installation."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from xcdeploy.core.config import DEFAULT_XCODE_PATH
from xcdeploy.core.installations import InstallationLocator
from xcdeploy.core.model import Installation

LOGGER = logging.getLogger(__name__)

DEVICECTL_SUBPATH = "Contents/Developer/usr/bin/devicectl"


def tool_path_in(installation_path: str, subpath: str = DEVICECTL_SUBPATH) -> str:
    return str(Path(installation_path) / subpath)


def _is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


class ToolPathResolver:
    def __init__(
        self,
        locator: InstallationLocator,
        *,
        subpath: str = DEVICECTL_SUBPATH,
        default_installation_path: str = DEFAULT_XCODE_PATH,
    ) -> None:
        self._locator = locator
        self.subpath = subpath
        self.default_path = tool_path_in(default_installation_path, subpath)
        self._cache: dict[str, str] = {}

    async def resolve(self, installation: Installation | None = None) -> str:
        if installation is not None:
            cached = self._cache.get(installation.path)
            if cached is not None:
                return cached
            resolved = self._verify(installation)
            if resolved is not None:
                return resolved
            LOGGER.debug("No executable %s in %s, searching other installations", self.subpath, installation.path)

        for candidate in await self._locator.list_installations():
            cached = self._cache.get(candidate.path)
            if cached is not None:
                return cached
            resolved = self._verify(candidate)
            if resolved is not None:
                return resolved

        LOGGER.warning("Could not verify %s in any installation, falling back to %s", self.subpath, self.default_path)
        return self.default_path

    def _verify(self, installation: Installation) -> str | None:
        path = tool_path_in(installation.path, self.subpath)
        if not _is_executable(path):
            return None
        self._cache[installation.path] = path
        return path
