"""Discovery of Xcode installations on the host."""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from xcdeploy.core.config import DEFAULT_APPLICATIONS_DIR, DEFAULT_XCODE_PATH
from xcdeploy.core.errors import CommandError
from xcdeploy.core.executor import CommandRunner
from xcdeploy.core.model import UNKNOWN_VERSION, Installation

LOGGER = logging.getLogger(__name__)

_INSTALLATION_GLOB = "Xcode*.app"


class InstallationLocator:
    """Enumerates `Xcode*.app` bundles and reads their version metadata.

    A successful enumeration is memoized for the lifetime of the locator. When
    nothing can be enumerated, a single synthetic installation pointing at the
    default location is returned instead, and the next call tries again.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        applications_dir: str = DEFAULT_APPLICATIONS_DIR,
        default_path: str = DEFAULT_XCODE_PATH,
    ) -> None:
        self._runner = runner
        self.applications_dir = Path(applications_dir)
        self.default_path = default_path
        self._installations: list[Installation] | None = None

    async def list_installations(self) -> list[Installation]:
        if self._installations is not None:
            return list(self._installations)

        try:
            candidates = sorted(
                (p for p in self.applications_dir.glob(_INSTALLATION_GLOB) if p.is_dir()),
                key=lambda p: p.name,
            )
        except OSError as exc:
            LOGGER.warning("Could not enumerate %s: %s", self.applications_dir, exc)
            candidates = []

        if not candidates:
            LOGGER.warning("No Xcode installations found in %s, assuming %s", self.applications_dir, self.default_path)
            return [Installation(path=self.default_path)]

        installations = [await self._describe(path) for path in candidates]
        self._installations = installations
        return list(installations)

    async def _describe(self, path: Path) -> Installation:
        contents = path / "Contents"
        try:
            version = await self._read_default(contents / "Info", "CFBundleShortVersionString")
            build = await self._read_default(contents / "version", "ProductBuildVersion")
        except CommandError as exc:
            LOGGER.debug("Could not read version metadata for %s: %s", path, exc)
            return Installation(path=str(path), version=UNKNOWN_VERSION)
        return Installation(path=str(path), version=version or UNKNOWN_VERSION, build=build or None)

    async def _read_default(self, plist: Path, key: str) -> str:
        output = await self._runner.execute(f"defaults read {shlex.quote(str(plist))} {key}")
        return output.stdout.strip()
