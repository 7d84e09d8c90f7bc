"""Bundle identifier lookup from xcodebuild build settings."""

from __future__ import annotations

import logging
import re

from xcdeploy.core.commands import show_build_settings_command
from xcdeploy.core.errors import BundleIdentifierNotFoundError
from xcdeploy.core.executor import CommandRunner

LOGGER = logging.getLogger(__name__)

_BUNDLE_ID_RE = re.compile(r"^\s*PRODUCT_BUNDLE_IDENTIFIER\s*=\s*(.+)$", re.MULTILINE)


class BundleIdentifierResolver:
    """Resolves and memoizes bundle identifiers per (project, scheme).

    Entries never expire; edits to a project's bundle identifier are not seen
    until a new resolver is created.
    """

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner
        self._cache: dict[tuple[str, str], str] = {}

    async def get_bundle_identifier(self, project_path: str, scheme: str) -> str:
        key = (project_path, scheme)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        output = await self._runner.execute(show_build_settings_command(project_path, scheme=scheme))
        match = _BUNDLE_ID_RE.search(output.stdout)
        if match is None or not match.group(1).strip():
            raise BundleIdentifierNotFoundError(
                f"PRODUCT_BUNDLE_IDENTIFIER not found in build settings for scheme '{scheme}' of {project_path}"
            )
        bundle_id = match.group(1).strip()
        LOGGER.debug("Bundle identifier for %s/%s: %s", project_path, scheme, bundle_id)
        self._cache[key] = bundle_id
        return bundle_id
