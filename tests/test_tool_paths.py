from __future__ import annotations

import asyncio
import os
from pathlib import Path

from conftest import FakeLocator

from xcdeploy.core.model import Installation
from xcdeploy.core.tool_paths import DEVICECTL_SUBPATH, ToolPathResolver


def _installation(root: Path, name: str, *, with_tool: bool = True, mode: int = 0o755) -> Installation:
    path = root / name
    tool = path / DEVICECTL_SUBPATH
    tool.parent.mkdir(parents=True)
    if with_tool:
        tool.write_text("#!/bin/sh\n", encoding="utf-8")
        os.chmod(tool, mode)
    return Installation(path=str(path), version="16.2")


def test_resolves_inside_given_installation(tmp_path: Path) -> None:
    xcode = _installation(tmp_path, "Xcode.app")
    resolver = ToolPathResolver(FakeLocator([xcode]))

    assert asyncio.run(resolver.resolve(xcode)) == str(Path(xcode.path) / DEVICECTL_SUBPATH)


def test_cache_hit_is_not_reverified(tmp_path: Path) -> None:
    xcode = _installation(tmp_path, "Xcode.app")
    resolver = ToolPathResolver(FakeLocator([xcode]))
    first = asyncio.run(resolver.resolve(xcode))

    os.remove(first)

    assert asyncio.run(resolver.resolve(xcode)) == first


def test_falls_through_to_other_installations(tmp_path: Path) -> None:
    broken = _installation(tmp_path, "Xcode-beta.app", with_tool=False)
    working = _installation(tmp_path, "Xcode.app")
    resolver = ToolPathResolver(FakeLocator([broken, working]))

    assert asyncio.run(resolver.resolve(broken)) == str(Path(working.path) / DEVICECTL_SUBPATH)


def test_non_executable_tool_is_skipped(tmp_path: Path) -> None:
    plain = _installation(tmp_path, "Xcode-15.app", mode=0o644)
    working = _installation(tmp_path, "Xcode.app")
    resolver = ToolPathResolver(FakeLocator([plain, working]))

    assert asyncio.run(resolver.resolve()) == str(Path(working.path) / DEVICECTL_SUBPATH)


def test_returns_default_when_nothing_verifies(tmp_path: Path) -> None:
    broken = _installation(tmp_path, "Xcode.app", with_tool=False)
    resolver = ToolPathResolver(FakeLocator([broken]), default_installation_path="/Applications/Xcode.app")

    assert asyncio.run(resolver.resolve()) == "/Applications/Xcode.app/" + DEVICECTL_SUBPATH
