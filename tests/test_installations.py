from __future__ import annotations

import asyncio
from pathlib import Path

from conftest import out

from xcdeploy.core.errors import ProcessError
from xcdeploy.core.installations import InstallationLocator
from xcdeploy.core.model import Installation


def _apps(tmp_path: Path, *names: str) -> Path:
    for name in names:
        (tmp_path / name / "Contents").mkdir(parents=True)
    return tmp_path


def test_lists_installations_with_versions(executor, tmp_path: Path) -> None:
    apps = _apps(tmp_path, "Xcode.app", "Xcode-16.2.app", "Safari.app")
    executor.on("Xcode-16.2.app/Contents/Info", out("16.2\n"))
    executor.on("Xcode-16.2.app/Contents/version", out("16C5032a\n"))
    executor.on("Xcode.app/Contents/Info", ProcessError("defaults read", 1, stderr="does not exist"))

    locator = InstallationLocator(executor, applications_dir=str(apps))
    installations = asyncio.run(locator.list_installations())

    assert installations == [
        Installation(path=str(apps / "Xcode-16.2.app"), version="16.2", build="16C5032a"),
        Installation(path=str(apps / "Xcode.app"), version="unknown", build=None),
    ]


def test_listing_is_memoized(executor, tmp_path: Path) -> None:
    apps = _apps(tmp_path, "Xcode.app")
    executor.on("Contents/Info", out("15.4\n"))
    executor.on("Contents/version", out("15F31d\n"))
    locator = InstallationLocator(executor, applications_dir=str(apps))

    first = asyncio.run(locator.list_installations())
    calls = len(executor.calls)
    (apps / "Xcode-beta.app").mkdir()
    second = asyncio.run(locator.list_installations())

    assert first == second
    assert len(executor.calls) == calls


def test_falls_back_to_default_installation(executor, tmp_path: Path) -> None:
    locator = InstallationLocator(
        executor,
        applications_dir=str(tmp_path / "missing"),
        default_path="/Applications/Xcode.app",
    )

    installations = asyncio.run(locator.list_installations())

    assert installations == [Installation(path="/Applications/Xcode.app", version="unknown")]
    assert executor.calls == []


def test_fallback_is_not_memoized(executor, tmp_path: Path) -> None:
    executor.on("Contents/Info", out("16.0\n"))
    executor.on("Contents/version", out("16A242d\n"))
    locator = InstallationLocator(executor, applications_dir=str(tmp_path))

    assert asyncio.run(locator.list_installations())[0].version == "unknown"
    _apps(tmp_path, "Xcode.app")
    assert asyncio.run(locator.list_installations())[0].version == "16.0"
