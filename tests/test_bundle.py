from __future__ import annotations

import asyncio

import pytest
from conftest import out

from xcdeploy.core.bundle import BundleIdentifierResolver
from xcdeploy.core.errors import BundleIdentifierNotFoundError

SETTINGS = """Build settings for action build and target MyApp:
    CONFIGURATION_BUILD_DIR = /tmp/build/Debug-iphoneos
    PRODUCT_BUNDLE_IDENTIFIER = com.example.MyApp
    PRODUCT_NAME = MyApp
"""


def test_resolves_and_caches_per_project_and_scheme(executor) -> None:
    executor.on("-showBuildSettings", out(SETTINGS))
    resolver = BundleIdentifierResolver(executor)

    assert asyncio.run(resolver.get_bundle_identifier("/src/MyApp.xcodeproj", "MyApp")) == "com.example.MyApp"
    assert asyncio.run(resolver.get_bundle_identifier("/src/MyApp.xcodeproj", "MyApp")) == "com.example.MyApp"
    assert executor.count("-showBuildSettings") == 1

    asyncio.run(resolver.get_bundle_identifier("/src/MyApp.xcodeproj", "MyAppTests"))
    assert executor.count("-showBuildSettings") == 2


def test_workspace_uses_workspace_flag(executor) -> None:
    executor.on("-showBuildSettings", out(SETTINGS))
    resolver = BundleIdentifierResolver(executor)

    asyncio.run(resolver.get_bundle_identifier("/src/MyApp.xcworkspace", "MyApp"))

    [command] = executor.commands()
    assert "-workspace /src/MyApp.xcworkspace" in command
    assert "-scheme MyApp" in command


def test_missing_setting_raises_and_is_not_cached(executor) -> None:
    executor.on("-showBuildSettings", out("    PRODUCT_NAME = MyApp\n"), out(SETTINGS))
    resolver = BundleIdentifierResolver(executor)

    with pytest.raises(BundleIdentifierNotFoundError):
        asyncio.run(resolver.get_bundle_identifier("/src/MyApp.xcodeproj", "MyApp"))
    assert asyncio.run(resolver.get_bundle_identifier("/src/MyApp.xcodeproj", "MyApp")) == "com.example.MyApp"
