from __future__ import annotations

from pathlib import Path

import pytest

from xcdeploy.core.config import Settings, load_settings
from xcdeploy.core.errors import ConfigLoadError, ConfigValidationError


def _write_config(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.delenv("XCDEPLOY_CONFIG", raising=False)


def test_defaults_without_config_file() -> None:
    assert load_settings() == Settings()


def test_user_config_overrides_defaults(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "xcdeploy" / "config.yaml",
        """
applications_dir: /Volumes/Tools
default_xcode_path: /Volumes/Tools/Xcode.app/
build_timeout_s: 900
device_cache_ttl_s: 30
denied_command_patterns: ["git\\\\s+push"]
""",
    )

    settings = load_settings()
    assert settings.applications_dir == "/Volumes/Tools"
    assert settings.default_xcode_path == "/Volumes/Tools/Xcode.app"
    assert settings.build_timeout_s == 900.0
    assert settings.device_cache_ttl_s == 30.0
    assert settings.command_timeout_s == 60.0
    assert settings.denied_command_patterns == ("git\\s+push",)


def test_env_var_points_at_explicit_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = _write_config(tmp_path / "elsewhere.yaml", "command_timeout_s: 5\n")
    monkeypatch.setenv("XCDEPLOY_CONFIG", str(path))

    assert load_settings().command_timeout_s == 5.0


def test_missing_explicit_file_is_an_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XCDEPLOY_CONFIG", str(tmp_path / "missing.yaml"))

    with pytest.raises(ConfigLoadError):
        load_settings()


def test_empty_file_means_defaults(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "empty.yaml", "")
    assert load_settings(path) == Settings()


def test_unknown_key_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "bad.yaml", "xcode: /Applications/Xcode.app\n")
    with pytest.raises(ConfigValidationError):
        load_settings(path)


def test_wrong_type_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "bad.yaml", "command_timeout_s: soon\n")
    with pytest.raises(ConfigValidationError) as exc:
        load_settings(path)
    assert "command_timeout_s" in str(exc.value)


def test_duplicate_yaml_keys_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "dup.yaml", "command_timeout_s: 5\ncommand_timeout_s: 6\n")
    with pytest.raises(ConfigValidationError):
        load_settings(path)


def test_invalid_regex_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "regex.yaml", 'denied_command_patterns: ["(unclosed"]\n')
    with pytest.raises(ConfigValidationError):
        load_settings(path)


def test_non_mapping_root_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "list.yaml", "- a\n- b\n")
    with pytest.raises(ConfigValidationError):
        load_settings(path)
