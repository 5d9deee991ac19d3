from pathlib import Path

import pytest

from ai_chat.core.utils.config import ConfigError, Settings, load_settings, parse_assignment


def test_env_overrides(tmp_path, monkeypatch):
    config_path = tmp_path / "config.toml"
    config_path.write_text("provider = 'deepseek'\nmodel = 'deepseek-reasoner'\n")
    monkeypatch.setenv("AICHAT_API_KEY", "abc123")
    monkeypatch.setenv("AICHAT_SAVE_SESSION", "false")
    monkeypatch.setenv("AICHAT_COMPRESS_THRESHOLD", "3000")
    monkeypatch.setenv("AICHAT_SESSIONS_DIR", str(tmp_path / "sessions"))
    settings = load_settings(config_path)
    assert settings.api_key == "abc123"
    assert settings.model_id == "deepseek:deepseek-reasoner"
    assert settings.save_session is False
    assert settings.compress_threshold == 3000
    assert settings.resolved_sessions_dir() == tmp_path / "sessions"


def test_request_headers_and_unknown_keys_from_config(tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
provider = "openrouter"
roles-file = "~/roles.yaml"
highlight = true
"""
        "[request_headers]\n"
        "HTTP-Referer = \"https://example.com\"\n"
    )

    settings = load_settings(config_path)

    assert settings.provider == "openrouter"
    assert settings.request_headers == {"HTTP-Referer": "https://example.com"}
    assert settings.resolved_roles_file() == Path("~/roles.yaml").expanduser()
    assert settings.highlight is True


def test_project_config_discovered_in_parent_directory(tmp_path, monkeypatch):
    project_root = tmp_path / "repo"
    nested_dir = project_root / "src" / "module"
    nested_dir.mkdir(parents=True)

    config_path = project_root / ".aichat.toml"
    config_path.write_text("model = 'parent-tree-model'\n")

    monkeypatch.chdir(nested_dir)

    settings = load_settings()

    assert settings.model == "parent-tree-model"


def test_project_config_without_dot_discovered_in_parent_directory(tmp_path, monkeypatch):
    project_root = tmp_path / "repo"
    nested_dir = project_root / "src"
    nested_dir.mkdir(parents=True)

    config_path = project_root / "aichat.toml"
    config_path.write_text("model = 'parent-tree-no-dot'\n")

    monkeypatch.chdir(nested_dir)

    settings = load_settings()

    assert settings.model == "parent-tree-no-dot"


def test_invalid_config_file(tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text("model = \n")

    with pytest.raises(ConfigError):
        load_settings(config_path)


def test_default_paths_follow_config_dir(tmp_path):
    settings = Settings(config_dir=tmp_path)

    assert settings.resolved_sessions_dir() == tmp_path / "sessions"
    assert settings.resolved_roles_file() == tmp_path / "roles.yaml"


def test_parse_assignment():
    assert parse_assignment("temperature 0.5") == ("temperature", 0.5)
    assert parse_assignment("temperature null") == ("temperature", None)
    assert parse_assignment("compress_threshold 1200") == ("compress_threshold", 1200)
    assert parse_assignment("dry_run on") == ("dry_run", True)

    with pytest.raises(ConfigError, match="Usage"):
        parse_assignment("temperature")
    with pytest.raises(ConfigError, match="Unknown key 'model'"):
        parse_assignment("model x")
    with pytest.raises(ConfigError, match="Invalid value"):
        parse_assignment("save_session maybe")
    with pytest.raises(ConfigError, match="Invalid value"):
        parse_assignment("compress_threshold lots")


def test_provider_only_from_config_and_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.toml"
    config_path.write_text("provider = 'openrouter'\nprovider-only = ['Cerebras', ' ']\n")

    assert load_settings(config_path).provider_only == ("Cerebras",)

    monkeypatch.setenv("AICHAT_PROVIDER_ONLY", "Groq, Together")
    assert load_settings(config_path).provider_only == ("Groq", "Together")
