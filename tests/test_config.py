"""Tests for account context resolution."""

import pytest
import yaml

from chatwoot_cli import config as cw_config
from chatwoot_cli.config import (
    CWContext,
    create_cw_config,
    describe_context,
    find_cw_config,
    resolve_context,
)
from chatwoot_cli.errors import AuthenticationError, UserInputError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No ambient credentials and a private user config location."""
    for name in ("CHATWOOT_BASE_URL", "CHATWOOT_API_TOKEN", "CHATWOOT_ACCOUNT_ID", "CW_WORK_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(cw_config, "USER_CONFIG_FILE", tmp_path / "user" / "config.yaml")


def write_cw(path, data):
    cw_dir = path / ".cw"
    cw_dir.mkdir(parents=True, exist_ok=True)
    (cw_dir / "config.yaml").write_text(yaml.safe_dump(data))
    return cw_dir / "config.yaml"


class TestEnvironment:
    def test_env_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CHATWOOT_BASE_URL", "https://env.example.com")
        monkeypatch.setenv("CHATWOOT_API_TOKEN", "env-token")
        monkeypatch.setenv("CHATWOOT_ACCOUNT_ID", "9")
        write_cw(tmp_path, {"base_url": "https://file.example.com", "account_id": 1})

        context = resolve_context(tmp_path)

        assert context.config_source == "env"
        assert context.base_url == "https://env.example.com"
        assert context.account_id == 9
        assert context.api_token == "env-token"

    def test_partial_env_is_an_error(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CHATWOOT_BASE_URL", "https://env.example.com")
        with pytest.raises(UserInputError, match="must all be set"):
            resolve_context(tmp_path)

    def test_account_id_must_be_positive(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CHATWOOT_BASE_URL", "https://env.example.com")
        monkeypatch.setenv("CHATWOOT_API_TOKEN", "t")
        monkeypatch.setenv("CHATWOOT_ACCOUNT_ID", "zero")
        with pytest.raises(UserInputError, match="positive integer"):
            resolve_context(tmp_path)


class TestDirectoryConfig:
    def test_directory_config(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CW_WORK_TOKEN", "work-token")
        write_cw(tmp_path, {
            "base_url": "https://file.example.com",
            "account_id": 4,
            "api_token_env": "CW_WORK_TOKEN",
            "output": "json",
        })

        context = resolve_context(tmp_path)

        assert context.config_source == "directory"
        assert context.account_id == 4
        assert context.api_token == "work-token"
        assert context.output == "json"
        assert context.is_configured()

    def test_parent_config(self, tmp_path):
        write_cw(tmp_path, {"base_url": "https://file.example.com", "account_id": 4, "api_token": "inline"})
        child = tmp_path / "a" / "b"
        child.mkdir(parents=True)

        context = resolve_context(child)

        assert context.config_source == "parent"
        assert context.config_path == tmp_path / ".cw" / "config.yaml"
        assert context.api_token == "inline"

    def test_find_returns_none_without_config(self, tmp_path):
        assert find_cw_config(tmp_path) is None

    def test_invalid_yaml(self, tmp_path):
        cw_dir = tmp_path / ".cw"
        cw_dir.mkdir()
        (cw_dir / "config.yaml").write_text("base_url: [unclosed")
        with pytest.raises(UserInputError, match="invalid config file"):
            resolve_context(tmp_path)

    def test_not_a_mapping(self, tmp_path):
        cw_dir = tmp_path / ".cw"
        cw_dir.mkdir()
        (cw_dir / "config.yaml").write_text("- a\n- b\n")
        with pytest.raises(UserInputError, match="expected a mapping"):
            resolve_context(tmp_path)


class TestUserConfig:
    def test_user_config_fallback(self, tmp_path):
        user_file = cw_config.USER_CONFIG_FILE
        user_file.parent.mkdir(parents=True)
        user_file.write_text(yaml.safe_dump({"base_url": "https://user.example.com", "account_id": 2, "api_token": "u"}))
        project = tmp_path / "project"
        project.mkdir()

        context = resolve_context(project)

        assert context.config_source == "user"
        assert context.base_url == "https://user.example.com"

    def test_unconfigured(self, tmp_path):
        context = resolve_context(tmp_path)
        assert context.config_source == "none"
        assert not context.is_configured()


class TestRequire:
    def test_lists_missing_fields(self):
        with pytest.raises(AuthenticationError) as exc_info:
            CWContext(base_url="https://x").require()
        assert "account_id" in str(exc_info.value)
        assert "CHATWOOT_API_TOKEN" in str(exc_info.value)
        assert any("cw config init" in s for s in exc_info.value.suggestions)

    def test_configured_returns_self(self):
        context = CWContext(base_url="https://x", account_id=1, api_token="t")
        assert context.require() is context


class TestCreateConfig:
    def test_writes_yaml_without_token(self, tmp_path):
        path = create_cw_config(tmp_path, "https://x", 3, api_token_env="CW_WORK_TOKEN", output="agent")
        data = yaml.safe_load(path.read_text())
        assert data == {
            "base_url": "https://x",
            "account_id": 3,
            "api_token_env": "CW_WORK_TOKEN",
            "output": "agent",
        }

    def test_round_trips_through_resolve(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CHATWOOT_API_TOKEN", "t")
        create_cw_config(tmp_path, "https://x", 3)
        context = resolve_context(tmp_path)
        assert context.is_configured()


class TestDescribe:
    def test_token_redacted(self):
        info = describe_context(CWContext(base_url="https://x", account_id=1, api_token="secret"))
        assert "secret" not in str(info)
        assert info["api_token_configured"] is True
