from textwrap import dedent

import pytest
from unittest.mock import patch

from shared_libs.utils import env_secrets


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Write a config.toml and point CONFIG_TOML_PATH to it."""
    path = tmp_path / "config.toml"
    monkeypatch.setenv("CONFIG_TOML_PATH", str(path))
    return path


def test_load_config_from_env_path(config_file):
    config_file.write_text(
        dedent(
            """
            [text_analysis]
            top_k = 3

            [bigquery]
            table_id = "custom"
            """
        ).strip()
    )

    config = env_secrets.load_config()

    assert config["text_analysis"]["top_k"] == 3
    assert config["bigquery"]["table_id"] == "custom"


def test_load_config_parse_error(config_file):
    config_file.write_text("[text_analysis\ntop_k = ")

    with pytest.raises(RuntimeError):
        env_secrets.load_config()


def test_load_config_missing_file(tmp_path, monkeypatch):
    monkeypatch.setenv("CONFIG_TOML_PATH", str(tmp_path / "absent.toml"))
    with patch.object(env_secrets.os.path, "exists", return_value=False):
        assert env_secrets.load_config() == {}
        with pytest.raises(FileNotFoundError):
            env_secrets.load_config(required=True)


def test_config_path_from_env_comes_first(monkeypatch):
    monkeypatch.setenv("CONFIG_TOML_PATH", "/somewhere/config.toml")
    assert env_secrets._candidate_config_paths()[0] == "/somewhere/config.toml"


def test_verify_credentials_rejects_missing_key_file(monkeypatch, tmp_path):
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", str(tmp_path / "missing.json"))
    with pytest.raises(ValueError):
        env_secrets.verify_gcp_credentials()


def test_verify_credentials_falls_back_to_gcloud_project(monkeypatch):
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
    monkeypatch.setenv("GCLOUD_PROJECT", "legacy-project")

    assert env_secrets.verify_gcp_credentials() == "legacy-project"


def test_setup_environment_applies_file_then_environment(config_file):
    config_file.write_text('[retry]\ntimeout = 12.5\n')

    with patch.object(env_secrets, "apply_config") as mock_apply, \
         patch.object(env_secrets, "apply_environment_overrides") as mock_overrides, \
         patch.object(env_secrets, "load_dotenv"):
        raw = env_secrets.setup_environment()

    assert raw == {"retry": {"timeout": 12.5}}
    mock_apply.assert_called_once_with(raw)
    mock_overrides.assert_called_once()
