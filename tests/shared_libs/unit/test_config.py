import copy
from dataclasses import fields

import pytest

from shared_libs.config import all_config
from shared_libs.config.all_config import (
    ServiceEndpointsConfig,
    apply_config,
    apply_environment_overrides,
    bigquery_config,
    retry_config,
    service_endpoints_config,
    text_analysis_config,
    workflow_config,
)


@pytest.fixture(autouse=True)
def restore_global_config():
    """Snapshot the global config instances and restore them after each test."""
    saved = {
        name: copy.deepcopy(instance.__dict__)
        for name, instance in all_config._SECTIONS.items()
    }
    yield
    for name, instance in all_config._SECTIONS.items():
        for f in fields(instance):
            setattr(instance, f.name, saved[name][f.name])


class TestApplyConfig:
    def test_updates_known_sections(self):
        apply_config({
            "text_analysis": {"top_k": 5},
            "retry": {"timeout": 60.0},
            "services": {"use_combined_analysis": True},
        })

        assert text_analysis_config.top_k == 5
        assert retry_config.timeout == 60.0
        assert service_endpoints_config.use_combined_analysis is True

    def test_unknown_section_is_ignored(self):
        apply_config({"unrelated_tool": {"anything": 1}})

    def test_unknown_setting_raises(self):
        with pytest.raises(ValueError, match="top_n"):
            apply_config({"text_analysis": {"top_n": 5}})


class TestEnvironmentOverrides:
    def test_project_region_and_table(self, monkeypatch):
        service_endpoints_config.project_id = None
        bigquery_config.project_id = None
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "env-project")
        monkeypatch.setenv("CLOUD_REGION", "europe-west1")
        monkeypatch.setenv("BIGQUERY_DATASET", "analytics")
        monkeypatch.setenv("BIGQUERY_TABLE", "files")
        monkeypatch.setenv("WORKFLOW_STATE_BUCKET", "state-bucket")

        apply_environment_overrides()

        assert service_endpoints_config.project_id == "env-project"
        assert service_endpoints_config.region == "europe-west1"
        assert bigquery_config.full_table_id == "env-project.analytics.files"
        assert workflow_config.state_bucket == "state-bucket"

    def test_configured_project_is_kept(self, monkeypatch):
        service_endpoints_config.project_id = "file-project"
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "env-project")

        apply_environment_overrides()

        assert service_endpoints_config.project_id == "file-project"


class TestFunctionUrl:
    def test_template(self):
        endpoints = ServiceEndpointsConfig(project_id="p", region="us-east1")
        assert (
            endpoints.function_url("word-count-function")
            == "https://us-east1-p.cloudfunctions.net/word-count-function"
        )

    def test_override(self):
        endpoints = ServiceEndpointsConfig(
            endpoint_overrides={"word-count-function": "http://localhost:8081/"}
        )
        assert endpoints.function_url("word-count-function") == "http://localhost:8081"

    def test_missing_project(self):
        with pytest.raises(ValueError):
            ServiceEndpointsConfig().function_url("word-count-function")
