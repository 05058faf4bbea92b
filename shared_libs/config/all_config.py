"""
Configuration classes for the file analysis functions and workflow.
Centralized location for all tunables and downstream endpoint settings.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional


@dataclass
class TextAnalysisConfig:
    """Configuration for tokenizing and ranking words."""

    top_k: int = 10  # Number of most frequent words reported
    encoding: str = "utf-8"
    decode_errors: str = "replace"  # "replace" never fails, "strict" raises InputDecodingError
    # "tokens" counts regex word tokens, "whitespace" reproduces the legacy split() count
    total_count_mode: str = "tokens"


@dataclass
class GoogleStorageConfig:
    """Configuration for Google Cloud Storage."""

    project_id: Optional[str] = None  # None lets the client use the ADC default project


@dataclass
class ServiceEndpointsConfig:
    """Configuration for the HTTP functions called by the workflow."""

    project_id: Optional[str] = None
    region: str = "us-central1"
    url_template: str = "https://{region}-{project_id}.cloudfunctions.net/{function_name}"
    word_count_function: str = "word-count-function"
    top_words_function: str = "top-10-words-function"
    text_analysis_function: str = "text-analysis-function"
    bigquery_insert_function: str = "insert-bigquery-function"
    # Explicit URLs per function name, used instead of the template when present
    endpoint_overrides: Dict[str, str] = field(default_factory=dict)
    use_combined_analysis: bool = False  # One text-analysis call instead of two
    use_oidc_auth: bool = True
    request_timeout: float = 30.0

    def function_url(self, function_name: str) -> str:
        """Resolve the URL of a downstream function."""
        override = self.endpoint_overrides.get(function_name)
        if override:
            return override.rstrip("/")
        if not self.project_id:
            raise ValueError(
                f"Cannot build URL for '{function_name}': project_id is not configured"
            )
        return self.url_template.format(
            region=self.region, project_id=self.project_id, function_name=function_name
        )


@dataclass
class RetryConfig:
    """Bounded exponential backoff for calls to external services."""

    initial_delay: float = 1.0  # Seconds before the first retry
    max_delay: float = 30.0
    multiplier: float = 2.0
    timeout: float = 120.0  # Total time budget across all attempts


@dataclass
class BigQueryConfig:
    """Configuration for the analytical table sink."""

    project_id: Optional[str] = None
    dataset_id: str = "file_analysis"
    table_id: str = "word_stats"
    top_words_as_json: bool = False  # Store top_10_words as a JSON string column

    @property
    def full_table_id(self) -> str:
        if self.project_id:
            return f"{self.project_id}.{self.dataset_id}.{self.table_id}"
        return f"{self.dataset_id}.{self.table_id}"


@dataclass
class WorkflowConfig:
    """Configuration for the file processing workflow."""

    state_bucket: Optional[str] = None  # Bucket for the durable step log (None disables it)
    run_prefix: str = "workflow_runs"
    verbose: bool = True
    save_intermediate: bool = False


# Global config instances - these can be imported and used directly
text_analysis_config = TextAnalysisConfig()
google_storage_config = GoogleStorageConfig()
service_endpoints_config = ServiceEndpointsConfig()
retry_config = RetryConfig()
bigquery_config = BigQueryConfig()
workflow_config = WorkflowConfig()

_SECTIONS = {
    "text_analysis": text_analysis_config,
    "google_storage": google_storage_config,
    "services": service_endpoints_config,
    "retry": retry_config,
    "bigquery": bigquery_config,
    "workflow": workflow_config,
}


def _update_dataclass(instance: Any, values: Dict[str, Any]) -> None:
    known = {f.name for f in fields(instance)}
    for key, value in values.items():
        if key not in known:
            raise ValueError(f"Unknown setting '{key}' for {type(instance).__name__}")
        setattr(instance, key, value)


def apply_config(raw_config: Dict[str, Any]) -> None:
    """
    Update the global config instances from a parsed config.toml mapping.

    Args:
        raw_config: Mapping of section name to settings, e.g. {"retry": {"timeout": 60}}.
            Sections that don't correspond to a config class are ignored.

    Raises:
        ValueError: If a known section contains an unknown setting.
    """
    for section, instance in _SECTIONS.items():
        values = raw_config.get(section)
        if values:
            _update_dataclass(instance, values)


def apply_environment_overrides() -> None:
    """Apply the well-known environment variables on top of file configuration."""
    project_id = os.getenv("GOOGLE_CLOUD_PROJECT") or os.getenv("GCLOUD_PROJECT")
    if project_id:
        for instance in (google_storage_config, service_endpoints_config, bigquery_config):
            if not instance.project_id:
                instance.project_id = project_id

    region = os.getenv("CLOUD_REGION")
    if region:
        service_endpoints_config.region = region

    dataset = os.getenv("BIGQUERY_DATASET")
    if dataset:
        bigquery_config.dataset_id = dataset

    table = os.getenv("BIGQUERY_TABLE")
    if table:
        bigquery_config.table_id = table

    state_bucket = os.getenv("WORKFLOW_STATE_BUCKET")
    if state_bucket:
        workflow_config.state_bucket = state_bucket
