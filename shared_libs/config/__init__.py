"""
Configuration package for the file analysis functions.

This package centralizes all configuration classes and instances,
providing a single point of access for all modules.
"""

from .all_config import (
    # Instances
    text_analysis_config,
    google_storage_config,
    service_endpoints_config,
    retry_config,
    bigquery_config,
    workflow_config,
    # Classes
    TextAnalysisConfig,
    GoogleStorageConfig,
    ServiceEndpointsConfig,
    RetryConfig,
    BigQueryConfig,
    WorkflowConfig,
    # Loading
    apply_config,
    apply_environment_overrides,
)

from . import logging_config


__all__ = [
    # --- Configuration Instances ---
    'text_analysis_config',
    'google_storage_config',
    'service_endpoints_config',
    'retry_config',
    'bigquery_config',
    'workflow_config',
    'logging_config',

    # --- Configuration Classes ---
    'TextAnalysisConfig',
    'GoogleStorageConfig',
    'ServiceEndpointsConfig',
    'RetryConfig',
    'BigQueryConfig',
    'WorkflowConfig',

    # --- Loading ---
    'apply_config',
    'apply_environment_overrides',
]
