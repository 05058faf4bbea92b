"""
Common components shared by the file analysis functions:
- Text analyzer and its result types
- Google Cloud Storage client
- Base pipeline and step classes
- Clients for downstream functions and the BigQuery sink
"""

from .bigquery_sink import BigQuerySink, SinkInsertError
from .google_storage import GoogleStorageClient, ObjectMetadata, get_storage
from .pipeline import Pipeline, PipelineStatus
from .pipeline_step import PipelineStep, StepStatus
from .schemas import (AnalysisRequest, FileAnalysisRecord, TextAnalysisResponse,
                      TopWordsResponse, WordCountItem, WordCountResponse)
from .service_client import (CloudFunctionClient, RetryableServiceError,
                             ServiceCallError, build_retry_policy)
from .text_analyzer import (AnalysisResult, Document, InputDecodingError,
                            TextAnalyzer, WordFrequencyEntry)

__all__ = [
    # bigquery_sink
    "BigQuerySink",
    "SinkInsertError",
    # google_storage
    "get_storage",
    "GoogleStorageClient",
    "ObjectMetadata",
    # pipeline
    "Pipeline",
    "PipelineStatus",
    # pipeline_step
    "PipelineStep",
    "StepStatus",
    # schemas
    "AnalysisRequest",
    "FileAnalysisRecord",
    "TextAnalysisResponse",
    "TopWordsResponse",
    "WordCountItem",
    "WordCountResponse",
    # service_client
    "CloudFunctionClient",
    "RetryableServiceError",
    "ServiceCallError",
    "build_retry_policy",
    # text_analyzer
    "AnalysisResult",
    "Document",
    "InputDecodingError",
    "TextAnalyzer",
    "WordFrequencyEntry",
]
