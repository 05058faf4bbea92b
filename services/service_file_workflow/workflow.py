"""
File processing workflow.

For every uploaded file: fetch the object metadata, have the analysis
functions count and rank its words, and insert the combined record into
the analytical table. Completed steps are checkpointed in the state bucket
under a run key derived from the object generation, so a re-delivered
event continues where the previous attempt stopped and a finished run is
never repeated.
"""

import hashlib
import logging
from typing import Any, Dict, Optional

from google.api_core.exceptions import Forbidden, NotFound
from pydantic import ValidationError

from shared_libs.common.google_storage import GoogleStorageClient, get_storage
from shared_libs.common.pipeline import Pipeline
from shared_libs.common.schemas import FileAnalysisRecord
from shared_libs.common.service_client import (
    CloudFunctionClient,
    RetryableServiceError,
    ServiceCallError,
)
from shared_libs.config.all_config import (
    ServiceEndpointsConfig,
    WorkflowConfig,
    service_endpoints_config,
    workflow_config,
)

logger = logging.getLogger(__name__)

PIPELINE_NAME = "file_processing"
INSERT_ID_HEADER = "X-Insert-Id"


def compute_run_key(bucket_name: str, file_name: str, generation: Optional[Any] = None) -> str:
    """Deterministic identifier of one object version."""
    source = f"{bucket_name}/{file_name}#{generation if generation is not None else ''}"
    return hashlib.sha256(source.encode("utf-8")).hexdigest()[:32]


def is_permanent_failure(exc: Optional[BaseException]) -> bool:
    """
    True when re-running the workflow for the same object cannot succeed.

    Missing or unreadable objects and invalid records count as permanent.
    So does a function answering with a non-retryable 4xx status.
    """
    if isinstance(exc, (NotFound, Forbidden, ValidationError)):
        return True
    return isinstance(exc, ServiceCallError) and not isinstance(exc, RetryableServiceError)


class FileProcessingWorkflow(Pipeline):
    """Runs the analysis steps for one uploaded object."""

    def __init__(
        self,
        bucket_name: str,
        file_name: str,
        function_client: CloudFunctionClient,
        source_storage: GoogleStorageClient,
        state_storage: Optional[GoogleStorageClient] = None,
        generation: Optional[Any] = None,
        endpoints: ServiceEndpointsConfig = service_endpoints_config,
        settings: WorkflowConfig = workflow_config,
    ):
        self.bucket_name = bucket_name
        self.file_name = file_name
        self.generation = generation
        self.function_client = function_client
        self.source_storage = source_storage
        self.endpoints = endpoints

        step_definitions: Dict[str, Dict[str, Any]] = {
            "get_gcs_object_metadata": {
                "description": "Get size and update time of the uploaded object",
                "function": self._get_object_metadata,
            },
        }
        if endpoints.use_combined_analysis:
            step_definitions["call_text_analysis_function"] = {
                "description": "Count words and rank the top words in one call",
                "function": self._call_text_analysis_function,
            }
        else:
            step_definitions["call_word_count_function"] = {
                "description": "Count total words",
                "function": self._call_word_count_function,
            }
            step_definitions["call_top_10_words_function"] = {
                "description": "Rank the top 10 words",
                "function": self._call_top_10_words_function,
            }
        step_definitions["assign_output_data"] = {
            "description": "Build the analysis record",
            "function": self._assign_output_data,
        }
        step_definitions["call_bigquery_insert_function"] = {
            "description": "Insert the analysis record into BigQuery",
            "function": self._call_bigquery_insert_function,
        }
        step_definitions["log_success"] = {
            "description": "Log workflow completion",
            "function": self._log_success,
        }

        super().__init__(
            step_definitions=step_definitions,
            storage_client=state_storage,
            pipeline_name=PIPELINE_NAME,
            run_guid=compute_run_key(bucket_name, file_name, generation),
            run_prefix=settings.run_prefix,
            verbose=settings.verbose,
            save_intermediate=settings.save_intermediate,
        )

    def _analysis_request_body(self) -> Dict[str, str]:
        return {"bucket_name": self.bucket_name, "file_path": self.file_name}

    @staticmethod
    def _require(response: Dict[str, Any], key: str, function_name: str) -> Any:
        if key not in response:
            raise ValueError(f"Response of {function_name} has no '{key}' field: {response}")
        return response[key]

    def _get_object_metadata(self, context: Dict[str, Any]) -> Dict[str, Any]:
        metadata = self.source_storage.get_metadata(self.file_name)
        return {"gcs_metadata": metadata.to_dict()}

    def _call_word_count_function(self, context: Dict[str, Any]) -> Dict[str, Any]:
        name = self.endpoints.word_count_function
        response = self.function_client.call(name, self._analysis_request_body())
        return {"total_words": self._require(response, "total_words", name)}

    def _call_top_10_words_function(self, context: Dict[str, Any]) -> Dict[str, Any]:
        name = self.endpoints.top_words_function
        response = self.function_client.call(name, self._analysis_request_body())
        return {"top_10_words": self._require(response, "top_10_words", name)}

    def _call_text_analysis_function(self, context: Dict[str, Any]) -> Dict[str, Any]:
        name = self.endpoints.text_analysis_function
        response = self.function_client.call(name, self._analysis_request_body())
        return {
            "total_words": self._require(response, "total_words", name),
            "top_10_words": self._require(response, "top_10_words", name),
        }

    def _assign_output_data(self, context: Dict[str, Any]) -> Dict[str, Any]:
        metadata = context["gcs_metadata"]
        record = FileAnalysisRecord(
            filename=self.file_name,
            bucket=self.bucket_name,
            size_bytes=metadata["size_bytes"],
            upload_date=metadata.get("upload_date"),
            total_words=context["total_words"],
            top_10_words=context["top_10_words"],
        )
        return {"output_json": record.model_dump()}

    def _call_bigquery_insert_function(self, context: Dict[str, Any]) -> Dict[str, Any]:
        response = self.function_client.call(
            self.endpoints.bigquery_insert_function,
            context["output_json"],
            headers={INSERT_ID_HEADER: self.run_guid},
        )
        return {"bigquery_insert_response": response}

    def _log_success(self, context: Dict[str, Any]) -> None:
        logger.info(f"Workflow completed successfully for file: {self.file_name}")


def create_file_workflow(
    bucket_name: str,
    file_name: str,
    generation: Optional[Any] = None,
    function_client: Optional[CloudFunctionClient] = None,
    endpoints: ServiceEndpointsConfig = service_endpoints_config,
    settings: WorkflowConfig = workflow_config,
) -> FileProcessingWorkflow:
    """Build a workflow for one object from the global configuration."""
    state_storage = get_storage(settings.state_bucket) if settings.state_bucket else None
    return FileProcessingWorkflow(
        bucket_name=bucket_name,
        file_name=file_name,
        generation=generation,
        function_client=function_client or CloudFunctionClient(endpoints),
        source_storage=get_storage(bucket_name),
        state_storage=state_storage,
        endpoints=endpoints,
        settings=settings,
    )
