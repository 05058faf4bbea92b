"""
Eventarc-triggered Cloud Function running the file processing workflow.

Triggered by google.cloud.storage.object.v1.finalized events. Each event runs
the FileProcessingWorkflow for the uploaded object. A transiently failed
run raises so that Eventarc re-delivers the event, and the re-delivered run
resumes from the step log. Permanent failures are logged and acknowledged.

Environment Variables:
    - GOOGLE_CLOUD_PROJECT: Automatically populated by GCP with the project ID.
    - CLOUD_REGION: Region of the analysis functions (defaults to 'us-central1').
    - WORKFLOW_STATE_BUCKET: Bucket for the step log (optional).
"""

import logging
from typing import Any, Dict, Optional

import functions_framework

# Centralized logging configuration
from shared_libs.config import logging_config  # noqa: F401
from shared_libs.common.service_client import CloudFunctionClient
from shared_libs.config.all_config import service_endpoints_config, workflow_config
from shared_libs.utils.env_secrets import setup_environment
from services.service_file_workflow.workflow import create_file_workflow, is_permanent_failure

logger = logging.getLogger(__name__)

setup_environment()

# Initialize clients (will be lazy-loaded)
_function_client: Optional[CloudFunctionClient] = None


def get_function_client() -> CloudFunctionClient:
    """Lazy initialization of the downstream function client."""
    global _function_client
    if _function_client is None:
        _function_client = CloudFunctionClient(service_endpoints_config)
    return _function_client


def is_workflow_state_object(bucket_name: str, file_name: str) -> bool:
    """True for the workflow's own step log objects, which must not trigger runs."""
    return (
        bucket_name == workflow_config.state_bucket
        and file_name.startswith(f"{workflow_config.run_prefix.rstrip('/')}/")
    )


@functions_framework.cloud_event
def process_uploaded_file(cloud_event) -> Optional[Dict[str, Any]]:
    """
    Cloud Function entry point for storage finalize events.

    Args:
        cloud_event: CloudEvent whose data carries:
            - bucket: Bucket of the uploaded object
            - name: Object name
            - generation: Object generation (identifies the upload)

    Raises:
        RuntimeError: If the workflow failed transiently, so the event is retried.
        Permanent failures are logged and the event is acknowledged.
    """
    data = cloud_event.data or {}
    bucket_name = data.get("bucket")
    file_name = data.get("name")
    generation = data.get("generation")

    if not bucket_name or not file_name:
        # Retrying a malformed event cannot succeed
        logger.error(f"Event {cloud_event['id']} has no bucket/name; ignoring. Data keys: {list(data.keys())}")
        return None

    if is_workflow_state_object(bucket_name, file_name):
        logger.debug(f"Ignoring workflow state object gs://{bucket_name}/{file_name}")
        return None

    logger.info(f"Processing gs://{bucket_name}/{file_name} (generation {generation})")

    workflow = create_file_workflow(
        bucket_name, file_name, generation, function_client=get_function_client()
    )
    results = workflow.run(context={"bucket_name": bucket_name, "file_name": file_name})

    if results["status"] != "completed":
        errors = "; ".join(results["errors"])
        if is_permanent_failure(results.get("exception")):
            logger.error(f"Workflow for gs://{bucket_name}/{file_name} failed permanently; not retrying: {errors}")
            return results["pipeline_summary"]
        raise RuntimeError(f"Workflow for gs://{bucket_name}/{file_name} failed: {errors}")
    return results["pipeline_summary"]
