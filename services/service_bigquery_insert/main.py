"""
HTTP Cloud Function inserting a file analysis record into BigQuery.

Deployed as 'insert-bigquery-function'. The workflow posts the combined
record {filename, bucket, size_bytes, upload_date, total_words, top_10_words}.
An optional 'X-Insert-Id' header is used as the streaming insert id so that
retried calls for the same file do not create duplicate rows.

Environment Variables:
    - GOOGLE_CLOUD_PROJECT: Automatically populated by GCP with the project ID.
    - BIGQUERY_DATASET / BIGQUERY_TABLE: Override the destination table.
"""

import logging

import functions_framework
from flask import Request, jsonify
from google.api_core.exceptions import GoogleAPIError

# Centralized logging configuration
from shared_libs.config import logging_config  # noqa: F401
from shared_libs.config.all_config import bigquery_config
from shared_libs.common.bigquery_sink import BigQuerySink, SinkInsertError
from shared_libs.common.http_function import error_response, parse_request
from shared_libs.common.schemas import FileAnalysisRecord
from shared_libs.utils.env_secrets import setup_environment

logger = logging.getLogger(__name__)

INSERT_ID_HEADER = "X-Insert-Id"

setup_environment()
sink = BigQuerySink(bigquery_config)


@functions_framework.http
def insert_bigquery_row(request: Request):
    """
    Cloud Function entry point writing one analysis row.

    Returns:
    {
        "status": "inserted",
        "table": "project.dataset.table"
    }
    """
    record, early_response = parse_request(request, FileAnalysisRecord)
    if early_response is not None:
        return early_response

    insert_id = request.headers.get(INSERT_ID_HEADER)
    try:
        sink.insert(record, row_id=insert_id)
    except SinkInsertError as e:
        return error_response("Insert failed", str(e), 422)
    except GoogleAPIError as e:
        logger.error(f"BigQuery API error inserting {record.bucket}/{record.filename}: {e}")
        return error_response("BigQuery API error", str(e), 502)

    return jsonify({"status": "inserted", "table": sink.table_id}), 200
