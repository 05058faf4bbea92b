"""
Shared request handling for the HTTP-triggered analysis functions.

Every analysis function accepts the same {bucket_name, file_path} body,
downloads the object and answers with a projection of the AnalysisResult.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple, Type

from flask import Request, jsonify
from google.api_core.exceptions import Forbidden, NotFound
from pydantic import BaseModel, ValidationError

from .google_storage import get_storage
from .schemas import AnalysisRequest
from .text_analyzer import AnalysisResult, InputDecodingError, TextAnalyzer

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'POST',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization',
    'Access-Control-Max-Age': '3600'
}


def error_response(error: str, message: str, status: int):
    return jsonify({"error": error, "message": message}), status


def parse_request(request: Request, schema: Type[BaseModel]) -> Tuple[Optional[BaseModel], Any]:
    """
    Apply the method checks and validate the JSON body against a schema.

    Returns:
        Tuple of (parsed_body, None) on success or (None, response) when the
        request must be answered right away.
    """
    if request.method == 'OPTIONS':
        return None, ('', 204, CORS_HEADERS)

    if request.method != 'POST':
        return None, error_response("Method not allowed", "Only POST requests are supported", 405)

    request_data = request.get_json(silent=True)
    if not isinstance(request_data, dict):
        return None, error_response("Invalid request", "Request body must be a JSON object", 400)

    try:
        return schema(**request_data), None
    except ValidationError as e:
        logger.warning(f"Request validation failed: {e}")
        return None, error_response("Validation failed", str(e), 422)


def handle_analysis_request(
    request: Request,
    analyzer: TextAnalyzer,
    render: Callable[[AnalysisResult], Dict[str, Any]],
):
    """
    Download the requested object, analyze it and render the response body.

    Args:
        request: Incoming flask request
        analyzer: Analyzer shared by all invocations of the function
        render: Projection of the result returned as JSON
    """
    analysis_request, early_response = parse_request(request, AnalysisRequest)
    if early_response is not None:
        return early_response

    bucket_name = analysis_request.bucket_name
    file_path = analysis_request.file_path
    logger.info(f"Analyzing gs://{bucket_name}/{file_path}")

    try:
        document = get_storage(bucket_name).download_document(file_path)
        result = analyzer.analyze(document.content)
    except NotFound:
        return error_response("Not found", f"Object gs://{bucket_name}/{file_path} does not exist", 404)
    except Forbidden:
        return error_response("Forbidden", f"Access denied to gs://{bucket_name}/{file_path}", 403)
    except InputDecodingError as e:
        return error_response("Input decoding error", str(e), 422)

    logger.info(
        f"Analyzed gs://{bucket_name}/{file_path}",
        extra={"total_words": result.total_words, "distinct_ranked": len(result.top_words)},
    )
    return jsonify(render(result)), 200
