"""
HTTP Cloud Function counting the words of an uploaded file.

Deployed as 'word-count-function'. The workflow posts
{"bucket_name": ..., "file_path": ...} and reads 'total_words' from the reply.

Environment Variables:
    - GOOGLE_CLOUD_PROJECT: Automatically populated by GCP with the project ID.
    - CONFIG_TOML_PATH: Optional path to config.toml.
"""

import logging

import functions_framework
from flask import Request

# Centralized logging configuration
from shared_libs.config import logging_config  # noqa: F401
from shared_libs.config.all_config import text_analysis_config
from shared_libs.common.http_function import handle_analysis_request
from shared_libs.common.schemas import WordCountResponse
from shared_libs.common.text_analyzer import AnalysisResult, TextAnalyzer
from shared_libs.utils.env_secrets import setup_environment

logger = logging.getLogger(__name__)

setup_environment()
analyzer = TextAnalyzer(text_analysis_config)


def render_word_count(result: AnalysisResult) -> dict:
    return WordCountResponse(total_words=result.total_words).model_dump()


@functions_framework.http
def count_words(request: Request):
    """
    Cloud Function entry point returning the total word count of a file.

    Expected request format:
    {
        "bucket_name": "string",
        "file_path": "string"
    }

    Returns:
    {
        "total_words": 123
    }
    """
    return handle_analysis_request(request, analyzer, render_word_count)
