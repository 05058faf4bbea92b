"""
HTTP Cloud Function ranking the most frequent words of an uploaded file.

Deployed as 'top-10-words-function'. The workflow posts
{"bucket_name": ..., "file_path": ...} and reads 'top_10_words' from the reply.
"""

import logging

import functions_framework
from flask import Request

# Centralized logging configuration
from shared_libs.config import logging_config  # noqa: F401
from shared_libs.config.all_config import text_analysis_config
from shared_libs.common.http_function import handle_analysis_request
from shared_libs.common.schemas import TopWordsResponse
from shared_libs.common.text_analyzer import AnalysisResult, TextAnalyzer
from shared_libs.utils.env_secrets import setup_environment

logger = logging.getLogger(__name__)

setup_environment()
analyzer = TextAnalyzer(text_analysis_config)


def render_top_words(result: AnalysisResult) -> dict:
    return TopWordsResponse(
        top_10_words=[entry.to_dict() for entry in result.top_words]
    ).model_dump()


@functions_framework.http
def top_10_words(request: Request):
    """
    Cloud Function entry point returning the ten most frequent words.

    Words are lowercased; ties are ordered by first appearance in the file.

    Returns:
    {
        "top_10_words": [{"word": "the", "count": 12}, ...]
    }
    """
    return handle_analysis_request(request, analyzer, render_top_words)
