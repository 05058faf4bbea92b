"""
HTTP Cloud Function returning the word count and top words in one call.

Deployed as 'text-analysis-function'. Used by the workflow when
services.use_combined_analysis is enabled, so the file is downloaded and
tokenized once instead of twice.
"""

import logging

import functions_framework
from flask import Request

# Centralized logging configuration
from shared_libs.config import logging_config  # noqa: F401
from shared_libs.config.all_config import text_analysis_config
from shared_libs.common.http_function import handle_analysis_request
from shared_libs.common.schemas import TextAnalysisResponse
from shared_libs.common.text_analyzer import AnalysisResult, TextAnalyzer
from shared_libs.utils.env_secrets import setup_environment

logger = logging.getLogger(__name__)

setup_environment()
analyzer = TextAnalyzer(text_analysis_config)


def render_analysis(result: AnalysisResult) -> dict:
    return TextAnalysisResponse(**result.to_dict()).model_dump()


@functions_framework.http
def analyze_text(request: Request):
    """
    Cloud Function entry point returning the full analysis of a file.

    Returns:
    {
        "total_words": 123,
        "top_10_words": [{"word": "the", "count": 12}, ...]
    }
    """
    return handle_analysis_request(request, analyzer, render_analysis)
