#!/usr/bin/env python3
"""
Command line interface for analyzing a single text file.

Analyzes a local file or a gs://bucket/path object with the same analyzer the
Cloud Functions use and prints the JSON response. With --workflow, the whole
file processing workflow runs locally for a storage object, calling the
deployed analysis functions.

Examples:
    python -m tools.analyze_file notes/meeting.txt
    python -m tools.analyze_file gs://uploads/reports/summary.txt --top-k 5
    python -m tools.analyze_file gs://uploads/reports/summary.txt --workflow
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

from google.api_core.exceptions import GoogleAPIError

# Centralized logging configuration
from shared_libs.config import logging_config  # noqa: F401
from shared_libs.common.google_storage import get_storage
from shared_libs.common.text_analyzer import Document, InputDecodingError, TextAnalyzer
from shared_libs.config.all_config import text_analysis_config
from shared_libs.utils.env_secrets import setup_environment

logger = logging.getLogger(__name__)

GCS_SCHEME = "gs://"


def split_gcs_path(path: str) -> Tuple[str, str]:
    """Split gs://bucket/name into (bucket, name)."""
    if not path.startswith(GCS_SCHEME):
        raise ValueError(f"Not a storage path: {path}")
    bucket_name, _, file_name = path[len(GCS_SCHEME):].partition("/")
    if not bucket_name or not file_name:
        raise ValueError(f"Storage path must be gs://<bucket>/<object>, got: {path}")
    return bucket_name, file_name


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Count the words of a text file and rank the most frequent ones.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("path", help="Local file path or gs://bucket/object")
    parser.add_argument(
        "--top-k", type=int, default=None, help="Number of ranked words (default from config)"
    )
    parser.add_argument("--encoding", default=None, help="Text encoding (default from config)")
    parser.add_argument(
        "--total-count-mode",
        choices=["tokens", "whitespace"],
        default=None,
        help="How total_words is counted (default from config)",
    )
    parser.add_argument(
        "--workflow",
        action="store_true",
        help="Run the full file processing workflow for a gs:// object",
    )
    parser.add_argument("--generation", default=None, help="Object generation for --workflow")
    return parser


def load_document(path: str) -> Document:
    if path.startswith(GCS_SCHEME):
        bucket_name, file_name = split_gcs_path(path)
        return get_storage(bucket_name).download_document(file_name)
    local_path = Path(path)
    return Document(name=local_path.name, content=local_path.read_bytes())


def build_analyzer(args: argparse.Namespace) -> TextAnalyzer:
    overrides = {}
    if args.top_k is not None:
        overrides["top_k"] = args.top_k
    if args.encoding is not None:
        overrides["encoding"] = args.encoding
    if args.total_count_mode is not None:
        overrides["total_count_mode"] = args.total_count_mode
    return TextAnalyzer(replace(text_analysis_config, **overrides))


def run_workflow(path: str, generation: Optional[str]) -> int:
    # Imported here so that plain analysis does not need the service package
    from services.service_file_workflow.workflow import create_file_workflow

    bucket_name, file_name = split_gcs_path(path)
    workflow = create_file_workflow(bucket_name, file_name, generation)
    try:
        results = workflow.run(context={"bucket_name": bucket_name, "file_name": file_name})
    finally:
        workflow.function_client.close()

    print(json.dumps(results["pipeline_summary"], indent=2, default=str))
    if results["status"] != "completed":
        for error in results["errors"]:
            logger.error(error)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_environment()

    if args.workflow:
        if not args.path.startswith(GCS_SCHEME):
            parser.error("--workflow requires a gs://bucket/object path")
        return run_workflow(args.path, args.generation)

    try:
        analyzer = build_analyzer(args)
        document = load_document(args.path)
        result = analyzer.analyze(document.content)
    except (ValueError, OSError, GoogleAPIError) as e:
        # InputDecodingError is a ValueError
        logger.error(f"Could not analyze {args.path}: {e}")
        return 2 if isinstance(e, InputDecodingError) else 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
