import logging
import os
from typing import Any, Dict, List, Optional

import toml
from dotenv import load_dotenv

from shared_libs.config.all_config import apply_config, apply_environment_overrides

logger = logging.getLogger(__name__)

_CONFIG_FILENAME = "config.toml"


def _candidate_config_paths() -> List[str]:
    """Locations searched for config.toml, in order of precedence."""
    candidates = []

    env_path = os.environ.get("CONFIG_TOML_PATH")
    if env_path:
        candidates.append(env_path)

    cur = os.getcwd()
    while True:
        candidates.append(os.path.join(cur, _CONFIG_FILENAME))
        parent = os.path.dirname(cur)
        if parent == cur:
            break
        cur = parent

    # Package-relative: shared_libs/utils -> project root
    candidates.append(
        os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), _CONFIG_FILENAME)
    )
    return candidates


def load_config(required: bool = False) -> Dict[str, Any]:
    """Load configuration from config.toml file.

    The function will attempt to find `config.toml` in several locations in this order:
      1. Path specified via environment variable `CONFIG_TOML_PATH`.
      2. Current working directory and its parent directories (walking up to root).
      3. Project root relative to this package.

    Args:
        required: Raise if no file is found instead of returning an empty mapping.

    Raises:
        FileNotFoundError: If required and the file cannot be found.
        RuntimeError: If a file is found but cannot be parsed.
    """
    searched_paths = _candidate_config_paths()
    for candidate in searched_paths:
        if os.path.exists(candidate):
            try:
                with open(candidate, "r") as f:
                    config = toml.load(f)
            except toml.TomlDecodeError as e:
                raise RuntimeError(f"Failed to parse configuration file {candidate}: {e}") from e
            logger.debug(f"Loaded configuration from {candidate}")
            return config

    if required:
        raise FileNotFoundError(
            "Configuration file not found. Searched locations:\n" + "\n".join(searched_paths)
        )
    logger.info("No config.toml found; using built-in defaults")
    return {}


def verify_gcp_credentials() -> Optional[str]:
    """
    Validates the presence of key Google Cloud environment variables.

    Checks GOOGLE_APPLICATION_CREDENTIALS for explicit credential files and
    GOOGLE_CLOUD_PROJECT for the project ID. Returns the project ID if known.

    Raises:
        ValueError: If GOOGLE_APPLICATION_CREDENTIALS points to a missing file.
    """
    credentials_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if credentials_path:
        if not os.path.exists(credentials_path):
            raise ValueError(
                f"GOOGLE_APPLICATION_CREDENTIALS path '{credentials_path}' does not exist."
            )
        logger.info(f"Using explicit service account file: {credentials_path}")
    else:
        logger.debug("No GOOGLE_APPLICATION_CREDENTIALS set; relying on default authentication.")

    project_id = os.environ.get("GOOGLE_CLOUD_PROJECT")
    if not project_id:
        # Fallback check for GCLOUD_PROJECT, a common older variable name
        project_id = os.environ.get("GCLOUD_PROJECT")
        if project_id:
            logger.info("Using GCLOUD_PROJECT as fallback for project ID.")
            os.environ["GOOGLE_CLOUD_PROJECT"] = project_id
        else:
            # Failures to use GCP APIs surface later when those APIs are invoked.
            logger.warning(
                "Environment variable 'GOOGLE_CLOUD_PROJECT' not found."
                " Function URLs and table ids must then come from config.toml."
            )
    return project_id


def setup_environment(config_required: bool = False) -> Dict[str, Any]:
    """
    Load .env (local development), config.toml and environment overrides
    into the global config instances. Called once at cold start by every
    function entry point.

    Returns:
        The raw configuration mapping that was applied.
    """
    load_dotenv()
    verify_gcp_credentials()
    raw_config = load_config(required=config_required)
    apply_config(raw_config)
    apply_environment_overrides()
    return raw_config
