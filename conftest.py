import os
import sys
from pathlib import Path

# Makes `shared_libs`, `services` and `tools` importable from the project root,
# both from the CLI and from IDE test discovery.
project_root = Path(__file__).resolve().parent

if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Set environment variables for tests
os.environ.setdefault("GOOGLE_CLOUD_PROJECT", "test-project")
os.environ.setdefault("PYTHONDONTWRITEBYTECODE", "1")
# Tests must not pick up a developer's local config file
os.environ.setdefault("CONFIG_TOML_PATH", str(project_root / "config.toml"))
