"""
Pytest configuration for the bridge tests.

Loads .env.test (lowest priority) so local overrides apply to test runs, and
makes the project root importable.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv, dotenv_values

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

# Priority: environment variables > .env > .env.test
_project_root = Path(__file__).parent.parent.parent
_env_test_path = _project_root / ".env.test"
_env_path = _project_root / ".env"

if _env_test_path.exists():
    load_dotenv(_env_test_path, override=False)

if _env_path.exists():
    for key, value in dotenv_values(_env_path).items():
        if key not in os.environ and value is not None:
            os.environ[key] = value
