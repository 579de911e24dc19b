"""
Pytest configuration for DeFi gateway tests.

- Ensures that the project root is added to sys.path so that
  `import defi_gateway.*` and `import main` work without installation.
"""

import sys
from pathlib import Path


def _ensure_project_root_in_sys_path() -> None:
    # This file is located at: tests/conftest.py
    # parents[1] -> project root
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)

    if project_root_str not in sys.path:
        sys.path.insert(0, project_root_str)


_ensure_project_root_in_sys_path()
