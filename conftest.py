"""
Pytest configuration file.

Adds the repository root to the Python path so `formkit` imports without
installation.
"""

import sys
import os

_project_root = os.path.dirname(os.path.abspath(__file__))

if _project_root not in sys.path:
    sys.path.insert(0, _project_root)
