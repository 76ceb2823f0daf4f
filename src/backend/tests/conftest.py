import os
import sys


# Make `common` and `scripts` importable from `src/backend` when pytest runs from the repository
# root (see [tool.pytest.ini_options] in pyproject.toml) without an editable install.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)
