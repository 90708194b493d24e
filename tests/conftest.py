# tests/conftest.py
import logging
import sys
from pathlib import Path

import pytest

# Add project root to sys.path so "zqr" can be imported in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from zqr.codec import encode  # noqa: E402
from zqr.raster import grid_to_raster  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_zqr_logger():
    yield
    root = logging.getLogger("zqr")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)


@pytest.fixture
def hello_grid():
    return encode("HELLO")


@pytest.fixture
def hello_raster(hello_grid):
    return grid_to_raster(hello_grid)
