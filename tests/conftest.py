import os
import sys
from pathlib import Path
from typing import Any

import pytest

# Widgets and PNG rasters render without a display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

_REPO = Path(__file__).resolve().parents[1]
for entry in (_REPO / "src", _REPO):
    if entry.is_dir() and str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import


@pytest.fixture(scope="session")
def qt_app() -> Any:
    """Shared QApplication for widget tests."""

    widgets = pytest.importorskip("PyQt6.QtWidgets")
    return widgets.QApplication.instance() or widgets.QApplication([])


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "qt: needs PyQt6 and pyqtgraph")
