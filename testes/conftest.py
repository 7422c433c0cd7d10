import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from wp_importer.config import load_config
from wp_importer.utils import errors


@pytest.fixture(autouse=True)
def report_dir(tmp_path):
    path = tmp_path / "reports"
    errors.configure_reports(str(path))
    return path


@pytest.fixture
def config(tmp_path, report_dir):
    return load_config({
        "import": {"upload_root": str(tmp_path / "uploads"), "report_dir": str(report_dir)},
        "media": {"base_delay": 0, "max_workers": 2, "rpm": 60000},
        "store": {"rpm": 60000},
    })


@pytest.fixture
def write_wxr(tmp_path):
    def _write(content, name="export.xml"):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write
