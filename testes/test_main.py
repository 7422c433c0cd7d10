import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import json

import pytest

import main
from wxr_samples import scenario_wxr


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "import_config.json"
    path.write_text(json.dumps({
        "import": {"upload_root": str(tmp_path / "uploads"), "report_dir": str(tmp_path / "reports")},
        "media": {"base_delay": 0},
    }), encoding="utf-8")
    return str(path)


def test_preview_prints_counts(config_file, write_wxr, capsys):
    path = write_wxr(scenario_wxr())

    assert main.main(["--config", config_file, "preview", path]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["counts"]["media"] == 3
    assert os.path.exists(path)


def printed_json(out):
    # log lines precede the indented JSON document
    lines = out.splitlines()
    return json.loads("\n".join(lines[lines.index("{"):]))


def test_dry_run_import_without_media_and_comments(config_file, write_wxr, capsys):
    path = write_wxr(scenario_wxr())

    code = main.main(["--config", config_file, "import", path, "--user-id", "42", "--dry-run", "--skip", "media", "comments"])

    assert code == 0
    snapshot = printed_json(capsys.readouterr().out)
    assert snapshot["status"] == "success"
    assert snapshot["userId"] == "42"
    assert snapshot["stats"]["posts"]["imported"] == 5
    assert snapshot["stats"]["media"]["total"] == 0
    assert snapshot["stats"]["comments"]["total"] == 0
    assert not os.path.exists(path)


def test_missing_file_exits_with_error_code(config_file, tmp_path):
    assert main.main(["--config", config_file, "import", str(tmp_path / "none.xml"), "--user-id", "42"]) == 2


def test_unknown_phase_is_rejected(config_file, write_wxr):
    with pytest.raises(SystemExit):
        main.main(["--config", config_file, "import", write_wxr(scenario_wxr()), "--user-id", "1", "--skip", "widgets"])
