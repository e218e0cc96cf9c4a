"""
Unit tests for the command-line interface.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from surveillance.cli.main import build_parser, main
from surveillance.core.types import SignalStatus
from surveillance.storage import SqliteSignalStore


@pytest.fixture
def cli_env(base_env):
    with patch.dict("os.environ", base_env, clear=True):
        yield base_env


@pytest.fixture
def seeded_store(cli_env, make_signal):
    """Primary store at the CLI's configured path with one stale and one validated signal."""
    yesterday = datetime.now(timezone.utc) - timedelta(days=1)
    store = SqliteSignalStore(cli_env["SIGNAL_SQLITE_PATH"])
    store.insert_signal(make_signal(created_at=yesterday))
    store.insert_signal(make_signal(status=SignalStatus.VALIDATED, created_at=yesterday))
    store.insert_signal(make_signal(original_text="duplicate", created_at=yesterday - timedelta(hours=1)))
    store.insert_signal(make_signal(original_text="duplicate", created_at=yesterday))
    yield store
    store.close()


def test_parser_triage_priorities():
    args = build_parser().parse_args(["triage", "--batch-size", "25", "--priority", "P1", "--priority", "P2"])
    assert args.command == "triage"
    assert args.batch_size == 25
    assert args.priority == ["P1", "P2"]


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_stats(seeded_store, capsys):
    assert main(["stats"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["by_status"] == {"new": 3, "validated": 1}
    assert payload["retention"]["total"] == 4


def test_cleanup_dry_run_keeps_rows(seeded_store, capsys):
    assert main(["cleanup", "--dry-run"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["dry_run"] is True
    assert payload["deleted"] == 3
    assert seeded_store.count_by_status() == {"new": 3, "validated": 1}


def test_cleanup(seeded_store, capsys):
    assert main(["cleanup"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["deleted"] == 3
    assert payload["validated_preserved"] == 1


def test_dedupe(seeded_store, capsys):
    assert main(["dedupe"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload == {"scanned": 4, "duplicates": 1, "deleted": 1, "errors": 0}


def test_archive_missing_credentials_exit_code(cli_env, capsys):
    with patch.dict("os.environ", {"ARCHIVE_STORE_BACKEND": "sqlserver"}):
        assert main(["archive"]) == 1

    payload = json.loads(capsys.readouterr().out)
    assert "Archive store credentials not configured" in payload["error"]


def test_missing_config_file(cli_env, tmp_path, capsys):
    assert main(["--config", str(tmp_path / "absent.yaml"), "stats"]) == 2
    assert "Configuration error" in capsys.readouterr().err


def test_invalid_env_value(cli_env, capsys):
    with patch.dict("os.environ", {"RATE_LIMIT_MAX_REQUESTS": "lots"}):
        assert main(["stats"]) == 2


def test_dedupe_batch_size_from_config(cli_env, tmp_path, capsys):
    path = tmp_path / "surveillance.yaml"
    path.write_text("dedupe:\n  delete_batch_size: 7\n", encoding="utf-8")

    with patch("surveillance.cli.main.DuplicatePurger") as purger:
        purger.return_value.run.return_value.errors = 0
        purger.return_value.run.return_value.to_dict.return_value = {"deleted": 0}
        assert main(["--config", str(path), "dedupe"]) == 0
        assert main(["--config", str(path), "dedupe", "--batch-size", "3"]) == 0

    assert [c.kwargs["batch_size"] for c in purger.call_args_list] == [7, 3]


def test_parser_archive_delete_flag_defaults_to_config():
    assert build_parser().parse_args(["archive"]).delete_after_sync is None
    assert build_parser().parse_args(["archive", "--delete-after-sync"]).delete_after_sync is True
