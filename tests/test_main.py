"""Tests for the command line entrypoint."""

import json
from unittest.mock import patch

from conftest import DummyBackend
from metric_threshold import main


def test_run_prints_notifications_and_saves_state(tmp_path, capsys) -> None:
    params_file = tmp_path / "rule.json"
    params_file.write_text(
        json.dumps(
            {
                "criteria": [
                    {"aggType": "max", "metric": "system.load.1", "comparator": ">", "threshold": [2]}
                ]
            }
        )
    )
    state_file = tmp_path / "state.json"

    with patch.object(main, "HttpEvaluationBackend", return_value=DummyBackend([{"*": 3}])):
        rc = main.run([str(params_file), "--state-file", str(state_file)])

    assert rc == 0
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert lines[0]["group"] == "*"
    assert lines[0]["actionGroup"] == "metrics.threshold.fired"
    assert json.loads(state_file.read_text())["ruleState"]["lastRunTimestamp"] > 0


def test_run_without_criteria_fails_and_keeps_state(tmp_path) -> None:
    params_file = tmp_path / "rule.json"
    params_file.write_text(json.dumps({"criteria": []}))
    state_file = tmp_path / "state.json"

    with patch.object(main, "HttpEvaluationBackend", return_value=DummyBackend([])):
        rc = main.run([str(params_file), "--state-file", str(state_file)])

    assert rc == 1
    assert not state_file.exists()
