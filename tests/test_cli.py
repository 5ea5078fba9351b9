"""
Tests for the orchestrator CLI commands that need no database.
"""

import argparse
import json
from datetime import date

import pytest

from artpulse.orchestrator.cli import _parse_date, cmd_status, cmd_wvs


def wvs_args(**overrides):
    values = {
        "watchers": 10,
        "bids": 2,
        "days": 5,
        "price": 150.0,
        "median": None,
        "similar": 0,
        "json": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


class TestWVSCommand:

    def test_json_output(self, capsys):
        assert cmd_wvs(wvs_args(json=True)) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["wvs"] == 2.8
        assert data["label"] == "Solid Demand"

    def test_text_output(self, capsys):
        assert cmd_wvs(wvs_args(similar=3)) == 0
        out = capsys.readouterr().out
        assert "WVS: 0.7 (Low Demand)" in out
        assert "competition_adjustment" in out


class TestArguments:

    def test_parse_date(self):
        assert _parse_date("2026-03-10") == date(2026, 3, 10)

    def test_parse_date_invalid(self):
        with pytest.raises(argparse.ArgumentTypeError):
            _parse_date("10/03/2026")

    def test_status_requires_target(self, capsys):
        args = argparse.Namespace(run_id=None, owner=None, json=False)
        assert cmd_status(args) == 1
        assert "--run-id or --owner" in capsys.readouterr().out
