"""Tests for the demo harness, report and CLI."""
from __future__ import annotations

import pytest

from permit_buffer.cli import main
from permit_buffer.demo.harness import run_demo
from permit_buffer.demo.report import format_report
from permit_buffer.domain.errors import InvalidConfiguration


def test_demo_conserves_items():
    result = run_demo(capacity=3, producers=3, consumers=2, items_per_producer=200)
    assert result.ok, result.errors
    assert result.items_produced == 600
    assert result.items_consumed == 600
    assert result.items_drained == 0
    assert result.stats.closed
    assert result.stats.consistent


def test_demo_with_timeouts_still_completes():
    """Short acquire timeouts make workers retry, but every item arrives."""
    result = run_demo(
        capacity=1, producers=2, consumers=3, items_per_producer=100, timeout=0.001,
    )
    assert result.ok, result.errors
    assert result.items_consumed == 200


def test_demo_uneven_split():
    result = run_demo(capacity=2, producers=1, consumers=3, items_per_producer=10)
    assert result.ok
    assert result.items_consumed == 10


@pytest.mark.parametrize(
    "kwargs",
    [
        {"producers": 0},
        {"consumers": 0},
        {"items_per_producer": -1},
        {"capacity": 0},
        {"timeout": -1.0},
    ],
)
def test_demo_rejects_bad_configuration(kwargs):
    with pytest.raises(InvalidConfiguration):
        run_demo(**kwargs)


def test_report_mentions_key_numbers():
    result = run_demo(capacity=2, producers=1, consumers=1, items_per_producer=5)
    text = format_report(result, label="Small run")
    assert "=== Small run ===" in text
    assert "Produced:        5" in text
    assert "Conserved:       yes" in text
    assert "Errors:" not in text


def test_cli_demo_prints_report(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["demo", "--capacity", "2", "--items", "20", "--producers", "2"])
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert "Bounded buffer demo" in out
    assert "Produced:        40" in out


def test_cli_bad_capacity_exits_with_error(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["demo", "--capacity", "0"])
    assert exc.value.code == 2
    assert "capacity" in capsys.readouterr().err


def test_cli_without_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 0
    assert "permit-buffer" in capsys.readouterr().out
