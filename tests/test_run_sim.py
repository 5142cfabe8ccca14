from __future__ import annotations

from pathlib import Path

import pytest

from scripts.run_sim import EXIT_ERROR, EXIT_FINISHED, EXIT_NOT_FINISHED, main
from telemetry.logger import read_events


ROOT = Path(__file__).resolve().parent.parent
MAZE = str(ROOT / "mazes" / "example.txt")
MOUSE = str(ROOT / "configs" / "mouse.yaml")
SCRIPT = str(ROOT / "controllers" / "wall_follower.py")


def test_example_maze_is_printed(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["example-maze"]) == 0
    out = capsys.readouterr().out
    assert out == (ROOT / "mazes" / "example.txt").read_text(encoding="utf-8")


def test_example_script_is_printed(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["example-script"]) == 0
    assert "def control(mouse)" in capsys.readouterr().out


def test_simulate_example(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    telemetry = tmp_path / "events.jsonl"
    code = main(["simulate", MAZE, MOUSE, SCRIPT, "--max-ticks", "60", "--telemetry", str(telemetry)])
    assert code in (EXIT_FINISHED, EXIT_NOT_FINISHED)
    assert "ticks" in capsys.readouterr().out

    events = list(read_events(str(telemetry)))
    assert [e["event"] for e in events] == ["run_started", "run_finished"]
    assert events[-1]["ticks"] <= 60
    assert [e["status"] for e in read_events(str(telemetry), "run_finished")] == [events[-1]["status"]]


def test_simulate_bad_maze(tmp_path: Path) -> None:
    maze = tmp_path / "bad.txt"
    maze.write_text(".R0:0-x\n", encoding="utf-8")
    assert main(["simulate", str(maze), MOUSE, SCRIPT]) == EXIT_ERROR


def test_simulate_missing_script(tmp_path: Path) -> None:
    assert main(["simulate", MAZE, MOUSE, str(tmp_path / "nope.py")]) == EXIT_ERROR


def test_simulate_script_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    script = tmp_path / "broken.py"
    script.write_text("def control(mouse):\n    return 'forward'\n", encoding="utf-8")
    assert main(["simulate", MAZE, MOUSE, str(script)]) == EXIT_ERROR
    captured = capsys.readouterr()
    assert captured.out.startswith("errored after 0 ticks")
    assert "tick 0" in captured.err


@pytest.mark.parametrize(
    "content",
    ["sim:\n  dt: -1\n", "sim: [unclosed\n", "- just\n- a list\n"],
)
def test_simulate_bad_config(tmp_path: Path, content: str) -> None:
    config = tmp_path / "sim.yaml"
    config.write_text(content, encoding="utf-8")
    telemetry = tmp_path / "events.jsonl"
    code = main(["simulate", MAZE, MOUSE, SCRIPT, "--config", str(config), "--telemetry", str(telemetry)])
    assert code == EXIT_ERROR
    assert [e["event"] for e in read_events(str(telemetry))] == ["load_failed"]


def test_simulate_missing_config(tmp_path: Path) -> None:
    assert main(["simulate", MAZE, MOUSE, SCRIPT, "--config", str(tmp_path / "none.yaml")]) == EXIT_ERROR
