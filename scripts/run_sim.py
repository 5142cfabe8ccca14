from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is on path when running this script directly
_script_dir = Path(__file__).resolve().parent
_project_root = _script_dir.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import yaml

from micromouse_sim.config import SimConfig, load_maze, load_mouse_config, load_yaml
from micromouse_sim.controller import load_script_controller
from micromouse_sim.errors import SimulatorError
from micromouse_sim.simulation import RunStatus, Simulation
from telemetry.logger import TelemetryLogger


EXAMPLES = {
    "example-maze": _project_root / "mazes" / "example.txt",
    "example-mouse": _project_root / "configs" / "mouse.yaml",
    "example-script": _project_root / "controllers" / "wall_follower.py",
}

EXIT_FINISHED = 0
EXIT_NOT_FINISHED = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Headless micromouse maze simulator.")
    sub = parser.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Run a control script through a maze.")
    sim.add_argument("maze", type=str, help="Path to maze text file.")
    sim.add_argument("mouse", type=str, help="Path to mouse YAML config.")
    sim.add_argument("script", type=str, help="Path to Python control script.")
    sim.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to sim YAML config (defaults to built-in settings).",
    )
    sim.add_argument("--max-ticks", type=int, default=None, help="Stop after this many ticks.")
    sim.add_argument("--telemetry", type=str, default=None, help="Append run events to this JSONL file.")
    sim.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")

    for name, path in EXAMPLES.items():
        sub.add_parser(name, help=f"Print the bundled {path.name}.")
    return parser


def _configure_logging(verbose: bool, level: str = "INFO") -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_failed(exc: Exception, telemetry: Optional[TelemetryLogger]) -> int:
    logging.getLogger("run_sim").error("%s", exc)
    if telemetry is not None:
        telemetry.log_event("load_failed", {"error": str(exc)})
        telemetry.close()
    return EXIT_ERROR


def simulate(args: argparse.Namespace) -> int:
    try:
        cfg = load_yaml(args.config) if args.config else {}
        sim_cfg = SimConfig.from_dict(cfg.get("sim", {}))
    except (SimulatorError, OSError, yaml.YAMLError) as exc:
        _configure_logging(args.verbose)
        return _load_failed(exc, TelemetryLogger(args.telemetry) if args.telemetry else None)

    logging_cfg = cfg.get("logging", {})
    _configure_logging(args.verbose, logging_cfg.get("level", "INFO"))
    logger = logging.getLogger("run_sim")

    telemetry_path = args.telemetry or logging_cfg.get("telemetry_path")
    telemetry = TelemetryLogger(telemetry_path) if telemetry_path else None

    try:
        maze = load_maze(args.maze)
        mouse_cfg = load_mouse_config(args.mouse)
        controller = load_script_controller(args.script)
    except (SimulatorError, OSError, yaml.YAMLError) as exc:
        return _load_failed(exc, telemetry)

    max_ticks = args.max_ticks if args.max_ticks is not None else sim_cfg.max_ticks
    try:
        with Simulation(
            maze,
            mouse_cfg,
            controller,
            dt=sim_cfg.dt,
            cell_size=sim_cfg.cell_size,
            script_timeout=sim_cfg.script_timeout,
            encoder_mode=sim_cfg.encoder_mode,
        ) as sim:
            if telemetry is not None:
                telemetry.log_event(
                    "run_started",
                    {"maze": args.maze, "mouse": args.mouse, "script": args.script, "dt": sim.dt},
                )
            result = sim.run(max_ticks=max_ticks, max_time=sim_cfg.max_time)
            final_pose = sim.mouse.to_dict()
    except SimulatorError as exc:
        logger.error("%s", exc)
        if telemetry is not None:
            telemetry.log_event("run_failed", {"error": str(exc)})
            telemetry.close()
        return EXIT_ERROR

    if telemetry is not None:
        telemetry.log_event("run_finished", {**result.to_dict(), "mouse": final_pose})
        telemetry.close()

    print(
        f"{result.status.value} after {result.ticks} ticks "
        f"({result.elapsed_time:.3f}s simulated)"
    )
    if result.error is not None:
        print(f"error: {result.error}", file=sys.stderr)
        return EXIT_ERROR
    return EXIT_FINISHED if result.status is RunStatus.FINISHED else EXIT_NOT_FINISHED


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "simulate":
        return simulate(args)
    print(EXAMPLES[args.command].read_text(encoding="utf-8"), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
