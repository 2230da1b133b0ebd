"""
main.py — Wedjat application entry point.

Parses CLI args, loads the configuration, and runs the scanning keyboard
either in a Tkinter window or headless (for demos and testing).
"""

from __future__ import annotations

import argparse
import os
import sys
import traceback
from dataclasses import replace

# ──────────────────────────────────────────────────────────────
# ASCII banner
# ──────────────────────────────────────────────────────────────

_BANNER = r"""
 __        __       _ _       _
 \ \      / /__  __| (_) __ _| |_
  \ \ /\ / / _ \/ _` | |/ _` | __|
   \ V  V /  __/ (_| | | (_| | |_
    \_/\_/ \___|\__,_|_|\__,_|\__|
                  |__/

          Wedjat  v1.0
   Gesture-driven scanning keyboard
"""

# Virtual time allowed after a demo script runs out (ms)
_DEMO_GRACE_MS: float = 15000.0


# ──────────────────────────────────────────────────────────────
# Argument parsing
# ──────────────────────────────────────────────────────────────

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wedjat",
        description="Wedjat — gesture-driven scanning keyboard",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to wedjat.yaml (default: $WEDJAT_CONFIG or config/wedjat.yaml)",
    )
    p.add_argument(
        "--detector",
        choices=["camera", "key", "scripted"],
        default=None,
        help="Gesture source, overriding detector.default from the config",
    )
    p.add_argument(
        "--demo",
        default=None,
        help=(
            "Scripted gesture sequence: a named demo (select, exit, noise) "
            "or 'delay:hold, delay:hold, ...' in ms"
        ),
    )
    p.add_argument(
        "--no-gui",
        action="store_true",
        help="Run headless — no Tkinter window",
    )
    p.add_argument(
        "--virtual-time",
        action="store_true",
        help="Headless only: run the demo on a virtual clock, as fast as possible",
    )
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN"],
        default=None,
        help="Minimum log level for stderr output (default: logging.level from the config)",
    )
    return p


# ──────────────────────────────────────────────────────────────
# Pre-flight checks
# ──────────────────────────────────────────────────────────────

def _check_python() -> None:
    """Abort if Python version is below 3.10."""
    if sys.version_info < (3, 10):
        print(
            f"[ERROR] Python 3.10+ required; running {sys.version}",
            file=sys.stderr,
        )
        sys.exit(1)
    print(f"[OK] Python {sys.version.split()[0]}")


def _demo_steps(demo: str) -> list:
    """Resolve ``--demo`` to scripted steps (named script or inline steps)."""
    from wedjat.gesture.scripted import DEMO_SCRIPTS, parse_script

    if demo in DEMO_SCRIPTS:
        return list(DEMO_SCRIPTS[demo])
    return parse_script(demo)


# ──────────────────────────────────────────────────────────────
# GUI entry point
# ──────────────────────────────────────────────────────────────

def _run_with_gui(config, steps) -> int:
    """
    Build the app on a Tk loop and run the window in the main thread.

    Returns exit code.
    """
    import tkinter as tk

    from wedjat.app import WedjatApp
    from wedjat.core.logger import get_logger
    from wedjat.core.loop import TkLoop
    from wedjat.ui.main_window import WedjatMainWindow

    root = tk.Tk()
    root.withdraw()   # hide until fully built

    loop = TkLoop(root)
    app = WedjatApp(config, loop, script=steps)
    window = WedjatMainWindow(root, app)

    def _on_close() -> None:
        get_logger().info("main", "window_close", {})
        app.shutdown()
        root.destroy()

    root.protocol("WM_DELETE_WINDOW", _on_close)
    root.deiconify()

    try:
        window.run()   # blocks until window is closed
    except KeyboardInterrupt:
        _on_close()

    return 0


# ──────────────────────────────────────────────────────────────
# Headless entry point
# ──────────────────────────────────────────────────────────────

def _run_headless(config, steps, virtual_time: bool) -> int:
    """
    Run the app on a loop in the main thread (no UI). Returns exit code.

    With a demo script, listening starts immediately and the run ends a
    little after the script is exhausted.
    """
    from wedjat.app import WedjatApp
    from wedjat.core.logger import get_logger
    from wedjat.core.loop import ManualLoop, RealtimeLoop

    log = get_logger()
    loop = ManualLoop() if virtual_time else RealtimeLoop()
    if virtual_time:
        # speech completion arrives from a worker thread in wall-clock time
        config = replace(config, speech=replace(config.speech, enabled=False))

    app: "WedjatApp"

    def _finish() -> None:
        log.info("main", "demo_finished", {
            "text": app.buffer.text,
            "path": app.engine.path,
            "mode": app.detector.mode.value,
        })
        app.stop()
        loop.stop()

    def _on_script_finished() -> None:
        loop.call_later(_DEMO_GRACE_MS, _finish)

    app = WedjatApp(config, loop, script=steps, on_script_finished=_on_script_finished)
    try:
        if steps:
            app.start()
        loop.run()
    except KeyboardInterrupt:
        pass
    finally:
        print(f"[INFO] Buffer: {app.buffer.text!r}")
        app.shutdown()
    return 0


# ──────────────────────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────────────────────

def main() -> int:
    """Application entry point. Returns process exit code."""
    print(_BANNER)

    parser = _build_parser()
    args = parser.parse_args()

    # 1. Python version check
    _check_python()

    # 2. Configuration (before the logger exists, so logging.log_dir applies)
    from wedjat.core.config import ConfigError, load_config
    try:
        config = load_config(args.config)
    except (ConfigError, FileNotFoundError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2
    os.environ.setdefault("WEDJAT_LOG_DIR", config.logging.log_dir)

    try:
        steps = _demo_steps(args.demo) if args.demo else []
    except ValueError as exc:
        print(f"[ERROR] --demo: {exc}", file=sys.stderr)
        return 2

    detector = args.detector or ("scripted" if steps else config.detector.default)
    config = replace(config, detector=replace(config.detector, default=detector))

    # 3. Set up stdlib logging level (for WedjatLogger stderr mirroring)
    import logging

    from wedjat.core.logger import get_logger, set_stderr_level
    log_level = args.log_level or config.logging.level
    level_map = {"DEBUG": logging.DEBUG, "INFO": logging.INFO, "WARN": logging.WARNING}
    logging.basicConfig(level=level_map.get(log_level.upper(), logging.INFO))
    set_stderr_level(log_level)

    log = get_logger()
    log.info("main", "args_parsed", {
        "config": args.config,
        "detector": detector,
        "demo": args.demo,
        "no_gui": args.no_gui,
        "virtual_time": args.virtual_time,
        "log_level": log_level,
    })

    # 4. Launch
    exit_code = 0
    try:
        if args.no_gui:
            print("[INFO] Running headless (--no-gui)")
            exit_code = _run_headless(config, steps, args.virtual_time)
        else:
            print(f"[INFO] Starting GUI — detector={detector}")
            exit_code = _run_with_gui(config, steps)
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted — shutting down…")
    except Exception:                              # noqa: BLE001
        tb = traceback.format_exc()
        print(tb, file=sys.stderr)
        try:
            log.critical("main", "unhandled_exception", {"traceback": tb})
        except Exception:                          # noqa: BLE001
            pass
        exit_code = 1
    finally:
        log.flush()

    print(f"[INFO] Wedjat exited with code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
