"""Desktop launcher for the rollout ROI dashboard.

Runs ``app.py`` from a source checkout or a frozen bundle. Runtime event logs
go to ``--log-root``, or beside the executable when that is not given.
"""

from __future__ import annotations

import argparse
import os
import pathlib
import sys


STORAGE_ENV_VAR = "ROLLOUT_ROI_STORAGE_ROOT"


def _bundle_root() -> pathlib.Path:
    if getattr(sys, "frozen", False):
        return pathlib.Path(getattr(sys, "_MEIPASS"))
    return pathlib.Path(__file__).resolve().parent


def _runtime_root() -> pathlib.Path:
    if getattr(sys, "frozen", False):
        return pathlib.Path(sys.executable).resolve().parent
    return pathlib.Path(__file__).resolve().parent


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Open the rollout ROI dashboard in a browser.")
    parser.add_argument("--port", type=int, default=None, help="Port for the Streamlit server.")
    parser.add_argument("--log-root", default=None, help="Directory for runtime_events.jsonl.")
    parser.add_argument("--headless", action="store_true", help="Do not open a browser window.")
    return parser.parse_args(argv)


def streamlit_argv(app_path: pathlib.Path, args: argparse.Namespace) -> list[str]:
    argv = [
        "streamlit",
        "run",
        str(app_path),
        f"--server.headless={'true' if args.headless else 'false'}",
        "--browser.gatherUsageStats=false",
    ]
    if args.port is not None:
        argv.append(f"--server.port={args.port}")
    return argv


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    runtime_root = _runtime_root()
    app_path = _bundle_root() / "app.py"

    os.chdir(runtime_root)
    if args.log_root:
        os.environ[STORAGE_ENV_VAR] = args.log_root
    else:
        os.environ.setdefault(STORAGE_ENV_VAR, str(runtime_root / ".local_store"))

    from streamlit.web import cli as stcli

    sys.argv = streamlit_argv(app_path, args)
    raise SystemExit(stcli.main())


if __name__ == "__main__":
    main()
