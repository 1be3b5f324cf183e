"""Structured JSONL runtime diagnostics for the dashboard.

Events are one JSON object per line under ``LOG_DIR``. The root comes from
``ROLLOUT_ROI_STORAGE_ROOT`` when set (the launcher points it beside the
executable) and falls back to ``.local_store`` in the working directory.
"""

from __future__ import annotations

import json
import os
import sys
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from streamlit.runtime.scriptrunner import get_script_run_ctx


STORAGE_ENV_VAR = "ROLLOUT_ROI_STORAGE_ROOT"
DEFAULT_LOG_DIR = Path(".local_store")
EVENTS_FILE_NAME = "runtime_events.jsonl"
MAX_LOGGED_FINDINGS = 25

LOG_DIR = DEFAULT_LOG_DIR
RUNTIME_EVENTS_LOG_FILE = LOG_DIR / EVENTS_FILE_NAME

_EXCEPTION_HOOK_INSTALLED = False


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class RuntimeEvent:
    level: str
    event: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    timestamp_utc: str = field(default_factory=_now_iso)

    def to_record(self, exc: BaseException | None = None) -> dict[str, Any]:
        record: dict[str, Any] = {
            "timestamp_utc": self.timestamp_utc,
            "level": self.level.upper(),
            "event": self.event,
            "message": self.message,
            "context": self.context,
        }
        if exc is not None:
            record["exception_type"] = type(exc).__name__
            record["exception_message"] = str(exc)
            record["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return record


def _json_default(value: Any):
    # Scenario and portfolio records serialize through their own to_record().
    if hasattr(value, "to_record"):
        return value.to_record()
    if isinstance(value, (set, tuple)):
        return list(value)
    return str(value)


def resolve_log_root(path_value: str | Path | None) -> Path:
    text = "" if path_value is None else str(path_value).strip()
    if not text:
        return DEFAULT_LOG_DIR
    return Path(os.path.expandvars(os.path.expanduser(text)))


def configure_log_root(path_value: str | Path | None) -> Path:
    global LOG_DIR, RUNTIME_EVENTS_LOG_FILE
    LOG_DIR = resolve_log_root(path_value)
    RUNTIME_EVENTS_LOG_FILE = LOG_DIR / EVENTS_FILE_NAME
    return LOG_DIR


def runtime_log_path() -> str:
    return str(RUNTIME_EVENTS_LOG_FILE.resolve())


def append_runtime_event(
    level: str,
    event: str,
    message: str,
    context: dict[str, Any] | None = None,
    exc: BaseException | None = None,
) -> None:
    """Append one event record; failures to write are ignored."""
    try:
        record = RuntimeEvent(str(level), str(event), str(message), context or {}).to_record(exc)
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        with RUNTIME_EVENTS_LOG_FILE.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=_json_default, ensure_ascii=False) + "\n")
    except Exception:
        # Diagnostics must never take the dashboard down.
        pass


def log_import_outcome(kind: str, file_name: str, warnings: list[str], unknown_keys: list[str]) -> None:
    """Record migration warnings and ignored keys from a project/portfolio import."""
    if not warnings and not unknown_keys:
        append_runtime_event("INFO", f"{kind}_imported", f"Imported {kind} file cleanly.", {"file": file_name})
        return
    append_runtime_event(
        "WARNING",
        f"{kind}_import_migrated",
        f"Imported {kind} file with {len(warnings)} warning(s).",
        {"file": file_name, "warnings": warnings, "unknown_keys": unknown_keys},
    )


def log_import_rejected(kind: str, file_name: str, exc: BaseException) -> None:
    append_runtime_event("WARNING", f"{kind}_import_failed", str(exc), {"file": file_name}, exc=exc)


def log_entry_rejected(exc: BaseException, **context: Any) -> None:
    """A portfolio entry failed validation while being added or edited."""
    append_runtime_event("WARNING", "portfolio_entry_rejected", str(exc), context, exc=exc)


def log_integrity_findings(scenario_id: str, findings: list[dict[str, Any]]) -> None:
    if not findings:
        return
    append_runtime_event(
        "ERROR",
        "integrity_checks_failed",
        f"{len(findings)} integrity check(s) failed.",
        {"scenario_id": scenario_id, "findings": findings[:MAX_LOGGED_FINDINGS]},
    )


def read_runtime_events(limit: int = 200) -> list[dict[str, Any]]:
    if limit <= 0 or not RUNTIME_EVENTS_LOG_FILE.exists():
        return []
    try:
        lines = RUNTIME_EVENTS_LOG_FILE.read_text(encoding="utf-8").splitlines()
    except OSError:
        return []
    out: list[dict[str, Any]] = []
    for line in lines[-int(limit) :]:
        try:
            out.append(json.loads(line))
        except json.JSONDecodeError:
            out.append(RuntimeEvent("ERROR", "log_parse_error", "Malformed log line encountered.", {"line": line}).to_record())
    return out


def install_global_exception_logging() -> None:
    """Route uncaught exceptions raised during a Streamlit script run into the event log."""
    global _EXCEPTION_HOOK_INSTALLED
    if _EXCEPTION_HOOK_INSTALLED:
        return
    previous_hook = sys.excepthook

    def _hook(exc_type, exc, exc_tb):
        # Only log exceptions from inside a script run, not from ad-hoc imports.
        if get_script_run_ctx() is not None:
            append_runtime_event("ERROR", "uncaught_exception", str(exc), exc=exc)
        previous_hook(exc_type, exc, exc_tb)

    sys.excepthook = _hook
    _EXCEPTION_HOOK_INSTALLED = True


configure_log_root(os.getenv(STORAGE_ENV_VAR, ""))
