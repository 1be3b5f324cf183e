"""JSON export/import helpers for project and portfolio files."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from rollout_roi.records import PortfolioState
from rollout_roi.scenarios import ProjectState
from rollout_roi.schema import (
    PORTFOLIO_SCHEMA_VERSION,
    PORTFOLIO_TYPE,
    PROJECT_SCHEMA_VERSION,
    PROJECT_TYPE,
    SchemaError,
    migrate_portfolio_payload,
    migrate_project_payload,
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_project_bundle(state: ProjectState) -> dict:
    return {
        "type": PROJECT_TYPE,
        "schema_version": PROJECT_SCHEMA_VERSION,
        "name": state.project_title,
        "created_at": _now_iso(),
        "projectTitle": state.project_title,
        "projectDescription": state.project_description,
        "analysisPeriod": state.analysis_period,
        "scenarios": [s.to_record() for s in state.scenarios],
    }


def build_portfolio_bundle(state: PortfolioState) -> dict:
    return {
        "type": PORTFOLIO_TYPE,
        "schema_version": PORTFOLIO_SCHEMA_VERSION,
        "name": state.portfolio_name,
        "created_at": _now_iso(),
        **state.to_record(),
    }


def dumps_bundle(bundle: dict) -> str:
    return json.dumps(bundle, indent=2)


def bundle_file_name(bundle: dict, fallback: str) -> str:
    """Download name for a bundle: its title, or ``fallback`` when blank."""
    stem = str(bundle.get("name") or "").strip() or fallback
    safe = "".join(ch if ch.isalnum() or ch in " -_." else "_" for ch in stem)
    return f"{safe}.json"


def _loads(raw_json: str | bytes) -> object:
    try:
        return json.loads(raw_json)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SchemaError("Could not parse import JSON.") from exc


def parse_project_json(raw_json: str | bytes) -> tuple[ProjectState, list[str], list[str]]:
    return migrate_project_payload(_loads(raw_json))


def parse_portfolio_json(raw_json: str | bytes) -> tuple[PortfolioState, list[str], list[str]]:
    return migrate_portfolio_payload(_loads(raw_json))
