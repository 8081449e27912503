from __future__ import annotations

import json
import platform
import subprocess
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from .capabilities import ExclusionTable
from .config import BenchmarkConfig, TuningSpace
from .harness import TrialRecord

SCHEMA_VERSION = "0.1.0"


def find_repo_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _default_results_schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "results.schema.json"


def validate_results_schema(results: dict[str, Any], *, schema_path: Path | None = None) -> None:
    schema_path = _default_results_schema_path() if schema_path is None else schema_path
    schema = json.loads(schema_path.read_text())
    Draft202012Validator(schema).validate(results)


def _git_info(repo_root: Path) -> dict[str, Any]:
    def _run(cmd: list[str]) -> str:
        out = subprocess.check_output(cmd, cwd=repo_root, stderr=subprocess.DEVNULL)
        return out.decode().strip()

    try:
        branch = _run(["git", "branch", "--show-current"])
        commit = _run(["git", "rev-parse", "HEAD"])
        dirty = bool(_run(["git", "status", "--porcelain=v1"]))
        return {"branch": branch, "commit": commit, "dirty": dirty}
    except (OSError, subprocess.CalledProcessError):
        return {"branch": "unknown", "commit": "unknown", "dirty": False}


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def normalize_results(
    records: Sequence[TrialRecord],
    *,
    space: TuningSpace,
    config: BenchmarkConfig,
    iterations: int,
    backend: str,
    generators: Sequence[str],
    exclusions: ExclusionTable | None = None,
    started_at: str | None = None,
    git: dict[str, Any] | None = None,
) -> dict[str, Any]:
    finished_at = _now_rfc3339()
    git_obj = _git_info(find_repo_root()) if git is None else git

    run_obj: dict[str, Any] = {
        "run_id": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ"),
        "started_at": started_at or finished_at,
        "finished_at": finished_at,
        "status": "pass",
        "failure_reason": "",
        "git": git_obj,
        "environment": {
            "platform": {"os": platform.system().lower(), "arch": platform.machine().lower()},
            "python": platform.python_version(),
            "backend": backend,
        },
        "settings": {
            "tuning_space": space.to_dict(),
            "benchmark": config.to_dict(),
            "iterations": iterations,
            "generators": list(generators),
            "exclusions": [] if exclusions is None else exclusions.to_dict()["exclusions"],
        },
    }

    failures = [r for r in records if r.status == "fail"]
    if failures:
        run_obj["status"] = "fail"
        run_obj["failure_reason"] = f"{len(failures)} trial(s) failed"

    out = {"schema_version": SCHEMA_VERSION, "run": run_obj, "records": [r.to_dict() for r in records]}
    validate_results_schema(out)
    return out


def write_results(path: Path, results: dict[str, Any]) -> None:
    path.write_text(json.dumps(results, indent=2, sort_keys=True) + "\n")


def load_results(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Missing results.json at {path}")
    results = json.loads(path.read_text())
    validate_results_schema(results)
    return results
