"""
semantic_engine/report_export.py
Portable export format for reports.

Output: JSON (primary), structured dict (secondary).
Every export includes: report metadata (generated_at, engine version, run
parameters), data integrity hash (SHA-256 of export content) and export
format version. No raw message content: scores, patterns, metadata only.
"""

import hashlib
import json
from typing import Any, Dict, Optional

from semantic_engine.report import Report, report_to_dict


EXPORT_FORMAT_VERSION = "1.0"


def _build_export_payload(
    report: Report,
    run_parameters: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build export payload (no hash yet). Used for both JSON and dict output."""
    report_metadata = {
        "generated_at": report.generated_at,
        "engine_version": report.engine_version,
        "run_parameters": dict(run_parameters) if run_parameters else {},
    }
    return {
        "export_format_version": EXPORT_FORMAT_VERSION,
        "report_metadata": report_metadata,
        "report": report_to_dict(report),
    }


def content_hash(payload: Dict[str, Any]) -> str:
    """SHA-256 of canonical JSON serialization of payload (no hash field)."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def export_to_dict(
    report: Report,
    run_parameters: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    payload = _build_export_payload(report, run_parameters)
    return {**payload, "content_hash_sha256": content_hash(payload)}


def export_to_json(
    report: Report,
    run_parameters: Optional[Dict[str, Any]] = None,
    indent: Optional[int] = 2,
) -> str:
    return json.dumps(export_to_dict(report, run_parameters), indent=indent, sort_keys=False)


def verify_content_hash(export: Dict[str, Any]) -> bool:
    """True when the stored hash matches the payload. Missing hash fails."""
    stored = export.get("content_hash_sha256")
    if not stored:
        return False
    payload = {k: v for k, v in export.items() if k != "content_hash_sha256"}
    return content_hash(payload) == stored
