#!/usr/bin/env python3
"""Audit logger for organization management operations.

Writes an append-only JSON Lines file recording every change made
against the GitHub organization, creating an immutable audit trail.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class AuditLogger:
    """Writes audit records in JSON Lines format."""

    def __init__(self, log_dir: str = ".", prefix: str = "audit"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self.log_file = self.log_dir / f"{prefix}_{timestamp}.jsonl"
        self.records: list[dict] = []

    def log_operation(
        self,
        operation: str,
        org_name: str,
        target: str,
        details: Optional[dict] = None,
        error: str = "",
    ) -> None:
        """Log a single write operation and whether it succeeded."""
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "org": org_name,
            "operation": operation,
            "target": target,
            "details": details or {},
            "status": "failed" if error else "success",
            "error": error,
        }
        self.records.append(record)
        self._append_record(record)

    def _append_record(self, record: dict) -> None:
        """Append a single JSON record to the log file."""
        try:
            with open(self.log_file, "a") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            logging.error(f"Failed to write audit log: {e}")

    @property
    def log_path(self) -> str:
        """Return the path to the current audit log file."""
        return str(self.log_file)

    def get_summary(self) -> str:
        """Return a human-readable summary of logged operations."""
        success = sum(1 for r in self.records if r.get("status") == "success")
        failed = sum(1 for r in self.records if r.get("status") == "failed")
        return (
            f"Audit log: {self.log_file}\n"
            f"  Records: {len(self.records)}\n"
            f"  Success: {success} | Failed: {failed}"
        )
