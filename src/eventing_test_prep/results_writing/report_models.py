"""Preparation report entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata rendered into the RunInfo sheet."""

    run_start: datetime
    config_path: Path | None
    output_path: Path
    kyma_version: str
    is_managed: bool
    compass_flow: bool
    timeout_seconds: int
