from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class OutputPaths:
    root: Path
    tables: Path
    figures: Path
    summary: Path
    states: Path


def build_output_paths(out_dir: Path) -> OutputPaths:
    paths = OutputPaths(
        root=out_dir,
        tables=out_dir / "tables",
        figures=out_dir / "figures",
        summary=out_dir / "summary",
        states=out_dir / "states",
    )
    for path in (
        paths.root,
        paths.tables,
        paths.figures,
        paths.summary,
        paths.states,
    ):
        path.mkdir(parents=True, exist_ok=True)
    return paths


def slugify(value: str) -> str:
    """File-name-safe slug for state and disease labels."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(value or "").strip().lower()).strip("-")
    return slug or "unknown"
