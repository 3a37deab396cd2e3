from __future__ import annotations

import logging
from pathlib import Path

from epi_dashboard.config import AppConfig
from epi_dashboard.features.grouping import unique_sorted
from epi_dashboard.io.cache import get_theme
from epi_dashboard.paths import build_output_paths
from epi_dashboard.pipeline.dataset import build_index, load_boundaries, load_dataset
from epi_dashboard.pipeline.map_view import build_map_artifacts
from epi_dashboard.pipeline.state_view import build_state_artifacts
from epi_dashboard.report.render import (
    render_index,
    render_map_page,
    render_state_page,
    state_page_path,
)

LOGGER = logging.getLogger(__name__)


def run_all(
    out_dir: Path,
    config: AppConfig,
    *,
    disease: str | None = None,
    year: str | None = None,
) -> Path:
    """Build the index page, the map page and one page per state."""
    paths = build_output_paths(out_dir)
    theme = get_theme(Path(config.cache.dir))
    loaded = load_dataset(config)
    frame = loaded.frame
    geojson = load_boundaries(config)

    index = build_index(frame)
    if frame.empty:
        return render_index(index, paths.root, theme=theme, notice=loaded.notice)

    map_view = build_map_artifacts(
        frame, paths.root, config, disease=disease, year=year, geojson=geojson
    )

    state_pages: dict[str, str] = {}
    for state in unique_sorted(frame["state"].tolist()):
        state = str(state)
        view = build_state_artifacts(
            frame, state, paths.root, config, disease=disease, year=year, geojson=geojson
        )
        render_state_page(view, paths.root, theme=theme)
        state_pages[state] = state_page_path(paths.root, state).relative_to(paths.root).as_posix()

    render_map_page(map_view, paths.root, theme=theme, state_pages=state_pages)
    LOGGER.info("Rendered %s state pages", len(state_pages))
    return render_index(index, paths.root, theme=theme, map_href="map.html")
