from __future__ import annotations

from pathlib import Path

import typer

from epi_dashboard.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from epi_dashboard.io.cache import DatasetCache, get_theme, set_theme, toggle_theme
from epi_dashboard.logging import configure_logging
from epi_dashboard.paths import build_output_paths
from epi_dashboard.pipeline.dataset import build_index, load_boundaries, load_dataset
from epi_dashboard.pipeline.map_view import build_map_artifacts
from epi_dashboard.pipeline.run_all import run_all
from epi_dashboard.pipeline.state_view import UnknownStateError, build_state_artifacts
from epi_dashboard.report.render import render_map_page, render_state_page

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


@app.command()
def options(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """List diseases and the years observed for each."""
    configure_logging()
    cfg = _load_app_config(config)
    loaded = load_dataset(cfg)
    if loaded.notice:
        typer.echo(loaded.notice, err=True)
    index = build_index(loaded.frame)
    for disease in index["diseases"]:
        years = ", ".join(index["years_by_disease"].get(disease, []))
        typer.echo(f"{disease}: {years}")


@app.command("map-view")
def map_view(
    disease: str | None = typer.Option(None, help="Disease to map; unset means all diseases."),
    year: str | None = typer.Option(None, help="Year to map; unset means all years."),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Render the choropleth map page for a disease/year selection."""
    configure_logging()
    cfg = _load_app_config(config)
    paths = build_output_paths(out)
    loaded = load_dataset(cfg)
    view = build_map_artifacts(
        loaded.frame,
        paths.root,
        cfg,
        disease=_blank_to_none(disease),
        year=_blank_to_none(year),
        geojson=load_boundaries(cfg),
    )
    page = render_map_page(
        view, paths.root, theme=get_theme(Path(cfg.cache.dir)), notice=loaded.notice
    )
    typer.echo(f"Map view written to: {page}")


@app.command("state-view")
def state_view(
    state: str = typer.Option(..., help="State to profile."),
    disease: str | None = typer.Option(None),
    year: str | None = typer.Option(None),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Render the per-state page."""
    configure_logging()
    cfg = _load_app_config(config)
    paths = build_output_paths(out)
    loaded = load_dataset(cfg)
    if loaded.notice:
        typer.echo(loaded.notice, err=True)
    try:
        view = build_state_artifacts(
            loaded.frame,
            state,
            paths.root,
            cfg,
            disease=_blank_to_none(disease),
            year=_blank_to_none(year),
            geojson=load_boundaries(cfg),
        )
    except UnknownStateError as exc:
        raise typer.BadParameter(str(exc), param_hint="--state") from exc
    page = render_state_page(view, paths.root, theme=get_theme(Path(cfg.cache.dir)))
    typer.echo(f"State view written to: {page}")


@app.command("run-all")
def run_all_command(
    disease: str | None = typer.Option(None),
    year: str | None = typer.Option(None),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Render index, map and state pages in one command."""
    configure_logging()
    cfg = _load_app_config(config)
    index_path = run_all(
        out_dir=out,
        config=cfg,
        disease=_blank_to_none(disease),
        year=_blank_to_none(year),
    )
    typer.echo(f"Run complete. Index: {index_path}")


@app.command()
def theme(
    set_to: str | None = typer.Option(None, "--set", help="light or dark"),
    toggle: bool = typer.Option(False, "--toggle"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Show, set or toggle the stored page theme."""
    cfg = _load_app_config(config)
    cache_dir = Path(cfg.cache.dir)
    if set_to is not None and toggle:
        raise typer.BadParameter("Use either --set or --toggle, not both")
    if set_to is not None:
        if set_to not in ("light", "dark"):
            raise typer.BadParameter("Theme must be 'light' or 'dark'", param_hint="--set")
        current = set_theme(cache_dir, set_to)
    elif toggle:
        current = toggle_theme(cache_dir)
    else:
        current = get_theme(cache_dir)
    typer.echo(f"Theme: {current}")


@app.command("clear-cache")
def clear_cache(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Delete the cached normalized dataset."""
    cfg = _load_app_config(config)
    removed = DatasetCache(Path(cfg.cache.dir)).clear()
    typer.echo("Dataset cache cleared." if removed else "No dataset cache found.")


if __name__ == "__main__":  # pragma: no cover
    app()
