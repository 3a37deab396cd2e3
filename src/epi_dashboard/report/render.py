from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from epi_dashboard.io.write import json_safe
from epi_dashboard.paths import slugify
from epi_dashboard.pipeline.map_view import MapView
from epi_dashboard.pipeline.state_view import StateView


def _format_number(value: Any, blank_zero: bool = True) -> str:
    if value is None or value == "":
        return "—"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    if number == 0 and blank_zero:
        return "—"
    if number.is_integer():
        return f"{int(number):,}"
    return f"{number:,.1f}"


def _template_env() -> Environment:
    templates_path = Path(__file__).resolve().parent / "templates"
    env = Environment(
        loader=FileSystemLoader(str(templates_path)),
        autoescape=select_autoescape(enabled_extensions=("html", "xml", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["num"] = _format_number
    env.filters["slug"] = slugify
    return env


def _relative(target: Path, page: Path) -> str:
    return Path(os.path.relpath(target, start=page.parent)).as_posix()


def _figure_links(figures: dict[str, Path], page: Path) -> dict[str, str]:
    return {name: _relative(path, page) for name, path in figures.items()}


def _payload_json(payload: dict[str, Any]) -> str:
    # Embedded in a <script> block; escape the closing-tag sequence.
    return json.dumps(json_safe(payload), ensure_ascii=False).replace("</", "<\\/")


def _write_page(page: Path, rendered: str) -> Path:
    page.parent.mkdir(parents=True, exist_ok=True)
    page.write_text(rendered, encoding="utf-8")
    return page


def render_index(
    index: dict[str, Any],
    out_dir: Path,
    theme: str = "light",
    notice: str | None = None,
    map_href: str | None = None,
) -> Path:
    page = out_dir / "index.html"
    template = _template_env().get_template("index.html.j2")
    rendered = template.render(
        generated_at=datetime.now(timezone.utc).isoformat(),
        theme=theme,
        notice=notice,
        index=index,
        map_href=map_href,
        payload_json=_payload_json(index),
    )
    return _write_page(page, rendered)


def render_map_page(
    view: MapView,
    out_dir: Path,
    theme: str = "light",
    notice: str | None = None,
    state_pages: dict[str, str] | None = None,
) -> Path:
    page = out_dir / "map.html"
    template = _template_env().get_template("map.html.j2")
    rendered = template.render(
        generated_at=datetime.now(timezone.utc).isoformat(),
        theme=theme,
        notice=notice,
        view=view,
        figures=_figure_links(view.figures, page),
        state_pages=state_pages or {},
        payload_json=_payload_json(view.payload()),
    )
    return _write_page(page, rendered)


def state_page_path(out_dir: Path, state: str) -> Path:
    return out_dir / "states" / f"{slugify(state)}.html"


def render_state_page(view: StateView, out_dir: Path, theme: str = "light") -> Path:
    page = state_page_path(out_dir, view.profile.state)
    template = _template_env().get_template("state.html.j2")
    rendered = template.render(
        generated_at=datetime.now(timezone.utc).isoformat(),
        theme=theme,
        view=view,
        profile=view.profile,
        figures=_figure_links(view.figures, page),
        map_href=_relative(out_dir / "map.html", page),
        payload_json=_payload_json(view.payload()),
    )
    return _write_page(page, rendered)
