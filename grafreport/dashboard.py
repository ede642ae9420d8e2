"""Dashboard model built from Grafana's JSON dashboard definition."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

_LATEX_ESCAPES = (
    ("\\", "\\textbackslash "),
    ("&", "\\&"),
    ("%", "\\%"),
    ("$", "\\$"),
    ("#", "\\#"),
    ("_", "\\_"),
    ("{", "\\{"),
    ("}", "\\}"),
    ("~", "\\textasciitilde "),
    ("^", "\\textasciicircum "),
)


class PanelType(Enum):
    """Panel kinds the report treats specially."""

    SINGLE_STAT = "singlestat"
    TEXT = "text"
    GRAPH = "graph"
    TABLE = "table"


@dataclass
class GridPos:
    """Position and size of a panel on the dashboard grid."""

    h: float = 0.0
    w: float = 0.0
    x: float = 0.0
    y: float = 0.0


@dataclass
class Panel:
    """A Grafana dashboard panel."""

    id: int = 0
    type: str = ""
    title: str = ""
    grid_pos: GridPos = field(default_factory=GridPos)

    def is_type(self, panel_type: PanelType) -> bool:
        return self.type == panel_type.value

    def is_single_stat(self) -> bool:
        return self.is_type(PanelType.SINGLE_STAT)

    def is_partial_width(self) -> bool:
        return self.grid_pos.w < 24

    def width(self) -> float:
        """Panel width as a fraction of the text width."""
        return self.grid_pos.w * 0.04

    def height(self) -> float:
        """Panel height as a fraction of the text width."""
        return self.grid_pos.h * 0.04


@dataclass
class Row:
    """A container for panels (pre-grid dashboards)."""

    id: int = 0
    showtitle: bool = False
    title: str = ""
    panels: list[Panel] = field(default_factory=list)

    def is_visible(self) -> bool:
        return self.showtitle


@dataclass
class Dashboard:
    """A dashboard with fields sanitised for use in a LaTeX document."""

    title: str = ""
    description: str = ""
    variable_values: str = ""
    rows: list[Row] = field(default_factory=list)
    panels: list[Panel] = field(default_factory=list)


def sanitize_latex(text: str) -> str:
    """Escape characters that have a special meaning in LaTeX."""
    for char, escaped in _LATEX_ESCAPES:
        text = text.replace(char, escaped)
    return text


def variables_text(variables: Mapping[str, Sequence[str]] | None) -> str:
    """Join all template variable values into one comma separated string."""
    if not variables:
        return ""
    return ", ".join(", ".join(values) for values in variables.values())


def _get(obj: Mapping[str, Any], name: str) -> Any:
    # Keys match field names without regard to case; a later key wins.
    wanted = name.casefold()
    found = None
    for key, value in obj.items():
        if key.casefold() == wanted:
            found = value
    return found


def _as_obj(value: Any, name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name}: expected a JSON object, got {value!r}")
    return value


def _as_list(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{name}: expected a JSON array, got {value!r}")
    return value


def _as_str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{name}: expected a string, got {value!r}")
    return value


def _as_int(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name}: expected an integer, got {value!r}")
    return value


def _as_float(value: Any, name: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name}: expected a number, got {value!r}")
    return float(value)


def _as_bool(value: Any, name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{name}: expected a boolean, got {value!r}")
    return value


def _parse_grid_pos(value: Any) -> GridPos:
    obj = _as_obj(value, "gridPos")
    return GridPos(
        h=_as_float(_get(obj, "h"), "gridPos.h"),
        w=_as_float(_get(obj, "w"), "gridPos.w"),
        x=_as_float(_get(obj, "x"), "gridPos.x"),
        y=_as_float(_get(obj, "y"), "gridPos.y"),
    )


def _parse_panel(value: Any) -> Panel:
    obj = _as_obj(value, "panel")
    return Panel(
        id=_as_int(_get(obj, "id"), "panel.id"),
        type=_as_str(_get(obj, "type"), "panel.type"),
        title=_as_str(_get(obj, "title"), "panel.title"),
        grid_pos=_parse_grid_pos(_get(obj, "gridPos")),
    )


def _parse_row(value: Any) -> Row:
    obj = _as_obj(value, "row")
    return Row(
        id=_as_int(_get(obj, "id"), "row.id"),
        showtitle=_as_bool(_get(obj, "showtitle"), "row.showtitle"),
        title=_as_str(_get(obj, "title"), "row.title"),
        panels=[_parse_panel(p) for p in _as_list(_get(obj, "panels"), "row.panels")],
    )


def new_dashboard(
    dash_json: str | bytes, variables: Mapping[str, Sequence[str]] | None
) -> Dashboard:
    """Build a Dashboard from Grafana's JSON dashboard definition.

    Raises ValueError if the JSON is malformed or has fields of the wrong type.
    """
    container = _as_obj(json.loads(dash_json), "document")
    raw = _as_obj(_get(container, "dashboard"), "dashboard")

    dash = Dashboard(
        title=sanitize_latex(_as_str(_get(raw, "title"), "title")),
        description=sanitize_latex(_as_str(_get(raw, "description"), "description")),
        variable_values=sanitize_latex(variables_text(variables)),
    )

    rows = [_parse_row(r) for r in _as_list(_get(raw, "rows"), "rows")]
    if rows:
        for row in rows:
            row.title = sanitize_latex(row.title)
            for panel in row.panels:
                panel.title = sanitize_latex(panel.title)
                dash.panels.append(panel)
            dash.rows.append(row)
    else:
        for panel in (_parse_panel(p) for p in _as_list(_get(raw, "panels"), "panels")):
            if panel.type == "row":
                continue
            panel.title = sanitize_latex(panel.title)
            dash.panels.append(panel)

    logger.debug("Populated dashboard datastructure: %r", dash)
    return dash