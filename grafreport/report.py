"""Build a PDF report of a Grafana dashboard using LaTeX."""

from __future__ import annotations

import logging
import shutil
import subprocess
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from types import TracebackType
from typing import BinaryIO, Protocol

import jinja2

from grafreport.dashboard import Dashboard, Panel
from grafreport.timerange import TimeRange

logger = logging.getLogger(__name__)

IMG_DIR = "images"
REPORT_TEX_FILE = "report.tex"
REPORT_PDF = "report.pdf"
RENDER_WORKERS = 5

DEFAULT_TEMPLATE = r"""
%use square brackets as template delimiters
\documentclass{article}
\usepackage{graphicx}
\usepackage[margin=1in]{geometry}

\graphicspath{ {images/} }
\begin{document}
\title{[[ title ]] [% if variable_values %] \\ \large [[ variable_values ]] [% endif %] [% if description %] \\ \small [[ description ]] [% endif %]}
\date{[[ from_formatted ]]\\to\\[[ to_formatted ]]}
\maketitle
\begin{center}
[% for panel in panels %][% if panel.is_single_stat() %]\begin{minipage}{0.3\textwidth}
\includegraphics[width=\textwidth]{image[[ panel.id ]]}
\end{minipage}
[% else %]\par
\vspace{0.5cm}
\includegraphics[width=\textwidth]{image[[ panel.id ]]}
\par
\vspace{0.5cm}
[% endif %][% endfor %]

\end{center}
\end{document}
"""

DEFAULT_GRID_TEMPLATE = r"""
%use square brackets as template delimiters
\documentclass{article}
\usepackage{graphicx}
\usepackage[margin=0.5in]{geometry}

\graphicspath{ {images/} }
\begin{document}
\title{[[ title ]] [% if variable_values %] \\ \large [[ variable_values ]] [% endif %] [% if description %] \\ \small [[ description ]] [% endif %]}
\date{[[ from_formatted ]]\\to\\[[ to_formatted ]]}
\maketitle
\begin{center}
[% for panel in panels %][% if panel.is_partial_width() %]\begin{minipage}{[[ panel.width() ]]\textwidth}
\includegraphics[width=\textwidth]{image[[ panel.id ]]}
\end{minipage}
[% else %]\par
\vspace{0.5cm}
\includegraphics[width=\textwidth]{image[[ panel.id ]]}
\par
\vspace{0.5cm}
[% endif %][% endfor %]

\end{center}
\end{document}
"""

_TEX_ENV = jinja2.Environment(
    block_start_string="[%",
    block_end_string="%]",
    variable_start_string="[[",
    variable_end_string="]]",
    comment_start_string="[#",
    comment_end_string="#]",
    keep_trailing_newline=True,
    undefined=jinja2.StrictUndefined,
    autoescape=False,
)


class ReportError(Exception):
    """Raised when a report cannot be produced."""


class _Client(Protocol):
    def get_dashboard(self, dash_name: str) -> Dashboard: ...

    def get_panel_png(
        self, panel: Panel, dash_name: str, time_range: TimeRange
    ) -> bytes: ...


class Report:
    """A PDF report of one dashboard over one time range.

    After reading and closing the PDF returned by generate(), call clean()
    to delete it together with the temporary build files. Used as a context
    manager, the report cleans up on exit.
    """

    def __init__(
        self,
        client: _Client,
        dash_name: str,
        time_range: TimeRange,
        tex_template: str | None,
        grid_layout: bool,
    ) -> None:
        if not tex_template:
            tex_template = DEFAULT_GRID_TEMPLATE if grid_layout else DEFAULT_TEMPLATE
        self.client = client
        self.dash_name = dash_name
        self.time_range = time_range
        self.tex_template = tex_template
        self.tmp_dir = Path("tmp") / str(uuid.uuid4())
        self._dash_title = ""

    def __enter__(self) -> Report:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.clean()

    @property
    def img_dir(self) -> Path:
        return self.tmp_dir / IMG_DIR

    @property
    def tex_path(self) -> Path:
        return self.tmp_dir / REPORT_TEX_FILE

    @property
    def pdf_path(self) -> Path:
        return self.tmp_dir / REPORT_PDF

    def generate(self) -> BinaryIO:
        """Build the report and return the PDF opened for binary reading."""
        try:
            dash = self.client.get_dashboard(self.dash_name)
        except Exception as exc:
            raise ReportError(
                f"error fetching dashboard {self.dash_name}: {exc}"
            ) from exc
        self._dash_title = dash.title

        try:
            self.render_pngs(dash)
        except ReportError as exc:
            raise ReportError(
                f"error rendering PNGs in parallel for dash {dash.title!r}: {exc}"
            ) from exc
        try:
            self.generate_tex(dash)
        except ReportError as exc:
            raise ReportError(
                f"error generating TeX file for dash {dash.title!r}: {exc}"
            ) from exc
        return self.run_latex()

    def title(self) -> str:
        """The dashboard title; fetched on demand if generate() has not run."""
        if not self._dash_title:
            try:
                dash = self.client.get_dashboard(self.dash_name)
            except Exception:
                return ""
            self._dash_title = dash.title
        return self._dash_title

    def clean(self) -> None:
        """Delete the temporary directory used during report generation."""
        try:
            shutil.rmtree(self.tmp_dir)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error("Error cleaning up tmp dir: %s", exc)

    def render_pngs(self, dashboard: Dashboard) -> None:
        """Fetch every panel image, a few at a time, into the image directory.

        Every panel is attempted; if any fail, the first error is raised.
        """
        with ThreadPoolExecutor(max_workers=RENDER_WORKERS) as pool:
            errors = [
                err
                for err in pool.map(self._render_png_safely, dashboard.panels)
                if err is not None
            ]
        if errors:
            raise errors[0]

    def _render_png_safely(self, panel: Panel) -> ReportError | None:
        try:
            self._render_png(panel)
        except ReportError as exc:
            logger.error("Error creating image for panel: %s", exc)
            return exc
        return None

    def _render_png(self, panel: Panel) -> None:
        try:
            data = self.client.get_panel_png(panel, self.dash_name, self.time_range)
        except Exception as exc:
            raise ReportError(f"error getting panel {panel!r}: {exc}") from exc
        try:
            self.img_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ReportError(f"error creating img directory:{exc}") from exc
        try:
            (self.img_dir / f"image{panel.id}.png").write_bytes(data)
        except OSError as exc:
            raise ReportError(f"error writing image file:{exc}") from exc

    def generate_tex(self, dashboard: Dashboard) -> None:
        """Write the LaTeX source of the report into the temporary directory."""
        try:
            self.tmp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ReportError(
                f"error creating temporary directory at {self.tmp_dir}: {exc}"
            ) from exc

        try:
            template = _TEX_ENV.from_string(self.tex_template)
        except jinja2.TemplateSyntaxError as exc:
            raise ReportError(
                f"error parsing template '{self.tex_template}': {exc}"
            ) from exc

        try:
            context = {
                "title": dashboard.title,
                "description": dashboard.description,
                "variable_values": dashboard.variable_values,
                "rows": dashboard.rows,
                "panels": dashboard.panels,
                "dashboard": dashboard,
                "time_range": self.time_range,
                "client": self.client,
                "from_formatted": self.time_range.from_formatted(),
                "to_formatted": self.time_range.to_formatted(),
            }
            text = template.render(context)
        except (jinja2.TemplateError, ValueError) as exc:
            raise ReportError(f"error executing tex template:{exc}") from exc

        try:
            self.tex_path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise ReportError(
                f"error creating tex file at {self.tex_path} : {exc}"
            ) from exc

    def _pdflatex(self, *args: str, what: str) -> None:
        command = ["pdflatex", "-halt-on-error", *args, REPORT_TEX_FILE]
        logger.info("Calling LaTeX - %s", what)
        try:
            result = subprocess.run(
                command,
                cwd=self.tmp_dir,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as exc:
            raise ReportError(f"error calling LaTeX {what}: {exc}") from exc
        if result.returncode != 0:
            output = (result.stdout or b"").decode("utf-8", errors="replace")
            raise ReportError(
                f"error calling LaTeX {what}: exit status {result.returncode}. "
                f"LaTeX failed with output: {output} "
            )

    def run_latex(self) -> BinaryIO:
        """Run pdflatex twice and return the resulting PDF opened for reading."""
        self._pdflatex("-draftmode", what="preprocessing")
        self._pdflatex(what="building PDF")
        try:
            return open(self.pdf_path, "rb")
        except OSError as exc:
            raise ReportError(f"error opening {self.pdf_path}: {exc}") from exc