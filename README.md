# grafreport

Turn a Grafana dashboard into a PDF report. The Grafana server renders each
panel on the dashboard as a PNG. The images go into a LaTeX document, and
`pdflatex` turns that document into a PDF.

## Requirements

- Python 3.10 or newer
- A Grafana server with image rendering enabled
- `pdflatex` on the `PATH`

## Installation

```
pip install .
```

To install what the tests need as well:

```
pip install .[test]
```

## Usage

```python
from grafreport.api import new_v5_client
from grafreport.report import Report
from grafreport.timerange import new_time_range

client = new_v5_client(
    "http://localhost:3000",
    "token",
    {"var-host": ["dev"]},
    True,   # verify TLS certificates
    False,  # grid layout
)
with Report(client, "rYy7Paekz", new_time_range("now-1d/d", "now-1d/d"), "", False) as report:
    with report.generate() as pdf:
        data = pdf.read()
    print("Generated", report.title())
```

`Report` can be used as a context manager. On exit it calls `clean()`, which
deletes the temporary build directory (`tmp/<uuid>`) and the PDF inside it.
Read the PDF before the directory is removed. Without the `with` block, call
`report.clean()` yourself.

For Grafana 4 and older, use `new_v4_client` and pass the dashboard slug in
place of the uid. Both factories return a `GrafanaClient`.

### Modules

- `grafreport.api` contains `GrafanaClient`, `new_v4_client`, `new_v5_client`
  and `GrafanaError`.
  - `get_dashboard(dash_name)` returns a `Dashboard`.
  - `get_panel_png(panel, dash_name, time_range)` returns the PNG bytes.
  - `panel_url(...)` builds the render URL for a panel.
  - An empty API token sends requests without an `Authorization` header.
  - The template variables (for example `{"var-host": ["dev"]}`) are added
    to the dashboard and render URLs.
- `grafreport.dashboard` contains the `Dashboard`, `Row`, `Panel`, `GridPos`
  and `PanelType` classes, and these functions:
  - `new_dashboard(dash_json, variables)` parses Grafana's dashboard JSON. It
    accepts both the row-based layout and the grid-based layout, and it
    skips panels of type `row`.
  - `sanitize_latex(text)` escapes text for LaTeX.
  - `variables_text(variables)` joins the variable values into one string.
- `grafreport.timerange` contains `TimeRange`, `new_time_range`,
  `parse_from`, `parse_to` and `UnrecognisedTimeError`.
- `grafreport.report` contains `Report` and `ReportError`, and the built-in
  templates `DEFAULT_TEMPLATE` and `DEFAULT_GRID_TEMPLATE`.

### Time ranges

`new_time_range(from_, to)` takes Grafana time specifications. An empty
`from_` defaults to `now-1h`, and an empty `to` defaults to `now`. These forms
are accepted:

- `now`, or a relative time such as `now-5m`, `now+2h`, `now-3d`, `now-1w`,
  `now-6M` or `now-1y`
- a boundary such as `now/d`, `now-1d/d`, `now/w`, `now/M` or `now/y`. Given
  to `parse_from`, a boundary means the start of the period. Given to
  `parse_to`, it means the end of the period. Weeks start on Sunday.
- absolute milliseconds since the Unix epoch, such as `1463464226537`

Both `parse_from(spec, now=None)` and `parse_to(spec, now=None)` return a
`datetime`. If you pass no `now`, they use the current local time.
`TimeRange.from_formatted()` and `to_formatted()` give a printable form such
as `Tue Jan 19 09:07:27 UTC 2016`. A specification that cannot be read raises
`UnrecognisedTimeError`, which is a `ValueError`.

### Templates

If the template text is empty, a built-in template is used. There is one
template for the classic layout and one for the grid layout. A custom
template is a Jinja template. It uses `[[ ... ]]` for expressions, `[% ... %]`
for statements and `[# ... #]` for comments. Undefined names are errors. The
template can use these names:

- `title`, `description`, `variable_values`, `rows`, `panels`, `dashboard`
- `from_formatted`, `to_formatted`, `time_range`, `client`
- for each panel: `id`, `type`, `title`, `grid_pos`, `is_single_stat()`,
  `is_partial_width()`, `width()`, `height()` and `is_type(...)`

Dashboard titles, descriptions, row and panel titles, and variable values
are escaped for LaTeX before they reach the template. Panel images are
written as `images/image<id>.png`.

### Layouts

- Classic layout: single-stat panels are rendered at 300×150 and placed side
  by side. Text panels are rendered at 1000×100, and all other panels at
  1000×500.
- Grid layout: each panel is rendered at 40 pixels per grid unit of its
  position on the dashboard. Panels narrower than the full width of 24 units
  are placed side by side.

Panel images are fetched with up to five requests in parallel.

### Errors

- Failures talking to Grafana raise `GrafanaError`. This includes a panel
  render that is redirected, for example to a login page. A panel render
  that does not return status 200 is tried three times in all. The client
  waits `retry_sleep` seconds (10 by default) before the first retry and
  twice that before the second.
- Dashboard JSON that is malformed or has fields of the wrong type raises
  `ValueError`.
- Failures while building the report raise `ReportError`. All panels are
  attempted even if one of them fails. After that, the first error is raised.
- `Report.title()` returns an empty string if the dashboard cannot be
  fetched.

## What it does not do

This package is a library only. It has no command-line tool and no HTTP
service that serves reports. To produce a report, the calling code creates
the client, chooses the dashboard and time range, and supplies any custom
template as text. The package does not look up templates in a directory.