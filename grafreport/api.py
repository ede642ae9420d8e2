"""HTTP client for the Grafana dashboard and panel rendering API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from urllib.parse import urlencode

import requests

from grafreport.dashboard import Dashboard, Panel, PanelType, new_dashboard
from grafreport.timerange import TimeRange

logger = logging.getLogger(__name__)

Variables = Mapping[str, Sequence[str]]
DashEndpoint = Callable[[str], str]
PanelEndpoint = Callable[[str, Mapping[str, Sequence[str]]], str]


class GrafanaError(Exception):
    """Raised when the Grafana server cannot satisfy a request."""


def _encode(values: Mapping[str, Sequence[str]]) -> str:
    """Encode query values sorted by key, keeping value order per key."""
    return urlencode(
        [(key, value) for key in sorted(values) for value in values[key]]
    )


class GrafanaClient:
    """Fetches dashboards and rendered panel images from a Grafana server."""

    #: Base delay in seconds between retries of a failed panel render.
    retry_sleep: float = 10.0
    #: Total number of attempts made to render a panel.
    attempts: int = 3

    def __init__(
        self,
        grafana_url: str,
        dash_endpoint: DashEndpoint,
        panel_endpoint: PanelEndpoint,
        api_token: str,
        variables: Variables | None,
        ssl_check: bool,
        grid_layout: bool,
    ) -> None:
        self.grafana_url = grafana_url
        self.dash_endpoint = dash_endpoint
        self.panel_endpoint = panel_endpoint
        self.api_token = api_token
        self.variables: dict[str, list[str]] = {
            key: list(values) for key, values in (variables or {}).items()
        }
        self.ssl_check = ssl_check
        self.grid_layout = grid_layout

    def _headers(self) -> dict[str, str]:
        if self.api_token:
            return {"Authorization": "Bearer " + self.api_token}
        return {}

    def get_dashboard(self, dash_name: str) -> Dashboard:
        """Fetch and parse the named dashboard."""
        dash_url = self.dash_endpoint(dash_name)
        logger.info("Connecting to dashboard at %s", dash_url)
        try:
            resp = requests.get(
                dash_url, headers=self._headers(), verify=self.ssl_check
            )
        except requests.RequestException as exc:
            raise GrafanaError(
                f"error executing getDashboard request for {dash_url}: {exc}"
            ) from exc

        if resp.status_code != 200:
            raise GrafanaError(
                f"error obtaining dashboard from {dash_url}. "
                f"Got Status {resp.status_code} {resp.reason}, message: {resp.text} "
            )
        return new_dashboard(resp.content, self.variables)

    def _fetch_panel(self, panel_url: str, what: str) -> requests.Response:
        try:
            resp = requests.get(
                panel_url,
                headers=self._headers(),
                verify=self.ssl_check,
                allow_redirects=False,
            )
        except requests.RequestException as exc:
            raise GrafanaError(
                f"error executing {what} request for {panel_url}: {exc}"
            ) from exc
        if resp.is_redirect:
            raise GrafanaError(
                f"error executing {what} request for {panel_url}: "
                "Error getting panel png. Redirected to login"
            )
        return resp

    def get_panel_png(
        self, panel: Panel, dash_name: str, time_range: TimeRange
    ) -> bytes:
        """Render a panel as PNG, retrying a few times on failure."""
        panel_url = self.panel_url(panel, dash_name, time_range)
        resp = self._fetch_panel(panel_url, "getPanelPng")

        for retry in range(1, self.attempts):
            if resp.status_code == 200:
                break
            delay = self.retry_sleep * retry
            logger.warning(
                "Error obtaining render for panel %r, Status: %s, Retrying after %ss...",
                panel,
                resp.status_code,
                delay,
            )
            time.sleep(delay)
            resp = self._fetch_panel(panel_url, "retry getPanelPng")

        if resp.status_code != 200:
            logger.error("Error obtaining render: %s", resp.text)
            raise GrafanaError(
                f"Error obtaining render: {resp.status_code} {resp.reason}"
            )
        return resp.content

    def panel_url(self, panel: Panel, dash_name: str, time_range: TimeRange) -> str:
        """The render URL for a panel over the given time range."""
        values: dict[str, list[str]] = {
            "theme": ["dark"],
            "panelId": [str(panel.id)],
            "from": [time_range.from_],
            "to": [time_range.to],
        }

        if self.grid_layout:
            width, height = int(panel.grid_pos.w * 40), int(panel.grid_pos.h * 40)
        elif panel.is_type(PanelType.SINGLE_STAT):
            width, height = 300, 150
        elif panel.is_type(PanelType.TEXT):
            width, height = 1000, 100
        else:
            width, height = 1000, 500
        values["width"] = [str(width)]
        values["height"] = [str(height)]

        for key, variable_values in self.variables.items():
            values.setdefault(key, []).extend(variable_values)

        url = self.panel_endpoint(dash_name, values)
        logger.info("Downloading image %s %s", panel.id, url)
        return url


def new_v4_client(
    grafana_url: str,
    api_token: str,
    variables: Variables | None,
    ssl_check: bool,
    grid_layout: bool,
) -> GrafanaClient:
    """Client for Grafana 4 (dashboards addressed by slug).

    An empty api_token omits the Authorization header.
    """
    variables = variables or {}

    def dash_endpoint(dash_name: str) -> str:
        dash_url = f"{grafana_url}/api/dashboards/db/{dash_name}"
        if variables:
            dash_url += "?" + _encode(variables)
        return dash_url

    def panel_endpoint(dash_name: str, values: Mapping[str, Sequence[str]]) -> str:
        return f"{grafana_url}/render/dashboard-solo/db/{dash_name}?{_encode(values)}"

    return GrafanaClient(
        grafana_url, dash_endpoint, panel_endpoint, api_token, variables, ssl_check, grid_layout
    )


def new_v5_client(
    grafana_url: str,
    api_token: str,
    variables: Variables | None,
    ssl_check: bool,
    grid_layout: bool,
) -> GrafanaClient:
    """Client for Grafana 5 (dashboards addressed by uid).

    An empty api_token omits the Authorization header.
    """
    variables = variables or {}

    def dash_endpoint(dash_name: str) -> str:
        dash_url = f"{grafana_url}/api/dashboards/uid/{dash_name}"
        if variables:
            dash_url += "?" + _encode(variables)
        return dash_url

    def panel_endpoint(dash_name: str, values: Mapping[str, Sequence[str]]) -> str:
        return f"{grafana_url}/render/d-solo/{dash_name}/_?{_encode(values)}"

    return GrafanaClient(
        grafana_url, dash_endpoint, panel_endpoint, api_token, variables, ssl_check, grid_layout
    )