"""Fetch Grafana dashboards and panel images and typeset them into PDF reports with LaTeX."""

__version__ = "2.3.0"