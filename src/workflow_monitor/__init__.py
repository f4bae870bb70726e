"""Workflow Monitor - GitHub PR board snapshots for dashboards."""

__version__ = "0.1.0"
