"""Run the Workflow Monitor API server."""

from __future__ import annotations

import os

import uvicorn

from workflow_monitor.logging import setup_logging

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3001


def main() -> None:
    setup_logging()
    uvicorn.run(
        "workflow_monitor.api.app:app",
        host=os.environ.get("WORKFLOW_MONITOR_HOST", DEFAULT_HOST),
        port=int(os.environ.get("WORKFLOW_MONITOR_PORT", DEFAULT_PORT)),
        log_config=None,
    )


if __name__ == "__main__":
    main()
