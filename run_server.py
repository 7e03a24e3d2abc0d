#!/usr/bin/env python3
"""
Entry point for running the git puller under systemd. This file lets us
avoid relying on `flask run` and keeps behavior consistent.

Environment:
  GITPULLER_CONFIG   path to the YAML options (default: gitpuller/puller.yaml, shipped with the package)
  GITPULLER_SECRET   webhook secret, overrides the file
  GITPULLER_TOKEN    ?token= value, overrides the file
  GITPULLER_HOST / GITPULLER_PORT / GITPULLER_PATH
"""

import logging
import os

from gitpuller import Puller, load_config
from gitpuller.app import DEFAULT_HOOK_PATH, create_app

logger = logging.getLogger("gitpuller")


def build_app():
    config = load_config(os.environ.get("GITPULLER_CONFIG"))
    puller = Puller(config)
    puller.on("before", lambda n: logger.info(f"[gitpuller] deploying {n.ref} ({n.event})"))
    puller.on("after", lambda n, err: logger.info(f"[gitpuller] finished {n.ref}" + (f" with error: {err}" if err else "")))
    return create_app(puller, os.environ.get("GITPULLER_PATH", DEFAULT_HOOK_PATH))


def main():
    logging.basicConfig(level=os.environ.get("GITPULLER_LOG_LEVEL", "INFO"))
    app = build_app()
    # production-ish settings
    # - debug=False so we don't do autoreload loops under systemd
    app.run(
        host=os.environ.get("GITPULLER_HOST", "0.0.0.0"),
        port=int(os.environ.get("GITPULLER_PORT", "5001")),
        debug=False,
    )


if __name__ == "__main__":
    main()
