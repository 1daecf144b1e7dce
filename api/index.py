"""Serverless entrypoint."""

import os

from evermark_sync.log import setup_app_logging
from evermark_sync.server import create_app

setup_app_logging(level=os.getenv("EVERMARK_LOG_LEVEL"))

# The Python runtime routes HTTP requests to a module-level ASGI `app`.
# Config is read at startup from EVERMARK_SYNC_CONFIG and EVERMARK_* overrides.
app = create_app()
