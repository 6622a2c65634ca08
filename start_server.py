#!/usr/bin/env python3
"""Run the dispatch API behind a proxy, listening on $PORT (default 8000).

Expects the package to be installed (``pip install -e .``).
"""

import logging
import os

import uvicorn

DEFAULT_PORT = 8000


def _port() -> int:
    raw = os.environ.get("PORT", str(DEFAULT_PORT))
    try:
        return int(raw)
    except ValueError:
        logging.warning(f"Invalid PORT value {raw!r}, using {DEFAULT_PORT}")
        return DEFAULT_PORT


if __name__ == "__main__":
    uvicorn.run(
        "courier_dispatch.main:app",
        host="0.0.0.0",
        port=_port(),
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
