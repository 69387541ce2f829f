"""
Container entrypoint for Shuma Engine.

Binds to 0.0.0.0:$PORT regardless of HOST.
"""

import logging

import uvicorn

from utils.config import Config

if __name__ == "__main__":
    config = Config.load()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
    print(f"Starting Shuma Engine on port {config.port}")

    # Import app here to ensure clean module loading
    from web.app import app

    uvicorn.run(app, host="0.0.0.0", port=config.port)
