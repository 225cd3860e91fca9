#!/usr/bin/env python3
"""Startup script for the draft room backend"""

import os

import uvicorn

from .config import ServerConfig


def main():
    config = ServerConfig.from_env()

    print(f"Starting Draft Room Server on {config.host}:{config.port}")
    print(f"Health check available at: http://{config.host}:{config.port}/health")
    print(f"WebSocket endpoint: ws://{config.host}:{config.port}/ws")

    uvicorn.run(
        "draft_engine.main:app",
        host=config.host,
        port=config.port,
        reload=os.getenv("RELOAD", "false").lower() == "true",
        log_level=config.log_level
    )


if __name__ == "__main__":
    main()
