#!/usr/bin/env python3
"""
Script to run the Reading Tracker API server.
"""

import uvicorn

from api.config import APIConfig
from api.main import create_app


def main():
    """Run the API server."""
    config = APIConfig()

    print("Starting Reading Tracker API Server")
    print(f"Host: {config.host}")
    print(f"Port: {config.port}")
    print(f"Debug: {config.debug}")
    print(f"Database: {config.mongodb_database}")
    print("=" * 50)

    # Passing an app instance disables --reload
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
