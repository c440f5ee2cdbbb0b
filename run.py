#!/usr/bin/env python3
"""
SecBank Core Entry Point

Starts the FastAPI server with settings from SECBANK_* environment variables.
"""

import sys

from secbank.api import run_server


if __name__ == "__main__":
    print("Starting SecBank Core...")
    print("All monetary values use Decimal precision")
    print("Documentation at /docs")

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down SecBank Core...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
