"""Entry point for the Todo API.

Reads HOST and PORT from the environment (defaults ``0.0.0.0`` and ``8080``)
and serves ``src.api.main:app`` with uvicorn. Store settings such as
DYNAMODB_ENDPOINT are read by the application itself.

Usage:
    python run.py
"""
import os

import uvicorn


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    uvicorn.run("src.api.main:app", host=host, port=port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
