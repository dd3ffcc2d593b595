"""
Local entrypoint: ``python -m exporter.app``.

Container deployments run ``uvicorn exporter.app.main:app`` directly.
"""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "exporter.app.main:app",
        host=os.environ.get("EXPORTER_HOST", "127.0.0.1"),
        port=int(os.environ.get("EXPORTER_PORT", "8000")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
