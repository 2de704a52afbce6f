"""Command-line entrypoint that serves the relay with uvicorn."""

import uvicorn

from collab_relay.config import Settings


def main() -> None:
    """Run the ASGI app on the configured host and port."""
    settings = Settings()
    uvicorn.run(
        "collab_relay.api.asgi:app",
        host=settings.host,
        port=settings.port,
        ws="auto",
    )


if __name__ == "__main__":
    main()
