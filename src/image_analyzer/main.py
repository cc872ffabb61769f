"""Run the API under uvicorn."""

import uvicorn

from image_analyzer.config import Settings


def main() -> None:
    """Start the ASGI server."""
    settings = Settings()
    uvicorn.run(
        "image_analyzer.api.asgi:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
