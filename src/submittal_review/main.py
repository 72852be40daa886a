"""Entrypoint: run the submittal review server."""

import uvicorn

from submittal_review.api.app import create_app
from submittal_review.config.settings import Settings


def main() -> None:
    settings = Settings()
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
