"""Entrypoint: python -m realtime_bus"""
from __future__ import annotations

import uvicorn

from realtime_bus.config import settings


def main() -> None:
    uvicorn.run(
        "realtime_bus.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
