"""Run the API with uvicorn: ``python -m clinic_api``."""

import uvicorn

from clinic_api.core.config import settings


def main() -> None:
    uvicorn.run(
        "clinic_api.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover - script entrypoint
    main()
