"""Run the API with uvicorn: ``python -m syncsketch``."""

import uvicorn

from syncsketch.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("syncsketch.app:app", host="0.0.0.0", port=settings.port, reload=not settings.is_production)


if __name__ == "__main__":
    main()
