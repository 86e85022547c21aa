"""Run the API with uvicorn: `python -m userhub`."""

import uvicorn

from userhub.core.config import Settings
from userhub.main import create_app


def main() -> None:
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
