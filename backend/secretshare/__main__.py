"""Run the service with uvicorn: ``python -m secretshare``."""

import uvicorn

from secretshare.config import Settings
from secretshare.main import create_app


def main() -> None:
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
