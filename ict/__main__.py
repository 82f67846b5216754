"""Run the ICT service with uvicorn."""

import uvicorn

from ict.core.app import create_app
from ict.core.settings import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(create_app(), host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
