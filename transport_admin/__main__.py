"""Run the API with ``python -m transport_admin``."""

import uvicorn

from transport_admin.config.settings import settings


def main() -> None:
    uvicorn.run(
        "transport_admin.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
