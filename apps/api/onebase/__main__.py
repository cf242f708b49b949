from __future__ import annotations

import uvicorn

from onebase.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("onebase.main:app", host="0.0.0.0", port=settings.api_port, log_config=None)


if __name__ == "__main__":
    main()
