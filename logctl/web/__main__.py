from __future__ import annotations

from ..config import load_config
from .app_factory import create_app


def main() -> None:  # pragma: no cover - dev helper
    cfg = load_config()
    app = create_app(settings=cfg)
    app.run(host=cfg.api_host, port=cfg.api_port)


if __name__ == '__main__':  # pragma: no cover - dev helper
    main()
