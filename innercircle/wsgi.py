from __future__ import annotations

import os

from .config import parse_int
from .server import create_app

app = create_app()


def main() -> None:
    app.run(
        host=os.environ.get("INNERCIRCLE_HOST", "0.0.0.0"),
        port=parse_int(os.environ.get("INNERCIRCLE_PORT"), 3000),
        threaded=True,
    )


if __name__ == "__main__":
    main()
