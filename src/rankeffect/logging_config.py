"""Configure logging for the application."""

import logging
import sys


def setup_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger("rankeffect")
    root.setLevel(level)
    root.addHandler(handler)

    # Suppress noisy HTTP and MSAL logs unless in debug mode
    quiet_level = logging.DEBUG if debug else logging.WARNING
    for name in ("httpx", "httpcore", "msal"):
        logging.getLogger(name).setLevel(quiet_level)
