import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging with a single stderr handler.
    Call once at startup; repeated calls replace the handler instead of stacking.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(handler)

    # Quiet uvicorn access lines
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
