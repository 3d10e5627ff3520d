import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure le logger racine une seule fois (appelé par create_app).
    """
    root = logging.getLogger()
    root.setLevel((level or "INFO").upper())

    if any(getattr(h, "_tick8", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._tick8 = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # uvicorn / httpx trop bavards en DEBUG
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
