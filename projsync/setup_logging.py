import logging, sys

from projsync.settings import LOG_LEVEL

def setup_logging(level: str | None = None, stream=None):
    """Attach one stdout handler to the root logger. Later calls only adjust the level."""
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    # per-request connection chatter drowns out the batch progress lines
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    if logger.handlers:
        return
    h = logging.StreamHandler(stream or sys.stdout)
    h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s :: %(message)s"))
    logger.addHandler(h)
