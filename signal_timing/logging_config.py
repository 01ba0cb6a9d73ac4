import logging
import sys

from rich.logging import RichHandler

from signal_timing.config import check_log_level

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", rich: bool = False) -> None:
    """Configure root logging for the process.

    Existing root handlers are removed first so repeated calls (uvicorn
    reload, tests) do not duplicate output. ``rich=True`` routes records
    through rich's handler for the CLI.

    Raises:
        ConfigurationError: ``level`` is not a logging level name.
    """
    level = check_log_level(level)
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    if rich:
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        fmt = "%(message)s"
    else:
        handler = logging.StreamHandler(sys.stdout)
        fmt = LOG_FORMAT

    logging.basicConfig(level=level, format=fmt, handlers=[handler])
    logging.getLogger(__name__).debug("Logging configured at %s", level)
