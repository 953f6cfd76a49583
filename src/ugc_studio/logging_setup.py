"""Console logging for host applications embedding the pipeline."""
import logging
from typing import Optional

from rich.logging import RichHandler


def configure_logging(level: Optional[str] = None) -> None:
    """Route the root logger through rich. The library itself never calls this."""
    logging.basicConfig(
        level=(level or "INFO").upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
