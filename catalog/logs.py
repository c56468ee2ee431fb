import logging

from rich.logging import RichHandler

from .config import LOG_LEVEL


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Route every logger through a rich console handler."""
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
