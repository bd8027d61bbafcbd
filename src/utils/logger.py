import sys
from loguru import logger


def setup_logging(level: str = "INFO") -> None:
    """Configura o sink único do loguru (chamado uma vez no startup)."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {name} | {message}",
    )
