# app/core/logging.py
import logging
import sys

FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str = "app", level: str = "INFO") -> logging.Logger:
    """Configura el logger raiz de la aplicacion (solo consola)."""
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    # Evita handlers duplicados si el lifespan corre dos veces (tests)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(handler)
    return logger
