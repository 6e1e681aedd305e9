import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from marketplace.core import config

FORMAT = "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"


def init_logging(name: str = "marketplace") -> logging.Logger:
    logger = logging.getLogger(name)
    level = getattr(logging, (config.LOG_LEVEL or "INFO").upper(), logging.INFO)
    logger.setLevel(level)

    # evita handlers duplicados quando o app é recriado (testes, reload)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(FORMAT)

    if config.LOG_DIR:
        log_dir = Path(config.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        # 5MB x 5
        file_handler = RotatingFileHandler(
            log_dir / config.LOG_FILENAME, maxBytes=5_000_000, backupCount=5, encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    logger.info("Logging inicializado.")
    return logger
