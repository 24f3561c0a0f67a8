"""
Модуль для конфигурации логирования.

Один формат для бота, HTTP-клиента бэкенда и движка переходов статусов.
"""

import logging
import sys

from fieldservice.core.config import settings

LOG_FORMAT = "%(asctime)s - [%(levelname)s] - %(name)s - (%(filename)s).%(funcName)s(%(lineno)d) - %(message)s"

# Библиотеки, которые в INFO пишут строку на каждый запрос к Telegram и бэкенду
NOISY_LOGGERS = ("httpx", "httpcore", "telegram.ext", "apscheduler")


def setup_logging(level: int | str | None = None) -> None:
    """
    Настраивает корневой логгер с выводом в stdout.

    Args:
        level: Уровень логирования; по умолчанию берётся settings.log_level.
    """
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(level=level, handlers=[stdout_handler], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
