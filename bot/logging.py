from __future__ import annotations

import logging


LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s|%(module)s.%(funcName)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
FORWARDED_LOGGER_NAMES = (
    "yippie.runtime",
    "yippie.wichteln",
    "yippie.polls",
    "yippie.roles",
    "yippie.gateway",
    "yippie.db",
)


def setup_logging(level_name: str | None = "INFO") -> None:
    level = getattr(logging, (level_name or "INFO").strip().upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
    # discord.py is chatty on DEBUG (gateway payloads).
    logging.getLogger("discord").setLevel(max(level, logging.INFO))


class QueueForwardHandler(logging.Handler):
    """Hands formatted records to a sink (usually the Discord log-channel queue)."""

    def __init__(self, sink, *, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self._sink = sink
        self.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)s src=%(name)s/%(module)s.%(funcName)s:%(lineno)d | %(message)s",
                LOG_DATE_FORMAT,
            )
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._sink(self.format(record))
        except Exception:
            self.handleError(record)


def attach_handler(handler: logging.Handler, logger_names=FORWARDED_LOGGER_NAMES) -> list[logging.Logger]:
    attached: list[logging.Logger] = []
    for logger_name in logger_names:
        logger = logging.getLogger(logger_name)
        if handler not in logger.handlers:
            logger.addHandler(handler)
        attached.append(logger)
    return attached
