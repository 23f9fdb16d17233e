# Copyright (c) Humanitarian OpenStreetMap Team
#
# This file is part of console-table.
#
#     console-table is free software: you can redistribute it and/or modify
#     it under the terms of the GNU General Public License as published by
#     the Free Software Foundation, either version 3 of the License, or
#     (at your option) any later version.
#
#     console-table is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU General Public License for more details.
#
#     You should have received a copy of the GNU General Public License
#     along with console-table.  If not, see <https:#www.gnu.org/licenses/>.
#
"""Logging setup, routing stdlib loggers through loguru."""

import logging
import sys

from loguru import logger as log

from console_table.config import settings

LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} | {message}"
)


class InterceptHandler(logging.Handler):
    """Forward standard logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a record at the matching loguru level."""
        try:
            level = log.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        log.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging(level: str | None = None) -> None:
    """Install a single loguru sink and capture stdlib logging.

    Safe to call more than once, previous sinks are replaced.
    """
    level = level or settings.log_level
    log.remove()
    log.add(sys.stderr, level=level, format=LOG_FORMAT, backtrace=settings.DEBUG)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # aiohttp access logging is noisy at debug level
    logging.getLogger("aiohttp").setLevel(level)
    log.debug(f"Logging configured at level {level}")
