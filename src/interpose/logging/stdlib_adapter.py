# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""StdlibLoggingAdapter — LoggingPort fallback using stdlib logging."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from interpose.core.config import Config
from interpose.logging.port import ENGINE_DEFAULT_LEVEL, ENGINE_LOGGER

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def event_fields(record: logging.LogRecord) -> dict[str, Any]:
    """The ``extra`` fields an engine event was logged with."""
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}


class _StructuredLogger:
    """Wraps a stdlib Logger to accept structlog-style calls: logger.info(event, **kwargs)."""

    __slots__ = ("_logger",)

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def debug(self, event: str, **kwargs: Any) -> None:
        self._logger.debug(event, extra=kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._logger.info(event, extra=kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._logger.warning(event, extra=kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._logger.error(event, extra=kwargs)


class EventFormatter(logging.Formatter):
    """Renders ``event | key=value ...`` lines, or one JSON object per event."""

    def __init__(self, json_output: bool = False) -> None:
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        self._json = json_output

    def format(self, record: logging.LogRecord) -> str:
        fields = event_fields(record)
        if self._json:
            payload = {
                "timestamp": self.formatTime(record),
                "level": record.levelname,
                "logger": record.name,
                "event": record.getMessage(),
                **fields,
            }
            return json.dumps(payload, default=str)
        line = super().format(record)
        if fields:
            line = f"{line} | " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


class StdlibLoggingAdapter:
    """LoggingPort using only stdlib logging.

    Renders structured-style lines (``event | key=value``) for hosts that
    route everything through the standard library.
    """

    def __init__(self) -> None:
        self._root_level: str = "INFO"
        self._format: str = "console"
        self._module_levels: dict[str, str] = {}

    def configure(self, config: Config) -> None:
        level_section = dict(config.get_section("interpose.logging.level"))
        self._root_level = str(level_section.pop("root", "INFO")).upper()
        self._module_levels = {k: str(v).upper() for k, v in level_section.items()}
        self._module_levels.setdefault(ENGINE_LOGGER, ENGINE_DEFAULT_LEVEL)
        self._format = str(config.get("interpose.logging.format", "console")).lower()

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(EventFormatter(json_output=self._format == "json"))
        log_level = getattr(logging, self._root_level, logging.INFO)
        logging.basicConfig(handlers=[handler], level=log_level, force=True)

        for module, level in self._module_levels.items():
            self.set_level(module, level)

    def get_logger(self, name: str) -> Any:
        return _StructuredLogger(logging.getLogger(name))

    def set_level(self, name: str, level: str) -> None:
        log_level = getattr(logging, level.upper(), logging.INFO)
        logging.getLogger(name).setLevel(log_level)
