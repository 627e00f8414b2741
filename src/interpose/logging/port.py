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
"""LoggingPort — the hexagonal port through which the engine's logging is set up."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from interpose.core.config import Config

ENGINE_LOGGER = "interpose"
"""Parent of the engine's module loggers (``interpose.aop.engine``, ``interpose.aop.patcher``, ...)."""

ENGINE_DEFAULT_LEVEL = "WARNING"
"""Level applied to :data:`ENGINE_LOGGER` unless the configuration names one."""


@runtime_checkable
class LoggingPort(Protocol):
    """Port defining the logging contract for interpose.

    The engine logs through stdlib module loggers with an event name as the
    message and its fields in ``extra``; an adapter decides how those records
    are rendered and which levels pass.
    """

    def configure(self, config: Config) -> None:
        """Install handlers and levels from the ``interpose.logging`` section."""
        ...

    def get_logger(self, name: str) -> Any:
        """Logger accepting ``logger.info(event, **fields)`` calls."""
        ...

    def set_level(self, name: str, level: str) -> None: ...
