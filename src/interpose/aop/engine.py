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
"""HookEngine — registration facade, removal tokens and the process-wide engine."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from interpose.aop.dispatcher import Dispatcher
from interpose.aop.patcher import PatchedTypeRegistry, TypePatcher
from interpose.aop.registry import AssociationTable, HookContainer, HookRecord
from interpose.aop.signature import (
    HandlerDescriptor,
    InspectIntrospector,
    SignatureIntrospector,
    check_compatibility,
    describe_method,
)
from interpose.aop.tracker import HierarchyTracker
from interpose.aop.types import DESTRUCTOR, HookOption, position_of
from interpose.core.config import Config, config_properties
from interpose.kernel.exceptions import (
    HookRegistrationException,
    InvalidDestructorPositionError,
    NoSuchMethodError,
    SelectorBlacklistedError,
    TargetAlreadyReleasedError,
)
from interpose.logging.port import LoggingPort
from interpose.logging.structlog_adapter import StructlogAdapter

logger = logging.getLogger(__name__)

BLACKLISTED_METHODS = frozenset({"__getattribute__", "__setattr__", "__delattr__", "__class__"})

_POSITIONS = (HookOption.BEFORE, HookOption.INSTEAD, HookOption.AFTER)


@config_properties(prefix="interpose.engine")
class EngineProperties(BaseModel):
    """Engine settings bound from the ``interpose.engine`` config section."""

    subclass_suffix: str = "_Interpose_"
    alias_prefix: str = "interpose_"
    log_failures: bool = True


class HookToken:
    """Handle returned by :meth:`HookEngine.hook`; used to remove the hook."""

    def __init__(self, record: HookRecord, engine: HookEngine) -> None:
        self._record = record
        self._engine = engine
        self.error: TargetAlreadyReleasedError | None = None

    @property
    def record(self) -> HookRecord:
        return self._record

    def remove(self) -> bool:
        """Deregister the hook. ``False`` when the target is gone or it was already removed."""
        removed, error = self._engine.remove_record(self._record)
        self.error = error
        return removed

    def __repr__(self) -> str:
        return f"<HookToken: {self._record!r}>"


def _describe(target: Any) -> str:
    if isinstance(target, type):
        return target.__qualname__
    return f"<{target.__class__.__qualname__} at {id(target):#x}>"


class HookEngine:
    """Hook registration and teardown over one set of process-wide registries.

    Every mutation runs under a single re-entrant lock; dispatch does not.
    """

    def __init__(
        self,
        properties: EngineProperties | None = None,
        introspector: SignatureIntrospector | None = None,
    ) -> None:
        self.properties = properties or EngineProperties()
        self.introspector: SignatureIntrospector = introspector or InspectIntrospector()
        self._lock = threading.RLock()
        self.tracker = HierarchyTracker()
        self.patched_types = PatchedTypeRegistry()
        self.associations = AssociationTable(on_collected=self._on_target_collected)
        self.patcher = TypePatcher(
            self.patched_types,
            self._entry_point,
            subclass_suffix=self.properties.subclass_suffix,
            alias_prefix=self.properties.alias_prefix,
        )
        self.dispatcher = Dispatcher(self.associations, self.patcher.alias_for)

    @classmethod
    def from_config(cls, config: Config) -> HookEngine:
        return cls(config.bind(EngineProperties))

    def _entry_point(self, method_name: str, owner: type, original: Any) -> Callable[..., Any]:
        return self.dispatcher.entry_point(method_name, owner, original)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def hook(
        self,
        target: Any,
        method_name: str,
        options: HookOption | int,
        handler: Callable[..., Any],
    ) -> HookToken:
        """Run *handler* before, instead of, or after *method_name* on *target*.

        *target* is either one object or a class (every instance). Raises a
        :class:`HookRegistrationException` subclass when the hook is refused.
        """
        if target is None or not method_name or handler is None:
            raise ValueError("target, method_name and handler are required")
        if not callable(handler):
            raise TypeError(f"handler must be callable, got {handler!r}")
        options = HookOption(int(options))
        if position_of(options) not in _POSITIONS:
            raise ValueError(f"invalid hook position in {options!r}")

        with self._lock:
            try:
                record = self._add(target, method_name, options, handler)
            except HookRegistrationException as exc:
                if self.properties.log_failures:
                    logger.error(
                        "registration_failed",
                        extra={
                            "method": method_name,
                            "target": _describe(target),
                            "code": exc.code,
                            "error": str(exc),
                        },
                    )
                raise
        logger.debug(
            "hook_added",
            extra={"method": method_name, "target": _describe(target), "options": repr(options)},
        )
        return HookToken(record, self)

    def _check_allowed(self, target: Any, method_name: str, options: HookOption) -> Any:
        if method_name in BLACKLISTED_METHODS or method_name.startswith(f"{self.patcher.alias_prefix}_"):
            raise SelectorBlacklistedError(
                f"Method {method_name} is blacklisted.",
                context={"method": method_name},
            )
        if method_name == DESTRUCTOR and position_of(options) is not HookOption.BEFORE:
            raise InvalidDestructorPositionError(
                "HookOption.BEFORE is the only valid position when hooking __del__.",
                context={"method": method_name},
            )

        klass = target if isinstance(target, type) else type(target)
        original = self.patcher.resolve_original(klass, method_name)
        if original is None or isinstance(original, staticmethod | classmethod | property) or not callable(original):
            raise NoSuchMethodError(
                f"Unable to find method {klass.__qualname__}.{method_name}.",
                context={"class": klass.__qualname__, "method": method_name},
            )
        return original

    def _add(self, target: Any, method_name: str, options: HookOption, handler: Callable[..., Any]) -> HookRecord:
        original = self._check_allowed(target, method_name, options)
        class_wide = isinstance(target, type)
        newly_tracked = class_wide and self.tracker.track(target, method_name)

        container: HookContainer | None = None
        record: HookRecord | None = None
        try:
            descriptor = HandlerDescriptor.from_callable(handler, self.introspector)
            check_compatibility(descriptor, describe_method(original, self.introspector))

            record = HookRecord(
                method_name,
                options,
                target,
                handler,
                descriptor,
                class_wide=class_wide,
                remover=self.remove,
            )
            container = self.associations.get_or_create(target, method_name)
            container.add(record)
            record.patched_class = self.patcher.prepare(target, method_name)
        except HookRegistrationException:
            if container is not None and record is not None:
                container.remove(record)
                if not container.has_hooks():
                    self.associations.discard(target, method_name)
                    if not class_wide and not self.associations.has_containers(target):
                        self.patcher.restore_instance(target)
            if record is not None:
                record.invalidate()
            if newly_tracked:
                self.tracker.untrack(target, method_name)
            raise
        return record

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove(self, record: HookRecord) -> bool:
        return self.remove_record(record)[0]

    def remove_record(self, record: HookRecord) -> tuple[bool, TargetAlreadyReleasedError | None]:
        """Deregister *record*, tearing the interception point down after the last hook."""
        with self._lock:
            target = record.target
            method_name = record.method_name
            if target is None or method_name is None:
                error = TargetAlreadyReleasedError(
                    f"Unable to deregister hook. Object already deallocated: {record!r}",
                )
                logger.error("removal_failed", extra={"code": error.code, "error": str(error)})
                return False, error

            container = self.associations.get(target, method_name)
            removed = container.remove(record) if container is not None else False
            patched_class = record.patched_class
            record.invalidate()

            if removed and patched_class is not None:
                self.patcher.release(patched_class, method_name)

            if container is not None and not container.has_hooks():
                self.associations.discard(target, method_name)
                if record.class_wide:
                    self.tracker.untrack(target, method_name)
                elif not self.associations.has_containers(target):
                    self.patcher.restore_instance(target)

        logger.debug(
            "hook_removed",
            extra={"method": method_name, "target": _describe(target), "removed": removed},
        )
        return removed, None

    def _on_target_collected(self, containers: list[HookContainer]) -> None:
        with self._lock:
            for container in containers:
                for record in container.records():
                    if record.patched_class is not None and record.method_name is not None:
                        self.patcher.release(record.patched_class, record.method_name)
                    record.invalidate()


# ---------------------------------------------------------------------------
# Process-wide engine
# ---------------------------------------------------------------------------

_engine: HookEngine | None = None
_engine_lock = threading.Lock()


def get_engine() -> HookEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = HookEngine()
        return _engine


def set_engine(engine: HookEngine | None) -> HookEngine | None:
    """Install *engine* as the process-wide engine; returns the previous one."""
    global _engine
    with _engine_lock:
        previous, _engine = _engine, engine
        return previous


def reset_engine() -> None:
    """Drop the process-wide engine so the next use starts from empty registries."""
    set_engine(None)


def configure(config: Config, logging_port: LoggingPort | None = None) -> HookEngine:
    """Configure logging and install an engine built from *config*."""
    (logging_port or StructlogAdapter()).configure(config)
    engine = HookEngine.from_config(config)
    set_engine(engine)
    return engine


def hook(target: Any, method_name: str, options: HookOption | int, handler: Callable[..., Any]) -> HookToken:
    """Register a hook on the process-wide engine."""
    return get_engine().hook(target, method_name, options, handler)
