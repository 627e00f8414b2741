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
"""Hook records, per-method hook containers, and the association table that attaches them to targets."""

from __future__ import annotations

import threading
import weakref
from collections.abc import Callable
from typing import Any

from interpose.aop.signature import HandlerDescriptor
from interpose.aop.types import DESTRUCTOR, HookOption, InterceptionContext, position_of


class HookRecord:
    """One registered interception.

    Instance targets are held weakly; class targets are held strongly. Once
    invalidated a record never runs its handler again.
    """

    def __init__(
        self,
        method_name: str,
        options: HookOption,
        target: Any,
        handler: Callable[..., Any],
        descriptor: HandlerDescriptor,
        *,
        class_wide: bool,
        remover: Callable[[HookRecord], bool],
    ) -> None:
        self.method_name: str | None = method_name
        self.options = options
        self.class_wide = class_wide
        self.handler: Callable[..., Any] | None = handler
        self.descriptor = descriptor
        self.patched_class: type | None = None
        self._remover = remover
        self._target_ref: Callable[[], Any] | None = _reference(target, strong=class_wide)
        self._claim_lock = threading.Lock()
        self._fired = False

    @property
    def position(self) -> HookOption:
        return position_of(self.options)

    @property
    def automatic_removal(self) -> bool:
        return bool(self.options & HookOption.AUTOMATIC_REMOVAL)

    @property
    def target(self) -> Any:
        """The hooked object, or ``None`` once it was collected or the record removed."""
        if self._target_ref is None:
            return None
        return self._target_ref()

    def claim(self) -> bool:
        """Whether the handler may run now; an automatically removed hook is claimed once."""
        if self.handler is None:
            return False
        if not self.automatic_removal:
            return True
        with self._claim_lock:
            if self._fired:
                return False
            self._fired = True
            return True

    def invoke(self, context: InterceptionContext) -> Any:
        handler = self.handler
        if handler is None:
            return None

        count = self.descriptor.parameter_count
        if self.descriptor.accepts_varargs:
            return handler(context, *context.arguments)
        if count == 0:
            return handler()
        if count == 1:
            return handler(context)
        return handler(context, *context.arguments[: count - 1])

    def remove(self) -> bool:
        return self._remover(self)

    def invalidate(self) -> None:
        self._target_ref = None
        self.handler = None
        self.method_name = None

    def __repr__(self) -> str:
        return (
            f"<HookRecord: {self.method_name} target={self.target!r} options={self.options!r} "
            f"handler={self.handler!r} (#{self.descriptor.parameter_count} args)>"
        )


def _reference(obj: Any, *, strong: bool) -> Callable[[], Any]:
    if not strong:
        try:
            return weakref.ref(obj)
        except TypeError:
            pass
    return lambda: obj


class HookContainer:
    """Before, instead and after records for one (target, method) pair.

    Lists are immutable tuples replaced on every change, so a dispatch that
    read them keeps a stable snapshot while registrations continue.
    """

    __slots__ = ("before", "instead", "after")

    def __init__(self) -> None:
        self.before: tuple[HookRecord, ...] = ()
        self.instead: tuple[HookRecord, ...] = ()
        self.after: tuple[HookRecord, ...] = ()

    def add(self, record: HookRecord) -> None:
        position = record.position
        if position is HookOption.BEFORE:
            self.before = (*self.before, record)
        elif position is HookOption.INSTEAD:
            self.instead = (*self.instead, record)
        else:
            self.after = (*self.after, record)

    def remove(self, record: HookRecord) -> bool:
        """Remove *record* by identity; equal handlers registered twice stay distinct."""
        for attr in self.__slots__:
            records: tuple[HookRecord, ...] = getattr(self, attr)
            for idx, candidate in enumerate(records):
                if candidate is record:
                    setattr(self, attr, records[:idx] + records[idx + 1 :])
                    return True
        return False

    def has_hooks(self) -> bool:
        return bool(self.before or self.instead or self.after)

    def records(self) -> tuple[HookRecord, ...]:
        return (*self.before, *self.instead, *self.after)

    def __repr__(self) -> str:
        return f"<HookContainer: before={list(self.before)} instead={list(self.instead)} after={list(self.after)}>"


class _Association:
    __slots__ = ("ref", "containers", "finalized")

    def __init__(self, ref: Callable[[], Any]) -> None:
        self.ref = ref
        self.containers: dict[str, HookContainer] = {}
        self.finalized = False


class AssociationTable:
    """Side table attaching hook containers to objects, keyed by identity.

    Entries for weakly referenceable objects disappear when the object is
    collected, after *on_collected* received the orphaned containers.
    Reads do not lock; writes happen under the engine lock.

    The cyclic collector clears weak references before it runs finalizers,
    so a ``__del__`` container of an object collected that way is kept as
    pending until :meth:`finalized` reports that the finalizer ran.
    """

    def __init__(self, on_collected: Callable[[list[HookContainer]], None] | None = None) -> None:
        self._entries: dict[int, _Association] = {}
        self._pending: dict[int, HookContainer] = {}
        self._on_collected = on_collected

    def get(self, obj: Any, method_name: str) -> HookContainer | None:
        entry = self._entries.get(id(obj))
        if entry is not None and entry.ref() is obj:
            return entry.containers.get(method_name)
        if method_name == DESTRUCTOR:
            return self._pending.get(id(obj))
        return None

    def get_or_create(self, obj: Any, method_name: str) -> HookContainer:
        key = id(obj)
        entry = self._entries.get(key)
        if entry is None or entry.ref() is not obj:
            self._release_pending(key)
            entry = _Association(self._make_ref(obj, key))
            self._entries[key] = entry
        container = entry.containers.get(method_name)
        if container is None:
            container = HookContainer()
            entry.containers[method_name] = container
        return container

    def discard(self, obj: Any, method_name: str) -> None:
        key = id(obj)
        entry = self._entries.get(key)
        if entry is None or entry.ref() is not obj:
            return
        entry.containers.pop(method_name, None)
        if not entry.containers:
            del self._entries[key]

    def has_containers(self, obj: Any) -> bool:
        entry = self._entries.get(id(obj))
        return entry is not None and entry.ref() is obj and bool(entry.containers)

    def finalized(self, obj: Any) -> None:
        """Record that *obj*'s finalizer ran, releasing a pending ``__del__`` container."""
        key = id(obj)
        if self._release_pending(key):
            return
        entry = self._entries.get(key)
        if entry is not None and entry.ref() is obj:
            entry.finalized = True

    def has_pending(self, obj: Any) -> bool:
        return id(obj) in self._pending

    def _release_pending(self, key: int) -> bool:
        container = self._pending.pop(key, None)
        if container is None:
            return False
        if self._on_collected is not None:
            self._on_collected([container])
        return True

    def _make_ref(self, obj: Any, key: int) -> Callable[[], Any]:
        def collected(ref: weakref.ref) -> None:
            entry = self._entries.get(key)
            if entry is None or entry.ref is not ref:
                return
            del self._entries[key]
            containers = dict(entry.containers)
            if not entry.finalized:
                pending = containers.pop(DESTRUCTOR, None)
                if pending is not None:
                    self._pending[key] = pending
            if containers and self._on_collected is not None:
                self._on_collected(list(containers.values()))

        try:
            return weakref.ref(obj, collected)
        except TypeError:
            return lambda: obj

    def __len__(self) -> int:
        return len(self._entries)
