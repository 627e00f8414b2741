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
"""Type patching — per-instance subclass synthesis and in-place class patching."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from interpose.aop.types import ENTRY_MARKER
from interpose.kernel.exceptions import AllocationFailedError

logger = logging.getLogger(__name__)

ORIGINAL_CLASS_ATTR = "__interpose_original_class__"

_CLASS_SLOT = object.__dict__["__class__"]

EntryFactory = Callable[[str, type, Any], Callable[..., Any]]


def is_entry_point(impl: Any) -> bool:
    return bool(getattr(impl, ENTRY_MARKER, False))


def qualified_name(klass: type) -> str:
    return f"{klass.__module__}.{klass.__qualname__}"


def synthesized_original(klass: type) -> type | None:
    """The class a synthesized per-instance subclass stands in for."""
    return vars(klass).get(ORIGINAL_CLASS_ATTR)


def _stated_class(original: type) -> property:
    # Keeps obj.__class__ reporting the original; assignment still rebinds.
    return property(lambda self: original, _CLASS_SLOT.__set__)


class PatchedTypeRegistry:
    """Qualified names of classes patched in place, guarded by its own mutex."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._names: set[str] = set()

    def add(self, name: str) -> bool:
        with self._lock:
            if name in self._names:
                return False
            self._names.add(name)
            return True

    def discard(self, name: str) -> bool:
        with self._lock:
            if name not in self._names:
                return False
            self._names.remove(name)
            return True

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._names

    def names(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._names)


class TypePatcher:
    """Installs and removes interception entry points on classes.

    Callers hold the engine lock; the patcher itself does not lock.
    """

    def __init__(
        self,
        registry: PatchedTypeRegistry,
        entry_factory: EntryFactory,
        *,
        subclass_suffix: str = "_Interpose_",
        alias_prefix: str = "interpose_",
    ) -> None:
        self._registry = registry
        self._entry_factory = entry_factory
        self._subclass_suffix = subclass_suffix
        self._alias_prefix = alias_prefix
        self._subclasses: dict[type, type] = {}
        self._hook_counts: dict[tuple[type, str], int] = {}
        self._inherited: set[tuple[type, str]] = set()
        self._in_place: dict[type, set[str]] = {}

    @property
    def alias_prefix(self) -> str:
        return self._alias_prefix

    def alias_for(self, method_name: str) -> str:
        return f"{self._alias_prefix}_{method_name}"

    def resolve_original(self, klass: type, method_name: str) -> Any:
        """First real implementation of *method_name* along *klass*'s MRO.

        Preserved originals win over the entry points that replaced them.
        """
        alias = self.alias_for(method_name)
        for current in klass.__mro__:
            namespace = vars(current)
            if alias in namespace:
                return namespace[alias]
            impl = namespace.get(method_name)
            if impl is not None and not is_entry_point(impl):
                return impl
        return None

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    def prepare(self, target: Any, method_name: str) -> type:
        """Make *target* intercept *method_name*; returns the patched class."""
        klass = self._hook_class(target)
        try:
            self._install(klass, method_name)
        except AllocationFailedError:
            if self._in_place.get(klass) == set():
                del self._in_place[klass]
                self._registry.discard(qualified_name(klass))
            raise
        if klass in self._in_place:
            self._in_place[klass].add(method_name)
        key = (klass, method_name)
        self._hook_counts[key] = self._hook_counts.get(key, 0) + 1
        return klass

    def _hook_class(self, target: Any) -> type:
        if isinstance(target, type):
            return self._patch_in_place(target)

        base = type(target)
        if synthesized_original(base) is not None:
            return base
        if target.__class__ is not base:
            # Something else already substituted the class; patch what is there.
            return self._patch_in_place(base)

        subclass = self._synthesize(base)
        try:
            _CLASS_SLOT.__set__(target, subclass)
        except TypeError as exc:
            raise AllocationFailedError(
                f"Unable to rebind {base.__qualname__} instance to {subclass.__qualname__}: {exc}",
                context={"class": qualified_name(base)},
            ) from exc
        return subclass

    def _synthesize(self, base: type) -> type:
        subclass = self._subclasses.get(base)
        if subclass is not None:
            return subclass

        name = f"{base.__name__}{self._subclass_suffix}"
        namespace = {
            "__module__": base.__module__,
            "__qualname__": f"{base.__qualname__}{self._subclass_suffix}",
            "__slots__": (),
            "__class__": _stated_class(base),
            ORIGINAL_CLASS_ATTR: base,
        }
        try:
            subclass = type(base)(name, (base,), namespace)
        except TypeError as exc:
            raise AllocationFailedError(
                f"Failed to allocate class {name}: {exc}",
                context={"class": qualified_name(base)},
            ) from exc
        self._subclasses[base] = subclass
        logger.debug("subclass_synthesized", extra={"cls": qualified_name(base), "subclass": name})
        return subclass

    def _patch_in_place(self, klass: type) -> type:
        if klass not in self._in_place:
            self._in_place[klass] = set()
            if self._registry.add(qualified_name(klass)):
                logger.debug("type_patched", extra={"cls": qualified_name(klass)})
        return klass

    def _install(self, klass: type, method_name: str) -> None:
        current = vars(klass).get(method_name)
        if current is not None and is_entry_point(current):
            return

        original = self.resolve_original(klass, method_name)
        alias = self.alias_for(method_name)
        assert alias not in vars(klass), (
            f"Original implementation for {method_name} is already copied to {alias} on {klass.__qualname__}"
        )
        try:
            setattr(klass, alias, original)
            setattr(klass, method_name, self._entry_factory(method_name, klass, original))
        except (TypeError, AttributeError) as exc:
            if alias in vars(klass):
                delattr(klass, alias)
            raise AllocationFailedError(
                f"Unable to patch {klass.__qualname__}.{method_name}: {exc}",
                context={"class": qualified_name(klass), "method": method_name},
            ) from exc
        if current is None:
            self._inherited.add((klass, method_name))
        logger.debug("hook_installed", extra={"cls": qualified_name(klass), "method": method_name})

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def release(self, klass: type, method_name: str) -> None:
        """Drop one hook routed through *klass*; restore the original after the last one."""
        key = (klass, method_name)
        remaining = self._hook_counts.get(key, 0) - 1
        if remaining > 0:
            self._hook_counts[key] = remaining
            return
        self._hook_counts.pop(key, None)

        current = vars(klass).get(method_name)
        if current is not None and is_entry_point(current):
            alias = self.alias_for(method_name)
            original = vars(klass).get(alias)
            assert original is not None, (
                f"Original implementation for {method_name} not found {alias} on {klass.__qualname__}"
            )
            if key in self._inherited:
                self._inherited.discard(key)
                delattr(klass, method_name)
            else:
                setattr(klass, method_name, original)
            delattr(klass, alias)
            logger.debug("hook_removed", extra={"cls": qualified_name(klass), "method": method_name})

        patched = self._in_place.get(klass)
        if patched is not None:
            patched.discard(method_name)
            if not patched:
                del self._in_place[klass]
                self._registry.discard(qualified_name(klass))
                logger.debug("type_restored", extra={"cls": qualified_name(klass)})

    def restore_instance(self, target: Any) -> None:
        """Rebind *target* to its original class if it carries a synthesized subclass."""
        original = synthesized_original(type(target))
        if original is None:
            return
        _CLASS_SLOT.__set__(target, original)
        logger.debug("instance_restored", extra={"cls": qualified_name(original)})

    def hook_count(self, klass: type, method_name: str) -> int:
        return self._hook_counts.get((klass, method_name), 0)
