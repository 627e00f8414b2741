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
"""Interception dispatcher — the generic entry point standing in for hooked methods."""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable
from typing import Any

from interpose.aop.registry import AssociationTable, HookContainer, HookRecord
from interpose.aop.signature import method_signature
from interpose.aop.types import DESTRUCTOR, ENTRY_MARKER, InterceptionContext, Invocation

logger = logging.getLogger(__name__)

_EMPTY: tuple[HookRecord, ...] = ()


class Dispatcher:
    """Runs before, instead/original and after hooks for one intercepted call.

    Dispatch never takes the engine lock: it reads container snapshots, so a
    concurrent registration becomes visible on a later call.
    """

    def __init__(self, associations: AssociationTable, alias_for: Callable[[str], str]) -> None:
        self._associations = associations
        self._alias_for = alias_for
        self._local = threading.local()

    def entry_point(self, method_name: str, owner: type, original: Any) -> Callable[..., Any]:
        """Build the function installed under *method_name* on *owner*."""
        dispatch = self.dispatch

        def entry(self: Any, *args: Any, **kwargs: Any) -> Any:
            return dispatch(self, method_name, owner, args, kwargs)

        if original is not None:
            functools.update_wrapper(entry, original)
        setattr(entry, ENTRY_MARKER, True)
        return entry

    def _frames(self) -> list[tuple[Any, str, type]]:
        frames = getattr(self._local, "frames", None)
        if frames is None:
            frames = []
            self._local.frames = frames
        return frames

    def dispatch(self, instance: Any, method_name: str, owner: type, args: tuple, kwargs: dict[str, Any]) -> Any:
        invocation = Invocation(
            target=instance,
            method_name=method_name,
            alias=self._alias_for(method_name),
            owner=owner,
            args=args,
            kwargs=kwargs,
        )
        frames = self._frames()
        for active, name, active_owner in frames:
            if active is not instance or name != method_name or active_owner is owner:
                continue
            if issubclass(active_owner, owner):
                # super() from an intercepted call of the same method: hooks already ran.
                return invocation.invoke()

        frames.append((instance, method_name, owner))
        try:
            return self._run(instance, invocation)
        finally:
            frames.pop()
            if method_name == DESTRUCTOR:
                self._associations.finalized(instance)

    def class_container(self, owner: type, method_name: str) -> HookContainer | None:
        """Nearest container with hooks along *owner*'s MRO."""
        for klass in owner.__mro__:
            container = self._associations.get(klass, method_name)
            if container is not None and container.has_hooks():
                return container
        return None

    def _run(self, instance: Any, invocation: Invocation) -> Any:
        method_name = invocation.method_name
        object_container = self._associations.get(instance, method_name)
        class_container = self.class_container(invocation.owner, method_name)

        class_before, class_instead, class_after = _snapshot(class_container)
        object_before, object_instead, object_after = _snapshot(object_container)

        original = invocation.resolve()
        signature = method_signature(original) if original is not None else None
        context = InterceptionContext(instance, invocation, signature)
        to_remove: list[HookRecord] = []

        try:
            self._invoke(class_before, context, to_remove)
            self._invoke(object_before, context, to_remove)

            responds = True
            if class_instead or object_instead:
                self._invoke(class_instead, context, to_remove, capture=True)
                self._invoke(object_instead, context, to_remove, capture=True)
            elif original is not None:
                invocation.invoke()
            else:
                responds = False

            self._invoke(class_after, context, to_remove)
            self._invoke(object_after, context, to_remove)

            if not responds:
                raise AttributeError(f"'{instance.__class__.__name__}' object has no attribute '{method_name}'")
            return invocation.return_value
        finally:
            for record in to_remove:
                if record.target is None:
                    # Collected target: released with the rest of its hooks.
                    continue
                logger.debug("automatic_removal", extra={"method": method_name, "record": repr(record)})
                record.remove()

    @staticmethod
    def _invoke(
        records: tuple[HookRecord, ...],
        context: InterceptionContext,
        to_remove: list[HookRecord],
        *,
        capture: bool = False,
    ) -> None:
        for record in records:
            if not record.claim():
                continue
            if record.automatic_removal:
                to_remove.append(record)
            result = record.invoke(context)
            if capture and result is not None:
                context.original_call.return_value = result


def _snapshot(container: HookContainer | None) -> tuple[tuple[HookRecord, ...], ...]:
    if container is None:
        return _EMPTY, _EMPTY, _EMPTY
    return container.before, container.instead, container.after
