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
"""AOP core types — hook options, the original invocation and the interception context."""

from __future__ import annotations

import enum
import functools
import inspect
from dataclasses import dataclass, field
from typing import Any

POSITION_FILTER = 0x07

ENTRY_MARKER = "__interpose_entry__"

DESTRUCTOR = "__del__"


class HookOption(enum.IntFlag):
    """Where a handler runs relative to the original method, plus lifecycle flags.

    The position occupies the low three bits; ``AFTER`` is the zero value so
    ``HookOption.AFTER | HookOption.AUTOMATIC_REMOVAL`` still reads as AFTER.
    """

    AFTER = 0
    INSTEAD = 1
    BEFORE = 2
    AUTOMATIC_REMOVAL = 1 << 3


def position_of(options: HookOption | int) -> HookOption:
    """Return the position part of *options*."""
    return HookOption(int(options) & POSITION_FILTER)


@dataclass(eq=False)
class Invocation:
    """The intercepted call, re-dispatchable to the preserved original.

    Attributes:
        target: The object the method was called on.
        method_name: Name the caller used.
        alias: Name under which the original implementation is preserved.
        owner: Class whose entry point received the call; the original is
            looked up from here upwards.
        args: Positional arguments, without the receiver.
        kwargs: Keyword arguments.
        return_value: Result handed back to the caller once dispatch ends.
    """

    target: Any
    method_name: str
    alias: str
    owner: type
    args: tuple
    kwargs: dict[str, Any] = field(default_factory=dict)
    return_value: Any = None

    def resolve(self) -> Any:
        """Find the preserved original, or ``None`` if no class in the chain has one."""
        for klass in self.owner.__mro__:
            namespace = vars(klass)
            if self.alias in namespace:
                return namespace[self.alias]
            impl = namespace.get(self.method_name)
            if impl is not None and not getattr(impl, ENTRY_MARKER, False):
                return impl
        return None

    def invoke(self) -> Any:
        """Call the original implementation and store its result in ``return_value``."""
        impl = self.resolve()
        if impl is None:
            raise AttributeError(f"'{self.owner.__name__}' object has no attribute '{self.method_name}'")
        if hasattr(impl, "__get__"):
            impl = impl.__get__(self.target, type(self.target))
        self.return_value = impl(*self.args, **self.kwargs)
        return self.return_value


class InterceptionContext:
    """Value handed to every handler as its first argument.

    ``arguments`` is materialized on first access only: binding the call
    against the method signature is skipped for handlers that never look.
    """

    def __init__(self, instance: Any, invocation: Invocation, signature: inspect.Signature | None) -> None:
        self._instance = instance
        self._invocation = invocation
        self._signature = signature

    @property
    def invoked_object(self) -> Any:
        return self._instance

    @property
    def original_call(self) -> Invocation:
        return self._invocation

    @functools.cached_property
    def _bound(self) -> tuple[tuple, dict[str, Any]]:
        invocation = self._invocation
        if self._signature is None:
            return tuple(invocation.args), dict(invocation.kwargs)

        bound = self._signature.bind(self._instance, *invocation.args, **invocation.kwargs)
        bound.apply_defaults()
        positional: list[Any] = []
        keywords: dict[str, Any] = {}
        # The first parameter is the receiver.
        for param in list(self._signature.parameters.values())[1:]:
            value = bound.arguments.get(param.name)
            if param.kind is param.VAR_POSITIONAL:
                positional.extend(value or ())
            elif param.kind is param.VAR_KEYWORD:
                keywords.update(value or {})
            elif param.kind is param.KEYWORD_ONLY:
                keywords[param.name] = value
            else:
                positional.append(value)
        return tuple(positional), keywords

    @property
    def arguments(self) -> tuple:
        """Call arguments in declared positional order, defaults applied."""
        return self._bound[0]

    @property
    def keyword_arguments(self) -> dict[str, Any]:
        """Keyword-only and ``**kwargs`` values of the call."""
        return dict(self._bound[1])

    def __repr__(self) -> str:
        return (
            f"<InterceptionContext: {type(self._instance).__name__}.{self._invocation.method_name} "
            f"args={self._invocation.args!r}>"
        )
