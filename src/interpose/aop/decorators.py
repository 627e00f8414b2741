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
"""Hook decorators — register the decorated function as a handler."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from interpose.aop.engine import HookEngine, get_engine
from interpose.aop.types import HookOption

F = TypeVar("F", bound=Callable[..., Any])


def _make_hook(position: HookOption) -> Callable[..., Callable[[F], F]]:
    """Create a decorator factory registering handlers at *position*.

    The returned factory takes the target and method name and returns a
    decorator that hooks the wrapped function and annotates it with:

    * ``__interpose_token__`` — the :class:`HookToken` for later removal
    """

    def factory(
        target: Any,
        method_name: str,
        *,
        automatic_removal: bool = False,
        engine: HookEngine | None = None,
    ) -> Callable[[F], F]:
        options = position | HookOption.AUTOMATIC_REMOVAL if automatic_removal else position

        def decorator(fn: F) -> F:
            token = (engine or get_engine()).hook(target, method_name, options, fn)
            fn.__interpose_token__ = token  # type: ignore[attr-defined]
            return fn

        return decorator

    return factory


before = _make_hook(HookOption.BEFORE)
instead = _make_hook(HookOption.INSTEAD)
after = _make_hook(HookOption.AFTER)
