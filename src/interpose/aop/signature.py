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
"""Handler descriptors and signature compatibility between handlers and hooked methods."""

from __future__ import annotations

import enum
import functools
import inspect
import typing
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from interpose.kernel.exceptions import IncompatibleSignatureError, MissingSignatureError


class TypeTag(enum.Enum):
    """Coarse parameter category; only the category has to agree, not the exact type."""

    ANY = "any"
    OBJECT = "object"
    INTEGER = "integer"
    REAL = "real"
    COMPLEX = "complex"


_NAMED_TAGS = {
    "bool": TypeTag.INTEGER,
    "int": TypeTag.INTEGER,
    "float": TypeTag.REAL,
    "complex": TypeTag.COMPLEX,
    "Any": TypeTag.ANY,
    "typing.Any": TypeTag.ANY,
}

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def tag_for_annotation(annotation: Any) -> TypeTag:
    """Map a parameter annotation onto its :class:`TypeTag`."""
    if annotation is inspect.Parameter.empty or annotation is Any:
        return TypeTag.ANY
    if isinstance(annotation, typing.TypeVar):
        return TypeTag.ANY
    if isinstance(annotation, str):
        return _NAMED_TAGS.get(annotation.strip(), TypeTag.OBJECT)
    if isinstance(annotation, type):
        if issubclass(annotation, int):
            return TypeTag.INTEGER
        if issubclass(annotation, float):
            return TypeTag.REAL
        if issubclass(annotation, complex):
            return TypeTag.COMPLEX
    return TypeTag.OBJECT


@runtime_checkable
class SignatureIntrospector(Protocol):
    """Reports the declared positional parameters of a callable.

    Implementations raise ``ValueError`` or ``TypeError`` when the callable
    exposes no discoverable signature.
    """

    def parameter_kinds(self, fn: Callable[..., Any]) -> Sequence[TypeTag]: ...
    def accepts_varargs(self, fn: Callable[..., Any]) -> bool: ...
    def required_keywords(self, fn: Callable[..., Any]) -> Sequence[str]: ...


class InspectIntrospector:
    """Default introspector backed by :mod:`inspect` and ``typing.get_type_hints``."""

    def parameter_kinds(self, fn: Callable[..., Any]) -> Sequence[TypeTag]:
        signature = inspect.signature(fn)
        hints = _type_hints(fn)
        return tuple(
            tag_for_annotation(hints.get(param.name, param.annotation))
            for param in signature.parameters.values()
            if param.kind in _POSITIONAL
        )

    def accepts_varargs(self, fn: Callable[..., Any]) -> bool:
        signature = inspect.signature(fn)
        return any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in signature.parameters.values())

    def required_keywords(self, fn: Callable[..., Any]) -> Sequence[str]:
        signature = inspect.signature(fn)
        return tuple(
            p.name
            for p in signature.parameters.values()
            if p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is inspect.Parameter.empty
        )


def _type_hints(fn: Callable[..., Any]) -> dict[str, Any]:
    target = fn
    if not (inspect.isfunction(fn) or inspect.ismethod(fn)):
        target = getattr(fn, "__call__", fn)
    try:
        return typing.get_type_hints(target)
    except (NameError, TypeError, AttributeError):
        # Unresolvable forward references: fall back to the raw annotations.
        return {}


@dataclass(frozen=True)
class HandlerDescriptor:
    """Declared positional parameter categories of a handler or hooked method."""

    parameter_kinds: tuple[TypeTag, ...]
    accepts_varargs: bool = False

    @property
    def parameter_count(self) -> int:
        return len(self.parameter_kinds)

    @classmethod
    def from_callable(cls, fn: Callable[..., Any], introspector: SignatureIntrospector) -> HandlerDescriptor:
        """Capture *fn*'s signature once; fail if it has none."""
        try:
            kinds = tuple(introspector.parameter_kinds(fn))
            varargs = introspector.accepts_varargs(fn)
            keywords = tuple(introspector.required_keywords(fn))
        except (ValueError, TypeError) as exc:
            raise MissingSignatureError(
                f"The handler {fn!r} doesn't expose a signature.",
                context={"handler": repr(fn)},
            ) from exc
        if keywords:
            raise IncompatibleSignatureError(
                f"Handler {fn!r} declares required keyword-only parameters {list(keywords)}.",
                context={"parameters": list(keywords)},
            )
        return cls(parameter_kinds=kinds, accepts_varargs=varargs)

    def __str__(self) -> str:
        params = ", ".join(k.value for k in self.parameter_kinds)
        if self.accepts_varargs:
            params = f"{params}, *args" if params else "*args"
        return f"({params})"


def categories_agree(handler_kind: TypeTag, method_kind: TypeTag) -> bool:
    if TypeTag.ANY in (handler_kind, method_kind):
        return True
    return handler_kind is method_kind


def check_compatibility(handler: HandlerDescriptor, method: HandlerDescriptor | None) -> None:
    """Raise :class:`IncompatibleSignatureError` unless *handler* fits *method*.

    Position 0 is the receiver on the method side and the interception
    context on the handler side. The handler may declare a prefix of the
    method's parameters; from position 1 on the categories must agree.
    """
    if method is None:
        # The original exposes no signature; nothing to compare against.
        return

    matches = True
    if handler.parameter_count > method.parameter_count and not method.accepts_varargs:
        matches = False
    elif handler.parameter_count >= 1 and handler.parameter_kinds[0] not in (TypeTag.ANY, TypeTag.OBJECT):
        matches = False
    else:
        for idx in range(1, handler.parameter_count):
            method_kind = method.parameter_kinds[idx] if idx < method.parameter_count else TypeTag.ANY
            if not categories_agree(handler.parameter_kinds[idx], method_kind):
                matches = False
                break

    if not matches:
        raise IncompatibleSignatureError(
            f"Handler signature {handler} doesn't match method signature {method}.",
            context={"handler": str(handler), "method": str(method)},
        )


@functools.lru_cache(maxsize=1024)
def method_signature(impl: Any) -> inspect.Signature | None:
    """Signature of a preserved original, or ``None`` when it has none."""
    try:
        return inspect.signature(impl)
    except (ValueError, TypeError):
        return None


def describe_method(impl: Any, introspector: SignatureIntrospector) -> HandlerDescriptor | None:
    try:
        return HandlerDescriptor(
            parameter_kinds=tuple(introspector.parameter_kinds(impl)),
            accepts_varargs=introspector.accepts_varargs(impl),
        )
    except (ValueError, TypeError):
        return None
