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
"""Tests for hook options, invocations and the interception context."""

import inspect

import pytest

from interpose.aop.types import (
    ENTRY_MARKER,
    HookOption,
    InterceptionContext,
    Invocation,
    position_of,
)


class Calculator:
    def add(self, a, b=2, *rest, flag=False, **extra):
        return a + b + sum(rest)


def _invocation(target, method_name="add", args=(), kwargs=None, owner=Calculator) -> Invocation:
    return Invocation(
        target=target,
        method_name=method_name,
        alias=f"interpose__{method_name}",
        owner=owner,
        args=args,
        kwargs=kwargs or {},
    )


class TestHookOption:
    def test_after_is_zero(self) -> None:
        assert int(HookOption.AFTER) == 0

    def test_position_ignores_automatic_removal(self) -> None:
        assert position_of(HookOption.AFTER | HookOption.AUTOMATIC_REMOVAL) is HookOption.AFTER
        assert position_of(HookOption.BEFORE | HookOption.AUTOMATIC_REMOVAL) is HookOption.BEFORE
        assert position_of(HookOption.INSTEAD) is HookOption.INSTEAD

    def test_position_of_plain_int(self) -> None:
        assert position_of(2 | 8) is HookOption.BEFORE


class TestInvocation:
    def test_invoke_calls_original_and_stores_result(self) -> None:
        calc = Calculator()
        invocation = _invocation(calc, args=(1, 3))
        assert invocation.invoke() == 4
        assert invocation.return_value == 4

    def test_resolve_prefers_preserved_original(self) -> None:
        def entry(self, *args, **kwargs):
            raise AssertionError("entry point must not be resolved")

        setattr(entry, ENTRY_MARKER, True)

        class Patched:
            add = entry
            interpose__add = Calculator.add

        invocation = _invocation(Patched(), args=(1, 1), owner=Patched)
        assert invocation.resolve() is Calculator.add
        assert invocation.invoke() == 2

    def test_resolve_walks_the_mro(self) -> None:
        class Sub(Calculator):
            pass

        assert _invocation(Sub(), owner=Sub).resolve() is Calculator.add

    def test_invoke_without_original_raises(self) -> None:
        invocation = _invocation(Calculator(), method_name="missing")
        assert invocation.resolve() is None
        with pytest.raises(AttributeError, match="missing"):
            invocation.invoke()


class TestInterceptionContext:
    def test_exposes_target_and_invocation(self) -> None:
        calc = Calculator()
        invocation = _invocation(calc, args=(1,))
        context = InterceptionContext(calc, invocation, inspect.signature(Calculator.add))
        assert context.invoked_object is calc
        assert context.original_call is invocation

    def test_arguments_apply_defaults_and_skip_receiver(self) -> None:
        calc = Calculator()
        context = InterceptionContext(calc, _invocation(calc, args=(1,)), inspect.signature(Calculator.add))
        assert context.arguments == (1, 2)
        assert context.keyword_arguments == {"flag": False}

    def test_arguments_flatten_varargs(self) -> None:
        calc = Calculator()
        invocation = _invocation(calc, args=(1, 2, 3, 4), kwargs={"flag": True, "unit": "cm"})
        context = InterceptionContext(calc, invocation, inspect.signature(Calculator.add))
        assert context.arguments == (1, 2, 3, 4)
        assert context.keyword_arguments == {"flag": True, "unit": "cm"}

    def test_arguments_without_signature_are_raw(self) -> None:
        calc = Calculator()
        context = InterceptionContext(calc, _invocation(calc, args=(5,), kwargs={"k": 1}), None)
        assert context.arguments == (5,)
        assert context.keyword_arguments == {"k": 1}

    def test_keyword_arguments_returns_a_copy(self) -> None:
        calc = Calculator()
        context = InterceptionContext(calc, _invocation(calc, args=(1,)), inspect.signature(Calculator.add))
        context.keyword_arguments["flag"] = True
        assert context.keyword_arguments == {"flag": False}

    def test_repr_names_method(self) -> None:
        calc = Calculator()
        context = InterceptionContext(calc, _invocation(calc, args=(1,)), None)
        assert "Calculator.add" in repr(context)
