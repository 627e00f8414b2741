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
"""Tests for per-instance and in-place type patching."""

import pytest

from interpose.aop.patcher import (
    PatchedTypeRegistry,
    TypePatcher,
    is_entry_point,
    qualified_name,
    synthesized_original,
)
from interpose.aop.types import ENTRY_MARKER
from interpose.kernel.exceptions import AllocationFailedError


class Counter:
    def __init__(self, start=0):
        self.value = start

    def increment(self, step=1):
        self.value += step
        return self.value

    def __repr__(self):
        return f"Counter({self.value})"


class Tally(Counter):
    pass


class Recorder:
    """Entry factory that logs which entry points were called."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, method_name, owner, original):
        calls = self.calls

        def entry(self, *args, **kwargs):
            calls.append(f"{owner.__name__}.{method_name}")
            return original(self, *args, **kwargs)

        setattr(entry, ENTRY_MARKER, True)
        return entry


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def registry() -> PatchedTypeRegistry:
    return PatchedTypeRegistry()


@pytest.fixture
def patcher(registry: PatchedTypeRegistry, recorder: Recorder) -> TypePatcher:
    return TypePatcher(registry, recorder)


class TestPatchedTypeRegistry:
    def test_add_and_discard(self) -> None:
        registry = PatchedTypeRegistry()
        assert registry.add("pkg.Counter")
        assert not registry.add("pkg.Counter")
        assert "pkg.Counter" in registry
        assert registry.names() == frozenset({"pkg.Counter"})
        assert registry.discard("pkg.Counter")
        assert not registry.discard("pkg.Counter")


class TestPerInstancePatching:
    def test_instance_gets_synthesized_subclass(self, patcher: TypePatcher, recorder: Recorder) -> None:
        counter = Counter()
        klass = patcher.prepare(counter, "increment")

        assert type(counter) is klass
        assert klass.__name__ == "Counter_Interpose_"
        assert synthesized_original(klass) is Counter
        assert counter.__class__ is Counter
        assert isinstance(counter, Counter)
        assert counter.increment() == 1
        assert recorder.calls == ["Counter_Interpose_.increment"]

    def test_other_instances_are_untouched(self, patcher: TypePatcher, recorder: Recorder) -> None:
        patcher.prepare(Counter(), "increment")
        other = Counter()
        other.increment()
        assert type(other) is Counter
        assert recorder.calls == []

    def test_subclass_is_shared_per_base(self, patcher: TypePatcher) -> None:
        assert patcher.prepare(Counter(), "increment") is patcher.prepare(Counter(), "increment")
        assert patcher.prepare(Tally(), "increment").__name__ == "Tally_Interpose_"

    def test_instance_state_is_kept(self, patcher: TypePatcher) -> None:
        counter = Counter(5)
        patcher.prepare(counter, "increment")
        assert counter.value == 5
        assert repr(counter) == "Counter(5)"

    def test_custom_suffix(self, registry: PatchedTypeRegistry, recorder: Recorder) -> None:
        patcher = TypePatcher(registry, recorder, subclass_suffix="_Hooked_")
        assert patcher.prepare(Counter(), "increment").__name__ == "Counter_Hooked_"

    def test_release_and_restore(self, patcher: TypePatcher, recorder: Recorder) -> None:
        counter = Counter()
        klass = patcher.prepare(counter, "increment")
        patcher.release(klass, "increment")
        patcher.restore_instance(counter)

        assert type(counter) is Counter
        assert "increment" not in vars(klass)
        assert "interpose__increment" not in vars(klass)
        counter.increment()
        assert recorder.calls == []

    def test_unsubclassable_type_fails(self, patcher: TypePatcher) -> None:
        with pytest.raises(AllocationFailedError):
            patcher.prepare(True, "bit_length")


class TestInPlacePatching:
    def test_class_is_patched_and_registered(self, patcher: TypePatcher, registry: PatchedTypeRegistry) -> None:
        original = vars(Tally).get("increment")
        klass = patcher.prepare(Tally, "increment")
        try:
            assert klass is Tally
            assert qualified_name(Tally) in registry
            assert is_entry_point(vars(Tally)["increment"])
            assert vars(Tally)["interpose__increment"] is Counter.increment
            assert original is None
        finally:
            patcher.release(Tally, "increment")

        assert "increment" not in vars(Tally)
        assert "interpose__increment" not in vars(Tally)
        assert qualified_name(Tally) not in registry

    def test_owned_method_is_restored(self, patcher: TypePatcher) -> None:
        class Local:
            def ping(self):
                return "pong"

        original = vars(Local)["ping"]
        patcher.prepare(Local, "ping")
        assert Local().ping() == "pong"
        patcher.release(Local, "ping")
        assert vars(Local)["ping"] is original

    def test_hooks_are_reference_counted(self, patcher: TypePatcher) -> None:
        class Local:
            def ping(self):
                return "pong"

        patcher.prepare(Local, "ping")
        patcher.prepare(Local, "ping")
        assert patcher.hook_count(Local, "ping") == 2

        patcher.release(Local, "ping")
        assert is_entry_point(vars(Local)["ping"])
        patcher.release(Local, "ping")
        assert not is_entry_point(vars(Local)["ping"])
        assert patcher.hook_count(Local, "ping") == 0

    def test_foreign_class_substitution_is_patched_in_place(self, patcher: TypePatcher) -> None:
        class Disguised:
            def ping(self):
                return "pong"

            @property
            def __class__(self):
                return str

        target = Disguised()
        assert patcher.prepare(target, "ping") is Disguised
        assert type(target) is Disguised
        patcher.release(Disguised, "ping")

    def test_immutable_type_fails_and_rolls_back(self, patcher: TypePatcher, registry: PatchedTypeRegistry) -> None:
        with pytest.raises(AllocationFailedError):
            patcher.prepare(int, "bit_length")
        assert "builtins.int" not in registry
        assert "interpose__bit_length" not in vars(int)

    def test_resolve_original_prefers_alias(self, patcher: TypePatcher) -> None:
        class Local:
            def ping(self):
                return "pong"

        original = vars(Local)["ping"]
        patcher.prepare(Local, "ping")
        try:
            assert patcher.resolve_original(Local, "ping") is original

            class Child(Local):
                pass

            assert patcher.resolve_original(Child, "ping") is original
        finally:
            patcher.release(Local, "ping")
