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
"""Shared fixtures: every test starts from a fresh process-wide engine."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from interpose.aop.engine import HookEngine, reset_engine, set_engine


@pytest.fixture(autouse=True)
def _fresh_engine() -> Iterator[None]:
    reset_engine()
    yield
    reset_engine()


@pytest.fixture
def engine() -> Iterator[HookEngine]:
    engine = HookEngine()
    previous = set_engine(engine)
    yield engine
    set_engine(previous)
