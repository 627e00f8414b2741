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
"""Method interception: hook registration, dispatch, and teardown."""

from interpose.aop.decorators import after, before, instead
from interpose.aop.engine import (
    EngineProperties,
    HookEngine,
    HookToken,
    configure,
    get_engine,
    hook,
    reset_engine,
    set_engine,
)
from interpose.aop.signature import HandlerDescriptor, InspectIntrospector, SignatureIntrospector, TypeTag
from interpose.aop.types import HookOption, InterceptionContext, Invocation

__all__ = [
    "EngineProperties",
    "HandlerDescriptor",
    "HookEngine",
    "HookOption",
    "HookToken",
    "InspectIntrospector",
    "InterceptionContext",
    "Invocation",
    "SignatureIntrospector",
    "TypeTag",
    "after",
    "before",
    "configure",
    "get_engine",
    "hook",
    "instead",
    "reset_engine",
    "set_engine",
]
