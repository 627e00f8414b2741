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
"""interpose — attach handlers before, instead of, or after methods of live objects and classes."""

from interpose.aop import (
    EngineProperties,
    HookEngine,
    HookOption,
    HookToken,
    InterceptionContext,
    Invocation,
    after,
    before,
    configure,
    get_engine,
    hook,
    instead,
    reset_engine,
    set_engine,
)
from interpose.kernel.exceptions import (
    AllocationFailedError,
    AlreadyHookedInHierarchyError,
    HookRegistrationException,
    IncompatibleSignatureError,
    InterposeException,
    InvalidDestructorPositionError,
    MissingSignatureError,
    NoSuchMethodError,
    SelectorBlacklistedError,
    TargetAlreadyReleasedError,
)

__version__ = "0.1.0"

__all__ = [
    "AllocationFailedError",
    "AlreadyHookedInHierarchyError",
    "EngineProperties",
    "HookEngine",
    "HookOption",
    "HookRegistrationException",
    "HookToken",
    "IncompatibleSignatureError",
    "InterceptionContext",
    "InterposeException",
    "InvalidDestructorPositionError",
    "Invocation",
    "MissingSignatureError",
    "NoSuchMethodError",
    "SelectorBlacklistedError",
    "TargetAlreadyReleasedError",
    "after",
    "before",
    "configure",
    "get_engine",
    "hook",
    "instead",
    "reset_engine",
    "set_engine",
]
