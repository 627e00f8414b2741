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
"""Unified exception hierarchy for interpose.

All engine exceptions inherit from InterposeException, enabling unified
error handling. Registration failures are raised synchronously from
``hook()``; every one of them carries a machine-readable ``code``.

Categories:
- HookRegistrationException: a hook could not be installed
- HookRemovalException: a hook could not be removed
"""

from __future__ import annotations


# =============================================================================
# Base Exception
# =============================================================================


class InterposeException(Exception):
    """Base exception for all interpose errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "HOOK_BLACKLISTED").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    code_default: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code if code is not None else self.code_default
        self.context: dict = context if context is not None else {}


# =============================================================================
# Registration Exceptions
# =============================================================================


class HookRegistrationException(InterposeException):
    """A hook could not be registered."""


class SelectorBlacklistedError(HookRegistrationException):
    """The method belongs to the attribute protocol the engine relies on."""

    code_default = "HOOK_BLACKLISTED"


class InvalidDestructorPositionError(HookRegistrationException):
    """``__del__`` may only be hooked with the BEFORE position."""

    code_default = "HOOK_DESTRUCTOR_POSITION"


class NoSuchMethodError(HookRegistrationException, AttributeError):
    """The target does not expose an instance method with that name."""

    code_default = "HOOK_NO_SUCH_METHOD"


class IncompatibleSignatureError(HookRegistrationException, TypeError):
    """The handler's declared parameters do not fit the hooked method."""

    code_default = "HOOK_INCOMPATIBLE_SIGNATURE"


class MissingSignatureError(IncompatibleSignatureError):
    """The handler exposes no discoverable signature."""

    code_default = "HOOK_MISSING_SIGNATURE"


class AlreadyHookedInHierarchyError(HookRegistrationException):
    """The method is already hooked class-wide elsewhere in the inheritance chain."""

    code_default = "HOOK_ALREADY_IN_HIERARCHY"


class AllocationFailedError(HookRegistrationException):
    """The per-instance subclass could not be created or bound."""

    code_default = "HOOK_ALLOCATION_FAILED"


# =============================================================================
# Removal Exceptions
# =============================================================================


class HookRemovalException(InterposeException):
    """A hook could not be removed."""


class TargetAlreadyReleasedError(HookRemovalException):
    """The hooked object was collected, or the hook was already removed."""

    code_default = "HOOK_TARGET_RELEASED"
