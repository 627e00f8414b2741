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
"""HierarchyTracker — one class-wide hook per method per inheritance chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from interpose.kernel.exceptions import AlreadyHookedInHierarchyError

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TrackerNode:
    """Bookkeeping for one class that has a class-wide hook at or below it.

    ``hooked`` maps a method name to the node of the subclass whose hook
    marked this class, or to ``None`` when the hook sits on this class.
    """

    tracked_class: type
    hooked: dict[str, TrackerNode | None] = field(default_factory=dict)

    def hooked_at(self, method_name: str) -> TrackerNode:
        """Follow the descendant links down to the node that owns the hook."""
        node = self
        while node.hooked.get(method_name) is not None:
            node = node.hooked[method_name]  # type: ignore[assignment]
        return node

    def __repr__(self) -> str:
        return f"<TrackerNode: {self.tracked_class.__qualname__} methods={sorted(self.hooked)}>"


def exposes(klass: type, method_name: str) -> bool:
    return any(method_name in vars(k) for k in klass.__mro__)


class HierarchyTracker:
    """Registry of tracker nodes, keyed by class."""

    def __init__(self) -> None:
        self._nodes: dict[type, TrackerNode] = {}

    def node_for(self, klass: type) -> TrackerNode | None:
        return self._nodes.get(klass)

    def _chain(self, klass: type, method_name: str) -> list[type]:
        # Ancestors that never see the method cannot collide on it; every class shares object.
        return [k for k in klass.__mro__ if k is not object and exposes(k, method_name)]

    def track(self, klass: type, method_name: str) -> bool:
        """Validate a class-wide hook of *method_name* on *klass* and record it.

        Returns ``False`` when *klass* already owns a hook for the method
        (nothing new recorded), ``True`` when the chain was marked now.
        """
        chain = self._chain(klass, method_name)
        for current in chain:
            node = self._nodes.get(current)
            if node is None or method_name not in node.hooked:
                continue
            owner = node.hooked_at(method_name)
            if owner.tracked_class is klass:
                return False
            raise AlreadyHookedInHierarchyError(
                f"{method_name} already hooked in {owner.tracked_class.__qualname__}. "
                "A method can only be hooked once per class hierarchy.",
                context={"method": method_name, "hooked_class": owner.tracked_class.__qualname__},
            )

        descendant: TrackerNode | None = None
        for current in chain:
            node = self._nodes.get(current)
            if node is None:
                node = TrackerNode(current)
                self._nodes[current] = node
            node.hooked[method_name] = descendant
            descendant = node
        logger.debug(
            "hierarchy_tracked",
            extra={"method": method_name, "cls": klass.__qualname__, "depth": len(chain)},
        )
        return True

    def untrack(self, klass: type, method_name: str) -> None:
        """Forget the hook on *klass*, pruning nodes left without methods."""
        node = self._nodes.get(klass)
        if node is None or node.hooked.get(method_name, node) is not None:
            return
        for current in self._chain(klass, method_name):
            node = self._nodes.get(current)
            if node is None:
                continue
            node.hooked.pop(method_name, None)
            if not node.hooked:
                del self._nodes[current]
        logger.debug("hierarchy_untracked", extra={"method": method_name, "cls": klass.__qualname__})

    def __len__(self) -> int:
        return len(self._nodes)
