"""Rule contract and the undo-ledger base class.

Every rule exposes ``applies`` / ``apply`` / ``revert``:

- ``applies(context)`` is pure and may be called any number of times.
- ``apply(context)`` is idempotent; a second call while applied is a no-op.
- ``revert()`` restores every value the rule changed and is a no-op when
  nothing is applied.

:class:`BaseRule` implements the bookkeeping: subclasses record an undo
action for every mutation via :meth:`BaseRule.defer` (or the helpers built
on it) and the default ``revert`` replays them newest-first.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

if TYPE_CHECKING:
    from calmguard.domain.context import RuleContext
    from calmguard.infrastructure.document import Element, Subscription

logger = logging.getLogger(__name__)

UndoAction = Callable[[], None]


@runtime_checkable
class Rule(Protocol):
    """Capability set every rule provides."""

    id: str

    def applies(self, context: RuleContext) -> bool: ...

    def apply(self, context: RuleContext) -> None: ...

    def revert(self) -> None: ...


class UndoLedger:
    """A stack of undo actions, unwound newest-first.

    Unwinding runs every action even if some fail; the first failure is
    re-raised once the stack is empty.
    """

    def __init__(self) -> None:
        self._actions: list[UndoAction] = []

    def __len__(self) -> int:
        return len(self._actions)

    def defer(self, action: UndoAction) -> None:
        self._actions.append(action)

    def unwind(self) -> None:
        first_error: Exception | None = None
        while self._actions:
            action = self._actions.pop()
            try:
                action()
            except Exception as exc:
                logger.warning("Undo action failed", exc_info=True)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error


class BaseRule:
    """Idempotent apply/revert on top of an :class:`UndoLedger`.

    Subclasses set ``id`` and implement :meth:`_apply`. The default
    :meth:`applies` follows global calm state.
    """

    id: ClassVar[str]

    def __init__(self) -> None:
        self._ledger = UndoLedger()
        self._applied = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, applied={self._applied})"

    @property
    def applied(self) -> bool:
        return self._applied

    def applies(self, context: RuleContext) -> bool:
        return context.calm_active

    def apply(self, context: RuleContext) -> None:
        if self._applied:
            return
        try:
            self._apply(context)
        except Exception:
            # Leave the page as it was before the failed attempt.
            self._ledger.unwind()
            raise
        self._applied = True

    def revert(self) -> None:
        try:
            self._ledger.unwind()
        finally:
            self._applied = False

    def _apply(self, context: RuleContext) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Ledger helpers
    # ------------------------------------------------------------------

    def defer(self, action: UndoAction) -> None:
        """Record *action* to run on revert."""
        self._ledger.defer(action)

    def track(self, subscription: Subscription) -> Subscription:
        """Cancel *subscription* on revert."""
        self._ledger.defer(subscription.cancel)
        return subscription

    def remove_attribute(self, element: Element, name: str) -> None:
        """Remove attribute *name*, restoring its exact value on revert."""
        if not element.has_attribute(name):
            return
        original = element.get_attribute(name) or ""
        element.remove_attribute(name)
        self._ledger.defer(lambda: element.set_attribute(name, original))

    def inject(self, parent: Element, child: Element) -> Element:
        """Append *child* under *parent*, detaching it on revert."""
        parent.append(child)
        self._ledger.defer(child.remove)
        return child
