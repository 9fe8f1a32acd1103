"""InfiniteScrollBlockRule — breaks compulsive feed-scrolling loops.

Feed-like containers whose content is taller than ``threshold_multiplier``
viewports are capped at that height, and a "Show more content" button is
inserted. Activating the button lifts the cap, scrolls one viewport down,
and re-caps shortly afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from calmguard.domain.types import BuiltinRule
from calmguard.infrastructure.document import Element
from calmguard.rules.base import BaseRule

if TYPE_CHECKING:
    from calmguard.domain.context import RuleContext
    from calmguard.infrastructure.document import Document, MutationBatch
    from calmguard.infrastructure.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

FEED_ROLES = frozenset({"feed", "article"})
FEED_TAGS = frozenset({"main"})
FEED_CLASS_MARKERS = ("feed", "stream", "timeline")
FEED_ID_MARKERS = ("feed", "stream")

CAPPED_PROPERTIES = ("height", "overflow", "position")

SHOW_MORE_STYLE = {
    "position": "sticky",
    "bottom": "20px",
    "left": "50%",
    "transform": "translateX(-50%)",
    "padding": "12px 24px",
    "background": "#007bff",
    "color": "white",
    "border": "none",
    "border-radius": "6px",
    "cursor": "pointer",
    "font-size": "14px",
    "z-index": "10000",
}


def is_feed_candidate(element: Element) -> bool:
    """Whether *element* looks like an infinite-scroll container."""
    if element.tag in FEED_TAGS or element.get_attribute("role") in FEED_ROLES:
        return True
    class_attr = element.get_attribute("class") or ""
    if any(marker in class_attr for marker in FEED_CLASS_MARKERS):
        return True
    element_id = element.get_attribute("id") or ""
    return any(marker in element_id for marker in FEED_ID_MARKERS)


@dataclass
class _FrozenFeed:
    container: Element
    threshold: float
    original: dict[str, str | None]
    button: Element
    recap: TimerHandle | None = None


class InfiniteScrollBlockRule(BaseRule):
    id = BuiltinRule.INFINITE_SCROLL_BLOCK

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        threshold_multiplier: float = 2.5,
        recap_delay_ms: int = 100,
    ) -> None:
        super().__init__()
        self._scheduler = scheduler
        self._multiplier = threshold_multiplier
        self._recap_delay = recap_delay_ms / 1000.0
        self._frozen: dict[Element, _FrozenFeed] = {}
        self._document: Document | None = None

    @property
    def frozen_containers(self) -> list[Element]:
        return list(self._frozen)

    def _apply(self, context: RuleContext) -> None:
        self._document = context.document
        self.defer(self._release_all)
        self._scan(context.document.root)
        self.track(context.document.observe(self._on_mutation))

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def _on_mutation(self, batch: MutationBatch) -> None:
        for root in batch.added:
            self._scan(root)

    def _scan(self, root: Element) -> None:
        if self._document is None:
            return
        viewport = self._document.viewport_height
        threshold = viewport * self._multiplier
        for element in list(root.iter()):
            if element in self._frozen or not is_feed_candidate(element):
                continue
            if (
                element.scroll_height > threshold
                and element.client_height > viewport * 0.5
                and (
                    element.scroll_top > 0
                    or element.scroll_height > element.client_height * 1.5
                )
            ):
                self._freeze(element, threshold)

    # ------------------------------------------------------------------
    # Freeze / reveal
    # ------------------------------------------------------------------

    def _freeze(self, container: Element, threshold: float) -> None:
        original = {prop: container.style.get(prop) for prop in CAPPED_PROPERTIES}
        button = Element(
            "button",
            {"data-calmguard": "show-more"},
            text="Show more content",
            style=SHOW_MORE_STYLE,
        )
        feed = _FrozenFeed(container, threshold, original, button)
        self._frozen[container] = feed
        self._cap(feed)
        button.add_event_listener("click", lambda _event: self._reveal(feed))
        container.append(button)
        logger.debug("Froze feed container %r at %.0fpx", container, threshold)

    @staticmethod
    def _cap(feed: _FrozenFeed) -> None:
        style = feed.container.style
        style["height"] = f"{feed.threshold:g}px"
        style["overflow"] = "hidden"
        style["position"] = "relative"

    def _reveal(self, feed: _FrozenFeed) -> None:
        container = feed.container
        _restore_style(container, "height", None)
        _restore_style(container, "overflow", feed.original["overflow"])
        viewport = self._document.viewport_height if self._document is not None else 0.0
        container.scroll_top += viewport
        if feed.recap is not None:
            feed.recap.cancel()
        feed.recap = self._scheduler.call_later(self._recap_delay, lambda: self._recap(feed))

    def _recap(self, feed: _FrozenFeed) -> None:
        feed.recap = None
        if self._frozen.get(feed.container) is feed:
            self._cap(feed)

    def _release_all(self) -> None:
        for feed in self._frozen.values():
            if feed.recap is not None:
                feed.recap.cancel()
                feed.recap = None
            for prop, value in feed.original.items():
                _restore_style(feed.container, prop, value)
            feed.button.remove()
        self._frozen.clear()
        self._document = None


def _restore_style(element: Element, prop: str, value: str | None) -> None:
    if value is None:
        element.style.pop(prop, None)
    else:
        element.style[prop] = value
