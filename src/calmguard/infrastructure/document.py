"""In-memory document model that rules act upon.

A deliberately small subset of a browser DOM: an element tree with
attributes, inline styles and scroll geometry; media elements with
play/pause/mute; event listeners with bubbling to the document; and
mutation subscriptions that report added/removed subtrees.

Playback requests go through :attr:`Document.playback_gate`, a single
replaceable hook. A gate rejects a request by raising
:class:`PlaybackBlockedError`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

MEDIA_TAGS = frozenset({"video", "audio"})


class PlaybackBlockedError(Exception):
    """A playback request was rejected by the document's playback gate."""


@dataclass
class Event:
    """A dispatched event. ``trusted`` is False for synthetic script events."""

    type: str
    target: Element | None = None
    trusted: bool = True
    detail: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MutationBatch:
    """Subtree roots added to or removed from the document in one change."""

    added: tuple[Element, ...] = ()
    removed: tuple[Element, ...] = ()


EventListener = Callable[[Event], None]
MutationCallback = Callable[[MutationBatch], None]
PlaybackGate = Callable[["MediaElement"], None]


class Subscription:
    """Handle returned by every ``observe`` / ``add_event_listener`` call.

    ``cancel()`` is idempotent.
    """

    def __init__(self, on_cancel: Callable[[], None]) -> None:
        self._on_cancel: Callable[[], None] | None = on_cancel

    @property
    def active(self) -> bool:
        return self._on_cancel is not None

    def cancel(self) -> None:
        if self._on_cancel is None:
            return
        on_cancel, self._on_cancel = self._on_cancel, None
        on_cancel()


class _Listeners:
    """Per-target registry of event listeners keyed by event type."""

    def __init__(self) -> None:
        self._by_type: dict[str, list[EventListener]] = {}

    def add(self, event_type: str, listener: EventListener) -> Subscription:
        bucket = self._by_type.setdefault(event_type, [])
        bucket.append(listener)

        def _remove() -> None:
            if listener in bucket:
                bucket.remove(listener)

        return Subscription(_remove)

    def fire(self, event: Event) -> None:
        for listener in list(self._by_type.get(event.type, ())):
            listener(event)

    def count(self, event_type: str) -> int:
        return len(self._by_type.get(event_type, ()))


class Element:
    """A node in the document tree."""

    def __init__(
        self,
        tag: str,
        attributes: dict[str, str] | None = None,
        *,
        text: str = "",
        style: dict[str, str] | None = None,
        scroll_height: float = 0.0,
        client_height: float = 0.0,
        scroll_top: float = 0.0,
    ) -> None:
        self.tag = tag.lower()
        self.attributes: dict[str, str] = dict(attributes or {})
        self.text = text
        self.style: dict[str, str] = dict(style or {})
        self.scroll_height = scroll_height
        self.client_height = client_height
        self.scroll_top = scroll_top
        self.children: list[Element] = []
        self.parent: Element | None = None
        self.document: Document | None = None
        self._listeners = _Listeners()

    def __repr__(self) -> str:
        return f"<{self.tag} {self.attributes!r}>"

    # --- attributes ---

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def set_attribute(self, name: str, value: str = "") -> None:
        self.attributes[name] = value

    def remove_attribute(self, name: str) -> None:
        self.attributes.pop(name, None)

    @property
    def classes(self) -> list[str]:
        return self.attributes.get("class", "").split()

    # --- tree ---

    def append(self, child: Element) -> Element:
        """Attach *child* as the last child, detaching it from any old parent."""
        if child.parent is not None:
            child.remove()
        child.parent = self
        self.children.append(child)
        if self.document is not None:
            child._attach(self.document)
            self.document._notify(MutationBatch(added=(child,)))
        return child

    def remove(self) -> None:
        """Detach this element (and its subtree) from its parent."""
        parent = self.parent
        if parent is None:
            return
        parent.children.remove(self)
        self.parent = None
        document = self.document
        self._attach(None)
        if document is not None:
            document._notify(MutationBatch(removed=(self,)))

    def iter(self) -> Iterator[Element]:
        """Depth-first iteration over this element and its descendants."""
        yield self
        for child in list(self.children):
            yield from child.iter()

    def _attach(self, document: Document | None) -> None:
        for node in self.iter():
            node.document = document

    # --- events ---

    def add_event_listener(self, event_type: str, listener: EventListener) -> Subscription:
        return self._listeners.add(event_type, listener)

    def listener_count(self, event_type: str) -> int:
        return self._listeners.count(event_type)

    def dispatch_event(self, event: Event) -> None:
        """Fire *event* on this element, then bubble to ancestors and the document."""
        if event.target is None:
            event.target = self
        node: Element | None = self
        while node is not None:
            node._listeners.fire(event)
            node = node.parent
        if self.document is not None:
            self.document._listeners.fire(event)

    def click(self, *, trusted: bool = True) -> None:
        self.dispatch_event(Event("click", target=self, trusted=trusted))


class MediaElement(Element):
    """A ``<video>`` or ``<audio>`` element.

    ``has_audio`` defaults to True for audio and for videos whose tracks
    cannot be inspected.
    """

    def __init__(
        self,
        tag: str = "video",
        attributes: dict[str, str] | None = None,
        *,
        muted: bool = False,
        paused: bool = True,
        has_audio: bool | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(tag, attributes, **kwargs)
        self.muted = muted
        self.paused = paused
        self.has_audio = True if has_audio is None or self.tag == "audio" else has_audio

    @property
    def autoplay(self) -> bool:
        return self.has_attribute("autoplay")

    def play(self) -> None:
        """Request playback, subject to the document's playback gate."""
        gate = self.document.playback_gate if self.document is not None else None
        if gate is not None:
            gate(self)
        self.paused = False
        self.dispatch_event(Event("play", target=self, trusted=False))

    def pause(self) -> None:
        if self.paused:
            return
        self.paused = True
        self.dispatch_event(Event("pause", target=self, trusted=False))


class Document:
    """Root of an element tree, plus page-level state.

    Parameters:
        url: Current page URL; ``domain`` is derived from it.
        viewport_height: Height of the visible viewport in pixels.
    """

    def __init__(self, url: str = "about:blank", *, viewport_height: float = 800.0) -> None:
        self.url = url
        self.viewport_height = viewport_height
        self.visible = True
        self.playback_gate: PlaybackGate | None = None
        self._listeners = _Listeners()
        self._observers: list[MutationCallback] = []
        self.root = Element("html")
        self.root.document = self
        self.head = self.root.append(Element("head"))
        self.body = self.root.append(Element("body"))

    @property
    def domain(self) -> str:
        return urlsplit(self.url).hostname or ""

    @staticmethod
    def create_element(
        tag: str,
        attributes: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> Element:
        if tag.lower() in MEDIA_TAGS:
            return MediaElement(tag, attributes, **kwargs)
        return Element(tag, attributes, **kwargs)

    def iter_elements(self) -> Iterator[Element]:
        return self.root.iter()

    def media(self) -> list[MediaElement]:
        return [el for el in self.iter_elements() if isinstance(el, MediaElement)]

    def find_by_attribute(self, name: str, value: str | None = None) -> list[Element]:
        return [
            el
            for el in self.iter_elements()
            if el.has_attribute(name) and (value is None or el.get_attribute(name) == value)
        ]

    # --- events & mutations ---

    def add_event_listener(self, event_type: str, listener: EventListener) -> Subscription:
        return self._listeners.add(event_type, listener)

    def listener_count(self, event_type: str) -> int:
        return self._listeners.count(event_type)

    def dispatch_event(self, event: Event) -> None:
        if event.target is not None:
            event.target.dispatch_event(event)
        else:
            self._listeners.fire(event)

    def observe(self, callback: MutationCallback) -> Subscription:
        """Subscribe to added/removed subtrees. Returns a cancellable handle."""
        self._observers.append(callback)

        def _remove() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return Subscription(_remove)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _notify(self, batch: MutationBatch) -> None:
        for callback in list(self._observers):
            if callback not in self._observers:
                continue
            try:
                callback(batch)
            except Exception:
                logger.warning("Mutation observer failed", exc_info=True)
