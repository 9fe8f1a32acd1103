"""AutoplayBlockRule — prevents automatic video and audio playback.

Installs a playback gate on the document: a play request is honoured only
inside the gesture-trust window, otherwise it fails with
:class:`PlaybackBlockedError`. Media already playing without a gesture is
paused, and ``autoplay`` attributes are stripped from existing and
late-inserted media.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from calmguard.domain.types import BuiltinRule
from calmguard.infrastructure.document import MediaElement, PlaybackBlockedError
from calmguard.rules.base import BaseRule

if TYPE_CHECKING:
    from calmguard.domain.context import RuleContext
    from calmguard.infrastructure.document import Document, MutationBatch
    from calmguard.infrastructure.gestures import GestureTracker

logger = logging.getLogger(__name__)

BLOCKED_MESSAGE = "Autoplay blocked by calmguard: playback requires a user gesture"


class AutoplayBlockRule(BaseRule):
    id = BuiltinRule.AUTOPLAY_BLOCK

    def __init__(self, gestures: GestureTracker) -> None:
        super().__init__()
        self._gestures = gestures
        self._handled: set[MediaElement] = set()

    def _apply(self, context: RuleContext) -> None:
        document = context.document
        self.defer(self._handled.clear)
        self._install_gate(document)

        for media in document.media():
            self._handle(media)

        self.track(document.observe(self._on_mutation))

    def _install_gate(self, document: Document) -> None:
        previous = document.playback_gate

        def gate(media: MediaElement) -> None:
            if not self._gestures.was_user_initiated():
                logger.debug("Blocked autoplay attempt on %r", media)
                raise PlaybackBlockedError(BLOCKED_MESSAGE)
            if previous is not None:
                previous(media)

        def restore() -> None:
            if document.playback_gate is gate:
                document.playback_gate = previous

        document.playback_gate = gate
        self.defer(restore)

    def _on_mutation(self, batch: MutationBatch) -> None:
        for root in batch.added:
            for element in root.iter():
                if isinstance(element, MediaElement):
                    self._handle(element)

    def _handle(self, media: MediaElement) -> None:
        if media in self._handled:
            return
        self._handled.add(media)
        self.remove_attribute(media, "autoplay")
        if not media.paused and not self._gestures.was_user_initiated():
            media.pause()
            logger.debug("Paused media playing without a gesture: %r", media)
