"""AudioSurpriseBlockRule — prevents unexpected sound.

Audio-bearing media is muted unless its most recent play attempt came from
a user gesture. Each element's original ``muted`` flag is recorded the
first time it is seen and restored exactly on revert; an ``autoplay``
attribute is put back only if this rule was the one that removed it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

from calmguard.domain.types import BuiltinRule
from calmguard.infrastructure.document import MediaElement
from calmguard.rules.base import BaseRule

if TYPE_CHECKING:
    from calmguard.domain.context import RuleContext
    from calmguard.infrastructure.document import Event, MutationBatch
    from calmguard.infrastructure.gestures import GestureTracker

logger = logging.getLogger(__name__)


class _MediaOriginal(NamedTuple):
    muted: bool
    autoplay: str | None


class AudioSurpriseBlockRule(BaseRule):
    id = BuiltinRule.AUDIO_SURPRISE_BLOCK

    def __init__(self, gestures: GestureTracker) -> None:
        super().__init__()
        self._gestures = gestures
        self._originals: dict[MediaElement, _MediaOriginal] = {}

    def _apply(self, context: RuleContext) -> None:
        document = context.document
        self.defer(self._restore_all)

        for media in document.media():
            self._handle(media)

        self.track(document.observe(self._on_mutation))
        self.track(document.add_event_listener("play", self._on_play))

    def _on_mutation(self, batch: MutationBatch) -> None:
        for root in batch.added:
            for element in root.iter():
                if isinstance(element, MediaElement):
                    self._handle(element)

    def _on_play(self, event: Event) -> None:
        media = event.target
        if not isinstance(media, MediaElement) or not media.has_audio:
            return
        self._handle(media)
        if self._gestures.was_user_initiated():
            media.muted = self._originals[media].muted
        elif not media.muted:
            media.muted = True
            logger.debug("Muted media that started without a gesture: %r", media)

    def _handle(self, media: MediaElement) -> None:
        if media in self._originals or not media.has_audio:
            return
        self._originals[media] = _MediaOriginal(media.muted, media.get_attribute("autoplay"))
        if not self._gestures.was_user_initiated():
            media.muted = True
        media.remove_attribute("autoplay")

    def _restore_all(self) -> None:
        for media, original in self._originals.items():
            media.muted = original.muted
            # Only put back an attribute this rule stripped.
            if original.autoplay is not None:
                media.set_attribute("autoplay", original.autoplay)
        self._originals.clear()
