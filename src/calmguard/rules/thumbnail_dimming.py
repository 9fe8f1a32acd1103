"""ThumbnailDimmingRule — tones down attention-grabbing previews.

Injects a single stylesheet lowering saturation and brightness on
thumbnails and image previews, with a partial restore on hover. Reverting
removes the stylesheet and nothing else.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from calmguard.domain.types import BuiltinRule
from calmguard.infrastructure.document import Element
from calmguard.rules.base import BaseRule

if TYPE_CHECKING:
    from calmguard.domain.context import RuleContext

DIM_FILTER = "saturate(0.6) brightness(0.85)"
HOVER_FILTER = "saturate(0.75) brightness(0.9)"

THUMBNAIL_SELECTORS = (
    # attribute and class hints
    'img[src*="thumbnail"]',
    'img[src*="thumb"]',
    'img[alt*="thumbnail"]',
    'img[alt*="video"]',
    "video[poster]",
    '[class*="thumbnail"] img',
    '[class*="thumb"] img',
    '[id*="thumbnail"] img',
    '[id*="thumb"] img',
    "img[width][height]",
    # site-specific
    "ytd-thumbnail img",
    "ytd-thumbnail video",
    "#thumbnail img",
    "#thumbnail video",
    '[data-testid="post-content"] img',
    '[class*="Post"] img',
    'img[alt*="Image"]',
    '[data-testid="tweet"] img',
)


def build_stylesheet() -> str:
    selectors = ",\n".join(THUMBNAIL_SELECTORS)
    return (
        f"{selectors} {{\n"
        f"  filter: {DIM_FILTER} !important;\n"
        "  transition: filter 0.3s ease !important;\n"
        "}\n"
        "img:hover,\nvideo:hover {\n"
        f"  filter: {HOVER_FILTER} !important;\n"
        "}\n"
    )


class ThumbnailDimmingRule(BaseRule):
    id = BuiltinRule.THUMBNAIL_DIMMING

    def _apply(self, context: RuleContext) -> None:
        style = Element("style", {"data-calmguard": self.id}, text=build_stylesheet())
        self.inject(context.document.head, style)
