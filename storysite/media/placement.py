"""Where a media reference lives: directly in a story, or in one of its chapters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class StoryPlacement:
    story_id: str

    @property
    def key(self) -> str:
        return f"story:{self.story_id}"


@dataclass(frozen=True)
class ChapterPlacement:
    chapter_id: str

    @property
    def key(self) -> str:
        return f"chapter:{self.chapter_id}"


Placement = Union[StoryPlacement, ChapterPlacement]


def placement_for(story_id: str, chapter_id: Optional[str] = None) -> Placement:
    if chapter_id:
        return ChapterPlacement(chapter_id=chapter_id)
    return StoryPlacement(story_id=story_id)


def placement_columns(placement: Placement) -> dict[str, Optional[str]]:
    """Column values for a MediaReference row; exactly one container id is set."""

    if isinstance(placement, ChapterPlacement):
        return {"story_id": None, "chapter_id": placement.chapter_id, "placement_key": placement.key}
    return {"story_id": placement.story_id, "chapter_id": None, "placement_key": placement.key}
