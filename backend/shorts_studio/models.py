"""Domain types for ideas, conversations, scripts and publishing metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class Genre(str, Enum):
    COMEDY = "Comedy Skit"
    HORROR = "Horror Story"
    MYSTERY = "Mystery"
    SCI_FI = "Sci-Fi"
    MOTIVATIONAL = "Motivational"
    LIFE_HACKS = "Life Hacks"
    SCIENCE_FACTS = "Science Facts"
    HISTORY = "History"
    ANIMALS = "Animal Stories"
    FANTASY = "Fantasy"


class Duration(str, Enum):
    SHORTS_15 = "15 seconds"
    SHORTS_30 = "30 seconds"
    SHORTS_45 = "45 seconds"
    SHORTS_60 = "60 seconds"
    SHORTS_90 = "90 seconds"


LANGUAGES = [
    "English",
    "Spanish",
    "French",
    "German",
    "Portuguese",
    "Italian",
    "Hindi",
    "Japanese",
    "Korean",
    "Indonesian",
]

VISUAL_STYLES = [
    "Cinematic",
    "Photorealistic",
    "Anime",
    "3D Animation",
    "Claymation",
    "Watercolor",
    "Retro VHS",
]

NO_MUSIC = "No Music"

MUSIC_MOODS = [
    "Upbeat",
    "Suspenseful",
    "Calm",
    "Epic",
    "Whimsical",
    "Melancholic",
    NO_MUSIC,
]


@dataclass(frozen=True)
class Idea:
    """A short-video concept produced by the idea listing."""

    title: str
    concept: str
    story_arc: str
    genre: Genre
    duration: Duration
    visuals_and_audio: str = ""


@dataclass(frozen=True)
class Turn:
    request: str
    response: str


@dataclass
class Conversation:
    """Explicit chat transcript bound to one fixed system instruction.

    Turns are only ever appended; the full list is replayed on every request
    because the chat endpoint is stateless.
    """

    system_instruction: str
    turns: List[Turn] = field(default_factory=list)

    def append(self, request: str, response: str) -> Turn:
        turn = Turn(request=request, response=response)
        self.turns.append(turn)
        return turn

    def messages(self, next_request: str | None = None) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": self.system_instruction}]
        for turn in self.turns:
            messages.append({"role": "user", "content": turn.request})
            messages.append({"role": "assistant", "content": turn.response})
        if next_request is not None:
            messages.append({"role": "user", "content": next_request})
        return messages


@dataclass(frozen=True)
class NarrationStyle:
    name: str
    description: str
    justification: str = ""


@dataclass(frozen=True)
class ScriptTable:
    """Markdown scene table split into header and data cells."""

    header: List[str]
    rows: List[List[str]]


@dataclass(frozen=True)
class SeoContent:
    title: str
    description: str
    tags: List[str] = field(default_factory=list)

    def tags_text(self) -> str:
        return ", ".join(self.tags)


@dataclass(frozen=True)
class HistoryItem:
    """One completed idea -> script -> SEO run."""

    idea: Idea
    final_script: str
    seo: SeoContent
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class GeneratedVideo:
    data: bytes
    mime_type: str = "video/mp4"
    source_uri: Optional[str] = None
