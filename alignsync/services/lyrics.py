"""Alignment result documents: word timings for synchronized lyrics."""
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class LyricWord(BaseModel):
    text: str = ""
    start: Optional[float] = None
    end: Optional[float] = None

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("start", "end", mode="before")
    @classmethod
    def _seconds(cls, value: Any) -> Optional[float]:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                return None
        return None

    def is_active(self, t: float) -> bool:
        """Half-open interval: active from ``start`` up to, not including, ``end``."""
        if self.start is None or self.end is None:
            return False
        return self.start <= t < self.end


class LyricLine(BaseModel):
    words: List[LyricWord] = Field(default_factory=list)

    @field_validator("words", mode="before")
    @classmethod
    def _words(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @property
    def text(self) -> str:
        return " ".join(word.text for word in self.words)


class LyricsDocument(BaseModel):
    lines: List[LyricLine] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "LyricsDocument":
        if not isinstance(payload, dict) or not isinstance(payload.get("lines"), list):
            return cls()
        return cls(lines=[line for line in payload["lines"] if isinstance(line, dict)])

    def words(self) -> List[LyricWord]:
        return [word for line in self.lines for word in line.words]

    def active_word_at(self, t: float) -> Optional[LyricWord]:
        return next((word for word in self.words() if word.is_active(t)), None)
