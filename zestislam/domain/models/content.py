"""Domain models for public data providers and stored conversations."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .common import ConversationID, MessageRole


@dataclass
class SurahMeta:
    number: int
    name: str
    englishName: str
    englishNameTranslation: str
    numberOfAyahs: int
    revelationType: str


@dataclass
class FullSurahVerse:
    number: int
    text: str
    translation: str
    numberInSurah: int


@dataclass
class FullSurah:
    meta: SurahMeta
    verses: List[FullSurahVerse]


@dataclass
class PrayerTimings:
    """Daily prayer times as returned by the timings provider (HH:MM strings)."""
    timings: Dict[str, str]
    date_readable: str
    hijri_date: Optional[str] = None
    timezone: Optional[str] = None

    PRAYERS = ("Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha")

    def main_prayers(self) -> Dict[str, str]:
        return {name: self.timings[name] for name in self.PRAYERS if name in self.timings}


@dataclass
class Place:
    """A venue found near a coordinate."""
    name: str
    category: str
    address: str
    latitude: float
    longitude: float
    distance_km: Optional[float] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    id: str
    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=_utcnow)
    conversation_id: Optional[ConversationID] = None


@dataclass
class Conversation:
    id: ConversationID
    title: str
    last_message: str = ""
    timestamp: datetime = field(default_factory=_utcnow)
