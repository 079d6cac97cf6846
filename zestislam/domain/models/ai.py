"""Domain models related to AI interactions.

Includes the message structure sent to chat models, the structured response
returned by every provider client, and the shapes of the JSON payloads the
feature adapters request from the model.
"""

from typing import List, Literal, Optional, TypedDict
from dataclasses import dataclass

from .common import TokenUsage, MessageRole

# --- AI Interaction Structures ---

class ChatMessage(TypedDict):
    """Represents a message structure expected by chat completion APIs."""
    role: MessageRole
    content: str

@dataclass
class StructuredAIResponse:
    """Structured response from an AI model, including metadata."""
    content: str
    token_usage: Optional[TokenUsage] = None
    model_name: Optional[str] = None
    latency_ms: Optional[float] = None
    finish_reason: Optional[str] = None

# --- Feature payloads ---

class QuranVerse(TypedDict):
    surahName: str
    verseNumber: int
    arabicText: str
    translation: str
    explanation: str

class Hadith(TypedDict):
    book: str
    hadithNumber: str
    chapter: str
    arabicText: str
    translation: str
    explanation: str
    grade: str

class GeneratedDua(TypedDict):
    title: str
    arabic: str
    transliteration: str
    translation: str

class ReflectionContent(TypedDict):
    paragraph: str
    points: List[str]

class TadabburResult(TypedDict):
    verseReference: str
    english: ReflectionContent
    urdu: ReflectionContent
    hinglish: ReflectionContent

class SharhResult(TypedDict):
    hadithReference: str
    english: ReflectionContent
    urdu: ReflectionContent
    hinglish: ReflectionContent

class DhikrSuggestion(TypedDict):
    arabic: str
    transliteration: str
    meaning: str
    benefit: str
    target: int

class NameInsight(TypedDict):
    name: str
    english: dict
    urdu: dict
    hinglish: dict

class DreamResult(TypedDict):
    english: dict
    urdu: dict
    hinglish: dict

class QuizQuestion(TypedDict):
    question: str
    options: List[str]
    correctIndex: int
    explanation: str

class DailyInspiration(TypedDict):
    type: Literal["Ayah", "Hadith"]
    text: str
    source: str
