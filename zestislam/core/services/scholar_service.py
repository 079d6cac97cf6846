"""Core service exposing the Scholar's AI features.

Every method builds a prompt, obtains a client bound to the active
credential from the AIClientFactory, runs the call through the
ResilientInvoker and shapes the model's text with safe_parse. Methods with
a user-facing fallback (chat reply, title, searches, quiz, inspiration)
never raise for remote failures; the others propagate the final error.
A missing credential always propagates.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional

from zestislam.domain.interfaces.cache import CacheService
from zestislam.domain.models.ai import (
    ChatMessage,
    DailyInspiration,
    DhikrSuggestion,
    DreamResult,
    GeneratedDua,
    Hadith,
    NameInsight,
    QuizQuestion,
    QuranVerse,
    SharhResult,
    TadabburResult,
)
from zestislam.domain.models.common import CacheKey, MessageRole, PromptText
from zestislam.domain.models.resilience import RetryPolicy
from zestislam.infrastructure.ai.client_factory import AIClientFactory
from zestislam.infrastructure.parsing.safe_json import safe_parse
from zestislam.infrastructure.resilience.resilient_invoker import NO_FALLBACK, ResilientInvoker

logger = logging.getLogger(__name__)

SCHOLAR_INSTRUCTION = """You are the ZestIslam Scholar, a knowledgeable and compassionate Islamic assistant made by ZestIslam.

Rules:
1. Identity: introduce yourself as "The ZestIslam Scholar". When asked who created you, answer "I was created by ZestIslam."
2. Sources: ground every answer in the Quran and authentic Sunnah (Hadith), citing references.
3. Tone: courteous, clear and wise (Hikmah).
4. Format: Markdown, with bold for key terms and blockquotes for scripture."""

CHAT_UNAVAILABLE_REPLY = (
    "I am momentarily unavailable. Please remember that patience (Sabr) is a virtue. "
    "Try your question again in a moment."
)
EMPTY_CHAT_REPLY = "I apologize, I could not generate a response at this time."
DEFAULT_CHAT_TITLE = "New Conversation"
FALLBACK_INSPIRATION = DailyInspiration(
    type="Ayah",
    text="Verily, with every hardship comes ease.",
    source="Surah Ash-Sharh 94:5",
)

CHAT_TEMPERATURE = 0.7
SEARCH_RESULT_COUNT = 5
MAX_QUIZ_QUESTIONS = 20
QUIZ_DIFFICULTIES = ("easy", "medium", "hard")
INSPIRATION_CACHE_TTL_SECONDS = 24 * 60 * 60

_MULTILINGUAL_SHAPE = (
    'Each of "english", "urdu" and "hinglish" is an object with "paragraph" (string) '
    'and "points" (array of strings).'
)


def _as_list(payload: Any, key: str = "results") -> List[Any]:
    """Accepts a bare JSON array or an object wrapping one under `key`."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    return []


def _as_record(payload: Any) -> Optional[Dict[str, Any]]:
    return payload if isinstance(payload, dict) and payload else None


class ScholarService:
    """Prompt building and response shaping for the Scholar features."""

    def __init__(
        self,
        client_factory: AIClientFactory,
        invoker: ResilientInvoker,
        cache_service: Optional[CacheService] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self.client_factory = client_factory
        self.invoker = invoker
        self.cache_service = cache_service
        self.policy = policy or invoker.default_policy
        # Short lookups give up sooner than conversations
        self.title_policy = replace(self.policy, max_attempts=min(self.policy.max_attempts, 3),
                                    initial_delay_s=self.policy.initial_delay_s / 2)
        self.inspiration_policy = replace(self.policy, max_attempts=min(self.policy.max_attempts, 3))
        logger.info(f"ScholarService initialized for provider: {client_factory.provider}")

    async def _generate_text(self, prompt: str, name: str, policy: Optional[RetryPolicy] = None,
                             fallback: Any = NO_FALLBACK) -> Any:
        async def operation() -> str:
            client = self.client_factory.create()
            response = await client.generate(PromptText(prompt), system_instruction=SCHOLAR_INSTRUCTION)
            return response.content

        return await self.invoker.with_resilience(
            operation, policy=policy or self.policy, fallback=fallback, operation_name=name
        )

    async def _generate_json(self, prompt: str, name: str, policy: Optional[RetryPolicy] = None,
                             fallback: Any = NO_FALLBACK) -> Any:
        """Runs a JSON-mode generation; decode failures yield None rather than an error."""
        async def operation() -> Any:
            client = self.client_factory.create()
            response = await client.generate(
                PromptText(prompt), system_instruction=SCHOLAR_INSTRUCTION, json_output=True
            )
            return safe_parse(response.content, None)

        return await self.invoker.with_resilience(
            operation, policy=policy or self.policy, fallback=fallback, operation_name=name
        )

    # --- Conversation ---

    async def get_chat_response(self, history: List[ChatMessage], message: str) -> str:
        """Returns the Scholar's reply to `message` given the prior conversation."""
        messages = list(history) + [ChatMessage(role=MessageRole("user"), content=message)]

        async def operation() -> str:
            client = self.client_factory.create()
            response = await client.send_messages(
                messages, system_instruction=SCHOLAR_INSTRUCTION, temperature=CHAT_TEMPERATURE
            )
            return response.content or EMPTY_CHAT_REPLY

        return await self.invoker.with_resilience(
            operation, policy=self.policy, fallback=CHAT_UNAVAILABLE_REPLY, operation_name="chat_response"
        )

    async def generate_chat_title(self, first_message: str) -> str:
        prompt = f'Generate a 4-word title for: "{first_message}". Return ONLY the title text.'
        title = await self._generate_text(prompt, "chat_title", policy=self.title_policy,
                                          fallback=DEFAULT_CHAT_TITLE)
        title = (title or "").strip().strip('"').strip()
        return title or DEFAULT_CHAT_TITLE

    # --- Searches ---

    async def search_quran(self, query: str) -> List[QuranVerse]:
        prompt = (
            f'Find {SEARCH_RESULT_COUNT} Quranic verses for the topic: "{query}". '
            'Return JSON {"results": [...]} where each item has "surahName" (string), '
            '"verseNumber" (integer), "arabicText", "translation" and "explanation" (strings).'
        )
        payload = await self._generate_json(prompt, "search_quran", fallback=[])
        return _as_list(payload)

    async def search_hadith(self, query: str) -> List[Hadith]:
        prompt = (
            f'Find {SEARCH_RESULT_COUNT} authentic Hadiths for the topic: "{query}". '
            'Return JSON {"results": [...]} where each item has "book", "hadithNumber", "chapter", '
            '"arabicText", "translation", "explanation" and "grade" (all strings).'
        )
        payload = await self._generate_json(prompt, "search_hadith", fallback=[])
        return _as_list(payload)

    # --- Reflections ---

    async def generate_tadabbur(self, surah: str, verse_number: int) -> Optional[TadabburResult]:
        prompt = (
            f"Write a spiritual Tadabbur (reflection) for {surah}:{verse_number}. "
            f'Return JSON with "verseReference", "english", "urdu" and "hinglish". {_MULTILINGUAL_SHAPE}'
        )
        return _as_record(await self._generate_json(prompt, "tadabbur"))

    async def generate_sharh(self, book: str, hadith_number: str) -> Optional[SharhResult]:
        prompt = (
            f"Write a spiritual Sharh (commentary) for {book} Hadith {hadith_number}. "
            f'Return JSON with "hadithReference", "english", "urdu" and "hinglish". {_MULTILINGUAL_SHAPE}'
        )
        return _as_record(await self._generate_json(prompt, "sharh"))

    async def generate_dua(self, situation: str) -> Optional[GeneratedDua]:
        prompt = (
            f'Compose a beautiful Dua for the situation: "{situation}". '
            'Return JSON with "title", "arabic", "transliteration" and "translation".'
        )
        return _as_record(await self._generate_json(prompt, "dua"))

    async def get_daily_inspiration(self, today: Optional[date] = None) -> DailyInspiration:
        """Returns one Ayah or Hadith for the day, generated at most once per calendar day."""
        today = today or date.today()
        cache_key = CacheKey(f"daily_inspiration:{today.isoformat()}")
        if self.cache_service is not None:
            cached = await self.cache_service.get(cache_key)
            if cached:
                logger.debug(f"Using cached inspiration for {today}")
                return cached

        prompt = (
            f"Provide one unique, short, inspiring Ayah or Hadith for today ({today:%A %d %B %Y}). "
            "Vary your choice and avoid the most commonly quoted verses. "
            'Return JSON with "type" ("Ayah" or "Hadith"), "text" and "source".'
        )
        inspiration = _as_record(await self._generate_json(
            prompt, "daily_inspiration", policy=self.inspiration_policy, fallback=FALLBACK_INSPIRATION
        ))
        if inspiration is None or not inspiration.get("text"):
            return FALLBACK_INSPIRATION

        if self.cache_service is not None and inspiration is not FALLBACK_INSPIRATION:
            await self.cache_service.set(cache_key, inspiration, ttl=INSPIRATION_CACHE_TTL_SECONDS)
        return inspiration

    async def get_dhikr_suggestion(self, feeling: str) -> Optional[DhikrSuggestion]:
        prompt = (
            f'Suggest a Dhikr for someone feeling: "{feeling}". Return JSON with "arabic", '
            '"transliteration", "meaning", "benefit" (strings) and "target" (integer repetitions).'
        )
        return _as_record(await self._generate_json(prompt, "dhikr_suggestion"))

    async def get_name_insight(self, name: str) -> Optional[NameInsight]:
        prompt = (
            f'Give the meaning and spiritual insight of the name "{name}". Return JSON with "name" and '
            '"english", "urdu", "hinglish" objects, each having "meaning", "origin" and "reflection".'
        )
        return _as_record(await self._generate_json(prompt, "name_insight"))

    async def interpret_dream(self, dream: str) -> Optional[DreamResult]:
        prompt = (
            f'Interpret this dream in light of Islamic tradition: "{dream}". Return JSON with '
            '"english", "urdu", "hinglish" objects, each having "interpretation" and "advice".'
        )
        return _as_record(await self._generate_json(prompt, "interpret_dream"))

    async def generate_quiz(self, topic: str, difficulty: str = "medium", count: int = 5) -> List[QuizQuestion]:
        if difficulty not in QUIZ_DIFFICULTIES:
            raise ValueError(f"Difficulty must be one of {QUIZ_DIFFICULTIES}, got '{difficulty}'.")
        if not 1 <= count <= MAX_QUIZ_QUESTIONS:
            raise ValueError(f"Question count must be between 1 and {MAX_QUIZ_QUESTIONS}, got {count}.")
        prompt = (
            f"Generate {count} {difficulty} multiple-choice questions about {topic}. "
            'Return JSON {"results": [...]} where each item has "question", "options" (4 strings), '
            '"correctIndex" (0-based integer) and "explanation".'
        )
        payload = await self._generate_json(prompt, "generate_quiz", fallback=[])
        return _as_list(payload)
