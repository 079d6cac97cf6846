"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work
to the application services and renders the results through the
UserInterface. Failures surface as UI errors; a missing credential is
reported with a configuration hint.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from zestislam.core.services.chat_service import ChatService
from zestislam.core.services.scholar_service import ScholarService
from zestislam.domain.interfaces.cache import CacheService
from zestislam.domain.interfaces.user_interface import UserInterface
from zestislam.domain.models.common import ConversationID, ProcessedOutput
from zestislam.domain.models.errors import CredentialPoolEmpty, ZestIslamError
from zestislam.infrastructure.credentials.credential_pool import CredentialPool
from zestislam.infrastructure.http.places_api import PlacesClient
from zestislam.infrastructure.http.prayer_times_api import PrayerTimesClient, ReverseGeocoder
from zestislam.infrastructure.http.quran_api import QuranApiClient

logger = logging.getLogger(__name__)

LANGUAGES = ("english", "urdu", "hinglish")
CACHE_LEVELS = ("l1", "l2", "all")
SURAH_LIST_CACHE_KEY = "surah_list"
SURAH_LIST_TTL_SECONDS = 7 * 24 * 60 * 60


def _render_section(section: Any) -> str:
    """Renders one language section: a paragraph plus bullet points, or key/value lines."""
    if not isinstance(section, Mapping):
        return str(section)
    lines: List[str] = []
    if section.get("paragraph"):
        lines.append(str(section["paragraph"]))
    for point in section.get("points") or []:
        lines.append(f"- {point}")
    for key, value in section.items():
        if key not in ("paragraph", "points"):
            lines.append(f"**{key.capitalize()}**: {value}")
    return "\n\n".join(lines)


def _render_multilingual(record: Mapping[str, Any]) -> str:
    parts = [f"### {lang.capitalize()}\n\n{_render_section(record[lang])}" for lang in LANGUAGES if lang in record]
    return "\n\n".join(parts)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        scholar_service: ScholarService,
        chat_service: ChatService,
        quran_api: QuranApiClient,
        prayer_times: PrayerTimesClient,
        geocoder: ReverseGeocoder,
        places: PlacesClient,
        cache_service: CacheService,
        credential_pools: Dict[str, CredentialPool],
        ui: UserInterface,
        provider_name: str = "gemini",
    ):
        self.scholar_service = scholar_service
        self.chat_service = chat_service
        self.quran_api = quran_api
        self.prayer_times = prayer_times
        self.geocoder = geocoder
        self.places = places
        self.cache_service = cache_service
        self.credential_pools = credential_pools
        self.ui = ui
        self.provider_name = provider_name

    def _report_failure(self, action: str, error: Exception) -> None:
        if isinstance(error, CredentialPoolEmpty):
            logger.error(f"{action} failed: {error}")
            self.ui.display_error(
                f"{error}. Set API_KEY (comma-separated for several keys) or API_KEY1..API_KEY5 in your .env."
            )
        elif isinstance(error, (ZestIslamError, ValueError)):
            logger.error(f"{action} failed: {error}")
            self.ui.display_error(f"{action} failed: {error}")
        else:
            logger.error(f"{action} failed: {error}", exc_info=True)
            self.ui.display_error(f"{action} failed unexpectedly: {error}")

    # --- Chat ---

    async def handle_chat(self, conversation_id: Optional[str] = None, list_only: bool = False) -> None:
        try:
            if list_only:
                conversations = await self.chat_service.conversation_store.list_conversations(
                    self.chat_service.owner
                )
                rows = [[c.id, c.title, c.last_message, c.timestamp.strftime("%Y-%m-%d %H:%M")]
                        for c in conversations]
                self.ui.display_table("Conversations", ["ID", "Title", "Last message", "Updated"], rows)
                return
            await self.chat_service.start_conversation(
                ConversationID(conversation_id) if conversation_id else None
            )
            await self.chat_service.start_chat_loop(self.provider_name)
        except Exception as e:
            self._report_failure("Chat", e)

    # --- Searches ---

    async def handle_search_quran(self, query: str) -> None:
        try:
            verses = await self.scholar_service.search_quran(query)
        except Exception as e:
            self._report_failure("Quran search", e)
            return
        if not verses:
            self.ui.display_warning(f"No verses found for '{query}'.")
            return
        for verse in verses:
            body = (
                f"> {verse.get('arabicText', '')}\n\n"
                f"{verse.get('translation', '')}\n\n"
                f"{verse.get('explanation', '')}"
            )
            self.ui.display_output(ProcessedOutput(body),
                                   title=f"{verse.get('surahName', '?')} : {verse.get('verseNumber', '?')}")

    async def handle_search_hadith(self, query: str) -> None:
        try:
            hadiths = await self.scholar_service.search_hadith(query)
        except Exception as e:
            self._report_failure("Hadith search", e)
            return
        if not hadiths:
            self.ui.display_warning(f"No hadiths found for '{query}'.")
            return
        for hadith in hadiths:
            body = (
                f"*{hadith.get('chapter', '')}*\n\n"
                f"> {hadith.get('arabicText', '')}\n\n"
                f"{hadith.get('translation', '')}\n\n"
                f"{hadith.get('explanation', '')}"
            )
            self.ui.display_output(ProcessedOutput(body),
                                   title=f"{hadith.get('book', '?')} #{hadith.get('hadithNumber', '?')}",
                                   subtitle=hadith.get("grade"))

    # --- Reflections ---

    async def _display_generated(self, action: str, coro: Any, title: str, multilingual: bool = False) -> None:
        try:
            result = await coro
        except Exception as e:
            self._report_failure(action, e)
            return
        if not result:
            self.ui.display_warning(f"{action}: the Scholar returned no usable answer. Please try again.")
            return
        if multilingual:
            self.ui.display_output(ProcessedOutput(_render_multilingual(result)), title=title)
        else:
            self.ui.display_record(title, result)

    async def handle_tadabbur(self, surah: str, verse_number: int) -> None:
        await self._display_generated("Tadabbur", self.scholar_service.generate_tadabbur(surah, verse_number),
                                      f"Tadabbur: {surah} {verse_number}", multilingual=True)

    async def handle_sharh(self, book: str, hadith_number: str) -> None:
        await self._display_generated("Sharh", self.scholar_service.generate_sharh(book, hadith_number),
                                      f"Sharh: {book} {hadith_number}", multilingual=True)

    async def handle_dua(self, situation: str) -> None:
        await self._display_generated("Dua", self.scholar_service.generate_dua(situation), "Dua")

    async def handle_dhikr(self, feeling: str) -> None:
        await self._display_generated("Dhikr", self.scholar_service.get_dhikr_suggestion(feeling), "Dhikr")

    async def handle_name(self, name: str) -> None:
        await self._display_generated("Name insight", self.scholar_service.get_name_insight(name),
                                      f"Name: {name}", multilingual=True)

    async def handle_dream(self, dream: str) -> None:
        await self._display_generated("Dream interpretation", self.scholar_service.interpret_dream(dream),
                                      "Dream Interpretation", multilingual=True)

    async def handle_quiz(self, topic: str, difficulty: str, count: int) -> None:
        try:
            questions = await self.scholar_service.generate_quiz(topic, difficulty, count)
        except Exception as e:
            self._report_failure("Quiz", e)
            return
        if not questions:
            self.ui.display_warning(f"Could not generate a quiz about '{topic}'.")
            return
        for number, question in enumerate(questions, 1):
            options = question.get("options") or []
            lines = [f"**{question.get('question', '')}**", ""]
            lines += [f"{chr(ord('A') + i)}. {option}" for i, option in enumerate(options)]
            correct = question.get("correctIndex")
            if isinstance(correct, int) and 0 <= correct < len(options):
                lines += ["", f"*Answer: {chr(ord('A') + correct)}.* {question.get('explanation', '')}"]
            self.ui.display_output(ProcessedOutput("\n".join(lines)), title=f"Question {number}")

    async def handle_inspiration(self) -> None:
        try:
            inspiration = await self.scholar_service.get_daily_inspiration()
        except Exception as e:
            self._report_failure("Daily inspiration", e)
            return
        self.ui.display_output(ProcessedOutput(f"> {inspiration['text']}"),
                               title=f"Daily {inspiration.get('type', 'Ayah')}",
                               subtitle=inspiration.get("source"))

    # --- Public data ---

    async def handle_surah(self, number: Optional[int] = None, with_audio: bool = False) -> None:
        try:
            if number is None:
                await self._display_surah_list()
                return
            surah = await self.quran_api.fetch_full_surah(number)
            if surah is None:
                self.ui.display_error(f"Could not load surah {number}. Check your connection and try again.")
                return
            body = "\n\n".join(
                f"**{v.numberInSurah}.** {v.text}\n\n{v.translation}" for v in surah.verses
            )
            self.ui.display_output(ProcessedOutput(body),
                                   title=f"{surah.meta.number}. {surah.meta.englishName} ({surah.meta.name})",
                                   subtitle=surah.meta.englishNameTranslation)
            if with_audio:
                urls = await self.quran_api.fetch_surah_audio(number)
                if urls:
                    self.ui.display_table("Recitation (Mishary Alafasy)", ["Ayah", "Audio"],
                                          [[i, url] for i, url in enumerate(urls, 1)])
                else:
                    self.ui.display_warning("Recitation audio is unavailable right now.")
        except Exception as e:
            self._report_failure("Surah", e)

    async def _display_surah_list(self) -> None:
        surahs = await self.cache_service.get(SURAH_LIST_CACHE_KEY)
        if not surahs:
            surahs = await self.quran_api.fetch_surah_list()
            if surahs:
                await self.cache_service.set(SURAH_LIST_CACHE_KEY, surahs, ttl=SURAH_LIST_TTL_SECONDS)
        if not surahs:
            self.ui.display_error("Could not load the surah list. Check your connection and try again.")
            return
        rows = [[s.number, s.englishName, s.name, s.englishNameTranslation, s.numberOfAyahs, s.revelationType]
                for s in surahs]
        self.ui.display_table("Surahs", ["#", "Name", "Arabic", "Meaning", "Ayahs", "Revelation"], rows)

    async def handle_prayer_times(self, latitude: float, longitude: float, method: int, school: int,
                                  on_date: Optional[date] = None) -> None:
        try:
            timings = await self.prayer_times.fetch_timings(latitude, longitude, on_date, method, school)
            location = await self.geocoder.locate(latitude, longitude)
        except Exception as e:
            self._report_failure("Prayer times", e)
            return
        if timings is None:
            self.ui.display_error("Failed to fetch prayer times. Check your connection and try again.")
            return
        title = f"Prayer times for {location['label']} - {timings.date_readable}"
        if timings.hijri_date:
            title += f" ({timings.hijri_date})"
        self.ui.display_table(title, ["Prayer", "Time"], [[k, v] for k, v in timings.main_prayers().items()])

    async def handle_halal(self, latitude: float, longitude: float, query: str, radius_km: float,
                           limit: int) -> None:
        """Lists venues matching query near the coordinate, nearest first."""
        try:
            location = await self.geocoder.locate(latitude, longitude)
            places = await self.places.find_places(query, latitude, longitude, radius_km=radius_km, limit=limit)
        except Exception as e:
            self._report_failure("Place search", e)
            return
        if not places:
            self.ui.display_info(f"No venues found in {location['label']}.")
            return
        rows = [[i + 1, p.name, p.category, f"{p.distance_km:.1f} km", p.address] for i, p in enumerate(places)]
        self.ui.display_table(f"{query} near {location['label']}", ["#", "Name", "Type", "Distance", "Address"], rows)

    # --- Maintenance ---

    def handle_keys(self) -> None:
        """Shows each provider's pool with masked credentials and the active slot."""
        rows = []
        for provider, pool in self.credential_pools.items():
            if pool.size == 0:
                rows.append([provider, "-", "(none configured)", ""])
                continue
            for index, masked in enumerate(pool.masked_keys()):
                rows.append([provider, index + 1, masked, "active" if index == pool.cursor else ""])
        self.ui.display_table("API credential pools", ["Provider", "#", "Key", "Status"], rows)

    async def handle_clear_cache(self, level: str) -> None:
        logger.info(f"Handling 'clear-cache' command for level: {level}")
        if level not in CACHE_LEVELS:
            self.ui.display_error(f"Invalid cache level. Choose one of: {', '.join(CACHE_LEVELS)}.")
            return
        try:
            await self.cache_service.clear(level)
            self.ui.display_info(f"Cache level '{level}' cleared successfully.")
        except Exception as e:
            self._report_failure("Clearing the cache", e)
