import asyncio
from datetime import date
from unittest.mock import MagicMock

import pytest

from zestislam.core.command_handler import CommandHandler
from zestislam.core.services.chat_service import ChatService
from zestislam.core.services.scholar_service import FALLBACK_INSPIRATION, ScholarService
from zestislam.domain.interfaces.cache import CacheService
from zestislam.domain.interfaces.conversation_store import ConversationStore
from zestislam.domain.models.content import (
    Conversation,
    FullSurah,
    FullSurahVerse,
    Place,
    PrayerTimings,
    SurahMeta,
)
from zestislam.domain.models.errors import CredentialPoolEmpty, TerminalRemoteFailure
from zestislam.infrastructure.cli.display import ConsoleDisplay
from zestislam.infrastructure.http.places_api import PlacesClient
from zestislam.infrastructure.http.prayer_times_api import PrayerTimesClient, ReverseGeocoder
from zestislam.infrastructure.http.quran_api import QuranApiClient

IKHLAS = SurahMeta(number=112, name="سُورَةُ الإِخۡلَاصِ", englishName="Al-Ikhlaas",
                   englishNameTranslation="Sincerity", numberOfAyahs=4, revelationType="Meccan")


@pytest.fixture
def mock_scholar_service():
    return MagicMock(spec=ScholarService)


@pytest.fixture
def mock_chat_service():
    mock = MagicMock(spec=ChatService)
    mock.conversation_store = MagicMock(spec=ConversationStore)
    mock.owner = "local"
    return mock


@pytest.fixture
def mock_quran_api():
    return MagicMock(spec=QuranApiClient)


@pytest.fixture
def mock_prayer_times():
    return MagicMock(spec=PrayerTimesClient)


@pytest.fixture
def mock_geocoder():
    mock = MagicMock(spec=ReverseGeocoder)
    mock.locate.return_value = {"latitude": -6.2, "longitude": 106.8, "label": "Jakarta"}
    return mock


@pytest.fixture
def mock_places():
    return MagicMock(spec=PlacesClient)


@pytest.fixture
def mock_cache():
    mock = MagicMock(spec=CacheService)
    mock.get.return_value = None
    return mock


@pytest.fixture
def mock_ui():
    return MagicMock(spec=ConsoleDisplay)


@pytest.fixture
def command_handler(mock_scholar_service, mock_chat_service, mock_quran_api, mock_prayer_times,
                    mock_geocoder, mock_places, mock_cache, make_pool, mock_ui):
    """Fixture to create CommandHandler with mocked services."""
    return CommandHandler(
        scholar_service=mock_scholar_service,
        chat_service=mock_chat_service,
        quran_api=mock_quran_api,
        prayer_times=mock_prayer_times,
        geocoder=mock_geocoder,
        places=mock_places,
        cache_service=mock_cache,
        credential_pools={"gemini": make_pool("AIzaSyD-first-key-0001,AIzaSyD-second-key-0002"),
                          "groq": make_pool("")},
        ui=mock_ui,
    )


def test_handle_chat_starts_loop(command_handler: CommandHandler, mock_chat_service: MagicMock):
    asyncio.run(command_handler.handle_chat())
    mock_chat_service.start_conversation.assert_awaited_once_with(None)
    mock_chat_service.start_chat_loop.assert_awaited_once_with("gemini")


def test_handle_chat_resume_error(command_handler: CommandHandler, mock_chat_service: MagicMock, mock_ui: MagicMock):
    mock_chat_service.start_conversation.side_effect = ValueError("No conversation with id 'x'.")

    asyncio.run(command_handler.handle_chat(conversation_id="x"))

    mock_chat_service.start_chat_loop.assert_not_called()
    mock_ui.display_error.assert_called_once_with("Chat failed: No conversation with id 'x'.")


def test_handle_chat_list(command_handler: CommandHandler, mock_chat_service: MagicMock, mock_ui: MagicMock):
    mock_chat_service.conversation_store.list_conversations.return_value = [
        Conversation(id="c1", title="Seeking Patience", last_message="What is sabr?"),
    ]

    asyncio.run(command_handler.handle_chat(list_only=True))

    title, columns, rows = mock_ui.display_table.call_args.args
    assert title == "Conversations"
    assert rows[0][:3] == ["c1", "Seeking Patience", "What is sabr?"]
    mock_chat_service.start_chat_loop.assert_not_called()


def test_handle_search_quran(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.search_quran.return_value = [
        {"surahName": "Al-Baqarah", "verseNumber": 153, "arabicText": "يَا أَيُّهَا",
         "translation": "Seek help through patience and prayer.", "explanation": "On sabr."},
    ]

    asyncio.run(command_handler.handle_search_quran("patience"))

    mock_scholar_service.search_quran.assert_awaited_once_with("patience")
    body = mock_ui.display_output.call_args.args[0]
    assert "Seek help through patience and prayer." in body
    assert mock_ui.display_output.call_args.kwargs["title"] == "Al-Baqarah : 153"


def test_handle_search_hadith_empty(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.search_hadith.return_value = []

    asyncio.run(command_handler.handle_search_hadith("gratitude"))

    mock_ui.display_warning.assert_called_once_with("No hadiths found for 'gratitude'.")
    mock_ui.display_output.assert_not_called()


def test_missing_credentials_show_configuration_hint(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.search_quran.side_effect = CredentialPoolEmpty(["API_KEY"])

    asyncio.run(command_handler.handle_search_quran("mercy"))

    message = mock_ui.display_error.call_args.args[0]
    assert "No API credential configured" in message
    assert ".env" in message


def test_unexpected_error_is_reported(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.generate_dua.side_effect = RuntimeError("boom")

    asyncio.run(command_handler.handle_dua("travel"))

    mock_ui.display_error.assert_called_once_with("Dua failed unexpectedly: boom")


def test_handle_dua_displays_record(command_handler, mock_scholar_service, mock_ui):
    dua = {"title": "Travel", "arabic": "سُبْحَانَ الَّذِي سَخَّرَ لَنَا هَذَا",
           "transliteration": "Subhanalladhi sakhkhara lana hadha", "translation": "Glory be to Him..."}
    mock_scholar_service.generate_dua.return_value = dua

    asyncio.run(command_handler.handle_dua("travel"))

    mock_ui.display_record.assert_called_once_with("Dua", dua)


def test_handle_tadabbur_renders_languages(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.generate_tadabbur.return_value = {
        "verseReference": "Al-Baqarah 2:286",
        "english": {"paragraph": "Allah does not burden a soul beyond its capacity.", "points": ["Hope", "Ease"]},
        "urdu": {"paragraph": "اللہ کسی جان پر اس کی طاقت سے زیادہ بوجھ نہیں ڈالتا", "points": []},
        "hinglish": {"paragraph": "Allah kisi par uski taqat se zyada bojh nahi daalta.", "points": ["Umeed"]},
    }

    asyncio.run(command_handler.handle_tadabbur("Al-Baqarah", 286))

    body = mock_ui.display_output.call_args.args[0]
    assert body.index("### English") < body.index("### Urdu") < body.index("### Hinglish")
    assert "- Hope" in body and "- Umeed" in body
    assert mock_ui.display_output.call_args.kwargs["title"] == "Tadabbur: Al-Baqarah 286"


def test_handle_name_renders_key_values(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.get_name_insight.return_value = {
        "name": "Maryam",
        "english": {"meaning": "Beloved", "origin": "Hebrew", "reflection": "Chosen above the women of the worlds."},
    }

    asyncio.run(command_handler.handle_name("Maryam"))

    body = mock_ui.display_output.call_args.args[0]
    assert "**Meaning**: Beloved" in body
    assert "### Urdu" not in body


def test_handle_dream_no_result(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.interpret_dream.return_value = None

    asyncio.run(command_handler.handle_dream("I saw a garden"))

    assert "no usable answer" in mock_ui.display_warning.call_args.args[0]


def test_handle_quiz(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.generate_quiz.return_value = [
        {"question": "How many surahs are in the Quran?", "options": ["112", "113", "114", "115"],
         "correctIndex": 2, "explanation": "There are 114 surahs."},
        {"question": "Broken question", "options": ["a"], "correctIndex": 5},
    ]

    asyncio.run(command_handler.handle_quiz("The Quran", "easy", 2))

    mock_scholar_service.generate_quiz.assert_awaited_once_with("The Quran", "easy", 2)
    first, second = [c.args[0] for c in mock_ui.display_output.call_args_list]
    assert "C. 114" in first
    assert "*Answer: C.* There are 114 surahs." in first
    assert "Answer" not in second


def test_handle_quiz_invalid_difficulty(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.generate_quiz.side_effect = ValueError("Difficulty must be one of ('easy', 'medium', 'hard')")

    asyncio.run(command_handler.handle_quiz("Seerah", "extreme", 5))

    assert mock_ui.display_error.call_args.args[0].startswith("Quiz failed: Difficulty must be one of")


def test_handle_inspiration(command_handler, mock_scholar_service, mock_ui):
    mock_scholar_service.get_daily_inspiration.return_value = FALLBACK_INSPIRATION

    asyncio.run(command_handler.handle_inspiration())

    mock_ui.display_output.assert_called_once_with(
        "> Verily, with every hardship comes ease.", title="Daily Ayah", subtitle="Surah Ash-Sharh 94:5"
    )


def test_handle_surah_list_fetches_and_caches(command_handler, mock_quran_api, mock_cache, mock_ui):
    mock_quran_api.fetch_surah_list.return_value = [IKHLAS]

    asyncio.run(command_handler.handle_surah())

    mock_cache.set.assert_awaited_once_with("surah_list", [IKHLAS], ttl=7 * 24 * 60 * 60)
    title, columns, rows = mock_ui.display_table.call_args.args
    assert title == "Surahs"
    assert rows == [[112, "Al-Ikhlaas", IKHLAS.name, "Sincerity", 4, "Meccan"]]


def test_handle_surah_list_uses_cache(command_handler, mock_quran_api, mock_cache, mock_ui):
    mock_cache.get.return_value = [IKHLAS]

    asyncio.run(command_handler.handle_surah())

    mock_quran_api.fetch_surah_list.assert_not_called()
    mock_ui.display_table.assert_called_once()


def test_handle_surah_with_audio(command_handler, mock_quran_api, mock_ui):
    mock_quran_api.fetch_full_surah.return_value = FullSurah(
        meta=IKHLAS,
        verses=[FullSurahVerse(number=6222, text="قُلۡ هُوَ ٱللَّهُ أَحَدٌ", translation="Say, He is Allah, One.",
                               numberInSurah=1)],
    )
    mock_quran_api.fetch_surah_audio.return_value = ["https://cdn.islamic.network/quran/audio/128/ar.alafasy/6222.mp3"]

    asyncio.run(command_handler.handle_surah(112, with_audio=True))

    assert "Say, He is Allah, One." in mock_ui.display_output.call_args.args[0]
    assert mock_ui.display_output.call_args.kwargs["title"].startswith("112. Al-Ikhlaas")
    assert mock_ui.display_table.call_args.args[2] == [[1, "https://cdn.islamic.network/quran/audio/128/ar.alafasy/6222.mp3"]]


def test_handle_surah_unavailable(command_handler, mock_quran_api, mock_ui):
    mock_quran_api.fetch_full_surah.return_value = None

    asyncio.run(command_handler.handle_surah(2))

    assert "Could not load surah 2" in mock_ui.display_error.call_args.args[0]


def test_handle_prayer_times(command_handler, mock_prayer_times, mock_geocoder, mock_ui):
    mock_prayer_times.fetch_timings.return_value = PrayerTimings(
        timings={"Fajr": "04:31", "Sunrise": "05:44", "Dhuhr": "11:49", "Asr": "15:07",
                 "Maghrib": "17:53", "Isha": "19:02", "Imsak": "04:21"},
        date_readable="19 Oct 2026",
        hijri_date="8 Jumada al-Ula 1448",
    )

    asyncio.run(command_handler.handle_prayer_times(-6.2, 106.8, 2, 0, date(2026, 10, 19)))

    mock_prayer_times.fetch_timings.assert_awaited_once_with(-6.2, 106.8, date(2026, 10, 19), 2, 0)
    title, columns, rows = mock_ui.display_table.call_args.args
    assert title == "Prayer times for Jakarta - 19 Oct 2026 (8 Jumada al-Ula 1448)"
    assert [r[0] for r in rows] == ["Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha"]


def test_handle_prayer_times_failure(command_handler, mock_prayer_times, mock_ui):
    mock_prayer_times.fetch_timings.return_value = None

    asyncio.run(command_handler.handle_prayer_times(0.0, 0.0, 2, 0))

    mock_ui.display_error.assert_called_once_with("Failed to fetch prayer times. Check your connection and try again.")


def test_handle_prayer_times_remote_error(command_handler, mock_prayer_times, mock_ui):
    mock_prayer_times.fetch_timings.side_effect = TerminalRemoteFailure("AlAdhan API error: Bad Request")

    asyncio.run(command_handler.handle_prayer_times(0.0, 0.0, 2, 0))

    assert mock_ui.display_error.call_args.args[0] == "Prayer times failed: AlAdhan API error: Bad Request"


def test_handle_halal_lists_places(command_handler, mock_places, mock_ui):
    mock_places.find_places.return_value = [
        Place(name="Bakso Pak Kumis", category="fast food", address="Menteng, Jakarta",
              latitude=-6.201, longitude=106.801, distance_km=0.16),
    ]

    asyncio.run(command_handler.handle_halal(-6.2, 106.8, "Halal Restaurants", 5.0, 10))

    mock_places.find_places.assert_awaited_once_with("Halal Restaurants", -6.2, 106.8, radius_km=5.0, limit=10)
    title, columns, rows = mock_ui.display_table.call_args.args
    assert title == "Halal Restaurants near Jakarta"
    assert rows == [[1, "Bakso Pak Kumis", "fast food", "0.2 km", "Menteng, Jakarta"]]


def test_handle_halal_no_results(command_handler, mock_places, mock_ui):
    mock_places.find_places.return_value = []

    asyncio.run(command_handler.handle_halal(-6.2, 106.8, "Halal Hotels", 5.0, 10))

    mock_ui.display_info.assert_called_once_with("No venues found in Jakarta.")
    mock_ui.display_table.assert_not_called()


def test_handle_halal_invalid_query(command_handler, mock_places, mock_ui):
    mock_places.find_places.side_effect = ValueError("A search query is required.")

    asyncio.run(command_handler.handle_halal(-6.2, 106.8, " ", 5.0, 10))

    assert mock_ui.display_error.call_args.args[0] == "Place search failed: A search query is required."


def test_handle_keys_masks_credentials(command_handler, mock_ui):
    command_handler.handle_keys()

    title, columns, rows = mock_ui.display_table.call_args.args
    assert rows == [
        ["gemini", 1, "AIza...0001", "active"],
        ["gemini", 2, "AIza...0002", ""],
        ["groq", "-", "(none configured)", ""],
    ]


@pytest.mark.parametrize("level", ["l1", "l2", "all"])
def test_handle_clear_cache(command_handler, mock_cache, mock_ui, level):
    asyncio.run(command_handler.handle_clear_cache(level))

    mock_cache.clear.assert_awaited_once_with(level)
    mock_ui.display_info.assert_called_once_with(f"Cache level '{level}' cleared successfully.")


def test_handle_clear_cache_invalid_level(command_handler, mock_cache, mock_ui):
    asyncio.run(command_handler.handle_clear_cache("l3"))

    mock_cache.clear.assert_not_called()
    mock_ui.display_error.assert_called_once_with("Invalid cache level. Choose one of: l1, l2, all.")
