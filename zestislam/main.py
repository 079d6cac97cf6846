"""Main entry point for the ZestIslam CLI.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Coroutine, Dict, Optional

import typer

from zestislam import __version__
from zestislam.core.command_handler import CommandHandler
from zestislam.core.services.chat_service import ChatService
from zestislam.core.services.scholar_service import ScholarService
from zestislam.infrastructure.ai.client_factory import CLIENT_BUILDERS, AIClientFactory
from zestislam.infrastructure.cache.caching_service import CachingServiceImpl
from zestislam.infrastructure.cli.display import ConsoleDisplay
from zestislam.infrastructure.config import settings
from zestislam.infrastructure.config.settings import (
    DEFAULT_CONFIG_DIR,
    get_cache_dir,
    get_config,
    get_credential_sources,
    get_default_model,
    get_default_provider,
    get_retry_policy,
    load_configuration,
)
from zestislam.infrastructure.credentials.credential_pool import CredentialPool
from zestislam.infrastructure.http.places_api import (
    DEFAULT_LIMIT,
    DEFAULT_PLACE_QUERY,
    DEFAULT_RADIUS_KM,
    MAX_LIMIT,
    PLACE_QUERIES,
    PlacesClient,
)
from zestislam.infrastructure.http.prayer_times_api import PrayerTimesClient, ReverseGeocoder
from zestislam.infrastructure.http.quran_api import QuranApiClient
from zestislam.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, setup_logging
from zestislam.infrastructure.resilience.resilient_invoker import ResilientInvoker
from zestislam.infrastructure.storage.conversation_store import DiskConversationStore

logger = logging.getLogger(__name__)


# --- Dependency Injection Container (Manual) ---

def create_dependencies(provider: Optional[str] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Args:
        provider: AI provider overriding the configured default.
    """
    dependencies: Dict[str, Any] = {}

    # 1. Configuration and logging
    load_configuration()
    log_level_name = str(get_config('logging.level', 'WARNING')).upper()
    setup_logging(
        log_level=getattr(logging, log_level_name, logging.WARNING),
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )
    logger.info("Configuration and logging initialized.")

    selected_provider = (provider or get_default_provider()).lower()
    if selected_provider not in CLIENT_BUILDERS:
        raise typer.BadParameter(
            f"Unknown provider '{selected_provider}'. Choose one of: {', '.join(sorted(CLIENT_BUILDERS))}."
        )

    # 2. Infrastructure adapters
    dependencies['ui'] = ConsoleDisplay()
    cache_dir = get_cache_dir()
    dependencies['cache_service'] = CachingServiceImpl(cache_dir=cache_dir)
    configured_storage = get_config('storage.dir')
    storage_dir = Path(str(configured_storage)).expanduser() if configured_storage else DEFAULT_CONFIG_DIR / "conversations"
    dependencies['conversation_store'] = DiskConversationStore(storage_dir)

    # 3. Credential pools (the selected provider always; others only when configured)
    pools: Dict[str, CredentialPool] = {}
    for name in settings.PROVIDER_KEY_NAMES:
        if name == selected_provider or get_credential_sources(name):
            pools[name] = CredentialPool(provider=name)
    dependencies['credential_pools'] = pools

    # 4. Resilience: one invoker bound to the selected pool, one keyless for public APIs
    policy = get_retry_policy()
    dependencies['invoker'] = ResilientInvoker(credential_pool=pools[selected_provider], default_policy=policy)
    dependencies['public_invoker'] = ResilientInvoker(credential_pool=None, default_policy=policy)

    # 5. AI client factory and core services
    dependencies['client_factory'] = AIClientFactory(
        pools[selected_provider],
        provider=selected_provider,
        model=get_default_model(selected_provider),
        fast_model=get_default_model(selected_provider, fast=True),
    )
    dependencies['scholar_service'] = ScholarService(
        client_factory=dependencies['client_factory'],
        invoker=dependencies['invoker'],
        cache_service=dependencies['cache_service'],
        policy=policy,
    )
    dependencies['chat_service'] = ChatService(
        scholar_service=dependencies['scholar_service'],
        ui=dependencies['ui'],
        conversation_store=dependencies['conversation_store'],
    )

    # 6. Command handler
    dependencies['command_handler'] = CommandHandler(
        scholar_service=dependencies['scholar_service'],
        chat_service=dependencies['chat_service'],
        quran_api=QuranApiClient(dependencies['public_invoker']),
        prayer_times=PrayerTimesClient(dependencies['public_invoker']),
        geocoder=ReverseGeocoder(dependencies['public_invoker']),
        places=PlacesClient(dependencies['public_invoker']),
        cache_service=dependencies['cache_service'],
        credential_pools=pools,
        ui=dependencies['ui'],
        provider_name=selected_provider,
    )
    logger.info(f"All dependencies initialized (provider={selected_provider}).")
    return dependencies


_dependencies: Optional[Dict[str, Any]] = None
_selected_provider: Optional[str] = None


def get_dependencies() -> Dict[str, Any]:
    """Returns the wired-up dependencies, creating them on first use."""
    global _dependencies
    if _dependencies is None:
        try:
            _dependencies = create_dependencies(_selected_provider)
        except typer.BadParameter:
            raise
        except Exception as e:
            logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
            print(f"FATAL ERROR during initialization: {e}", file=sys.stderr)
            raise typer.Exit(code=1)
    return _dependencies


def get_handler() -> CommandHandler:
    return get_dependencies()['command_handler']


# --- Typer App Definition ---
app = typer.Typer(
    name="zestislam",
    help="ZestIslam: an Islamic knowledge assistant with API-key rotation and resilient AI calls.",
    add_completion=False,
)


def run_async(coro: Coroutine[Any, Any, None]) -> None:
    """Runs an async handler from a sync Typer command."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


# --- CLI Commands ---

@app.command()
def chat(
    resume: Annotated[Optional[str], typer.Option("--resume", "-r", help="Conversation id to continue.")] = None,
    list_conversations: Annotated[bool, typer.Option("--list", "-l", help="List saved conversations.")] = False,
):
    """Chat with the ZestIslam Scholar."""
    run_async(get_handler().handle_chat(resume, list_only=list_conversations))


@app.command()
def quran(query: Annotated[str, typer.Argument(help="Topic to find Quranic verses about.")]):
    """Find Quranic verses on a topic."""
    run_async(get_handler().handle_search_quran(query))


@app.command()
def hadith(query: Annotated[str, typer.Argument(help="Topic to find authentic Hadiths about.")]):
    """Find authentic Hadiths on a topic."""
    run_async(get_handler().handle_search_hadith(query))


@app.command()
def tadabbur(
    surah: Annotated[str, typer.Argument(help="Surah name or number.")],
    verse: Annotated[int, typer.Argument(help="Verse number.", min=1)],
):
    """Reflect (Tadabbur) on a verse in English, Urdu and Hinglish."""
    run_async(get_handler().handle_tadabbur(surah, verse))


@app.command()
def sharh(
    book: Annotated[str, typer.Argument(help="Hadith collection, e.g. Bukhari.")],
    number: Annotated[str, typer.Argument(help="Hadith number.")],
):
    """Explain (Sharh) a Hadith in English, Urdu and Hinglish."""
    run_async(get_handler().handle_sharh(book, number))


@app.command()
def dream(description: Annotated[str, typer.Argument(help="Describe the dream.")]):
    """Interpret a dream in light of Islamic tradition."""
    run_async(get_handler().handle_dream(description))


@app.command()
def dua(situation: Annotated[str, typer.Argument(help="The situation to make Dua for.")]):
    """Compose a personalised Dua."""
    run_async(get_handler().handle_dua(situation))


@app.command()
def dhikr(feeling: Annotated[str, typer.Argument(help="How you are feeling.")]):
    """Suggest a Dhikr for how you feel."""
    run_async(get_handler().handle_dhikr(feeling))


@app.command()
def name(value: Annotated[str, typer.Argument(metavar="NAME", help="The name to explain.")]):
    """Explain the meaning of a name."""
    run_async(get_handler().handle_name(value))


@app.command()
def quiz(
    topic: Annotated[str, typer.Argument(help="Quiz topic, e.g. 'Seerah'.")],
    difficulty: Annotated[str, typer.Option("--difficulty", "-d", help="easy, medium or hard.")] = "medium",
    count: Annotated[int, typer.Option("--count", "-n", min=1, max=20, help="Number of questions.")] = 5,
):
    """Generate a multiple-choice quiz."""
    run_async(get_handler().handle_quiz(topic, difficulty, count))


@app.command()
def inspiration():
    """Show today's Ayah or Hadith."""
    run_async(get_handler().handle_inspiration())


@app.command()
def surah(
    number: Annotated[Optional[int], typer.Argument(min=1, max=114, help="Surah number; omit to list all.")] = None,
    audio: Annotated[bool, typer.Option("--audio", help="Also list recitation audio URLs.")] = False,
):
    """Read a surah (Arabic with English translation) or list all surahs."""
    run_async(get_handler().handle_surah(number, with_audio=audio))


@app.command(name="prayer-times")
def prayer_times(
    latitude: Annotated[float, typer.Option("--lat", help="Latitude.")],
    longitude: Annotated[float, typer.Option("--lng", help="Longitude.")],
    method: Annotated[Optional[int], typer.Option(help="Calculation method (default from config, 2 = ISNA).")] = None,
    school: Annotated[Optional[int], typer.Option(help="Asr school: 0 Shafi'i, 1 Hanafi.")] = None,
    on_date: Annotated[Optional[datetime], typer.Option("--date", formats=["%Y-%m-%d"], help="Date (YYYY-MM-DD).")] = None,
):
    """Show the day's prayer times for a location."""
    handler = get_handler()
    run_async(handler.handle_prayer_times(
        latitude,
        longitude,
        method if method is not None else int(get_config('prayer.method', 2)),
        school if school is not None else int(get_config('prayer.school', 0)),
        on_date.date() if on_date else None,
    ))


@app.command()
def halal(
    latitude: Annotated[float, typer.Option("--lat", help="Latitude.")],
    longitude: Annotated[float, typer.Option("--lng", help="Longitude.")],
    query: Annotated[str, typer.Option(
        "--query", "-q", help=f"What to look for, e.g. {', '.join(PLACE_QUERIES)}.")] = DEFAULT_PLACE_QUERY,
    radius: Annotated[float, typer.Option(
        "--radius", min=0.5, max=50.0, help="Search radius in km.")] = DEFAULT_RADIUS_KM,
    limit: Annotated[int, typer.Option(
        "--limit", "-n", min=1, max=MAX_LIMIT, help="Maximum number of venues.")] = DEFAULT_LIMIT,
):
    """Find halal restaurants, hotels or mosques near a location."""
    run_async(get_handler().handle_halal(latitude, longitude, query, radius, limit))


@app.command()
def keys():
    """Show the configured API keys (masked) and which one is active."""
    get_handler().handle_keys()


@app.command(name="clear-cache")
def clear_cache_command(
    level: Annotated[str, typer.Option(help="Level ('l1', 'l2', 'all').")] = 'all'
):
    """Clears the application cache."""
    run_async(get_handler().handle_clear_cache(level))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"zestislam {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", "-p", help="AI provider ('gemini' or 'groq'). Uses the configured default if not set."),
    ] = None,
    version: Annotated[
        bool, typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit.")
    ] = False,
):
    """ZestIslam command line."""
    global _selected_provider
    _selected_provider = provider


def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
