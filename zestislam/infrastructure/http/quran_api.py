"""Client for the public alquran.cloud API (surah list, full text, recitation audio)."""

import logging
from typing import List, Optional

from zestislam.domain.models.content import FullSurah, FullSurahVerse, SurahMeta
from zestislam.domain.models.errors import TerminalRemoteFailure
from zestislam.infrastructure.http.json_api import JsonApiClient

logger = logging.getLogger(__name__)

ARABIC_EDITION = "quran-uthmani"
TRANSLATION_EDITION = "en.sahih"
RECITATION_EDITION = "ar.alafasy"

SURAH_COUNT = 114


def _surah_meta(data: dict) -> SurahMeta:
    return SurahMeta(
        number=int(data["number"]),
        name=data.get("name", ""),
        englishName=data.get("englishName", ""),
        englishNameTranslation=data.get("englishNameTranslation", ""),
        numberOfAyahs=int(data.get("numberOfAyahs", len(data.get("ayahs", [])))),
        revelationType=data.get("revelationType", ""),
    )


class QuranApiClient(JsonApiClient):
    """Quran text and audio lookups. Failures resolve to [] or None."""

    BASE_URL = "https://api.alquran.cloud/v1"

    async def fetch_surah_list(self) -> List[SurahMeta]:
        async def operation() -> List[SurahMeta]:
            data = self._unwrap(await self._get_json("surah"), "alquran.cloud")
            return [_surah_meta(item) for item in data]

        return await self.invoker.with_resilience(operation, fallback=[], operation_name="fetch_surah_list")

    async def fetch_full_surah(self, number: int) -> Optional[FullSurah]:
        """Fetches a surah in Uthmani script with the Sahih International translation alongside.

        Returns None when the surah cannot be fetched or the editions do not line up.
        """
        if not 1 <= number <= SURAH_COUNT:
            raise ValueError(f"Surah number must be between 1 and {SURAH_COUNT}, got {number}.")

        async def operation() -> FullSurah:
            path = f"surah/{number}/editions/{ARABIC_EDITION},{TRANSLATION_EDITION}"
            data = self._unwrap(await self._get_json(path), "alquran.cloud")
            if not isinstance(data, list) or len(data) != 2:
                raise TerminalRemoteFailure(f"Expected 2 editions for surah {number}, got {len(data or [])}")
            arabic, english = data
            if len(arabic["ayahs"]) != len(english["ayahs"]):
                raise TerminalRemoteFailure(f"Edition length mismatch for surah {number}")
            verses = [
                FullSurahVerse(
                    number=ayah["number"],
                    text=ayah["text"],
                    translation=translated["text"],
                    numberInSurah=ayah["numberInSurah"],
                )
                for ayah, translated in zip(arabic["ayahs"], english["ayahs"])
            ]
            return FullSurah(meta=_surah_meta(arabic), verses=verses)

        return await self.invoker.with_resilience(operation, fallback=None, operation_name="fetch_full_surah")

    async def fetch_surah_audio(self, number: int) -> List[str]:
        """Returns one recitation audio URL per ayah."""
        async def operation() -> List[str]:
            data = self._unwrap(await self._get_json(f"surah/{number}/{RECITATION_EDITION}"), "alquran.cloud")
            return [ayah["audio"] for ayah in data["ayahs"] if ayah.get("audio")]

        return await self.invoker.with_resilience(operation, fallback=[], operation_name="fetch_surah_audio")
