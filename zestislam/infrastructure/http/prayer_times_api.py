"""Clients for prayer times (aladhan.com) and reverse geocoding (Nominatim)."""

import logging
from datetime import date
from typing import Optional

from zestislam.domain.models.common import GeoLocation
from zestislam.domain.models.content import PrayerTimings
from zestislam.infrastructure.http.json_api import JsonApiClient

logger = logging.getLogger(__name__)

# Calculation methods understood by the timings API
CALCULATION_METHODS = {
    1: "University of Islamic Sciences, Karachi",
    2: "Islamic Society of North America (ISNA)",
    3: "Muslim World League",
    4: "Umm Al-Qura University, Makkah",
    5: "Egyptian General Authority of Survey",
}
# Asr juristic school: 0 = Shafi'i (standard), 1 = Hanafi
SCHOOLS = {0: "Shafi'i", 1: "Hanafi"}

DEFAULT_METHOD = 2
DEFAULT_SCHOOL = 0
FALLBACK_AREA = "Current Area"


class PrayerTimesClient(JsonApiClient):
    """Daily prayer times for a coordinate. Failures resolve to None."""

    BASE_URL = "https://api.aladhan.com/v1"

    async def fetch_timings(
        self,
        latitude: float,
        longitude: float,
        on_date: Optional[date] = None,
        method: int = DEFAULT_METHOD,
        school: int = DEFAULT_SCHOOL,
    ) -> Optional[PrayerTimings]:
        if method not in CALCULATION_METHODS:
            raise ValueError(f"Unknown calculation method {method}. Known: {sorted(CALCULATION_METHODS)}")
        if school not in SCHOOLS:
            raise ValueError(f"Unknown school {school}. Use 0 (Shafi'i) or 1 (Hanafi).")
        day = on_date or date.today()
        date_str = day.strftime("%d-%m-%Y")

        async def operation() -> PrayerTimings:
            params = {"latitude": latitude, "longitude": longitude, "method": method, "school": school}
            data = self._unwrap(await self._get_json(f"timings/{date_str}", params=params), "AlAdhan")
            date_info = data.get("date", {})
            hijri = date_info.get("hijri")
            hijri_date = f"{hijri['day']} {hijri['month']['en']} {hijri['year']}" if hijri else None
            return PrayerTimings(
                timings=dict(data["timings"]),
                date_readable=date_info.get("readable", date_str),
                hijri_date=hijri_date,
                timezone=data.get("meta", {}).get("timezone"),
            )

        timings = await self.invoker.with_resilience(operation, fallback=None, operation_name="fetch_timings")
        if timings is not None:
            logger.info(f"Fetched prayer times for {date_str} at ({latitude:.2f}, {longitude:.2f})")
        return timings


class ReverseGeocoder(JsonApiClient):
    """Resolves coordinates to a city-level place name."""

    BASE_URL = "https://nominatim.openstreetmap.org"

    async def locate(self, latitude: float, longitude: float) -> GeoLocation:
        """Returns the coordinates with a label; the label is 'Current Area' when lookup fails."""
        async def operation() -> Optional[str]:
            params = {
                "format": "json",
                "lat": latitude,
                "lon": longitude,
                "zoom": 12,
                "addressdetails": 1,
            }
            payload = await self._get_json("reverse", params=params, headers={"Accept-Language": "en"})
            address = payload.get("address") if isinstance(payload, dict) else None
            if not address:
                return None
            for field in ("city", "town", "village", "suburb"):
                if address.get(field):
                    return address[field]
            return "Nearby"

        label = await self.invoker.with_resilience(operation, fallback=None, operation_name="reverse_geocode")
        return GeoLocation(latitude=latitude, longitude=longitude, label=label or FALLBACK_AREA)
