import asyncio

import httpx
import pytest

from zestislam.infrastructure.http.quran_api import QuranApiClient

SURAH_LIST = {
    "code": 200,
    "status": "OK",
    "data": [
        {"number": 1, "name": "سُورَةُ ٱلْفَاتِحَةِ", "englishName": "Al-Faatiha",
         "englishNameTranslation": "The Opening", "numberOfAyahs": 7, "revelationType": "Meccan"},
        {"number": 112, "name": "سُورَةُ الإِخۡلَاصِ", "englishName": "Al-Ikhlaas",
         "englishNameTranslation": "Sincerity", "numberOfAyahs": 4, "revelationType": "Meccan"},
    ],
}


def _edition(texts, audio=False):
    ayahs = []
    for i, text in enumerate(texts, start=1):
        ayah = {"number": 6220 + i, "text": text, "numberInSurah": i}
        if audio:
            ayah["audio"] = f"https://cdn.islamic.network/quran/audio/128/ar.alafasy/{6220 + i}.mp3"
        ayahs.append(ayah)
    return {"number": 112, "name": "سُورَةُ الإِخۡلَاصِ", "englishName": "Al-Ikhlaas",
            "englishNameTranslation": "Sincerity", "numberOfAyahs": len(texts),
            "revelationType": "Meccan", "ayahs": ayahs}


def _client(handler, public_invoker):
    return QuranApiClient(public_invoker, transport=httpx.MockTransport(handler))


def test_fetch_surah_list(public_invoker):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=SURAH_LIST)

    surahs = asyncio.run(_client(handler, public_invoker).fetch_surah_list())

    assert [s.englishName for s in surahs] == ["Al-Faatiha", "Al-Ikhlaas"]
    assert surahs[1].numberOfAyahs == 4
    assert str(requests[0].url) == "https://api.alquran.cloud/v1/surah"
    assert requests[0].headers["User-Agent"] == "zestislam-cli"


def test_fetch_full_surah_pairs_translation(public_invoker):
    arabic = _edition(["قُلۡ هُوَ ٱللَّهُ أَحَدٌ", "ٱللَّهُ ٱلصَّمَدُ"])
    english = _edition(["Say, He is Allah, [who is] One,", "Allah, the Eternal Refuge."])

    def handler(request):
        assert request.url.path == "/v1/surah/112/editions/quran-uthmani,en.sahih"
        return httpx.Response(200, json={"code": 200, "data": [arabic, english]})

    surah = asyncio.run(_client(handler, public_invoker).fetch_full_surah(112))

    assert surah.meta.englishNameTranslation == "Sincerity"
    assert [v.numberInSurah for v in surah.verses] == [1, 2]
    assert surah.verses[1].translation == "Allah, the Eternal Refuge."


def test_fetch_full_surah_mismatched_editions_returns_none(public_invoker, fake_sleep):
    arabic = _edition(["a", "b"])
    english = _edition(["a"])

    def handler(request):
        return httpx.Response(200, json={"code": 200, "data": [arabic, english]})

    assert asyncio.run(_client(handler, public_invoker).fetch_full_surah(112)) is None
    assert fake_sleep.delays == []


@pytest.mark.parametrize("number", [0, 115, -1])
def test_fetch_full_surah_rejects_out_of_range(public_invoker, number):
    client = _client(lambda request: httpx.Response(200, json={}), public_invoker)
    with pytest.raises(ValueError, match="between 1 and 114"):
        asyncio.run(client.fetch_full_surah(number))


def test_fetch_surah_audio(public_invoker):
    def handler(request):
        assert request.url.path == "/v1/surah/112/ar.alafasy"
        return httpx.Response(200, json={"code": 200, "data": _edition(["a", "b"], audio=True)})

    urls = asyncio.run(_client(handler, public_invoker).fetch_surah_audio(112))
    assert urls == [
        "https://cdn.islamic.network/quran/audio/128/ar.alafasy/6221.mp3",
        "https://cdn.islamic.network/quran/audio/128/ar.alafasy/6222.mp3",
    ]


def test_server_errors_are_retried_then_succeed(public_invoker, fake_sleep):
    responses = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200, json=SURAH_LIST)])

    surahs = asyncio.run(_client(lambda request: next(responses), public_invoker).fetch_surah_list())

    assert len(surahs) == 2
    assert fake_sleep.delays == [1.0, 2.0]


def test_not_found_is_not_retried(public_invoker, fake_sleep):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404, json={"code": 404, "status": "NOT FOUND"})

    assert asyncio.run(_client(handler, public_invoker).fetch_surah_audio(112)) == []
    assert len(calls) == 1
    assert fake_sleep.delays == []


@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>maintenance</html>"),
    httpx.Response(200, json={"code": 400, "status": "Bad Request", "data": "Invalid"}),
])
def test_bad_payload_falls_back(public_invoker, response):
    client = _client(lambda request: response, public_invoker)
    assert asyncio.run(client.fetch_surah_list()) == []
