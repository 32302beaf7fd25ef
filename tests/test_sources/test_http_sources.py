"""Tests for JSON fiat sources and source construction. No network calls."""

import io
import urllib.error
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from ratewatch.config import SourceSettings
from ratewatch.exceptions import SourceFetchError
from ratewatch.sources import build_sources
from ratewatch.sources.http_sources import JsonRateSource, coingecko, frankfurter


def _response(body: bytes) -> MagicMock:
    resp = MagicMock()
    resp.__enter__.return_value = io.BytesIO(body)
    resp.__exit__.return_value = False
    return resp


class TestJsonRateSource:
    @pytest.mark.asyncio
    async def test_extracts_rate_as_decimal(self) -> None:
        source = frankfurter(Decimal("0.5"))
        with patch("urllib.request.urlopen", return_value=_response(b'{"rates": {"MYR": 4.4135}}')):
            assert await source.fetch_rate() == Decimal("4.4135")

    @pytest.mark.asyncio
    async def test_coingecko_payload_shape(self) -> None:
        source = coingecko(Decimal("0.25"))
        with patch.object(source, "_get_json", return_value={"tether": {"myr": "4.45"}}):
            assert await source.fetch_rate() == Decimal("4.45")

    @pytest.mark.asyncio
    async def test_missing_key_raises_source_error(self) -> None:
        source = frankfurter(Decimal("0.5"))
        with patch.object(source, "_get_json", return_value={"rates": {}}):
            with pytest.raises(SourceFetchError) as excinfo:
                await source.fetch_rate()
        assert excinfo.value.source == "frankfurter"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [0, -4.4, "abc", None, "NaN"])
    async def test_unusable_values_rejected(self, raw: object) -> None:
        source = JsonRateSource("x", Decimal("1"), "http://example.invalid", lambda d: d["v"])
        with patch.object(source, "_get_json", return_value={"v": raw}):
            with pytest.raises(SourceFetchError):
                await source.fetch_rate()

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self) -> None:
        source = frankfurter(Decimal("0.5"))
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("unreachable")):
            with pytest.raises(SourceFetchError, match="transport error"):
                await source.fetch_rate()

    @pytest.mark.asyncio
    async def test_invalid_json_wrapped(self) -> None:
        source = frankfurter(Decimal("0.5"))
        with patch("urllib.request.urlopen", return_value=_response(b"<html>")):
            with pytest.raises(SourceFetchError, match="invalid JSON"):
                await source.fetch_rate()


class TestBuildSources:
    def test_builds_enabled_sources_in_order(self) -> None:
        settings = SourceSettings(enabled=["open_er_api", "frankfurter"])
        sources = build_sources(settings)
        assert [s.name for s in sources] == ["open_er_api", "frankfurter"]
        assert sources[1].weight == Decimal("0.5")

    def test_unknown_source_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_sources(SourceSettings(enabled=["frankfurter", "bloomberg"]))
