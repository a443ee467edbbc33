"""Tests for warranty_hub.services.vin_decoder.

All HTTP calls go through httpx.MockTransport; no real vPIC requests are made.
"""

from __future__ import annotations

import httpx
import pytest

from warranty_hub.domain.errors import ValidationFailedError, VinDecodeError
from warranty_hub.services.vin_decoder import (
    VinDecoder,
    clean_vin,
    parse_vpic_row,
    pick_first,
)

BASE_URL = "https://vpic.example.test/api/vehicles/DecodeVinValuesExtended"
VIN = "1HGCM82633A004352"


def _vpic_row(**overrides) -> dict:
    """Build a realistic vPIC DecodeVinValuesExtended result row."""
    row = {
        "ModelYear": "2003",
        "Make": "HONDA",
        "Model": "Accord",
        "Trim": "EX-V6",
        "Series": "",
        "BodyClass": "Coupe",
        "EngineModel": "J30A4",
        "EngineConfiguration": "V-Shaped",
        "EngineCylinders": "6",
        "DisplacementL": "3.0",
        "TransmissionStyle": "Automatic",
        "TransmissionSpeeds": "5",
        "DriveType": "4x2",
        "BrakeSystemType": "Hydraulic",
        "PlantCountry": "UNITED STATES (USA)",
        "TireSizeFront": "",
        "MSRP": "0",
        "BasePrice": "",
        "Warranty": "Not Applicable",
    }
    row.update(overrides)
    return row


def _decoder(handler) -> VinDecoder:
    return VinDecoder(BASE_URL, timeout=1.0, transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_clean_vin(self):
        assert clean_vin(" 1hgcm8-2633a 004352 ") == VIN
        assert clean_vin(None) == ""

    @pytest.mark.parametrize(
        "values,expected",
        [
            (("", None, "X"), "X"),
            (("0", "Y"), "Y"),
            (("Not Applicable", "not applicable", "Z"), "Z"),
            (("  ", None), None),
            ((6,), "6"),
        ],
    )
    def test_pick_first(self, values, expected):
        assert pick_first(*values) == expected

    def test_parse_row(self):
        decoded = parse_vpic_row(VIN, _vpic_row())
        assert decoded.vin == VIN
        assert decoded.vehicle_year == "2003"
        assert decoded.vehicle_make == "HONDA"
        assert decoded.vehicle_trim == "EX-V6"
        assert decoded.vehicle_engine == "J30A4"
        assert decoded.vehicle_transmission == "Automatic"
        assert decoded.manufactured_in == "UNITED STATES (USA)"
        assert decoded.msrp is None
        assert decoded.warranties is None
        assert decoded.tires is None

    def test_parse_row_fallbacks(self):
        decoded = parse_vpic_row(
            VIN, _vpic_row(Trim="", Series="LX", EngineModel="", EngineConfiguration="")
        )
        assert decoded.vehicle_trim == "LX"
        assert decoded.vehicle_engine == "6 cyl"

    def test_parse_empty_row(self):
        decoded = parse_vpic_row(VIN, {})
        assert decoded.vin == VIN
        assert decoded.vehicle_make is None


# ---------------------------------------------------------------------------
# decode()
# ---------------------------------------------------------------------------


class TestDecode:
    @pytest.mark.asyncio
    async def test_success(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"Count": 1, "Results": [_vpic_row()]})

        decoded = await _decoder(handler).decode("1hgcm82633a004352")

        assert decoded.vin == VIN
        assert decoded.vehicle_model == "Accord"
        assert seen[0].url.path.endswith(f"/DecodeVinValuesExtended/{VIN}")
        assert seen[0].url.params["format"] == "json"

    @pytest.mark.asyncio
    async def test_empty_results_give_bare_vehicle(self):
        decoder = _decoder(lambda request: httpx.Response(200, json={"Results": []}))
        decoded = await decoder.decode(VIN)
        assert decoded.vin == VIN
        assert decoded.vehicle_year is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["", "   ", "--"])
    async def test_vin_required(self, raw):
        decoder = _decoder(lambda request: pytest.fail("no request expected"))
        with pytest.raises(ValidationFailedError, match="required"):
            await decoder.decode(raw)

    @pytest.mark.asyncio
    async def test_vin_too_short(self):
        decoder = _decoder(lambda request: pytest.fail("no request expected"))
        with pytest.raises(ValidationFailedError, match="too short"):
            await decoder.decode("1HGCM82")

    @pytest.mark.asyncio
    async def test_http_error(self):
        decoder = _decoder(lambda request: httpx.Response(503, text="unavailable"))
        with pytest.raises(VinDecodeError, match="503"):
            await decoder.decode(VIN)

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(VinDecodeError):
            await _decoder(handler).decode(VIN)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        decoder = _decoder(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(VinDecodeError):
            await decoder.decode(VIN)

    @pytest.mark.asyncio
    async def test_non_object_json(self):
        decoder = _decoder(lambda request: httpx.Response(200, json=[1, 2, 3]))
        with pytest.raises(VinDecodeError):
            await decoder.decode(VIN)

    def test_error_status_code(self):
        assert VinDecodeError("x").status_code == 502
