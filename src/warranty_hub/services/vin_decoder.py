"""VIN decoding service wrapping the NHTSA vPIC API.

Async HTTP via httpx. Only the first result row is used; empty values,
"0" and "Not Applicable" are treated as missing.
"""

from __future__ import annotations

import logging
import re

import httpx

from warranty_hub.domain.errors import ValidationFailedError, VinDecodeError
from warranty_hub.domain.schemas import DecodedVehicle

logger = logging.getLogger(__name__)

MIN_VIN_LENGTH = 10

_NON_VIN = re.compile(r"[^A-Z0-9]")


def clean_vin(raw: str | None) -> str:
    return _NON_VIN.sub("", (raw or "").strip().upper())


def pick_first(*values) -> str | None:
    """First value that is non-empty, not "0" and not "Not Applicable"."""
    for value in values:
        if not value:
            continue
        text = str(value).strip()
        if text and text != "0" and text.upper() != "NOT APPLICABLE":
            return text
    return None


def _suffixed(value, suffix: str) -> str | None:
    return f"{value}{suffix}" if value else None


def parse_vpic_row(vin: str, row: dict) -> DecodedVehicle:
    """Map one vPIC `DecodeVinValuesExtended` result row to a DecodedVehicle."""
    return DecodedVehicle(
        vin=vin,
        vehicle_year=pick_first(row.get("ModelYear")),
        vehicle_make=pick_first(row.get("Make")),
        vehicle_model=pick_first(row.get("Model")),
        vehicle_trim=pick_first(row.get("Trim"), row.get("Series")),
        vehicle_body_class=pick_first(row.get("BodyClass")),
        vehicle_engine=pick_first(
            row.get("EngineModel"),
            row.get("EngineConfiguration"),
            _suffixed(row.get("EngineCylinders"), " cyl"),
            _suffixed(row.get("DisplacementL"), "L"),
        ),
        vehicle_transmission=pick_first(
            row.get("TransmissionStyle"), row.get("TransmissionSpeeds")
        ),
        vehicle_drive_type=pick_first(row.get("DriveType"), row.get("DriveTypePrimary")),
        vehicle_brakes=pick_first(row.get("BrakeSystemType")),
        manufactured_in=pick_first(row.get("PlantCountry")),
        tires=pick_first(
            row.get("TireSizeFront"),
            row.get("TireSizeRear"),
            row.get("TireTypeFront"),
            row.get("TireTypeRear"),
        ),
        msrp=pick_first(row.get("MSRP"), row.get("BasePrice")),
        warranties=pick_first(row.get("Warranty")),
    )


class VinDecoder:
    """Async VIN decoder backed by the NHTSA vPIC API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def decode(self, raw_vin: str) -> DecodedVehicle:
        vin = clean_vin(raw_vin)
        if not vin:
            raise ValidationFailedError("VIN is required")
        if len(vin) < MIN_VIN_LENGTH:
            raise ValidationFailedError("VIN is too short")

        data = await self._fetch(vin)
        results = data.get("Results")
        row = results[0] if isinstance(results, list) and results else {}
        if not isinstance(row, dict):
            row = {}
        return parse_vpic_row(vin, row)

    async def _fetch(self, vin: str) -> dict:
        url = f"{self._base_url}/{vin}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(url, params={"format": "json"})
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("VIN decode HTTP error for %s: %s", vin, exc)
            raise VinDecodeError(f"VIN decode failed ({exc.response.status_code})") from exc
        except httpx.RequestError as exc:
            logger.warning("VIN decode request failed for %s: %s", vin, exc)
            raise VinDecodeError("VIN decode request failed") from exc
        except ValueError as exc:
            logger.warning("VIN decode returned invalid JSON for %s: %s", vin, exc)
            raise VinDecodeError("VIN decode returned an invalid response") from exc

        if not isinstance(data, dict):
            raise VinDecodeError("VIN decode returned an invalid response")
        return data
