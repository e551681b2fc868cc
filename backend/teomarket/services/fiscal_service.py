# Overview: Fiscal id / IBAN normalization and the VIES VAT-number validator.

from __future__ import annotations

import re
from dataclasses import dataclass

import httpx
from flask import current_app


IBAN_PATTERN = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]{4,30}$")
IBAN_MAX_LENGTH = 34

VIES_UNAVAILABLE_MESSAGE = "VIES service is temporarily unavailable. Please try again later."
VIES_INVALID_MESSAGE = "VAT number is not valid in VIES system"


@dataclass(frozen=True)
class FiscalValidationResult:
    valid: bool
    message: str | None = None

    def to_dict(self) -> dict:
        data = {"valid": self.valid}
        if self.message:
            data["message"] = self.message
        return data


def normalize_fiscal_id(value: str | None) -> str:
    """Strip everything but letters and digits, uppercase. 'ro 123-45' -> 'RO12345'."""
    if value is None:
        return ""
    return re.sub(r"[^A-Z0-9]", "", str(value).strip().upper())


def normalize_iban(value: str | None) -> str | None:
    if value is None:
        return None
    iban = str(value).replace(" ", "").strip().upper()
    return iban or None


def is_valid_iban_shape(iban: str | None) -> bool:
    if not iban or len(iban) > IBAN_MAX_LENGTH:
        return False
    return IBAN_PATTERN.match(iban) is not None


class ViesClient:
    """
    VAT number check against the EU VIES REST API.

    Network and service failures are reported as an invalid result with a
    "temporarily unavailable" message; the call is never retried.
    """

    def __init__(self, url: str | None = None, timeout: float | None = None,
                 client: httpx.Client | None = None):
        self.url = url or current_app.config["VIES_API_URL"]
        self.timeout = timeout if timeout is not None else current_app.config.get("EXTERNAL_HTTP_TIMEOUT", 10)
        self.client = client

    def _post(self, payload: dict) -> httpx.Response:
        if self.client is not None:
            return self.client.post(self.url, json=payload)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.url, json=payload)

    def validate(self, tax_id: str, country_code: str = "RO") -> FiscalValidationResult:
        country_code = (country_code or "RO").upper()
        vat_number = normalize_fiscal_id(tax_id)
        if vat_number.startswith(country_code):
            vat_number = vat_number[len(country_code):]

        if not vat_number:
            return FiscalValidationResult(False, VIES_INVALID_MESSAGE)

        try:
            response = self._post({"countryCode": country_code, "vatNumber": vat_number})
        except httpx.HTTPError as e:
            current_app.logger.warning("vies.unavailable country=%s error=%s", country_code, e)
            return FiscalValidationResult(False, VIES_UNAVAILABLE_MESSAGE)

        if response.status_code != 200:
            current_app.logger.warning("vies.unavailable country=%s status=%s", country_code, response.status_code)
            return FiscalValidationResult(False, VIES_UNAVAILABLE_MESSAGE)

        try:
            data = response.json()
        except ValueError:
            return FiscalValidationResult(False, VIES_UNAVAILABLE_MESSAGE)

        # Member-state outages come back as 200 with errorWrappers
        if data.get("errorWrappers") or data.get("actionSucceed") is False:
            current_app.logger.warning("vies.unavailable country=%s body=%s", country_code, data)
            return FiscalValidationResult(False, VIES_UNAVAILABLE_MESSAGE)

        if data.get("valid") is True or data.get("isValid") is True:
            return FiscalValidationResult(True)
        return FiscalValidationResult(False, VIES_INVALID_MESSAGE)


def validate_fiscal_id(tax_id: str, country_code: str = "RO", client: httpx.Client | None = None) -> FiscalValidationResult:
    return ViesClient(client=client).validate(tax_id, country_code)
