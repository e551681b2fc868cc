# Overview: Pytest coverage for fiscal id / IBAN normalization, the VIES client and company profile updates.

"""
Company / Fiscal Tests

Verifies:
- Fiscal ids and IBANs are normalized before validation and storage
- VIES outages (HTTP errors, non-200, errorWrappers) read as "temporarily
  unavailable", distinct from an invalid number
- The VIES country comes from the company's headquarters address
- Every failing field is reported at once
"""

import json

import httpx
import pytest

from teomarket.models import Address
from teomarket.services import customer_service, fiscal_service
from teomarket.services.fiscal_service import (
    FiscalValidationResult, ViesClient, VIES_INVALID_MESSAGE, VIES_UNAVAILABLE_MESSAGE,
)
from teomarket.services.session_service import create_session
from teomarket.validation import ValidationError


VIES_URL = "https://vies.test/check-vat-number"


def _vies(status=200, body=None, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(json.loads(request.content))
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body if body is not None else {})
    return ViesClient(url=VIES_URL, timeout=1, client=httpx.Client(transport=httpx.MockTransport(handler)))


class FakeValidator:
    def __init__(self, result=FiscalValidationResult(True)):
        self.result = result
        self.calls = []

    def __call__(self, tax_id, country_code):
        self.calls.append((tax_id, country_code))
        return self.result


def _company_data(**overrides):
    data = {
        "company_name": "Teo Market SRL",
        "fiscal_code": "ro 123-456 78",
        "reg_number": "J40/123/2020",
        "bank_name": "Banca Transilvania",
        "iban": "ro49 aaaa 1b31 0075 9384 0000",
    }
    data.update(overrides)
    return data


class TestNormalization:

    @pytest.mark.parametrize("raw,expected", [
        ("ro 123-456 78", "RO12345678"),
        (" 12345678 ", "12345678"),
        (None, ""),
        ("--", ""),
    ])
    def test_fiscal_id(self, raw, expected):
        assert fiscal_service.normalize_fiscal_id(raw) == expected

    def test_iban(self):
        assert fiscal_service.normalize_iban(" ro49 aaaa 1b31 0075 9384 0000 ") == "RO49AAAA1B31007593840000"
        assert fiscal_service.normalize_iban("   ") is None
        assert fiscal_service.normalize_iban(None) is None

    @pytest.mark.parametrize("iban,valid", [
        ("RO49AAAA1B31007593840000", True),
        ("DE89370400440532013000", True),
        ("RO49", False),
        ("4949AAAA1B31007593840000", False),
        ("RO49AAAA1B31007593840000" + "1" * 11, False),
        ("", False),
    ])
    def test_iban_shape(self, iban, valid):
        assert fiscal_service.is_valid_iban_shape(iban) is valid


class TestViesClient:

    def test_valid_number(self, app):
        seen = []
        result = _vies(body={"valid": True}, seen=seen).validate("RO12345678", "ro")

        assert result.valid is True
        assert result.to_dict() == {"valid": True}
        assert seen == [{"countryCode": "RO", "vatNumber": "12345678"}]

    def test_alternative_valid_key(self, app):
        assert _vies(body={"isValid": True}).validate("12345678").valid is True

    def test_invalid_number(self, app):
        result = _vies(body={"valid": False}).validate("12345678")
        assert result.valid is False
        assert result.message == VIES_INVALID_MESSAGE

    @pytest.mark.parametrize("status,body", [
        (500, {}),
        (200, {"errorWrappers": [{"error": "MS_UNAVAILABLE"}]}),
        (200, {"actionSucceed": False}),
        (200, "<html>maintenance</html>"),
    ])
    def test_service_problems_are_unavailable(self, app, status, body):
        result = _vies(status=status, body=body).validate("12345678")
        assert result.valid is False
        assert result.message == VIES_UNAVAILABLE_MESSAGE

    def test_connection_error_is_unavailable(self, app):
        def handler(request):
            raise httpx.ConnectError("timed out", request=request)
        client = ViesClient(url=VIES_URL, client=httpx.Client(transport=httpx.MockTransport(handler)))

        assert client.validate("12345678").message == VIES_UNAVAILABLE_MESSAGE

    def test_prefix_only_is_invalid_without_a_request(self, app):
        seen = []
        result = _vies(body={"valid": True}, seen=seen).validate("RO", "RO")
        assert result.message == VIES_INVALID_MESSAGE
        assert seen == []


class TestUpdateCompanyInfo:

    def test_stores_normalized_values(self, db_session, company_customer):
        validator = FakeValidator()
        customer = customer_service.update_company_info(company_customer, _company_data(), validator)

        assert customer.fiscal_code == "RO12345678"
        assert customer.iban == "RO49AAAA1B31007593840000"
        assert customer.company_name == "Teo Market SRL"
        assert customer.bank_name == "Banca Transilvania"
        assert validator.calls == [("RO12345678", "RO")]

    def test_vies_verdict_is_reported_on_fiscal_code(self, db_session, company_customer):
        validator = FakeValidator(FiscalValidationResult(False, VIES_UNAVAILABLE_MESSAGE))
        with pytest.raises(ValidationError) as exc:
            customer_service.update_company_info(company_customer, _company_data(), validator)

        assert exc.value.errors == {"fiscal_code": VIES_UNAVAILABLE_MESSAGE}
        db_session.refresh(company_customer)
        assert company_customer.fiscal_code == "RO12345678"
        assert company_customer.company_name == "Acme SRL"

    def test_invalid_without_message_gets_default(self, db_session, company_customer):
        validator = FakeValidator(FiscalValidationResult(False))
        with pytest.raises(ValidationError) as exc:
            customer_service.update_company_info(company_customer, _company_data(), validator)
        assert exc.value.errors["fiscal_code"] == "CUI is invalid or not found in VIES system"

    def test_all_field_errors_together(self, db_session, company_customer):
        validator = FakeValidator()
        with pytest.raises(ValidationError) as exc:
            customer_service.update_company_info(
                company_customer,
                _company_data(company_name="AB", iban="RO49", reg_number=""),
                validator,
            )

        assert set(exc.value.errors) == {"company_name", "iban", "reg_number"}
        assert exc.value.errors["company_name"] == "The company name must be at least 3 characters."
        assert exc.value.errors["iban"] == "The iban format is invalid."

    def test_company_name_characters(self, db_session, company_customer):
        with pytest.raises(ValidationError) as exc:
            customer_service.update_company_info(
                company_customer, _company_data(company_name="Acme <script>"), FakeValidator()
            )
        assert exc.value.errors["company_name"] == "The company name format is invalid."

    def test_fiscal_code_of_only_punctuation_skips_vies(self, db_session, company_customer):
        validator = FakeValidator()
        with pytest.raises(ValidationError) as exc:
            customer_service.update_company_info(company_customer, _company_data(fiscal_code="--"), validator)
        assert "fiscal_code" in exc.value.errors
        assert validator.calls == []

    def test_optional_bank_fields_can_be_cleared(self, db_session, company_customer):
        customer = customer_service.update_company_info(
            company_customer, _company_data(bank_name="", iban=""), FakeValidator()
        )
        assert customer.bank_name is None
        assert customer.iban is None

    def test_headquarters_country_is_used_for_vies(self, db_session, company_customer, romania, bulgaria):
        db_session.add(Address(
            customer_id=company_customer.id,
            address_type="headquarters",
            first_name="Ion", last_name="Acme", phone="0211 234 567",
            address_line_1="Bd. Vitosha 1", city="Sofia", country_id=bulgaria.id, zip_code="1000",
        ))
        db_session.commit()

        validator = FakeValidator()
        customer_service.update_company_info(company_customer, _company_data(fiscal_code="BG123456789"), validator)
        assert validator.calls == [("BG123456789", "BG")]

    def test_individual_uses_preferred_shipping_country(self, db_session, customer, address_payload, bulgaria):
        from teomarket.services import address_service
        address_service.create_address(customer, address_payload())
        address_service.create_address(customer, address_payload(country_id=bulgaria.id, is_preferred=True))

        assert customer_service.fiscal_country_code(customer) == "BG"


class TestCompanyRoute:

    @pytest.fixture
    def company_headers(self, db_session, company_customer):
        _, token = create_session(company_customer.users[0].id)
        return {'Authorization': f'Bearer {token}', 'Accept': 'application/json'}

    def test_update_success(self, client, company_headers, monkeypatch):
        monkeypatch.setattr(ViesClient, "validate", lambda self, tax_id, country_code="RO": FiscalValidationResult(True))

        response = client.put('/api/account/company', json=_company_data(), headers=company_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["fiscal_code"] == "RO12345678"
        assert body["iban"] == "RO49AAAA1B31007593840000"

        company = client.get('/api/account/company', headers=company_headers).get_json()["company"]
        assert company["company_name"] == "Teo Market SRL"

    def test_vies_unavailable_is_422(self, client, company_headers, monkeypatch):
        monkeypatch.setattr(
            ViesClient, "validate",
            lambda self, tax_id, country_code="RO": FiscalValidationResult(False, VIES_UNAVAILABLE_MESSAGE),
        )

        response = client.put('/api/account/company', json=_company_data(), headers=company_headers)
        assert response.status_code == 422
        assert response.get_json()["message"] == VIES_UNAVAILABLE_MESSAGE

    def test_form_post_redirects_to_company_page(self, client, company_customer, monkeypatch):
        monkeypatch.setattr(ViesClient, "validate", lambda self, tax_id, country_code="RO": FiscalValidationResult(True))
        _, token = create_session(company_customer.users[0].id)

        response = client.put('/api/account/company', data=_company_data(),
                              headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/settings/company")
