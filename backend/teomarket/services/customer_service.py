# Overview: Customer company profile updates with fiscal validation.

from __future__ import annotations

from typing import Callable

from flask import current_app

from ..extensions import db
from ..enums import AddressType
from ..models import Address, Customer
from ..validation import FieldErrors
from .fiscal_service import (
    FiscalValidationResult, ViesClient,
    normalize_fiscal_id, normalize_iban, is_valid_iban_shape,
)


COMPANY_NAME_PATTERN = r'^[a-zA-Z0-9\s\.,\-\&@"]+$'

FiscalValidator = Callable[[str, str], FiscalValidationResult]


def fiscal_country_code(customer: Customer) -> str:
    """
    Country used for VIES: headquarters address for companies, preferred
    shipping address otherwise, then any address, then RO.
    """
    base = db.session.query(Address).filter(Address.customer_id == customer.id)
    if customer.is_company:
        address = base.filter(Address.address_type == AddressType.HEADQUARTERS.value).first()
    else:
        address = base.filter(
            Address.address_type == AddressType.SHIPPING.value,
            Address.is_preferred.is_(True),
        ).first()

    if address is None:
        address = base.order_by(Address.id.asc()).first()

    if address is not None and address.country is not None and address.country.iso_code_2:
        return address.country.iso_code_2
    return "RO"


def update_company_info(customer: Customer, data: dict, validator: FiscalValidator | None = None) -> Customer:
    """
    Validate and store the customer's company data.

    Raises ValidationError with every failing field; the VIES verdict is
    reported on fiscal_code. Stored values are normalized.
    """
    errs = FieldErrors()

    fiscal_code = errs.required_string(data, "fiscal_code", label="fiscal code")
    reg_number = errs.required_string(data, "reg_number", label="reg number")

    company_name = errs.required_string(data, "company_name", label="company name")
    if company_name is not None and len(company_name) < 3:
        errs.add("company_name", "The company name must be at least 3 characters.")
        company_name = None
    company_name = errs.matches("company_name", company_name, COMPANY_NAME_PATTERN,
                                "The company name format is invalid.")

    bank_name = errs.optional_string(data, "bank_name", label="bank name")

    iban = normalize_iban(data.get("iban"))
    if iban is not None and not is_valid_iban_shape(iban):
        errs.add("iban", "The iban format is invalid.")

    clean_fiscal_code = normalize_fiscal_id(fiscal_code) if fiscal_code else ""
    if fiscal_code is not None and not clean_fiscal_code:
        errs.add("fiscal_code", "The fiscal code field is required.")

    if "fiscal_code" not in errs.errors:
        validate = validator or ViesClient().validate
        country_code = fiscal_country_code(customer)
        result = validate(clean_fiscal_code, country_code)
        if not result.valid:
            errs.add("fiscal_code", result.message or "CUI is invalid or not found in VIES system")

    errs.raise_if_any()

    customer.fiscal_code = clean_fiscal_code
    customer.reg_number = reg_number
    customer.company_name = company_name
    customer.bank_name = bank_name
    customer.iban = iban
    db.session.commit()

    current_app.logger.info("customer.company.updated customer_id=%s", customer.id)
    return customer
