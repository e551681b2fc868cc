# Overview: Error taxonomy and field-level input rules shared by services and routes.

from __future__ import annotations

import re
from typing import Any


class ValidationError(ValueError):
    """
    422-level input problem carrying a field-keyed error map.

    str(err) is the first message, which the UI surfaces as a toast.
    """

    def __init__(self, errors: dict[str, str] | str, field: str = "error"):
        if isinstance(errors, str):
            errors = {field: errors}
        self.errors = dict(errors)
        super().__init__(next(iter(self.errors.values()), "Invalid input"))


class NotFoundError(LookupError):
    """Referenced record does not exist or is not owned by the caller (404)."""


class ConfigurationError(RuntimeError):
    """Missing reference data (rates, countries, VAT). Aborts the operation."""


class FieldErrors:
    """
    Collects per-field errors so a form reports every problem at once.

        errs = FieldErrors()
        name = errs.required_string(data, "first_name", max_length=255)
        errs.raise_if_any()
    """

    def __init__(self):
        self.errors: dict[str, str] = {}

    def add(self, field: str, message: str) -> None:
        self.errors.setdefault(field, message)

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)

    def required_string(self, data: dict, field: str, *, max_length: int = 255, label: str | None = None) -> str | None:
        label = label or field.replace("_", " ")
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            self.add(field, f"The {label} field is required.")
            return None
        return self._check_length(field, str(value).strip(), max_length, label)

    def optional_string(self, data: dict, field: str, *, max_length: int = 255, label: str | None = None) -> str | None:
        label = label or field.replace("_", " ")
        value = data.get(field)
        if value is None:
            return None
        value = str(value).strip()
        if not value:
            return None
        return self._check_length(field, value, max_length, label)

    def choice(self, data: dict, field: str, choices, *, default: str | None = None, required: bool = True) -> str | None:
        value = data.get(field)
        if value is None or value == "":
            if default is not None:
                return default
            if required:
                self.add(field, f"The {field.replace('_', ' ')} field is required.")
            return None
        if value not in choices:
            self.add(field, f"The selected {field.replace('_', ' ')} is invalid.")
            return None
        return value

    def integer(self, data: dict, field: str, *, min_value: int | None = None, max_value: int | None = None,
                required: bool = True) -> int | None:
        value = data.get(field)
        if value is None or value == "":
            if required:
                self.add(field, f"The {field.replace('_', ' ')} field is required.")
            return None
        try:
            number = parse_int(value)
        except ValueError:
            self.add(field, f"The {field.replace('_', ' ')} must be an integer.")
            return None
        if min_value is not None and number < min_value:
            self.add(field, f"The {field.replace('_', ' ')} must be at least {min_value}.")
            return None
        if max_value is not None and number > max_value:
            self.add(field, f"The {field.replace('_', ' ')} must not be greater than {max_value}.")
            return None
        return number

    def matches(self, field: str, value: str | None, pattern: str, message: str) -> str | None:
        if value is not None and not re.match(pattern, value):
            self.add(field, message)
            return None
        return value

    def _check_length(self, field: str, value: str, max_length: int, label: str) -> str | None:
        if len(value) > max_length:
            self.add(field, f"The {label} must not be greater than {max_length} characters.")
            return None
        return value


def parse_int(value: Any) -> int:
    """Strict integer parsing: rejects bools, floats with fractions and decimal strings."""
    if isinstance(value, bool):
        raise ValueError("not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValueError("not an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not re.fullmatch(r"[-+]?\d+", stripped):
            raise ValueError("not an integer")
        return int(stripped)
    raise ValueError("not an integer")


def parse_bool(value: Any) -> bool:
    """Form-friendly boolean: accepts true/false, 1/0, on/off, yes/no."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "on", "yes"}:
            return True
        if normalized in {"0", "false", "off", "no", ""}:
            return False
    raise ValueError("not a boolean")
