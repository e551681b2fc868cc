# Overview: Human-friendly order and return numbers derived from row ids.

"""
Order / Return Codes

Codes use a 24-letter alphabet without vowels or look-alike characters
(0/O, 1/I/L, B/8, Z/2) and are chunked in groups of three:

    order:  X97-M4P-K3R      (9 symbols)
    return: RET-A9X-B22      (6 symbols)

A row id is mapped through a salted affine permutation of [0, 24**n) and
written in base 24. The permutation is a bijection, so distinct ids always
yield distinct codes and a code decodes back to its id.
"""

from __future__ import annotations

import hashlib
from math import gcd

from flask import current_app, has_app_context

SAFE_ALPHABET = "34679CDEFGHJKMNPQRTUVWXY"
BASE = len(SAFE_ALPHABET)

ORDER_CODE_LENGTH = 9
RETURN_CODE_LENGTH = 6
RETURN_PREFIX = "RET"


class CodeGenerator:
    def __init__(self, salt: str, length: int, prefix: str | None = None):
        self.length = length
        self.prefix = prefix
        self.modulus = BASE ** length
        digest = hashlib.sha256(salt.encode("utf-8")).digest()
        multiplier = int.from_bytes(digest[:16], "big") % self.modulus
        # Multiplier must be a unit mod 24**n (not divisible by 2 or 3)
        while gcd(multiplier, self.modulus) != 1:
            multiplier += 1
        self.multiplier = multiplier
        self.offset = int.from_bytes(digest[16:], "big") % self.modulus
        self.inverse = pow(self.multiplier, -1, self.modulus)

    def generate_from_id(self, row_id: int) -> str:
        if row_id < 0 or row_id >= self.modulus:
            raise ValueError(f"id {row_id} is outside the code space")

        value = (row_id * self.multiplier + self.offset) % self.modulus
        symbols = []
        for _ in range(self.length):
            value, digit = divmod(value, BASE)
            symbols.append(SAFE_ALPHABET[digit])
        raw = "".join(reversed(symbols))

        chunks = [raw[i:i + 3] for i in range(0, self.length, 3)]
        if self.prefix:
            chunks.insert(0, self.prefix)
        return "-".join(chunks)

    def decode_to_id(self, code: str) -> int | None:
        raw = (code or "").strip().upper()
        if self.prefix and raw.startswith(self.prefix + "-"):
            raw = raw[len(self.prefix) + 1:]
        raw = raw.replace("-", "")
        if len(raw) != self.length:
            return None

        value = 0
        for char in raw:
            digit = SAFE_ALPHABET.find(char)
            if digit < 0:
                return None
            value = value * BASE + digit
        return ((value - self.offset) * self.inverse) % self.modulus


def _salt() -> str:
    if has_app_context():
        return current_app.config.get("CODE_SALT", "default-salt-change-in-production")
    return "default-salt-change-in-production"


def order_codes() -> CodeGenerator:
    return CodeGenerator(_salt(), ORDER_CODE_LENGTH)


def return_codes() -> CodeGenerator:
    return CodeGenerator(_salt() + "-returns", RETURN_CODE_LENGTH, prefix=RETURN_PREFIX)


def order_number_for(order_id: int) -> str:
    return order_codes().generate_from_id(order_id)


def return_number_for(return_id: int) -> str:
    return return_codes().generate_from_id(return_id)
