#!/usr/bin/env python3
"""
Mock Market Maker - Request Signer
Canonical query-string encoding and Ed25519 request signatures.

Every signed request carries a millisecond ``timestamp`` chosen at signing
time, so identical business parameters never produce the same payload twice.
"""

import base64
import binascii
import time
from typing import Callable, Iterable, Mapping, Tuple
from urllib.parse import quote, urlencode

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from .protocol import ParamValue, SignerError

SEED_LENGTH = 32
# encodeURIComponent leaves these unescaped besides letters, digits and "-_."
URI_COMPONENT_SAFE = "!~*'()"
SELF_TEST_MESSAGE = "test"


def _render(value: ParamValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def canonical_items(params: Mapping[str, ParamValue]) -> Iterable[Tuple[str, str]]:
    return sorted((key, _render(value)) for key, value in params.items() if value is not None)


def canonicalize(params: Mapping[str, ParamValue]) -> str:
    """Sorted, percent-encoded ``key=value`` pairs joined by ``&``.

    Entries whose value is ``None`` are dropped, so the result does not depend
    on which optional fields a caller happened to include or their order.
    """
    return urlencode(list(canonical_items(params)), safe=URI_COMPONENT_SAFE, quote_via=quote)


def now_ms() -> int:
    return int(time.time() * 1000)


class RequestSigner:
    def __init__(self, private_key_hex: str, clock: Callable[[], int] = now_ms):
        seed = self._parse_seed(private_key_hex)
        # Derived once here; read-only for the rest of the process.
        self._private_key = Ed25519PrivateKey.from_private_bytes(seed)
        self._public_key = self._private_key.public_key()
        self._clock = clock

    @staticmethod
    def _parse_seed(private_key_hex: str) -> bytes:
        text = (private_key_hex or "").strip()
        if len(text) != SEED_LENGTH * 2:
            raise SignerError(f"PRIVATE_KEY_HEX must be {SEED_LENGTH * 2} hex chars, got {len(text)}")
        try:
            return binascii.unhexlify(text)
        except (binascii.Error, ValueError) as exc:
            raise SignerError(f"PRIVATE_KEY_HEX is not valid hex: {exc}") from exc

    @property
    def public_key_hex(self) -> str:
        raw = self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return raw.hex()

    def sign(self, message: str) -> str:
        signature = self._private_key.sign(message.encode("utf-8"))
        return base64.b64encode(signature).decode("ascii")

    def verify(self, message: str, signature: str) -> bool:
        try:
            self._public_key.verify(base64.b64decode(signature), message.encode("utf-8"))
        except (InvalidSignature, binascii.Error, ValueError):
            return False
        return True

    def self_test(self) -> None:
        """Sign and verify a probe message; raises SignerError on failure."""
        try:
            signature = self.sign(SELF_TEST_MESSAGE)
        except Exception as exc:
            raise SignerError(f"Signing failed: {exc}") from exc
        if not self.verify(SELF_TEST_MESSAGE, signature):
            raise SignerError("Signing self-test produced an unverifiable signature")

    def build_signed_payload(self, params: Mapping[str, ParamValue]) -> str:
        """Canonical string with a fresh timestamp and a trailing signature field.

        Must be called per request; the result is never reused.
        """
        signed = dict(params)
        signed["timestamp"] = self._clock()
        query_string = canonicalize(signed)
        signature = self.sign(query_string)
        return f"{query_string}&signature={quote(signature, safe=URI_COMPONENT_SAFE)}"
