"""
Encryption of bot tokens at rest.

Tokens are sealed with AES-256-GCM. The stored form is a lowercase hex
envelope: nonce (16 bytes) + auth tag (16 bytes) + ciphertext.

The key comes from the ENCRYPTION_KEY setting, which may be:
- 64 hex characters: used directly as the 32-byte key
- 44 base64 characters: decoded directly when it yields 32 bytes. A 32-byte
  key encodes with a single "=" pad; a "==" pad means 31 bytes, so such a
  value is treated as a passphrase
- anything else: treated as a passphrase and stretched with scrypt
"""

import base64
import binascii
import os
import re
from dataclasses import dataclass
from functools import lru_cache

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from control_center.config import settings

logger = structlog.get_logger()

KEY_SIZE = 32
NONCE_SIZE = 16
TAG_SIZE = 16
HEADER_SIZE = NONCE_SIZE + TAG_SIZE

# Header plus at least one byte of ciphertext, in hex characters
MIN_ENVELOPE_HEX_LENGTH = (HEADER_SIZE + 1) * 2

# Shared across installations; existing envelopes depend on it
SCRYPT_SALT = b"salt"
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

DEVELOPMENT_PASSPHRASE = "development-key-do-not-use-in-production"

_HEX_KEY_RE = re.compile(r"[0-9a-fA-F]{64}")
_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")
_ENVELOPE_RE = re.compile(r"[0-9a-f]{%d,}" % MIN_ENVELOPE_HEX_LENGTH, re.IGNORECASE)


class TokenCryptoError(Exception):
    """Base class for token encryption failures."""


class MalformedEnvelopeError(TokenCryptoError):
    """The stored value is not hex, or too short to hold a nonce and tag."""


class IntegrityError(TokenCryptoError):
    """Tag verification failed: tampered data or the wrong key."""


class EncodingError(IntegrityError):
    """Decrypted bytes are not valid UTF-8."""


@dataclass(frozen=True)
class Envelope:
    nonce: bytes
    tag: bytes
    ciphertext: bytes


def pack_envelope(nonce: bytes, tag: bytes, ciphertext: bytes) -> str:
    """Serialize envelope parts to a lowercase hex string."""
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"Nonce must be {NONCE_SIZE} bytes")
    if len(tag) != TAG_SIZE:
        raise ValueError(f"Tag must be {TAG_SIZE} bytes")
    return (nonce + tag + ciphertext).hex()


def unpack_envelope(text: str) -> Envelope:
    """
    Split a hex envelope into nonce, tag and ciphertext.

    Raises MalformedEnvelopeError before any cipher work is attempted.
    """
    if not isinstance(text, str) or not _HEX_RE.fullmatch(text):
        raise MalformedEnvelopeError("Envelope is not a valid hex string")
    raw = bytes.fromhex(text)

    if len(raw) < HEADER_SIZE:
        raise MalformedEnvelopeError(
            f"Envelope must be at least {HEADER_SIZE} bytes, got {len(raw)}"
        )

    return Envelope(
        nonce=raw[:NONCE_SIZE],
        tag=raw[NONCE_SIZE:HEADER_SIZE],
        ciphertext=raw[HEADER_SIZE:],
    )


def looks_encrypted(text: str) -> bool:
    """
    Guess whether a value is already an envelope.

    True for a hex string of at least 66 characters. This is a heuristic:
    a long hex token issued by another system is misclassified as encrypted.
    """
    if not isinstance(text, str):
        return False
    return _ENVELOPE_RE.fullmatch(text) is not None


def _decode_hex_key(secret: str) -> bytes | None:
    if len(secret) != 64 or not _HEX_KEY_RE.fullmatch(secret):
        return None
    return bytes.fromhex(secret)


def _decode_base64_key(secret: str) -> bytes | None:
    if len(secret) != 44 or not secret.endswith("="):
        return None
    try:
        key = base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError):
        return None
    if len(key) != KEY_SIZE:
        return None
    return key


def _stretch_passphrase(passphrase: str) -> bytes:
    kdf = Scrypt(salt=SCRYPT_SALT, length=KEY_SIZE, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(passphrase.encode("utf-8"))


@lru_cache(maxsize=16)
def _derive_from_secret(secret: str) -> bytes:
    key = _decode_hex_key(secret)
    if key is not None:
        return key

    key = _decode_base64_key(secret)
    if key is not None:
        return key

    return _stretch_passphrase(secret)


def derive_key(secret: str | None) -> bytes:
    """
    Turn the configured secret into a 32-byte AES key.

    A missing secret falls back to a development passphrase and logs a
    warning; that fallback must never be relied on in production.
    """
    if not secret:
        logger.warning(
            "encryption_key_not_configured",
            message="ENCRYPTION_KEY is not set; using the insecure development key",
        )
        secret = DEVELOPMENT_PASSPHRASE
    return _derive_from_secret(secret)


class TokenCipher:
    """AES-256-GCM cipher for bot tokens, bound to one configured secret."""

    def __init__(self, secret: str | None):
        self._aesgcm = AESGCM(derive_key(secret))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token and return its hex envelope. Never deterministic."""
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        # cryptography appends the tag to the ciphertext
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return pack_envelope(nonce, tag, ciphertext)

    def decrypt(self, envelope: str) -> str:
        """
        Recover the token from a hex envelope.

        Raises:
            MalformedEnvelopeError: not hex, or shorter than the 32-byte header
            IntegrityError: tag verification failed
            EncodingError: plaintext is not UTF-8
        """
        parts = unpack_envelope(envelope)
        try:
            data = self._aesgcm.decrypt(parts.nonce, parts.ciphertext + parts.tag, None)
        except InvalidTag as e:
            raise IntegrityError(
                "Token failed authentication; it was tampered with or encrypted under another key"
            ) from e

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError("Decrypted token is not valid UTF-8") from e


@lru_cache(maxsize=1)
def _cipher_for(secret: str | None) -> TokenCipher:
    return TokenCipher(secret)


def get_token_cipher() -> TokenCipher:
    """Dependency returning the cipher for the configured ENCRYPTION_KEY."""
    return _cipher_for(settings.encryption_key)
