"""Password-locked share tokens.

A token is the URL-safe base64 form of a small JSON envelope::

    {"s": <salt hex>, "iv": <iv hex>, "ct": <base64 ciphertext>}

Single-item tokens (format version 1) carry nothing else, which keeps them
readable by older viewers. Gallery tokens (version 2) add ``"v": 2`` and
``"z": "zlib"``: the bundle text was zlib-compressed before encryption.

The ciphertext is AES-256-CBC with PKCS7 padding under a key derived with
PBKDF2-HMAC-SHA256 from the share password. Version and compression tag are
checked on the plain envelope before any key derivation; past that point every
failure surfaces as the same ``DecryptionFailed``.
"""
import base64
import binascii
import json
import secrets
import zlib
from typing import Any, Dict, Iterable

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import DecryptionFailed, UnsupportedFormatVersion
from .models import COMPRESSION_ZLIB, ShareBundle

PBKDF2_ITERATIONS = 1000
KEY_BYTES = 32
SALT_BYTES = 16
IV_BYTES = 16

SUPPORTED_VERSIONS = (1, 2)
_COMPRESSION_BY_VERSION = {
    1: (None,),
    2: (COMPRESSION_ZLIB,),
}


def _derive_key(password: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_BYTES, salt=salt, iterations=PBKDF2_ITERATIONS)
    return kdf.derive(password.encode("utf-8"))


def _encrypt(data: bytes, password: str, salt: bytes, iv: bytes) -> bytes:
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(_derive_key(password, salt)), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def _decrypt(ciphertext: bytes, password: str, salt: bytes, iv: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(_derive_key(password, salt)), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def canonical_text(bundle: ShareBundle) -> bytes:
    return json.dumps(bundle.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(text: str) -> bytes:
    # legacy links carry standard base64, sometimes with "+" mangled to " "
    cleaned = text.strip().replace(" ", "+").replace("+", "-").replace("/", "_").rstrip("=")
    cleaned += "=" * (-len(cleaned) % 4)
    return base64.urlsafe_b64decode(cleaned.encode("ascii"))


def encode_bundle(bundle: ShareBundle, password: str) -> str:
    if not password or not password.strip():
        raise ValueError("A non-empty password is required to create a share token")
    data = canonical_text(bundle)
    if bundle.compression_tag == COMPRESSION_ZLIB:
        data = zlib.compress(data, 9)
    salt = secrets.token_bytes(SALT_BYTES)
    iv = secrets.token_bytes(IV_BYTES)
    envelope: Dict[str, Any] = {
        "s": salt.hex(),
        "iv": iv.hex(),
        "ct": base64.b64encode(_encrypt(data, password, salt, iv)).decode("ascii"),
    }
    if bundle.format_version != 1:
        envelope["v"] = bundle.format_version
        envelope["z"] = bundle.compression_tag
    return _b64url_encode(json.dumps(envelope, separators=(",", ":")).encode("utf-8"))


def _read_envelope(token: str) -> Dict[str, Any]:
    try:
        envelope = json.loads(_b64url_decode(token).decode("utf-8"))
    except (ValueError, UnicodeError):
        raise DecryptionFailed() from None
    if not isinstance(envelope, dict):
        raise DecryptionFailed()
    return envelope


def _check_version(envelope: Dict[str, Any], supported_versions: Iterable[int]) -> None:
    version = envelope.get("v", 1)
    tag = envelope.get("z")
    if isinstance(version, bool) or not isinstance(version, int):
        raise UnsupportedFormatVersion(version)
    if version not in tuple(supported_versions) or version not in _COMPRESSION_BY_VERSION:
        raise UnsupportedFormatVersion(version)
    if tag not in _COMPRESSION_BY_VERSION[version]:
        raise UnsupportedFormatVersion(f"{version}/{tag}")


def check_format(token: str, supported_versions: Iterable[int] = SUPPORTED_VERSIONS) -> int:
    """Format version of ``token``, read from the plain envelope without a password."""
    envelope = _read_envelope(token)
    _check_version(envelope, supported_versions)
    return envelope.get("v", 1)


def decode_bundle(token: str, password: str, supported_versions: Iterable[int] = SUPPORTED_VERSIONS) -> ShareBundle:
    if not token or not password or not password.strip():
        raise DecryptionFailed()
    envelope = _read_envelope(token)
    _check_version(envelope, supported_versions)
    try:
        salt = bytes.fromhex(envelope["s"])
        iv = bytes.fromhex(envelope["iv"])
        ciphertext = base64.b64decode(envelope["ct"], validate=True)
        data = _decrypt(ciphertext, password, salt, iv)
        if envelope.get("z") == COMPRESSION_ZLIB:
            data = zlib.decompress(data)
        return ShareBundle.from_dict(json.loads(data.decode("utf-8")))
    except (AttributeError, KeyError, TypeError, ValueError, UnicodeError, binascii.Error, zlib.error):
        raise DecryptionFailed() from None
