"""
Per-user encryption of journal text at rest.

Each user gets their own AES-256-GCM key, derived with HKDF from the server's
master key and the user id. The user id is also bound as associated data, so a
ciphertext copied onto another user's row fails authentication.

Stored format: "v1:" + urlsafe-base64(nonce || ciphertext || tag)

Rows written before encryption was introduced hold plain text. Reads go
through decrypt_or_raw(), which hands back the stored value untouched when it
cannot be decrypted, so those rows keep working without a backfill.
"""

import base64
import binascii
import logging
import secrets
from dataclasses import dataclass
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from security.errors import DecryptionError

log = logging.getLogger(__name__)

PREFIX = "v1:"
NONCE_SIZE = 12
KEY_SIZE = 32
_KDF_SALT = b"journal-by-text/content/v1"


@dataclass(frozen=True)
class Decrypted:
    value: str
    fell_back = False


@dataclass(frozen=True)
class FellBackToRaw:
    value: str
    reason: str
    fell_back = True


DecryptResult = Union[Decrypted, FellBackToRaw]


class ContentCipher:
    def __init__(self, master_key: Union[str, bytes]):
        if not master_key:
            raise ValueError("master key is required")
        if isinstance(master_key, str):
            master_key = master_key.encode("utf-8")
        self._master_key = master_key

    def _derive_key(self, user_id) -> bytes:
        if user_id is None or str(user_id) == "":
            raise ValueError("user id is required")
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=_KDF_SALT,
            info=f"journal-content:{user_id}".encode("utf-8"),
        )
        return hkdf.derive(self._master_key)

    @staticmethod
    def _aad(user_id) -> bytes:
        return str(user_id).encode("utf-8")

    def encrypt(self, plaintext: str, user_id) -> str:
        if not isinstance(plaintext, str):
            raise TypeError("plaintext must be a string")
        nonce = secrets.token_bytes(NONCE_SIZE)
        sealed = AESGCM(self._derive_key(user_id)).encrypt(
            nonce, plaintext.encode("utf-8"), self._aad(user_id)
        )
        return PREFIX + base64.urlsafe_b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, ciphertext: str, user_id) -> str:
        if not isinstance(ciphertext, str) or not ciphertext.startswith(PREFIX):
            raise DecryptionError("value is not in the encrypted format")

        try:
            blob = base64.urlsafe_b64decode(ciphertext[len(PREFIX):].encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError) as exc:
            raise DecryptionError("payload is not valid base64") from exc

        if len(blob) <= NONCE_SIZE:
            raise DecryptionError("payload too short")

        nonce, sealed = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
        try:
            plain = AESGCM(self._derive_key(user_id)).decrypt(nonce, sealed, self._aad(user_id))
        except InvalidTag as exc:
            raise DecryptionError("authentication failed") from exc

        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("plaintext is not utf-8") from exc

    def decrypt_or_raw(self, value: Optional[str], user_id) -> DecryptResult:
        """Never raises for bad data: undecryptable values come back as-is."""
        if value is None:
            return FellBackToRaw("", "missing value")
        try:
            return Decrypted(self.decrypt(value, user_id))
        except DecryptionError as exc:
            log.warning("Decryption fell back to raw value for user %s: %s", user_id, exc)
            return FellBackToRaw(value, str(exc))


def cipher_from_config(config) -> ContentCipher:
    return ContentCipher(config.get("CONTENT_ENCRYPTION_KEY") or config["SECRET_KEY"])
