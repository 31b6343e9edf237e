"""Symmetric encryption of index request payloads.

Uses AES in CFB mode with a random IV prepended to the ciphertext. The result
is URL-safe base64 encoded so it can travel as a plain request body. The
search service holds the same pre-shared key and reverses the process with
``decrypt_string``.
"""

import base64
import binascii
import secrets

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..exceptions import EncryptionError

VALID_KEY_LENGTHS = (16, 24, 32)  # AES-128, AES-192, AES-256
IV_LENGTH = 16  # AES block size


def _validate_key(key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)):
        raise EncryptionError("Encryption key must be bytes")
    if len(key) not in VALID_KEY_LENGTHS:
        raise EncryptionError(
            "Invalid encryption key length",
            f"got {len(key)} bytes, expected one of {VALID_KEY_LENGTHS}",
        )


def encrypt_string(key: bytes, plaintext: str) -> str:
    """Encrypt a string with the pre-shared key.

    Args:
        key: AES key (16, 24 or 32 bytes)
        plaintext: Text to encrypt

    Returns:
        str: URL-safe base64 of IV + ciphertext

    Raises:
        EncryptionError: If the key is invalid or encryption fails
    """
    _validate_key(key)
    try:
        iv = secrets.token_bytes(IV_LENGTH)
        encryptor = Cipher(algorithms.AES(bytes(key)), modes.CFB(iv)).encryptor()
        ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
        return base64.urlsafe_b64encode(iv + ciphertext).decode("ascii")
    except Exception as e:
        raise EncryptionError("Failed to encrypt payload", str(e))


def decrypt_string(key: bytes, token: str) -> str:
    """Decrypt a token produced by ``encrypt_string``.

    Raises:
        EncryptionError: If the key is invalid or the token is malformed
    """
    _validate_key(key)
    try:
        raw = base64.urlsafe_b64decode(token.encode("ascii"))
    except (binascii.Error, ValueError, UnicodeEncodeError) as e:
        raise EncryptionError("Ciphertext is not valid base64", str(e))

    if len(raw) < IV_LENGTH:
        raise EncryptionError("Ciphertext too short")

    iv, ciphertext = raw[:IV_LENGTH], raw[IV_LENGTH:]
    try:
        decryptor = Cipher(algorithms.AES(bytes(key)), modes.CFB(iv)).decryptor()
        plaintext = decryptor.update(ciphertext) + decryptor.finalize()
        return plaintext.decode("utf-8")
    except Exception as e:
        raise EncryptionError("Failed to decrypt payload", str(e))


class PayloadCipher:
    """Encrypts payloads with a process-wide key.

    The key is validated once and never mutated afterwards, so a single
    instance can be shared across dispatch threads without locking.
    """

    def __init__(self, key: bytes):
        _validate_key(key)
        self._key = bytes(key)

    def encrypt(self, payload: str) -> str:
        return encrypt_string(self._key, payload)

    def decrypt(self, token: str) -> str:
        return decrypt_string(self._key, token)
