"""
AEAD_AES_256_GCM helpers for WeChat Pay Python SDK

Platform certificates and callback ``resource`` payloads are encrypted with
the merchant's 32 byte APIv3 key.
"""

import base64
import binascii
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import DecryptionError

# Length of the APIv3 secret key in bytes
KEY_LENGTH_BYTE = 32

# Length of the GCM authentication tag in bytes
BLOCK_SIZE = 16


def _to_bytes(data: Union[str, bytes, None]) -> bytes:
    if data is None:
        return b''
    if isinstance(data, str):
        return data.encode('utf-8')
    return bytes(data)


def _cipher(key: Union[str, bytes]) -> AESGCM:
    key = _to_bytes(key)
    if len(key) != KEY_LENGTH_BYTE:
        raise DecryptionError(
            f"The APIv3 key must be {KEY_LENGTH_BYTE} bytes long",
            "INVALID_AEAD_KEY",
            {"length": len(key)}
        )
    return AESGCM(key)


def encrypt(plaintext: Union[str, bytes], key: Union[str, bytes], iv: Union[str, bytes],
            aad: Union[str, bytes] = '') -> str:
    """
    Encrypt with AES-256-GCM.

    Returns:
        Base64 of the ciphertext followed by the 16 byte tag
    """
    ciphertext = _cipher(key).encrypt(_to_bytes(iv), _to_bytes(plaintext), _to_bytes(aad) or None)
    return base64.b64encode(ciphertext).decode('ascii')


def decrypt(ciphertext: Union[str, bytes], key: Union[str, bytes], iv: Union[str, bytes],
            aad: Union[str, bytes] = '') -> str:
    """
    Decrypt an AES-256-GCM payload.

    Args:
        ciphertext: Base64 of the ciphertext with the tag appended
        key: The APIv3 secret key
        iv: The ``nonce`` of the encrypted resource
        aad: The ``associated_data`` of the encrypted resource

    Returns:
        The plaintext decoded as UTF-8

    Raises:
        DecryptionError: If the payload is malformed or fails authentication
    """
    cipher = _cipher(key)

    try:
        raw = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(f"Ciphertext is not valid base64: {e}", "INVALID_CIPHERTEXT") from e

    if len(raw) <= BLOCK_SIZE:
        raise DecryptionError("Ciphertext is too short", "INVALID_CIPHERTEXT")

    try:
        plaintext = cipher.decrypt(_to_bytes(iv), raw, _to_bytes(aad) or None)
    except InvalidTag as e:
        raise DecryptionError("Ciphertext failed authentication", "AUTHENTICATION_TAG_MISMATCH") from e

    return plaintext.decode('utf-8')
