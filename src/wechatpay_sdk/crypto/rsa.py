"""
RSA signing, verification and encryption for WeChat Pay Python SDK

Signatures are SHA-256 based. Encryption defaults to OAEP with SHA-1, which
is what the platform uses for sensitive request fields.
"""

import base64
import binascii
import logging
from enum import Enum
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from .keys import KeyHandle, KeyRole, KeyMaterial, normalize
from ..exceptions import KeyFormatError, PaddingMismatchError

logger = logging.getLogger(__name__)


class SignaturePadding(str, Enum):
    """Signature padding schemes"""
    PKCS1V15 = "pkcs1v15"
    PSS = "pss"


class EncryptionPadding(str, Enum):
    """Encryption padding schemes"""
    OAEP = "oaep"
    PKCS1V15 = "pkcs1v15"


def _to_bytes(data: Union[str, bytes]) -> bytes:
    if isinstance(data, str):
        return data.encode('utf-8')
    return bytes(data)


def _signature_padding(scheme: SignaturePadding):
    if SignaturePadding(scheme) == SignaturePadding.PSS:
        return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH)
    return padding.PKCS1v15()


def _oaep():
    return padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA1()), algorithm=hashes.SHA1(), label=None)


def _encryption_padding(scheme: EncryptionPadding):
    if EncryptionPadding(scheme) == EncryptionPadding.PKCS1V15:
        return padding.PKCS1v15()
    return _oaep()


def _handle(key: KeyMaterial, role: KeyRole) -> KeyHandle:
    return normalize(key, role)


def sign(message: Union[str, bytes], key: KeyMaterial,
         scheme: SignaturePadding = SignaturePadding.PKCS1V15) -> str:
    """
    Sign a message with SHA-256.

    Args:
        message: The canonical message
        key: Private key material
        scheme: Signature padding, PKCS#1 v1.5 unless PSS is requested

    Returns:
        Base64 encoded signature

    Raises:
        KeyFormatError: If the key is not usable for signing
    """
    handle = _handle(key, KeyRole.PRIVATE)
    signature = handle.key.sign(_to_bytes(message), _signature_padding(scheme), hashes.SHA256())
    return base64.b64encode(signature).decode('ascii')


def verify(message: Union[str, bytes], signature: Union[str, bytes], key: KeyMaterial,
           scheme: SignaturePadding = SignaturePadding.PKCS1V15) -> bool:
    """
    Verify a base64 SHA-256 signature over a message.

    Args:
        message: The canonical message
        signature: Base64 encoded signature
        key: Public key material (private material is reduced to its public half)
        scheme: Signature padding

    Returns:
        True if the signature is valid, False otherwise
    """
    handle = _handle(key, KeyRole.PUBLIC)

    try:
        raw = base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError):
        logger.debug("Signature is not valid base64")
        return False

    try:
        handle.key.verify(raw, _to_bytes(message), _signature_padding(scheme), hashes.SHA256())
        return True
    except InvalidSignature:
        return False


def encrypt(plaintext: Union[str, bytes], key: KeyMaterial,
            scheme: EncryptionPadding = EncryptionPadding.OAEP) -> str:
    """
    Encrypt a short plaintext with a public key.

    Args:
        plaintext: Data to protect, e.g. a name or phone number field
        key: Public key material
        scheme: Encryption padding, OAEP unless PKCS#1 v1.5 is requested

    Returns:
        Base64 encoded ciphertext

    Raises:
        KeyFormatError: If the key is unusable or the plaintext is too long for it
    """
    handle = _handle(key, KeyRole.PUBLIC)
    try:
        ciphertext = handle.key.encrypt(_to_bytes(plaintext), _encryption_padding(scheme))
    except ValueError as e:
        raise KeyFormatError(f"Encryption failed: {e}", "ENCRYPTION_FAILED") from e
    return base64.b64encode(ciphertext).decode('ascii')


def decrypt(ciphertext: Union[str, bytes], key: KeyMaterial,
            scheme: EncryptionPadding = EncryptionPadding.OAEP) -> bytes:
    """
    Decrypt a base64 ciphertext with a private key.

    Args:
        ciphertext: Base64 encoded ciphertext
        key: Private key material
        scheme: Padding the ciphertext is expected to use

    Returns:
        The plaintext bytes

    Raises:
        PaddingMismatchError: If the ciphertext does not decrypt under ``scheme``
    """
    handle = _handle(key, KeyRole.PRIVATE)
    scheme = EncryptionPadding(scheme)

    try:
        raw = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PaddingMismatchError(f"Ciphertext is not valid base64: {e}", "INVALID_CIPHERTEXT") from e

    if scheme == EncryptionPadding.PKCS1V15:
        # PKCS#1 v1.5 decryption may return synthetic plaintext instead of failing
        try:
            handle.key.decrypt(raw, _oaep())
        except ValueError:
            pass
        else:
            raise PaddingMismatchError(
                "Ciphertext uses OAEP padding but PKCS#1 v1.5 was requested",
                details={"requested": scheme.value}
            )

    try:
        return handle.key.decrypt(raw, _encryption_padding(scheme))
    except ValueError as e:
        raise PaddingMismatchError(
            f"Ciphertext does not decrypt with {scheme.value} padding",
            details={"requested": scheme.value}
        ) from e
