"""
Cryptographic operations for WeChat Pay Python SDK
"""

from .keys import (
    KeyRole,
    KeyHandle,
    normalize,
    load_private_key,
    load_public_key,
    from_pkcs1,
    from_pkcs8,
    from_spki,
    pkcs1_to_spki,
    load_certificate,
    parse_certificate_serial_no,
)

from .rsa import (
    SignaturePadding,
    EncryptionPadding,
    sign,
    verify,
    encrypt,
    decrypt,
)

from . import aes_gcm
from . import hash

__all__ = [
    # Key material
    'KeyRole',
    'KeyHandle',
    'normalize',
    'load_private_key',
    'load_public_key',
    'from_pkcs1',
    'from_pkcs8',
    'from_spki',
    'pkcs1_to_spki',
    'load_certificate',
    'parse_certificate_serial_no',

    # RSA
    'SignaturePadding',
    'EncryptionPadding',
    'sign',
    'verify',
    'encrypt',
    'decrypt',

    # Symmetric and APIv2 helpers
    'aes_gcm',
    'hash',
]
