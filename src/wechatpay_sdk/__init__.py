"""
WeChat Pay Python SDK
Signed APIv3 requests, verified responses and a chainable endpoint builder
"""

from .version import __version__
from .builder import (
    Builder,
    BuilderChain,
    create_client,
)
from .config import (
    ClientConfig,
    DEFAULT_BASE_URI,
)
from .crypto.keys import (
    KeyRole,
    KeyHandle,
    normalize,
    load_private_key,
    load_public_key,
    load_certificate,
    parse_certificate_serial_no,
)
from .crypto import rsa, aes_gcm
from .http_clients import (
    Protocol,
    ClientDecorator,
)
from .signing import (
    MerchantCredential,
    AuthenticationHeader,
    RequestAuthenticator,
    formatter,
)
from .verification import CertificateRegistry
from .exceptions import (
    WeChatPaySDKError,
    ConfigurationError,
    MissingMerchantId,
    MissingCertificateSerial,
    MissingSigningKey,
    MissingCertificates,
    KeyFormatError,
    KeyPassphraseError,
    PaddingMismatchError,
    DecryptionError,
    AuthenticationError,
    MissingSignatureHeaders,
    UnknownCertificateSerial,
    ClockSkewExceeded,
    SignatureVerificationFailed,
)

__all__ = [
    "__version__",
    # Client
    "Builder",
    "BuilderChain",
    "create_client",
    "ClientConfig",
    "ClientDecorator",
    "Protocol",
    "DEFAULT_BASE_URI",
    # Keys and crypto
    "KeyRole",
    "KeyHandle",
    "normalize",
    "load_private_key",
    "load_public_key",
    "load_certificate",
    "parse_certificate_serial_no",
    "rsa",
    "aes_gcm",
    # Signing and verification
    "MerchantCredential",
    "AuthenticationHeader",
    "RequestAuthenticator",
    "CertificateRegistry",
    "formatter",
    # Exceptions
    "WeChatPaySDKError",
    "ConfigurationError",
    "MissingMerchantId",
    "MissingCertificateSerial",
    "MissingSigningKey",
    "MissingCertificates",
    "KeyFormatError",
    "KeyPassphraseError",
    "PaddingMismatchError",
    "DecryptionError",
    "AuthenticationError",
    "MissingSignatureHeaders",
    "UnknownCertificateSerial",
    "ClockSkewExceeded",
    "SignatureVerificationFailed",
]
