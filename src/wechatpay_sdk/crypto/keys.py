"""
RSA key material loading for WeChat Pay Python SDK

This module turns the many shapes merchants keep their keys in (tagged
base64 strings, ``file://`` paths, PEM or DER blobs, X.509 certificates and
already-loaded ``cryptography`` keys) into a single immutable ``KeyHandle``.
"""

import re
import base64
import binascii
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from asn1crypto import keys as asn1_keys

from ..exceptions import KeyFormatError, KeyPassphraseError

logger = logging.getLogger(__name__)

# Scheme prefix for local key files
LOCAL_FILE_PROTOCOL = 'file://'

# `{private|public}.{pkcs1|pkcs8|spki}://{base64 DER}`
TAGGED_KEY_PATTERN = re.compile(r'^(private|public)\.(pkcs1|pkcs8|spki)://(.+)$', re.DOTALL)

PEM_LABEL_PATTERN = re.compile(rb'-----BEGIN ([A-Z0-9 ]+)-----')

# Encodings each role may be tagged with
TAGGED_ENCODINGS = {
    'private': ('pkcs1', 'pkcs8'),
    'public': ('pkcs1', 'spki'),
}

KeyMaterial = Union[str, bytes, 'KeyHandle', rsa.RSAPrivateKey, rsa.RSAPublicKey, x509.Certificate,
                    Tuple[Any, Optional[Union[str, bytes]]]]


class KeyRole(str, Enum):
    """Role a loaded key plays"""
    PRIVATE = "private"
    PUBLIC = "public"


@dataclass(frozen=True, eq=False)
class KeyHandle:
    """
    Immutable handle to a loaded RSA key.

    Attributes:
        role: Whether the handle wraps a private or a public key
        key: The underlying ``cryptography`` RSA key object
    """
    role: KeyRole
    key: Any = field(repr=False)

    def __post_init__(self):
        """Validate that the wrapped key matches the declared role"""
        if not isinstance(self.role, KeyRole):
            object.__setattr__(self, 'role', KeyRole(self.role))

        expected = rsa.RSAPrivateKey if self.role == KeyRole.PRIVATE else rsa.RSAPublicKey
        if not isinstance(self.key, expected):
            raise KeyFormatError(
                f"Key object does not match role '{self.role.value}'",
                "KEY_ROLE_MISMATCH",
                {"role": self.role.value, "type": type(self.key).__name__}
            )

    @classmethod
    def wrap(cls, key: Union[rsa.RSAPrivateKey, rsa.RSAPublicKey]) -> 'KeyHandle':
        """Wrap a native ``cryptography`` RSA key, inferring its role"""
        if isinstance(key, rsa.RSAPrivateKey):
            return cls(KeyRole.PRIVATE, key)
        if isinstance(key, rsa.RSAPublicKey):
            return cls(KeyRole.PUBLIC, key)
        raise KeyFormatError(
            f"Only RSA keys are supported, got {type(key).__name__}",
            "UNSUPPORTED_KEY_TYPE"
        )

    @property
    def is_private(self) -> bool:
        return self.role == KeyRole.PRIVATE

    @property
    def key_size(self) -> int:
        return self.key.key_size

    def public_handle(self) -> 'KeyHandle':
        """Return the public half of this handle (itself when already public)"""
        if self.role == KeyRole.PUBLIC:
            return self
        return KeyHandle(KeyRole.PUBLIC, self.key.public_key())


def _b64decode(thing: Union[str, bytes]) -> bytes:
    if isinstance(thing, bytes):
        thing = thing.decode('ascii', errors='replace')
    try:
        return base64.b64decode(''.join(thing.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyFormatError(f"Invalid base64 key payload: {e}", "INVALID_BASE64") from e


def _to_password(passphrase: Optional[Union[str, bytes]]) -> Optional[bytes]:
    if passphrase is None or isinstance(passphrase, bytes):
        return passphrase
    return passphrase.encode('utf-8')


def _read_file(path: str) -> bytes:
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise KeyFormatError(
            f"Unable to read key file: {path}",
            "KEY_FILE_UNREADABLE",
            {"path": path}
        ) from e


def _for_role(key: Any, role: KeyRole) -> KeyHandle:
    """Adapt a native key to the requested role, reducing private keys when a public one is wanted"""
    handle = key if isinstance(key, KeyHandle) else KeyHandle.wrap(key)

    if handle.role == role:
        return handle
    if role == KeyRole.PUBLIC:
        return handle.public_handle()

    raise KeyFormatError(
        "A private key is required but public key material was given",
        "KEY_ROLE_MISMATCH",
        {"role": role.value}
    )


def _load_private_der(der: bytes, password: Optional[bytes] = None) -> rsa.RSAPrivateKey:
    try:
        return serialization.load_der_private_key(der, password=password)
    except TypeError as e:
        raise KeyPassphraseError(f"Encrypted private key could not be opened: {e}") from e
    except (ValueError, UnsupportedAlgorithm) as e:
        if password is not None:
            raise KeyPassphraseError("Failed to decrypt private key, the passphrase may be wrong") from e
        raise KeyFormatError(f"Invalid private key: {e}", "INVALID_PRIVATE_KEY") from e


def from_pkcs1(thing: str, role: Union[KeyRole, str] = KeyRole.PRIVATE) -> KeyHandle:
    """
    Load a base64 encoded PKCS#1 (``RSAPrivateKey``/``RSAPublicKey``) DER key.

    Args:
        thing: Base64 of the DER structure
        role: Which PKCS#1 structure the payload holds

    Returns:
        KeyHandle for the key

    Raises:
        KeyFormatError: If the payload is not a valid PKCS#1 structure
    """
    role = KeyRole(role)
    if role == KeyRole.PUBLIC:
        return from_spki(pkcs1_to_spki(thing))
    return KeyHandle.wrap(_load_private_der(_b64decode(thing)))


def from_pkcs8(thing: str, passphrase: Optional[Union[str, bytes]] = None) -> KeyHandle:
    """Load a base64 encoded PKCS#8 ``PrivateKeyInfo`` DER private key"""
    return _for_role(_load_private_der(_b64decode(thing), _to_password(passphrase)), KeyRole.PRIVATE)


def from_spki(thing: str) -> KeyHandle:
    """Load a base64 encoded X.509 ``SubjectPublicKeyInfo`` DER public key"""
    try:
        key = serialization.load_der_public_key(_b64decode(thing))
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyFormatError(f"Invalid SubjectPublicKeyInfo: {e}", "INVALID_PUBLIC_KEY") from e
    return _for_role(key, KeyRole.PUBLIC)


def pkcs1_to_spki(thing: str) -> str:
    """
    Wrap a base64 PKCS#1 ``RSAPublicKey`` into a ``SubjectPublicKeyInfo`` envelope.

    Args:
        thing: Base64 of the PKCS#1 DER public key

    Returns:
        Base64 of the equivalent SPKI DER structure

    Raises:
        KeyFormatError: If the payload is not an RSAPublicKey
    """
    der = _b64decode(thing)
    try:
        public_key = asn1_keys.RSAPublicKey.load(der)
        # force a full parse so malformed payloads fail here
        public_key.native
        info = asn1_keys.PublicKeyInfo.wrap(public_key, 'rsa')
    except (ValueError, TypeError) as e:
        raise KeyFormatError(f"Invalid PKCS#1 public key: {e}", "INVALID_PKCS1_PUBLIC_KEY") from e
    return base64.b64encode(info.dump()).decode('ascii')


def _from_tagged(match: 're.Match', role: KeyRole, passphrase: Optional[bytes]) -> KeyHandle:
    kind, encoding, payload = match.groups()

    if encoding not in TAGGED_ENCODINGS[kind]:
        raise KeyFormatError(
            f"Unsupported key encoding: {kind}.{encoding}",
            "UNSUPPORTED_KEY_ENCODING"
        )

    if kind == 'private':
        if encoding == 'pkcs8':
            handle = from_pkcs8(payload, passphrase)
        else:
            handle = from_pkcs1(payload, KeyRole.PRIVATE)
    elif encoding == 'spki':
        handle = from_spki(payload)
    else:
        handle = from_pkcs1(payload, KeyRole.PUBLIC)

    return _for_role(handle, role)


def _from_pem(data: bytes, role: KeyRole, passphrase: Optional[bytes]) -> KeyHandle:
    match = PEM_LABEL_PATTERN.search(data)
    label = match.group(1).decode('ascii') if match else ''

    if label in ('CERTIFICATE', 'X509 CERTIFICATE', 'TRUSTED CERTIFICATE'):
        return _for_role(load_certificate(data).public_key(), role)

    if label.endswith('PRIVATE KEY'):
        encrypted = label == 'ENCRYPTED PRIVATE KEY' or b'Proc-Type: 4,ENCRYPTED' in data
        if encrypted and passphrase is None:
            raise KeyPassphraseError("A passphrase is required for the encrypted private key")
        try:
            key = serialization.load_pem_private_key(data, password=passphrase if encrypted else None)
        except (TypeError, ValueError, UnsupportedAlgorithm) as e:
            if encrypted:
                raise KeyPassphraseError("Failed to decrypt private key, the passphrase may be wrong") from e
            raise KeyFormatError(f"Invalid PEM private key: {e}", "INVALID_PEM") from e
        return _for_role(key, role)

    if label in ('PUBLIC KEY', 'RSA PUBLIC KEY'):
        try:
            key = serialization.load_pem_public_key(data)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise KeyFormatError(f"Invalid PEM public key: {e}", "INVALID_PEM") from e
        return _for_role(key, role)

    raise KeyFormatError(f"Unsupported PEM block: '{label}'", "UNSUPPORTED_PEM", {"label": label})


def _from_der(data: bytes, role: KeyRole, passphrase: Optional[bytes]) -> KeyHandle:
    try:
        return _for_role(x509.load_der_x509_certificate(data).public_key(), role)
    except ValueError:
        pass

    try:
        return _for_role(serialization.load_der_private_key(data, password=None), role)
    except TypeError as e:
        # encrypted PKCS#8
        if passphrase is None:
            raise KeyPassphraseError("A passphrase is required for the encrypted private key") from e
        return _for_role(_load_private_der(data, passphrase), role)
    except (ValueError, UnsupportedAlgorithm):
        pass

    try:
        return _for_role(serialization.load_der_public_key(data), role)
    except (ValueError, UnsupportedAlgorithm):
        pass

    # bare PKCS#1 RSAPublicKey
    encoded = base64.b64encode(data).decode('ascii')
    return _for_role(from_spki(pkcs1_to_spki(encoded)), role)


def normalize(thing: KeyMaterial, role: Union[KeyRole, str] = KeyRole.PRIVATE) -> KeyHandle:
    """
    Normalize any supported key material into a ``KeyHandle``.

    Accepted inputs, tried in order:
        - tagged strings: ``private.pkcs1://``, ``private.pkcs8://``,
          ``public.pkcs1://`` or ``public.spki://`` followed by base64 DER
        - ``file://`` paths to PEM or DER files
        - ``KeyHandle`` instances and native ``cryptography`` RSA keys
        - PEM text (private keys, public keys, certificates)
        - DER bytes (certificates, PKCS#8, PKCS#1, SPKI)
        - a ``(material, passphrase)`` tuple for encrypted private keys

    Private material requested as ``KeyRole.PUBLIC`` is reduced to its public half.

    Args:
        thing: Key material to load
        role: Role the resulting handle must play

    Returns:
        KeyHandle with the requested role

    Raises:
        KeyFormatError: If the material is not recognized or has the wrong role
        KeyPassphraseError: If an encrypted private key cannot be opened
    """
    role = KeyRole(role)
    passphrase = None

    if isinstance(thing, tuple):
        if len(thing) != 2:
            raise KeyFormatError("Key tuples must be (material, passphrase)", "INVALID_KEY_TUPLE")
        thing, passphrase = thing
        passphrase = _to_password(passphrase)

    if isinstance(thing, str):
        match = TAGGED_KEY_PATTERN.match(thing.strip())
        if match:
            return _from_tagged(match, role, passphrase)

        if thing.startswith(LOCAL_FILE_PROTOCOL):
            path = thing[len(LOCAL_FILE_PROTOCOL):]
            logger.debug(f"Loading {role.value} key material from {path}")
            return _from_encoded(_read_file(path), role, passphrase)

    if isinstance(thing, (KeyHandle, rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        return _for_role(thing, role)

    if isinstance(thing, x509.Certificate):
        return _for_role(thing.public_key(), role)

    if isinstance(thing, str):
        return _from_encoded(thing.encode('utf-8'), role, passphrase)

    if isinstance(thing, (bytes, bytearray)):
        return _from_encoded(bytes(thing), role, passphrase)

    raise KeyFormatError(
        f"Unsupported key material type: {type(thing).__name__}",
        "UNSUPPORTED_KEY_TYPE"
    )


def _from_encoded(data: bytes, role: KeyRole, passphrase: Optional[bytes]) -> KeyHandle:
    if not data.strip():
        raise KeyFormatError("Key material is empty", "EMPTY_KEY")

    if b'-----BEGIN' in data:
        return _from_pem(data.strip(), role, passphrase)

    return _from_der(data, role, passphrase)


def load_private_key(thing: KeyMaterial) -> KeyHandle:
    """Load merchant private key material, see ``normalize``"""
    return normalize(thing, KeyRole.PRIVATE)


def load_public_key(thing: KeyMaterial) -> KeyHandle:
    """Load platform public key material, see ``normalize``"""
    return normalize(thing, KeyRole.PUBLIC)


def load_certificate(thing: Union[str, bytes, x509.Certificate]) -> x509.Certificate:
    """
    Load an X.509 certificate.

    Args:
        thing: A certificate object, a filesystem path, a ``file://`` path,
            PEM text or DER bytes

    Returns:
        The parsed certificate

    Raises:
        KeyFormatError: If the certificate cannot be read or parsed
    """
    if isinstance(thing, x509.Certificate):
        return thing

    if isinstance(thing, str):
        if thing.startswith(LOCAL_FILE_PROTOCOL):
            data = _read_file(thing[len(LOCAL_FILE_PROTOCOL):])
        elif '-----BEGIN' in thing:
            data = thing.encode('utf-8')
        else:
            data = _read_file(thing)
    elif isinstance(thing, (bytes, bytearray)):
        data = bytes(thing)
    else:
        raise KeyFormatError(
            f"Unsupported certificate type: {type(thing).__name__}",
            "UNSUPPORTED_CERTIFICATE_TYPE"
        )

    try:
        if b'-----BEGIN' in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise KeyFormatError(f"Invalid X.509 certificate: {e}", "INVALID_CERTIFICATE") from e


def parse_certificate_serial_no(thing: Union[str, bytes, x509.Certificate]) -> str:
    """Return the certificate serial number as upper-case hex"""
    return format(load_certificate(thing).serial_number, 'X')
