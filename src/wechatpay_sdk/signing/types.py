"""
Type definitions for request signing functionality

This module provides the data classes exchanged by the request
authenticator: the merchant credential and the ``Authorization`` header.
"""

import re
from typing import Any, Dict
from dataclasses import dataclass

from ..crypto.keys import KeyHandle, KeyRole, normalize
from ..exceptions import MissingMerchantId, MissingCertificateSerial, MissingSigningKey

# Authorization scheme of APIv3 requests
AUTHORIZATION_SCHEME = "WECHATPAY2-SHA256-RSA2048"

# Response (and callback) signature headers
HEADER_NONCE = "Wechatpay-Nonce"
HEADER_SERIAL = "Wechatpay-Serial"
HEADER_TIMESTAMP = "Wechatpay-Timestamp"
HEADER_SIGNATURE = "Wechatpay-Signature"

SIGNATURE_HEADERS = (HEADER_NONCE, HEADER_SERIAL, HEADER_TIMESTAMP, HEADER_SIGNATURE)

# Maximum tolerated offset between local and platform clocks, in seconds
MAXIMUM_CLOCK_OFFSET = 300

_HEADER_PATTERN = re.compile(r'^(?P<scheme>\S+)\s+(?P<params>.+)$', re.DOTALL)
_PARAM_PATTERN = re.compile(r'(\w+)="([^"]*)"')


@dataclass(frozen=True)
class MerchantCredential:
    """
    Merchant identity used to sign requests

    Attributes:
        merchant_id: The merchant id (``mchid``)
        certificate_serial: Serial number of the merchant API certificate
        signing_key: The merchant private key; any material accepted by
            ``crypto.keys.normalize`` is loaded on construction
    """
    merchant_id: str
    certificate_serial: str
    signing_key: Any

    def __post_init__(self):
        """Validate credential after initialization"""
        if not self.merchant_id:
            raise MissingMerchantId()
        if not self.certificate_serial:
            raise MissingCertificateSerial()
        if not self.signing_key:
            raise MissingSigningKey()

        object.__setattr__(self, 'merchant_id', str(self.merchant_id))
        if not isinstance(self.signing_key, KeyHandle) or self.signing_key.role != KeyRole.PRIVATE:
            object.__setattr__(self, 'signing_key', normalize(self.signing_key, KeyRole.PRIVATE))

    def __repr__(self) -> str:
        return f"MerchantCredential(merchant_id={self.merchant_id!r}, certificate_serial={self.certificate_serial!r})"


@dataclass(frozen=True)
class AuthenticationHeader:
    """
    Value of the ``Authorization`` header of a signed request

    Attributes:
        mchid: Merchant id
        nonce_str: Request nonce
        timestamp: Unix timestamp of the request
        serial_no: Serial number of the merchant certificate
        signature: Base64 signature over the canonical request message
        scheme: Authorization scheme
    """
    mchid: str
    nonce_str: str
    timestamp: int
    serial_no: str
    signature: str
    scheme: str = AUTHORIZATION_SCHEME

    FIELDS = ('mchid', 'nonce_str', 'timestamp', 'serial_no', 'signature')

    def __post_init__(self):
        """Validate header after initialization"""
        for name in self.FIELDS:
            if getattr(self, name) in (None, ''):
                raise ValueError(f"Authorization field '{name}' cannot be empty")
        object.__setattr__(self, 'timestamp', int(self.timestamp))

    def to_dict(self) -> Dict[str, str]:
        return {name: str(getattr(self, name)) for name in self.FIELDS}

    def __str__(self) -> str:
        params = ','.join(f'{name}="{value}"' for name, value in self.to_dict().items())
        return f"{self.scheme} {params}"

    @classmethod
    def parse(cls, value: str) -> 'AuthenticationHeader':
        """
        Parse an ``Authorization`` header value.

        Args:
            value: Header value as produced by ``str(header)``

        Returns:
            AuthenticationHeader

        Raises:
            ValueError: If the value is not a well formed authorization header
        """
        match = _HEADER_PATTERN.match(value.strip())
        if not match:
            raise ValueError("Malformed authorization header")

        params = dict(_PARAM_PATTERN.findall(match.group('params')))
        missing = [name for name in cls.FIELDS if name not in params]
        if missing:
            raise ValueError(f"Authorization header is missing fields: {', '.join(missing)}")

        try:
            timestamp = int(params['timestamp'])
        except ValueError as e:
            raise ValueError(f"Invalid authorization timestamp: {params['timestamp']}") from e

        return cls(
            mchid=params['mchid'],
            nonce_str=params['nonce_str'],
            timestamp=timestamp,
            serial_no=params['serial_no'],
            signature=params['signature'],
            scheme=match.group('scheme'),
        )
