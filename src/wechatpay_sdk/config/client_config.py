"""
Client configuration for WeChat Pay Python SDK

Configuration can be built directly, or loaded from a mapping, a JSON
string or a JSON file using the camelCase keys merchants already keep
(``mchid``, ``serial``, ``privateKey``, ``certs``, ``secret``, ...).
"""

import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlparse

import requests

from ..version import __version__
from ..signing.types import MAXIMUM_CLOCK_OFFSET
from ..exceptions import (
    ConfigurationError,
    MissingMerchantId,
    MissingCertificateSerial,
    MissingSigningKey,
    MissingCertificates,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URI = "https://api.mch.weixin.qq.com/"

# Configuration keys and the attribute each one populates
CONFIG_KEYS = {
    'mchid': 'mchid',
    'serial': 'serial',
    'privateKey': 'private_key',
    'private_key': 'private_key',
    'certs': 'certs',
    'secret': 'secret',
    'base_uri': 'base_uri',
    'timeout': 'timeout',
    'verify_ssl': 'verify_ssl',
    'verify': 'verify_ssl',
    'retry_attempts': 'retry_attempts',
    'headers': 'default_headers',
    'default_headers': 'default_headers',
    'user_agent': 'user_agent',
    'max_clock_offset': 'max_clock_offset',
    'session': 'session',
    'handler': 'session',
}


@dataclass
class ClientConfig:
    """
    WeChat Pay client configuration

    Attributes:
        mchid: Merchant id
        serial: Serial number of the merchant API certificate
        private_key: Merchant private key material
        certs: Mapping of platform certificate serial to public key material
        secret: APIv2 secret key, required only for the XML based APIs
        base_uri: API origin
        timeout: Request timeout in seconds
        verify_ssl: Whether TLS certificates are verified
        retry_attempts: Connection level retries performed by ``requests``
        default_headers: Headers added to every request
        user_agent: User-Agent header value
        max_clock_offset: Tolerated response clock offset in seconds
        session: Pre-built ``requests.Session`` to send requests with
    """
    mchid: str
    serial: str
    private_key: Any
    certs: Mapping[str, Any]
    secret: Optional[str] = None
    base_uri: str = DEFAULT_BASE_URI
    timeout: float = 30.0
    verify_ssl: bool = True
    retry_attempts: int = 0
    default_headers: Dict[str, str] = field(default_factory=dict)
    user_agent: str = f"wechatpay-python-sdk/{__version__}"
    max_clock_offset: int = MAXIMUM_CLOCK_OFFSET
    session: Optional[requests.Session] = field(default=None, repr=False)

    def __post_init__(self):
        """Validate configuration"""
        if not self.mchid:
            raise MissingMerchantId()
        if not self.serial:
            raise MissingCertificateSerial()
        if not self.private_key:
            raise MissingSigningKey()
        if not self.certs:
            raise MissingCertificates()

        self.mchid = str(self.mchid)

        if self.serial in self.certs:
            raise ConfigurationError(
                "The platform certificates must not contain the merchant certificate serial",
                "MERCHANT_SERIAL_IN_CERTS",
                {"serial": self.serial}
            )

        if not self.base_uri.endswith('/'):
            self.base_uri += '/'

        parsed = urlparse(self.base_uri)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigurationError(f"Invalid base URI format: {self.base_uri}", "INVALID_BASE_URI")

        if self.timeout <= 0:
            raise ConfigurationError("Timeout must be positive", "INVALID_TIMEOUT")

        if self.retry_attempts < 0:
            raise ConfigurationError("Retry attempts cannot be negative", "INVALID_RETRY_ATTEMPTS")

        if self.max_clock_offset < 0:
            raise ConfigurationError("max_clock_offset cannot be negative", "INVALID_CLOCK_OFFSET")

    def __repr__(self) -> str:
        return (f"ClientConfig(mchid={self.mchid!r}, serial={self.serial!r}, "
                f"certs={list(self.certs)!r}, base_uri={self.base_uri!r})")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'ClientConfig':
        """
        Build configuration from a mapping of configuration keys.

        Unknown keys are ignored.

        Raises:
            ConfigurationError: If required entries are missing or invalid
        """
        if isinstance(data, ClientConfig):
            return data
        if not isinstance(data, Mapping):
            raise ConfigurationError("Configuration must be a mapping", "INVALID_FORMAT")

        kwargs: Dict[str, Any] = {name: None for name in ('mchid', 'serial', 'private_key', 'certs')}
        for key, value in data.items():
            attribute = CONFIG_KEYS.get(key)
            if attribute is None:
                logger.debug(f"Ignoring unknown configuration key: {key}")
                continue
            kwargs[attribute] = value

        return cls(**kwargs)

    @classmethod
    def from_json(cls, json_string: str) -> 'ClientConfig':
        """Load configuration from a JSON string"""
        try:
            data = json.loads(json_string)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Failed to parse configuration JSON: {e}", "PARSE_ERROR") from e
        return cls.from_mapping(data)

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'ClientConfig':
        """Load configuration from a JSON file"""
        try:
            with open(Path(file_path), 'r', encoding='utf-8') as f:
                json_string = f.read()
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}", "FILE_ERROR") from e
        return cls.from_json(json_string)
