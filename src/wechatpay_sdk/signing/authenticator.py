"""
Request authorization and response verification for WeChat Pay APIv3

Outbound requests carry an ``Authorization`` header holding an RSA
signature over the canonical request message. Inbound responses and
callbacks are accepted only once their ``Wechatpay-*`` headers check out
against the pinned platform certificates.
"""

import logging
from typing import Any, Callable, Mapping, Optional, Union

from . import formatter
from .types import (
    AuthenticationHeader,
    MerchantCredential,
    AUTHORIZATION_SCHEME,
    HEADER_NONCE,
    HEADER_SERIAL,
    HEADER_TIMESTAMP,
    HEADER_SIGNATURE,
    SIGNATURE_HEADERS,
    MAXIMUM_CLOCK_OFFSET,
)
from ..crypto import rsa
from ..verification.registry import CertificateRegistry
from ..exceptions import (
    ConfigurationError,
    MissingSignatureHeaders,
    UnknownCertificateSerial,
    ClockSkewExceeded,
    SignatureVerificationFailed,
)

logger = logging.getLogger(__name__)


def _find_header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    """Case-insensitive header lookup"""
    value = headers.get(name) if hasattr(headers, 'get') else None
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                value = candidate
                break
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return value


class RequestAuthenticator:
    """
    Signs outbound requests and verifies inbound responses

    Both the credential and the registry are immutable, so one authenticator
    can be shared by any number of concurrent callers.
    """

    def __init__(
        self,
        credential: MerchantCredential,
        registry: CertificateRegistry,
        max_clock_offset: int = MAXIMUM_CLOCK_OFFSET,
        clock: Callable[[], int] = formatter.timestamp,
        nonce_factory: Callable[[], str] = formatter.nonce,
    ):
        """
        Initialize the authenticator.

        Args:
            credential: Merchant identity and signing key
            registry: Pinned platform certificates
            max_clock_offset: Tolerated clock offset in seconds
            clock: Source of Unix timestamps
            nonce_factory: Source of request nonces

        Raises:
            ConfigurationError: If the registry pins the merchant's own certificate serial
        """
        if max_clock_offset < 0:
            raise ConfigurationError("max_clock_offset cannot be negative")

        if credential.certificate_serial in registry:
            raise ConfigurationError(
                "The platform certificates must not contain the merchant certificate serial",
                "MERCHANT_SERIAL_IN_CERTS",
                {"serial": credential.certificate_serial}
            )

        self.credential = credential
        self.registry = registry
        self.max_clock_offset = max_clock_offset
        self._clock = clock
        self._nonce_factory = nonce_factory

    def authorize(self, method: str, uri: str, body: Union[str, bytes, None] = '') -> AuthenticationHeader:
        """
        Build the ``Authorization`` header of a request.

        A fresh nonce and timestamp are drawn on every call.

        Args:
            method: HTTP method
            uri: Request target, absolute path plus query string
            body: Exact request body bytes (empty for GET)

        Returns:
            AuthenticationHeader
        """
        nonce = self._nonce_factory()
        timestamp = self._clock()

        message = formatter.for_request(method, uri, timestamp, nonce, body)
        signature = rsa.sign(message, self.credential.signing_key)

        logger.debug(f"Authorized {method.upper()} {uri}")

        return AuthenticationHeader(
            mchid=self.credential.merchant_id,
            nonce_str=nonce,
            timestamp=timestamp,
            serial_no=self.credential.certificate_serial,
            signature=signature,
            scheme=AUTHORIZATION_SCHEME,
        )

    def verify_response(self, headers: Mapping[str, Any], body: Union[str, bytes, None] = '',
                        response: Any = None) -> None:
        """
        Verify the signature headers of a response.

        Checks run in order and stop at the first failure: header presence,
        certificate serial, clock offset, then the signature itself.

        Args:
            headers: Response headers
            body: Exact response body
            response: The response object, attached to raised errors

        Raises:
            MissingSignatureHeaders: If any signature header is absent
            UnknownCertificateSerial: If the serial is not pinned
            ClockSkewExceeded: If the timestamp is out of range
            SignatureVerificationFailed: If the signature does not match
        """
        values = {name: _find_header(headers, name) for name in SIGNATURE_HEADERS}
        missing = [name for name, value in values.items() if not value]
        if missing:
            logger.warning(f"Rejected response without signature headers: {', '.join(missing)}")
            raise MissingSignatureHeaders(
                f"Missing signature headers: {', '.join(missing)}",
                {"missing": missing},
                response
            )

        serial = values[HEADER_SERIAL]
        try:
            public_key = self.registry.resolve(serial)
        except UnknownCertificateSerial as e:
            logger.warning(f"Rejected response signed by unknown certificate serial {serial}")
            e.response = response
            raise

        timestamp = values[HEADER_TIMESTAMP]
        now = self._clock()
        try:
            offset = abs(now - int(timestamp))
        except (TypeError, ValueError):
            offset = None
        if offset is None or offset > self.max_clock_offset:
            logger.warning(f"Rejected response with timestamp {timestamp} (local clock {now})")
            raise ClockSkewExceeded(
                f"Response timestamp {timestamp} is more than {self.max_clock_offset}s away from local time {now}",
                {"timestamp": timestamp, "now": now},
                response
            )

        message = formatter.for_response(timestamp, values[HEADER_NONCE], body)
        if not rsa.verify(message, values[HEADER_SIGNATURE], public_key):
            logger.warning(f"Rejected response with invalid signature (serial {serial})")
            raise SignatureVerificationFailed(
                "Response signature verification failed",
                {"serial": serial},
                response
            )

    def verify_notification(self, headers: Mapping[str, Any], body: Union[str, bytes, None]) -> None:
        """
        Verify a callback notification; callbacks are signed exactly like responses.

        Raises:
            AuthenticationError: See ``verify_response``
        """
        self.verify_response(headers, body)
