"""
Signed HTTP transports for WeChat Pay Python SDK

The client decorator owns one ``requests.Session`` and two transports: the
JSON based APIv3 transport, which signs every request and verifies every
response with RSA, and the XML based APIv2 transport, which uses the legacy
MD5/HMAC-SHA256 parameter signatures.
"""

import json
import asyncio
import logging
import functools
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from . import transformer
from ..config.client_config import ClientConfig
from ..crypto import hash as hash_sign
from ..signing import formatter
from ..signing.authenticator import RequestAuthenticator
from ..signing.types import MerchantCredential
from ..verification.registry import CertificateRegistry
from ..exceptions import ConfigurationError, SignatureVerificationFailed

logger = logging.getLogger(__name__)

# Options handed to ``requests.Session.send`` untouched
SEND_OPTIONS = ('stream', 'proxies', 'cert', 'allow_redirects')


class Protocol(str, Enum):
    """API generations, named by their path root"""
    JSON_BASED = "v3"
    XML_BASED = "v2"


class JsonCodec:
    """Body codec of the JSON based APIs"""
    accept = "application/json, text/plain, application/x-gzip"
    content_type = "application/json; charset=utf-8"

    def encode(self, data: Any) -> bytes:
        return json.dumps(data, ensure_ascii=False, separators=(',', ':')).encode('utf-8')

    def decode(self, content: Union[str, bytes]) -> Any:
        return json.loads(content)


class XmlCodec:
    """Body codec of the XML based APIs"""
    accept = "text/xml, text/plain, application/x-gzip"
    content_type = "text/xml; charset=utf-8"

    def encode(self, data: Mapping[str, Any]) -> bytes:
        return transformer.to_xml(data).encode('utf-8')

    def decode(self, content: Union[str, bytes]) -> Dict[str, str]:
        return transformer.to_dict(content)


def _create_session(config: ClientConfig) -> requests.Session:
    """Create HTTP session; only connection failures are retried"""
    session = requests.Session()

    retry_strategy = Retry(total=config.retry_attempts, read=0, status=0)
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({'User-Agent': config.user_agent})
    session.headers.update(config.default_headers)

    return session


class Transport:
    """
    Base transport: builds, sends and checks one request

    Subclasses supply the codec and the protocol specific signing.
    """

    protocol: Protocol

    def __init__(self, config: ClientConfig, session: requests.Session, codec):
        self.config = config
        self.session = session
        self.codec = codec

    def _prepare(self, method: str, uri: str, options: Dict[str, Any],
                 body: Optional[bytes]) -> requests.PreparedRequest:
        headers = {'Accept': self.codec.accept}
        if body is not None:
            headers['Content-Type'] = self.codec.content_type
        headers.update(options.pop('headers', None) or {})

        query = options.pop('query', None)
        params = options.pop('params', None)
        if query is not None:
            params = query

        url = urljoin(self.config.base_uri, uri.lstrip('/'))
        request = requests.Request(method.upper(), url, headers=headers, data=body, params=params)
        return self.session.prepare_request(request)

    def _send(self, prepared: requests.PreparedRequest, options: Dict[str, Any]) -> requests.Response:
        send_kwargs = {name: options.pop(name) for name in SEND_OPTIONS if name in options}
        timeout = options.pop('timeout', self.config.timeout)
        verify = options.pop('verify', self.config.verify_ssl)

        if options:
            raise TypeError(f"Unexpected request options: {', '.join(sorted(options))}")

        logger.debug(f"Sending {prepared.method} {prepared.url}")
        response = self.session.send(prepared, timeout=timeout, verify=verify, **send_kwargs)
        logger.debug(f"Received HTTP {response.status_code} for {prepared.method} {prepared.path_url}")

        response.raise_for_status()
        return response

    def request(self, method: str, uri: str, **options) -> requests.Response:
        raise NotImplementedError


class JsonTransport(Transport):
    """APIv3 transport: RSA signed requests, verified responses"""

    protocol = Protocol.JSON_BASED

    def __init__(self, config: ClientConfig, session: requests.Session, authenticator: RequestAuthenticator,
                 codec: Optional[JsonCodec] = None):
        super().__init__(config, session, codec or JsonCodec())
        self.authenticator = authenticator

    def request(self, method: str, uri: str, **options) -> requests.Response:
        """
        Send a signed request and verify the response.

        Args:
            method: HTTP method
            uri: Path relative to the API origin, e.g. ``v3/certificates``
            **options: ``json``, ``body``/``data``, ``query``/``params``,
                ``headers``, ``timeout`` and ``requests`` send options

        Returns:
            requests.Response: The verified response

        Raises:
            requests.HTTPError: On 4xx/5xx responses, unmodified
            AuthenticationError: If the response fails verification
        """
        if 'json' in options:
            body = self.codec.encode(options.pop('json'))
        else:
            body = options.pop('body', None)
            if body is None:
                body = options.pop('data', None)
            if isinstance(body, str):
                body = body.encode('utf-8')

        prepared = self._prepare(method, uri, options, body)
        payload = prepared.body or b''

        header = self.authenticator.authorize(prepared.method, prepared.path_url, payload)
        prepared.headers['Authorization'] = str(header)

        response = self._send(prepared, options)
        self.authenticator.verify_response(response.headers, response.content, response)
        return response


class XmlTransport(Transport):
    """APIv2 transport: MD5 or HMAC-SHA256 signed XML documents"""

    protocol = Protocol.XML_BASED

    def __init__(self, config: ClientConfig, session: requests.Session, codec: Optional[XmlCodec] = None):
        super().__init__(config, session, codec or XmlCodec())

    def _secret(self) -> str:
        if self.config.secret is None:
            raise ConfigurationError(
                "The APIv2 secret key (`secret`) is required for XML based APIs",
                "MISSING_SECRET"
            )
        return self.config.secret

    def sign(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with ``mch_id``, ``nonce_str`` and ``sign`` filled in"""
        secret = self._secret()
        payload = dict(data)

        if 'mchid' not in payload and 'mch_id' not in payload:
            payload['mch_id'] = self.config.mchid
        payload.setdefault('nonce_str', formatter.nonce())

        payload['sign'] = hash_sign.sign(
            payload.get('sign_type') or hash_sign.SignType.MD5,
            formatter.query_string_like(payload),
            secret
        )
        return payload

    def request(self, method: str, uri: str, **options) -> requests.Response:
        """
        Send an XML request and verify the signed part of the response.

        Args:
            method: HTTP method
            uri: Path relative to the API origin without the ``v2`` root,
                e.g. ``pay/downloadbill``
            **options: ``xml`` (mapping of fields), ``security`` (the endpoint
                needs the merchant client certificate, which must be given as
                ``cert``), ``headers``,
                ``query``/``params``, ``timeout`` and ``requests`` send options

        Returns:
            requests.Response: The response; non-XML bodies such as bill
            downloads are returned as is

        Raises:
            requests.HTTPError: On 4xx/5xx responses, unmodified
            SignatureVerificationFailed: If a signed response does not match
        """
        data = options.pop('xml', None)
        if options.pop('security', False) and not options.get('cert'):
            raise ConfigurationError(
                "Requests marked `security` need the merchant client certificate as `cert`",
                "MISSING_CLIENT_CERTIFICATE"
            )

        body = None
        sign_type = hash_sign.SignType.MD5
        if data is not None:
            payload = self.sign(data)
            sign_type = payload.get('sign_type') or sign_type
            body = self.codec.encode(payload)

        prepared = self._prepare(method, uri, options, body)
        response = self._send(prepared, options)

        try:
            result = self.codec.decode(response.content)
        except ValueError:
            logger.debug("Response is not an XML document, returning it as is")
            return response

        if 'sign' in result:
            expected = hash_sign.sign(
                result.get('sign_type') or sign_type,
                formatter.query_string_like(result),
                self._secret()
            )
            if not hash_sign.equals(expected, result['sign']):
                logger.warning(f"Rejected XML response with invalid signature from {prepared.path_url}")
                raise SignatureVerificationFailed(
                    "XML response signature verification failed",
                    {"uri": prepared.path_url},
                    response
                )

        return response


class ClientDecorator:
    """
    Entry point for sending requests

    Picks the transport from the path root: ``v2/...`` paths go through the
    XML transport (with the root stripped), everything else is JSON based.
    """

    def __init__(self, config: Union[ClientConfig, Mapping[str, Any]]):
        """
        Initialize the client.

        Args:
            config: ``ClientConfig`` or a configuration mapping

        Raises:
            ConfigurationError: If the configuration is incomplete
            KeyFormatError: If key material cannot be loaded
        """
        self.config = ClientConfig.from_mapping(config)

        credential = MerchantCredential(self.config.mchid, self.config.serial, self.config.private_key)
        registry = CertificateRegistry(self.config.certs)
        self.authenticator = RequestAuthenticator(credential, registry, self.config.max_clock_offset)

        self.session = self.config.session or _create_session(self.config)
        self._transports = {
            Protocol.JSON_BASED: JsonTransport(self.config, self.session, self.authenticator),
            Protocol.XML_BASED: XmlTransport(self.config, self.session),
        }

        logger.info(f"Initialized WeChat Pay client for merchant {self.config.mchid} at {self.config.base_uri}")

    def select(self, protocol: Optional[Union[Protocol, str]] = None) -> Transport:
        """Return the transport for a protocol (JSON based by default)"""
        return self._transports[Protocol(protocol or Protocol.JSON_BASED)]

    @staticmethod
    def route(uri: str) -> Tuple[Protocol, str]:
        """Split the protocol off a request path"""
        path = uri.lstrip('/')
        root, _, rest = path.partition('/')
        if root.lower() == Protocol.XML_BASED.value:
            return Protocol.XML_BASED, rest
        return Protocol.JSON_BASED, path

    def request(self, method: str, uri: str, **options) -> requests.Response:
        """Send a request through the transport its path selects"""
        protocol, path = self.route(uri)
        return self.select(protocol).request(method, path, **options)

    async def request_async(self, method: str, uri: str, **options) -> requests.Response:
        """Send a request on the event loop's default executor"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self.request, method, uri, **options))

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
