"""
Chainable endpoint builder for WeChat Pay Python SDK

Any endpoint can be addressed without a catalog of known APIs:

    client = Builder.factory(config)
    client.v3.pay.transactions.native.post(json={...})
    client.v3.marketing.busifavor.users._openid_.coupons.get(openid='...', query={...})
    client.v3.combineTransactions['{combine_out_trade_no}'].get(combine_out_trade_no='...')
    client.chain('v2/pay/downloadbill').post(xml={...})

Attribute access appends a field segment, item access an index segment and
``chain`` a literal path. Every step returns a new node.
"""

import re
import logging
from typing import Any, Iterator, Mapping, Tuple, Union
from urllib.parse import quote

from .http_clients.transports import ClientDecorator, Protocol
from .config.client_config import ClientConfig

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r'^\{[^{}/]+\}$')
VERSION_PATTERN = re.compile(r'^v\d+$', re.IGNORECASE)
SENTINEL_PATTERN = re.compile(r'^_([A-Za-z0-9][\w-]*)_$')
TEMPLATE_PATTERN = re.compile(r'\{([^{}/]+)\}')
UPPERCASE_PATTERN = re.compile(r'(?<!^)([A-Z])')


def _sentinel(name: str):
    match = SENTINEL_PATTERN.match(name)
    return f"{{{match.group(1)}}}" if match else None


def normalize_field(name: str) -> str:
    """
    Turn an attribute name into a path segment.

    ``_name_`` becomes ``{name}``, placeholders are kept, version tokens are
    lower-cased and camelCase becomes kebab-case.
    """
    sentinel = _sentinel(name)
    if sentinel is not None:
        return sentinel
    if PLACEHOLDER_PATTERN.match(name):
        return name
    if VERSION_PATTERN.match(name):
        return name.lower()
    return UPPERCASE_PATTERN.sub(r'-\1', name).lower()


def normalize_index(key: Any) -> str:
    """Turn an index key into a path segment; only ``_name_`` is rewritten"""
    key = str(key)
    sentinel = _sentinel(key)
    return key if sentinel is None else sentinel


class BuilderChain:
    """
    Immutable, partially built request path
    """

    __slots__ = ('_segments', '_driver')

    def __init__(self, segments: Tuple[str, ...] = (), driver: ClientDecorator = None):
        object.__setattr__(self, '_segments', tuple(segments))
        object.__setattr__(self, '_driver', driver)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def _append(self, *segments: str) -> 'BuilderChain':
        return BuilderChain(self._segments + segments, self._driver)

    def with_field(self, name: str) -> 'BuilderChain':
        """Append a field segment (see ``normalize_field``)"""
        return self._append(normalize_field(name))

    def with_index(self, key: Any) -> 'BuilderChain':
        """Append an index segment as given"""
        return self._append(normalize_index(key))

    def with_path(self, literal: str) -> 'BuilderChain':
        """Append each non-empty ``/`` separated fragment of a literal path"""
        return self._append(*(fragment for fragment in str(literal).split('/') if fragment))

    chain = with_path

    def __getattr__(self, name: str) -> 'BuilderChain':
        if name.startswith('_') and _sentinel(name) is None:
            raise AttributeError(name)
        return self.with_field(name)

    def __getitem__(self, key: Any) -> 'BuilderChain':
        return self.with_index(key)

    @property
    def segments(self) -> Tuple[str, ...]:
        return self._segments

    def __iter__(self) -> Iterator[str]:
        return iter(self._segments)

    def pathname(self) -> str:
        return '/'.join(self._segments)

    def __str__(self) -> str:
        return self.pathname()

    def __repr__(self) -> str:
        return f"BuilderChain({self.pathname()!r})"

    def get_driver(self) -> ClientDecorator:
        """Return the client decorator shared by every node of this chain"""
        return self._driver

    def _materialize(self, options: dict) -> str:
        def expand(match):
            name = match.group(1)
            if name in options:
                return quote(str(options.pop(name)), safe='')
            return match.group(0)

        # an index key such as ['v2/pay/micropay'] carries its own root
        root = '/'.join(self._segments).lstrip('/').split('/', 1)[0]
        segments = self._segments
        if not VERSION_PATTERN.match(root):
            segments = (Protocol.JSON_BASED.value,) + segments
        return '/'.join(TEMPLATE_PATTERN.sub(expand, segment) for segment in segments)

    def request(self, method: str, **options) -> Any:
        """
        Send ``method`` to this path.

        A path without a version root is sent under ``v3``. ``{placeholder}``
        segments are filled from the option of the same name;
        the remaining options go to the transport.
        """
        if self._driver is None:
            raise RuntimeError("This chain is not bound to a client")
        uri = self._materialize(options)
        logger.debug(f"Materialized {method.upper()} {uri}")
        return self._driver.request(method.upper(), uri, **options)

    async def request_async(self, method: str, **options) -> Any:
        """Asynchronous ``request``; signing happens when the request is sent"""
        if self._driver is None:
            raise RuntimeError("This chain is not bound to a client")
        uri = self._materialize(options)
        logger.debug(f"Materialized {method.upper()} {uri}")
        return await self._driver.request_async(method.upper(), uri, **options)

    def get(self, **options):
        return self.request('GET', **options)

    def post(self, **options):
        return self.request('POST', **options)

    def put(self, **options):
        return self.request('PUT', **options)

    def patch(self, **options):
        return self.request('PATCH', **options)

    def delete(self, **options):
        return self.request('DELETE', **options)

    async def get_async(self, **options):
        return await self.request_async('GET', **options)

    async def post_async(self, **options):
        return await self.request_async('POST', **options)

    async def put_async(self, **options):
        return await self.request_async('PUT', **options)

    async def patch_async(self, **options):
        return await self.request_async('PATCH', **options)

    async def delete_async(self, **options):
        return await self.request_async('DELETE', **options)


class Builder:
    """Factory of root chains"""

    @staticmethod
    def factory(config: Union[ClientConfig, Mapping[str, Any]]) -> BuilderChain:
        """
        Create a client.

        Args:
            config: ``ClientConfig`` or a configuration mapping

        Returns:
            BuilderChain: The root of the endpoint chain

        Raises:
            ConfigurationError: If the configuration is incomplete
        """
        return BuilderChain((), ClientDecorator(config))


def create_client(config: Union[ClientConfig, Mapping[str, Any]]) -> BuilderChain:
    """Create a client, see ``Builder.factory``"""
    return Builder.factory(config)
