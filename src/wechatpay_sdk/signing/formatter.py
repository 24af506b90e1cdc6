"""
Canonical message construction for WeChat Pay request signing

Every signed message is a list of fields, each followed by a line feed:

    request:  METHOD\\nURI\\nTIMESTAMP\\nNONCE\\nBODY\\n
    response: TIMESTAMP\\nNONCE\\nBODY\\n
"""

import time
import string
import secrets
from typing import Any, Dict, Mapping, Union

# Characters used in nonces
NONCE_ALPHABET = string.ascii_letters + string.digits

DEFAULT_NONCE_SIZE = 32


def nonce(size: int = DEFAULT_NONCE_SIZE) -> str:
    """
    Generate a random alphanumeric nonce.

    Args:
        size: Number of characters

    Returns:
        str: Nonce drawn from a cryptographically secure source
    """
    if size < 1:
        raise ValueError("Nonce size must be positive")
    return ''.join(secrets.choice(NONCE_ALPHABET) for _ in range(size))


def timestamp() -> int:
    """
    Current Unix timestamp.

    Returns:
        int: Seconds since epoch
    """
    return int(time.time())


def _to_bytes(piece: Union[str, bytes, int, None]) -> bytes:
    if piece is None:
        return b''
    if isinstance(piece, bytes):
        return piece
    return str(piece).encode('utf-8')


def join_by_line_feed(*pieces: Any) -> str:
    """Join pieces, terminating each one with a line feed"""
    return ''.join(f"{'' if piece is None else piece}\n" for piece in pieces)


def _canonical(*pieces: Union[str, bytes, int, None]) -> bytes:
    return b''.join(_to_bytes(piece) + b'\n' for piece in pieces)


def for_request(method: str, uri: str, timestamp: Union[int, str], nonce: str,
                body: Union[str, bytes, None] = '') -> bytes:
    """
    Build the canonical message of an outbound request.

    Args:
        method: HTTP method, upper-cased
        uri: Request target (absolute path plus query string)
        timestamp: Unix timestamp of the request
        nonce: Request nonce
        body: Exact request body; empty for GET

    Returns:
        bytes: UTF-8 encoded canonical message
    """
    return _canonical(method.upper(), uri, timestamp, nonce, body)


def for_response(timestamp: Union[int, str], nonce: str, body: Union[str, bytes, None] = '') -> bytes:
    """Build the canonical message of an inbound response or callback"""
    return _canonical(timestamp, nonce, body)


def ksort(mapping: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of the mapping ordered by key"""
    return {key: mapping[key] for key in sorted(mapping)}


def query_string_like(mapping: Mapping[str, Any]) -> str:
    """
    Build the APIv2 string to be signed.

    Pairs are ordered by key, joined by ``&`` and written without URL
    encoding. Empty values and the ``sign`` field itself are skipped.
    """
    pairs = []
    for key, value in ksort(mapping).items():
        if key == 'sign' or value is None or value == '':
            continue
        pairs.append(f"{key}={value}")
    return '&'.join(pairs)
