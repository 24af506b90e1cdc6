"""
APIv2 hash signatures for WeChat Pay Python SDK
"""

import hashlib
import hmac
from enum import Enum
from typing import Union


class SignType(str, Enum):
    """APIv2 ``sign_type`` values"""
    MD5 = "MD5"
    HMAC_SHA256 = "HMAC-SHA256"


def _key_suffixed(text: str, key: str) -> bytes:
    return f"{text}&key={key}".encode('utf-8')


def md5(text: str, key: str) -> str:
    """Upper-case MD5 of ``text&key=<key>``"""
    return hashlib.md5(_key_suffixed(text, key)).hexdigest().upper()


def hmac_sha256(text: str, key: str) -> str:
    """Upper-case HMAC-SHA256 of ``text&key=<key>`` keyed by ``key``"""
    return hmac.new(key.encode('utf-8'), _key_suffixed(text, key), hashlib.sha256).hexdigest().upper()


def sign(sign_type: Union[SignType, str], text: str, key: str) -> str:
    """Sign with the algorithm named by ``sign_type`` (MD5 when empty)"""
    if not sign_type or SignType(sign_type) == SignType.MD5:
        return md5(text, key)
    return hmac_sha256(text, key)


def equals(known: str, user: str) -> bool:
    """Constant time string comparison"""
    return hmac.compare_digest(known.encode('utf-8'), user.encode('utf-8'))
