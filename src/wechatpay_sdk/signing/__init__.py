"""
Request signing module for WeChat Pay Python SDK

Implements the WECHATPAY2-SHA256-RSA2048 authorization scheme for outbound
requests and signature checks for inbound responses and callbacks.
"""

from .types import (
    MerchantCredential,
    AuthenticationHeader,
    AUTHORIZATION_SCHEME,
    HEADER_NONCE,
    HEADER_SERIAL,
    HEADER_TIMESTAMP,
    HEADER_SIGNATURE,
    MAXIMUM_CLOCK_OFFSET,
)

from .authenticator import RequestAuthenticator

from . import formatter

__all__ = [
    'MerchantCredential',
    'AuthenticationHeader',
    'RequestAuthenticator',
    'formatter',
    'AUTHORIZATION_SCHEME',
    'HEADER_NONCE',
    'HEADER_SERIAL',
    'HEADER_TIMESTAMP',
    'HEADER_SIGNATURE',
    'MAXIMUM_CLOCK_OFFSET',
]
