"""
HTTP transports for WeChat Pay Python SDK
"""

from .transports import (
    Protocol,
    JsonCodec,
    XmlCodec,
    Transport,
    JsonTransport,
    XmlTransport,
    ClientDecorator,
)

from . import transformer

__all__ = [
    'Protocol',
    'JsonCodec',
    'XmlCodec',
    'Transport',
    'JsonTransport',
    'XmlTransport',
    'ClientDecorator',
    'transformer',
]
