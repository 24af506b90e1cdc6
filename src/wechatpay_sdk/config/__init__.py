"""
Configuration for WeChat Pay Python SDK
"""

from .client_config import ClientConfig, DEFAULT_BASE_URI

__all__ = [
    'ClientConfig',
    'DEFAULT_BASE_URI',
]
