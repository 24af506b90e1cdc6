"""
Platform certificate trust store for WeChat Pay Python SDK
"""

from .registry import CertificateRegistry

__all__ = [
    'CertificateRegistry',
]
