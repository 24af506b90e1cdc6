"""
Pinned platform certificate registry

The registry maps platform certificate serial numbers to public keys. It is
built once from configuration and never changes afterwards; rotating a
certificate means building a new registry with ``register``.
"""

import logging
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Tuple

from ..crypto.keys import KeyHandle, KeyRole, normalize, load_certificate, parse_certificate_serial_no
from ..exceptions import MissingCertificates, UnknownCertificateSerial

logger = logging.getLogger(__name__)


class CertificateRegistry:
    """
    Immutable mapping of platform certificate serial numbers to public keys
    """

    def __init__(self, certs: Mapping[str, Any]):
        """
        Initialize the registry.

        Args:
            certs: Mapping of serial number to public key material (public
                keys, certificates or anything ``crypto.keys.normalize`` accepts)

        Raises:
            MissingCertificates: If the mapping is empty
            KeyFormatError: If any key material cannot be loaded
        """
        if not certs:
            raise MissingCertificates()

        entries = {}
        for serial, material in certs.items():
            if not serial:
                raise MissingCertificates("Platform certificate serial numbers cannot be empty")
            entries[str(serial)] = normalize(material, KeyRole.PUBLIC)

        self._entries: Mapping[str, KeyHandle] = MappingProxyType(entries)
        logger.debug(f"Certificate registry loaded with {len(entries)} platform certificate(s)")

    @classmethod
    def from_certificates(cls, certificates: Iterable[Any]) -> 'CertificateRegistry':
        """
        Build a registry from X.509 certificates, keyed by their own serial numbers.

        Args:
            certificates: Certificate objects, PEM text, DER bytes or paths
        """
        certs = {}
        for thing in certificates:
            certificate = load_certificate(thing)
            certs[parse_certificate_serial_no(certificate)] = certificate
        return cls(certs)

    def resolve(self, serial: str) -> KeyHandle:
        """
        Look up the public key pinned for a serial number.

        Raises:
            UnknownCertificateSerial: If the serial is not registered
        """
        try:
            return self._entries[serial]
        except KeyError:
            raise UnknownCertificateSerial(
                f"Platform certificate serial '{serial}' is not registered",
                {"serial": serial}
            ) from None

    def register(self, serial: str, material: Any) -> 'CertificateRegistry':
        """Return a new registry that also pins ``serial``; this registry is unchanged"""
        certs = dict(self._entries)
        certs[serial] = material
        return CertificateRegistry(certs)

    @property
    def serials(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    def __contains__(self, serial: object) -> bool:
        return serial in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"CertificateRegistry(serials={list(self._entries)!r})"
