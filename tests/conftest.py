"""
Shared fixtures: RSA key material generated at test time and a mock
``requests`` adapter standing in for the platform
"""

import base64
import datetime
import http.client
import time

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from cryptography import x509
from cryptography.x509.oid import NameOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa, padding

MERCHANT_ID = "1230000109"
MERCHANT_SERIAL = "MCH_SERIAL"
PASSPHRASE = "s3cret-passphrase"
APIV2_SECRET = "apiv2-secret-key-for-testing-0001"


def _generate_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _self_signed_certificate(key, common_name):
    name = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Tenpay.com"),
    ])
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=365))
        .sign(key, hashes.SHA256())
    )


def private_pem(key, fmt=serialization.PrivateFormat.PKCS8, encryption=None) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        fmt,
        encryption or serialization.NoEncryption(),
    )


def private_der(key, fmt=serialization.PrivateFormat.PKCS8) -> bytes:
    return key.private_bytes(serialization.Encoding.DER, fmt, serialization.NoEncryption())


def public_pem(key, fmt=serialization.PublicFormat.SubjectPublicKeyInfo) -> bytes:
    return key.public_key().public_bytes(serialization.Encoding.PEM, fmt)


def public_der(key, fmt=serialization.PublicFormat.SubjectPublicKeyInfo) -> bytes:
    return key.public_key().public_bytes(serialization.Encoding.DER, fmt)


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def sign_response(key, body, timestamp=None, nonce="platform-nonce-0001") -> dict:
    """Sign a response body the way the platform does"""
    if isinstance(body, str):
        body = body.encode('utf-8')
    timestamp = int(time.time()) if timestamp is None else timestamp
    message = f"{timestamp}\n{nonce}\n".encode('utf-8') + body + b"\n"
    signature = key.sign(message, padding.PKCS1v15(), hashes.SHA256())
    return {
        'Wechatpay-Nonce': nonce,
        'Wechatpay-Timestamp': str(timestamp),
        'Wechatpay-Signature': b64(signature),
    }


class MockAdapter(BaseAdapter):
    """
    Transport adapter answering from a queue of canned responses

    Each queued item is ``(status, headers, body)`` or a callable taking the
    prepared request and returning such a tuple.
    """

    def __init__(self, *responses):
        super().__init__()
        self.queue = list(responses)
        self.requests = []
        self.certs = []

    def append(self, *responses):
        self.queue.extend(responses)

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append(request)
        self.certs.append(cert)
        item = self.queue.pop(0)
        if callable(item):
            item = item(request)
        status, headers, body = item

        response = requests.Response()
        response.status_code = status
        response.reason = http.client.responses.get(status, '')
        response.headers = CaseInsensitiveDict(headers or {})
        response._content = body.encode('utf-8') if isinstance(body, str) else (body or b'')
        response.url = request.url
        response.request = request
        response.encoding = 'utf-8'
        return response

    def close(self):
        pass


@pytest.fixture(scope="session")
def merchant_key():
    return _generate_key()


@pytest.fixture(scope="session")
def platform_key():
    return _generate_key()


@pytest.fixture(scope="session")
def platform_certificate(platform_key):
    return _self_signed_certificate(platform_key, "Tenpay.com platform certificate")


@pytest.fixture(scope="session")
def platform_serial(platform_certificate):
    return format(platform_certificate.serial_number, 'X')


@pytest.fixture(scope="session")
def platform_certificate_pem(platform_certificate):
    return platform_certificate.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="session")
def key_files(tmp_path_factory, merchant_key, platform_certificate_pem):
    """Merchant and platform key material written to disk"""
    directory = tmp_path_factory.mktemp("keys")
    files = {
        'pkcs8': directory / "apiclient_key.pem",
        'pkcs1': directory / "apiclient_key_pkcs1.pem",
        'encrypted': directory / "apiclient_key_encrypted.pem",
        'der': directory / "apiclient_key.der",
        'public': directory / "apiclient_public.pem",
        'certificate': directory / "wechatpay_platform.pem",
    }
    files['pkcs8'].write_bytes(private_pem(merchant_key))
    files['pkcs1'].write_bytes(private_pem(merchant_key, serialization.PrivateFormat.TraditionalOpenSSL))
    files['encrypted'].write_bytes(private_pem(
        merchant_key,
        encryption=serialization.BestAvailableEncryption(PASSPHRASE.encode('utf-8')),
    ))
    files['der'].write_bytes(private_der(merchant_key))
    files['public'].write_bytes(public_pem(merchant_key))
    files['certificate'].write_bytes(platform_certificate_pem)
    return files


@pytest.fixture
def mock_adapter():
    return MockAdapter()


@pytest.fixture
def client_config(merchant_key, platform_key, platform_serial, mock_adapter):
    """Configuration mapping with a session routed to the mock adapter"""
    session = requests.Session()
    session.mount("https://", mock_adapter)
    return {
        'mchid': MERCHANT_ID,
        'serial': MERCHANT_SERIAL,
        'privateKey': merchant_key,
        'certs': {platform_serial: platform_key.public_key()},
        'secret': APIV2_SECRET,
        'handler': session,
    }
