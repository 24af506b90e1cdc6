"""
Test suite for RSA key material loading
"""

import base64

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from wechatpay_sdk.crypto.keys import (
    KeyRole,
    KeyHandle,
    normalize,
    load_private_key,
    load_public_key,
    from_pkcs1,
    from_pkcs8,
    from_spki,
    pkcs1_to_spki,
    load_certificate,
    parse_certificate_serial_no,
)
from wechatpay_sdk.exceptions import KeyFormatError, KeyPassphraseError

from conftest import PASSPHRASE, b64, private_der, private_pem, public_der, public_pem


def _public_numbers(handle):
    return handle.key.public_numbers() if handle.role == KeyRole.PUBLIC else handle.key.public_key().public_numbers()


class TestTaggedStrings:
    """Test `{private|public}.{encoding}://` key strings"""

    def test_private_pkcs8(self, merchant_key):
        """Test private.pkcs8:// loads the merchant key"""
        handle = normalize(f"private.pkcs8://{b64(private_der(merchant_key))}", KeyRole.PRIVATE)

        assert handle.role == KeyRole.PRIVATE
        assert _public_numbers(handle) == merchant_key.public_key().public_numbers()

    def test_private_pkcs1(self, merchant_key):
        """Test private.pkcs1:// loads a traditional RSA private key"""
        der = private_der(merchant_key, serialization.PrivateFormat.TraditionalOpenSSL)
        handle = load_private_key(f"private.pkcs1://{b64(der)}")

        assert handle.is_private
        assert handle.key_size == 2048

    def test_public_spki(self, merchant_key):
        """Test public.spki:// loads a SubjectPublicKeyInfo key"""
        handle = load_public_key(f"public.spki://{b64(public_der(merchant_key))}")

        assert handle.role == KeyRole.PUBLIC
        assert handle.key.public_numbers() == merchant_key.public_key().public_numbers()

    def test_public_pkcs1(self, merchant_key):
        """Test public.pkcs1:// is wrapped into SPKI before loading"""
        der = public_der(merchant_key, serialization.PublicFormat.PKCS1)
        handle = load_public_key(f"public.pkcs1://{b64(der)}")

        assert handle.key.public_numbers() == merchant_key.public_key().public_numbers()

    def test_unsupported_combination(self, merchant_key):
        """Test encodings that do not exist for a role are rejected"""
        with pytest.raises(KeyFormatError):
            normalize(f"private.spki://{b64(public_der(merchant_key))}", KeyRole.PRIVATE)
        with pytest.raises(KeyFormatError):
            normalize(f"public.pkcs8://{b64(private_der(merchant_key))}", KeyRole.PUBLIC)

    def test_invalid_base64(self):
        """Test a tagged string with a broken payload"""
        with pytest.raises(KeyFormatError):
            load_private_key("private.pkcs8://not*base64!")

    def test_public_tag_for_private_role(self, merchant_key):
        """Test a public key is refused where a private key is required"""
        with pytest.raises(KeyFormatError):
            load_private_key(f"public.spki://{b64(public_der(merchant_key))}")


class TestEncodedMaterial:
    """Test PEM, DER and file:// inputs"""

    def test_pkcs8_pem_string(self, merchant_key):
        """Test PEM text"""
        handle = load_private_key(private_pem(merchant_key).decode('ascii'))
        assert handle.is_private

    def test_pkcs1_pem_bytes(self, merchant_key):
        """Test `RSA PRIVATE KEY` PEM bytes"""
        pem = private_pem(merchant_key, serialization.PrivateFormat.TraditionalOpenSSL)
        assert b'RSA PRIVATE KEY' in pem
        assert load_private_key(pem).is_private

    def test_der_bytes(self, merchant_key):
        """Test raw DER private and public keys"""
        assert load_private_key(private_der(merchant_key)).is_private
        assert load_public_key(public_der(merchant_key)).role == KeyRole.PUBLIC

    def test_bare_pkcs1_public_der(self, merchant_key):
        """Test a bare PKCS#1 RSAPublicKey DER blob"""
        der = public_der(merchant_key, serialization.PublicFormat.PKCS1)
        handle = load_public_key(der)
        assert handle.key.public_numbers() == merchant_key.public_key().public_numbers()

    def test_rsa_public_key_pem(self, merchant_key):
        """Test `RSA PUBLIC KEY` PEM"""
        pem = public_pem(merchant_key, serialization.PublicFormat.PKCS1)
        assert load_public_key(pem).role == KeyRole.PUBLIC

    def test_file_protocol(self, key_files):
        """Test file:// paths to PEM and DER files"""
        assert load_private_key(f"file://{key_files['pkcs8']}").is_private
        assert load_private_key(f"file://{key_files['pkcs1']}").is_private
        assert load_private_key(f"file://{key_files['der']}").is_private
        assert load_public_key(f"file://{key_files['public']}").role == KeyRole.PUBLIC

    def test_missing_file(self, tmp_path):
        """Test an unreadable file:// path"""
        with pytest.raises(KeyFormatError) as exc_info:
            load_private_key(f"file://{tmp_path / 'missing.pem'}")
        assert exc_info.value.error_code == "KEY_FILE_UNREADABLE"

    def test_certificate_yields_public_key(self, platform_key, platform_certificate_pem, key_files):
        """Test certificates resolve to their public key"""
        from_pem = load_public_key(platform_certificate_pem)
        from_file = load_public_key(f"file://{key_files['certificate']}")

        expected = platform_key.public_key().public_numbers()
        assert from_pem.key.public_numbers() == expected
        assert from_file.key.public_numbers() == expected

    def test_certificate_is_not_private(self, platform_certificate_pem):
        """Test a certificate cannot satisfy the private role"""
        with pytest.raises(KeyFormatError):
            load_private_key(platform_certificate_pem)

    def test_private_reduced_to_public(self, merchant_key):
        """Test private material requested as public yields the public half"""
        handle = load_public_key(private_pem(merchant_key))
        assert handle.role == KeyRole.PUBLIC
        assert handle.key.public_numbers() == merchant_key.public_key().public_numbers()

    def test_garbage(self):
        """Test unrecognized material"""
        with pytest.raises(KeyFormatError):
            load_private_key("definitely not a key")
        with pytest.raises(KeyFormatError):
            load_public_key(b"\x00\x01\x02\x03")
        with pytest.raises(KeyFormatError):
            load_private_key(b"")

    def test_unsupported_type(self):
        """Test unsupported Python types"""
        with pytest.raises(KeyFormatError):
            normalize(12345, KeyRole.PRIVATE)


class TestEncryptedKeys:
    """Test passphrase protected PKCS#8 keys"""

    def test_with_passphrase(self, key_files):
        """Test (material, passphrase) tuples"""
        handle = load_private_key((f"file://{key_files['encrypted']}", PASSPHRASE))
        assert handle.is_private

    def test_without_passphrase(self, key_files):
        """Test a missing passphrase"""
        with pytest.raises(KeyPassphraseError):
            load_private_key(f"file://{key_files['encrypted']}")

    def test_wrong_passphrase(self, key_files):
        """Test a wrong passphrase"""
        with pytest.raises(KeyPassphraseError):
            load_private_key((f"file://{key_files['encrypted']}", "wrong"))

    def test_passphrase_ignored_for_plain_key(self, key_files):
        """Test a passphrase given for an unencrypted key is not an error"""
        assert load_private_key((f"file://{key_files['pkcs8']}", PASSPHRASE)).is_private


class TestPassThrough:
    """Test already loaded keys"""

    def test_handle_pass_through(self, merchant_key):
        """Test KeyHandle instances are returned as is"""
        handle = KeyHandle.wrap(merchant_key)
        assert load_private_key(handle) is handle

    def test_native_key(self, merchant_key):
        """Test cryptography key objects"""
        assert load_private_key(merchant_key).key is merchant_key
        assert load_public_key(merchant_key.public_key()).role == KeyRole.PUBLIC

    def test_public_handle_for_private_role(self, merchant_key):
        """Test a public handle cannot be used as a private key"""
        with pytest.raises(KeyFormatError):
            load_private_key(KeyHandle.wrap(merchant_key.public_key()))

    def test_non_rsa_key(self):
        """Test non-RSA keys are rejected"""
        with pytest.raises(KeyFormatError):
            KeyHandle.wrap(ec.generate_private_key(ec.SECP256R1()))

    def test_role_mismatch_on_construction(self, merchant_key):
        """Test KeyHandle validates the key against its role"""
        with pytest.raises(KeyFormatError):
            KeyHandle(KeyRole.PUBLIC, merchant_key)


class TestHelpers:
    """Test encoding specific helpers"""

    def test_pkcs1_to_spki(self, merchant_key):
        """Test the SPKI envelope matches what cryptography produces"""
        pkcs1 = b64(public_der(merchant_key, serialization.PublicFormat.PKCS1))
        assert pkcs1_to_spki(pkcs1) == b64(public_der(merchant_key))

    def test_pkcs1_to_spki_invalid(self):
        """Test a payload that is not an RSAPublicKey"""
        with pytest.raises(KeyFormatError):
            pkcs1_to_spki(base64.b64encode(b"\x04\x03abc").decode('ascii'))

    def test_from_helpers(self, merchant_key):
        """Test from_pkcs1/from_pkcs8/from_spki"""
        pkcs1_private = b64(private_der(merchant_key, serialization.PrivateFormat.TraditionalOpenSSL))
        pkcs1_public = b64(public_der(merchant_key, serialization.PublicFormat.PKCS1))

        assert from_pkcs1(pkcs1_private).is_private
        assert from_pkcs1(pkcs1_public, KeyRole.PUBLIC).role == KeyRole.PUBLIC
        assert from_pkcs8(b64(private_der(merchant_key))).is_private
        assert from_spki(b64(public_der(merchant_key))).role == KeyRole.PUBLIC


class TestCertificates:
    """Test certificate loading and serial numbers"""

    def test_load_certificate_sources(self, platform_certificate, platform_certificate_pem, key_files):
        """Test certificate objects, PEM text, paths and file:// paths"""
        assert load_certificate(platform_certificate) is platform_certificate
        assert load_certificate(platform_certificate_pem.decode('ascii')) == platform_certificate
        assert load_certificate(str(key_files['certificate'])) == platform_certificate
        assert load_certificate(f"file://{key_files['certificate']}") == platform_certificate

    def test_load_der_certificate(self, platform_certificate):
        """Test DER certificates"""
        der = platform_certificate.public_bytes(serialization.Encoding.DER)
        assert load_certificate(der) == platform_certificate

    def test_invalid_certificate(self):
        """Test malformed certificate bytes"""
        with pytest.raises(KeyFormatError):
            load_certificate(b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n")

    def test_serial_number(self, platform_certificate, platform_certificate_pem):
        """Test the serial is upper-case hex of the certificate serial number"""
        serial = parse_certificate_serial_no(platform_certificate_pem)

        assert serial == serial.upper()
        assert int(serial, 16) == platform_certificate.serial_number
