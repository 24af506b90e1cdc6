"""
Test suite for AEAD_AES_256_GCM resource decryption
"""

import base64

import pytest

from wechatpay_sdk.crypto import aes_gcm
from wechatpay_sdk.exceptions import DecryptionError

APIV3_KEY = "0123456789abcdefghijklmnopqrstuv"
NONCE = "fdasflkja484"
AAD = "certificate"


class TestAesGcm:
    """Test encrypt/decrypt of callback resources"""

    def test_round_trip(self):
        """Test a resource decrypts back to its plaintext"""
        plaintext = '{"mchid":"1230000109","trade_state":"SUCCESS"}'
        ciphertext = aes_gcm.encrypt(plaintext, APIV3_KEY, NONCE, AAD)

        assert aes_gcm.decrypt(ciphertext, APIV3_KEY, NONCE, AAD) == plaintext

    def test_tag_appended(self):
        """Test the ciphertext carries the 16 byte tag"""
        ciphertext = aes_gcm.encrypt("abc", APIV3_KEY, NONCE)
        assert len(base64.b64decode(ciphertext)) == 3 + aes_gcm.BLOCK_SIZE

    def test_wrong_aad(self):
        """Test associated data is authenticated"""
        ciphertext = aes_gcm.encrypt("abc", APIV3_KEY, NONCE, AAD)
        with pytest.raises(DecryptionError) as exc_info:
            aes_gcm.decrypt(ciphertext, APIV3_KEY, NONCE, "transaction")
        assert exc_info.value.error_code == "AUTHENTICATION_TAG_MISMATCH"

    def test_wrong_key(self):
        """Test a different key fails authentication"""
        ciphertext = aes_gcm.encrypt("abc", APIV3_KEY, NONCE)
        with pytest.raises(DecryptionError):
            aes_gcm.decrypt(ciphertext, "v" * 32, NONCE)

    def test_key_length(self):
        """Test keys must be 32 bytes"""
        with pytest.raises(DecryptionError) as exc_info:
            aes_gcm.encrypt("abc", "short", NONCE)
        assert exc_info.value.error_code == "INVALID_AEAD_KEY"

    def test_malformed_ciphertext(self):
        """Test non-base64 and truncated payloads"""
        with pytest.raises(DecryptionError):
            aes_gcm.decrypt("not base64!", APIV3_KEY, NONCE)
        with pytest.raises(DecryptionError):
            aes_gcm.decrypt(base64.b64encode(b"0123").decode('ascii'), APIV3_KEY, NONCE)
