"""
Exception classes for WeChat Pay Python SDK
"""

from typing import Optional, Dict, Any


class WeChatPaySDKError(Exception):
    """Base exception for all WeChat Pay SDK errors"""

    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(WeChatPaySDKError):
    """Exception raised for missing or invalid client configuration"""

    def __init__(self, message: str, error_code: str = "INVALID_CONFIG", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class MissingMerchantId(ConfigurationError):
    """The `mchid` configuration entry is missing or empty"""

    def __init__(self, message: str = "The merchant id (`mchid`) is required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MISSING_MERCHANT_ID", details)


class MissingCertificateSerial(ConfigurationError):
    """The merchant certificate `serial` configuration entry is missing or empty"""

    def __init__(self, message: str = "The merchant certificate serial number (`serial`) is required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MISSING_CERTIFICATE_SERIAL", details)


class MissingSigningKey(ConfigurationError):
    """The merchant `privateKey` configuration entry is missing or empty"""

    def __init__(self, message: str = "The merchant private key (`privateKey`) is required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MISSING_SIGNING_KEY", details)


class MissingCertificates(ConfigurationError):
    """The platform `certs` configuration entry is missing or empty"""

    def __init__(self, message: str = "The platform certificates (`certs`) are required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MISSING_CERTIFICATES", details)


class KeyFormatError(WeChatPaySDKError):
    """Exception raised when key material cannot be recognized or loaded"""

    def __init__(self, message: str, error_code: str = "INVALID_KEY_FORMAT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class KeyPassphraseError(WeChatPaySDKError):
    """Exception raised when an encrypted private key cannot be decrypted"""

    def __init__(self, message: str, error_code: str = "INVALID_KEY_PASSPHRASE", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class PaddingMismatchError(WeChatPaySDKError):
    """Exception raised when a ciphertext does not decrypt under the requested padding"""

    def __init__(self, message: str, error_code: str = "PADDING_MISMATCH", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class DecryptionError(WeChatPaySDKError):
    """Exception raised for symmetric (AEAD) decryption failures"""

    def __init__(self, message: str, error_code: str = "DECRYPTION_FAILED", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class AuthenticationError(WeChatPaySDKError):
    """
    Base exception for untrusted responses.

    The offending response (when there is one) is attached as ``response``
    for diagnostics only; its body must not be acted upon.
    """

    def __init__(self, message: str, error_code: str = "AUTHENTICATION_FAILED",
                 details: Optional[Dict[str, Any]] = None, response: Any = None):
        super().__init__(message, error_code, details)
        self.response = response


class MissingSignatureHeaders(AuthenticationError):
    """One or more of the Wechatpay-* signature headers is absent"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, response: Any = None):
        super().__init__(message, "MISSING_SIGNATURE_HEADERS", details, response)


class UnknownCertificateSerial(AuthenticationError):
    """The platform certificate serial is not in the pinned registry"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, response: Any = None):
        super().__init__(message, "UNKNOWN_CERTIFICATE_SERIAL", details, response)


class ClockSkewExceeded(AuthenticationError):
    """The response timestamp is too far from the local clock"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, response: Any = None):
        super().__init__(message, "CLOCK_SKEW_EXCEEDED", details, response)


class SignatureVerificationFailed(AuthenticationError):
    """The response signature does not match the canonical response message"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, response: Any = None):
        super().__init__(message, "SIGNATURE_VERIFICATION_FAILED", details, response)
