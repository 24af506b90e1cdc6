#!/usr/bin/env python3
"""
WeChat Pay Python SDK - Request Signing Example

This example signs a request, verifies a platform style response and shows
how chains turn into request paths. It runs offline with throwaway keys.
"""

import json
import sys
import os

# Add src to path for development
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from cryptography.hazmat.primitives.asymmetric import rsa as rsa_keys

from wechatpay_sdk import (
    BuilderChain,
    CertificateRegistry,
    MerchantCredential,
    RequestAuthenticator,
    AuthenticationHeader,
    AuthenticationError,
    formatter,
    rsa,
)


def signing_example(authenticator):
    """Sign a native payment request"""
    print("=== Request Signing ===")

    body = json.dumps({
        "appid": "wxd678efh567hg6787",
        "mchid": "1230000109",
        "description": "Image形象店-深圳腾大-QQ公仔",
        "out_trade_no": "1217752501201407033233368018",
        "amount": {"total": 1},
    }, ensure_ascii=False, separators=(',', ':'))

    header = authenticator.authorize('POST', '/v3/pay/transactions/native', body)
    print(f"Authorization: {str(header)[:96]}...")
    print(f"Round trip ok: {AuthenticationHeader.parse(str(header)) == header}")


def verification_example(authenticator, platform_key, platform_serial):
    """Verify a response the way the transport does"""
    print("\n=== Response Verification ===")

    body = '{"code_url":"weixin://wxpay/bizpayurl?pr=p4lpSuKzz"}'
    timestamp = formatter.timestamp()
    nonce = formatter.nonce()
    headers = {
        'Wechatpay-Nonce': nonce,
        'Wechatpay-Serial': platform_serial,
        'Wechatpay-Timestamp': str(timestamp),
        'Wechatpay-Signature': rsa.sign(formatter.for_response(timestamp, nonce, body), platform_key),
    }

    authenticator.verify_response(headers, body)
    print("Genuine response accepted")

    try:
        authenticator.verify_response(headers, body.replace('p4lp', 'XXXX'))
    except AuthenticationError as e:
        print(f"Tampered response rejected: {e.error_code}")


def chain_example():
    """Show the paths chains resolve to"""
    print("\n=== Endpoint Chains ===")

    root = BuilderChain()
    for chain in (
        root.v3.pay.transactions.native,
        root.v3.combineTransactions['{combine_out_trade_no}'],
        root.v3.marketing.busifavor.users._openid_.coupons['{coupon_code}'],
        root.chain('v2/pay/downloadbill'),
    ):
        print(chain.pathname())


def main():
    merchant_key = rsa_keys.generate_private_key(public_exponent=65537, key_size=2048)
    platform_key = rsa_keys.generate_private_key(public_exponent=65537, key_size=2048)
    platform_serial = "7132D72A03E93CDDF8C03BBD1F37EEDF"

    authenticator = RequestAuthenticator(
        MerchantCredential("1230000109", "3775B6A45ACD588826D15E583A95F5DD", merchant_key),
        CertificateRegistry({platform_serial: platform_key.public_key()}),
    )

    signing_example(authenticator)
    verification_example(authenticator, platform_key, platform_serial)
    chain_example()


if __name__ == "__main__":
    main()
