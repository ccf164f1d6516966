"""Tests for X-VERIFY signing and verification."""

import hashlib

import pytest
from payments.gateway.signing import decode_payload, encode_payload, sign_payload, verify_signature
from shared.errors import InvalidSignature

SALT_KEYS = {"1": "salt-one", "2": "salt-two"}


def _flip_bit(hex_digest: str, position: int = 0) -> str:
    flipped = int(hex_digest[position], 16) ^ 1
    return f"{hex_digest[:position]}{flipped:x}{hex_digest[position + 1:]}"


class TestSignPayload:
    def test_signature_format(self):
        encoded = encode_payload({"amount": 100})
        signature = sign_payload(encoded, "/pg/v1/pay", "salt-one", "1")

        digest, index = signature.split("###")
        assert index == "1"
        assert digest == hashlib.sha256(f"{encoded}/pg/v1/paysalt-one".encode()).hexdigest()

    def test_empty_salt_rejected(self):
        with pytest.raises(ValueError):
            sign_payload("abc", "", "", "1")


class TestVerifySignature:
    def test_valid_signature_passes(self):
        encoded = encode_payload({"code": "PAYMENT_SUCCESS"})
        verify_signature(encoded, sign_payload(encoded, "", "salt-two", "2"), "", SALT_KEYS)

    def test_single_bit_flip_rejected(self):
        encoded = encode_payload({"code": "PAYMENT_SUCCESS"})
        digest, index = sign_payload(encoded, "", "salt-one", "1").split("###")

        for position in (0, 31, 63):
            with pytest.raises(InvalidSignature):
                verify_signature(encoded, f"{_flip_bit(digest, position)}###{index}", "", SALT_KEYS)

    def test_tampered_payload_rejected(self):
        encoded = encode_payload({"amount": 100})
        signature = sign_payload(encoded, "", "salt-one", "1")
        with pytest.raises(InvalidSignature):
            verify_signature(encode_payload({"amount": 1}), signature, "", SALT_KEYS)

    def test_wrong_endpoint_rejected(self):
        encoded = encode_payload({"amount": 100})
        signature = sign_payload(encoded, "/pg/v1/pay", "salt-one", "1")
        with pytest.raises(InvalidSignature):
            verify_signature(encoded, signature, "", SALT_KEYS)

    def test_unknown_salt_index_rejected(self):
        encoded = encode_payload({"amount": 100})
        signature = sign_payload(encoded, "", "salt-one", "9")
        with pytest.raises(InvalidSignature):
            verify_signature(encoded, signature, "", SALT_KEYS)

    def test_signature_made_with_other_index_key_rejected(self):
        encoded = encode_payload({"amount": 100})
        digest = sign_payload(encoded, "", "salt-one", "1").split("###")[0]
        with pytest.raises(InvalidSignature):
            verify_signature(encoded, f"{digest}###2", "", SALT_KEYS)

    @pytest.mark.parametrize("header", [None, "", "no-separator", "a###b###c"])
    def test_malformed_header_rejected(self, header):
        with pytest.raises(InvalidSignature):
            verify_signature(encode_payload({}), header, "", SALT_KEYS)

    def test_uppercase_digest_rejected(self):
        encoded = encode_payload({"amount": 100})
        signature = sign_payload(encoded, "", "salt-one", "1")
        with pytest.raises(InvalidSignature):
            verify_signature(encoded, signature.upper(), "", SALT_KEYS)


class TestPayloadEncoding:
    def test_decode_reverses_encode(self):
        payload = {"data": {"merchantTransactionId": "MT1", "amount": 90000}}
        assert decode_payload(encode_payload(payload)) == payload

    @pytest.mark.parametrize("encoded", ["not base64!", "bm90IGpzb24=", "WzEsMl0="])
    def test_invalid_payloads_raise_value_error(self, encoded):
        # "bm90IGpzb24=" is "not json"; "WzEsMl0=" is a JSON list
        with pytest.raises(ValueError):
            decode_payload(encoded)
