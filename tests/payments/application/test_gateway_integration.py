"""PhonePe adapter against a mocked HTTP transport."""

import hashlib
import json

import httpx
import pytest
from payments.gateway import build_gateway
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.phonepe_adapter import PAY_ENDPOINT, PhonePeGateway
from payments.gateway.signing import decode_payload, encode_payload, sign_payload
from shared.config import Settings
from shared.errors import GatewayError, InvalidSignature

BASE_URL = "https://api-preprod.phonepe.com/apis/pg-sandbox"
MERCHANT_ID = "MERCHANTUAT"
SALT_KEYS = {"1": "099eb0cd-02cf-4e2a-8aca-3e6c6aff0399"}

PAY_RESPONSE = {
    "success": True,
    "code": "PAYMENT_INITIATED",
    "message": "Payment Initiated",
    "data": {
        "merchantId": MERCHANT_ID,
        "merchantTransactionId": "MT-1",
        "instrumentResponse": {
            "type": "PAY_PAGE",
            "redirectInfo": {"url": "https://mercury-uat.phonepe.com/transact/pg?token=abc", "method": "GET"},
        },
    },
}


def _gateway(handler):
    return PhonePeGateway(
        base_url=BASE_URL,
        merchant_id=MERCHANT_ID,
        salt_keys=SALT_KEYS,
        salt_index="1",
        timeout=2.0,
        transport=httpx.MockTransport(handler),
    )


def _initiate(gateway):
    return gateway.initiate_payment(
        merchant_transaction_id="MT-1",
        amount_minor=90000,
        user_id="cust-001",
        redirect_url="https://shop.local/checkout/success",
        callback_url="https://api.shop.local/payments/callback",
        mobile_number="9876543210",
    )


class TestInitiatePayment:
    def test_request_is_signed(self):
        captured = {}

        def handler(request):
            captured["request"] = request
            return httpx.Response(200, json=PAY_RESPONSE)

        session = _initiate(_gateway(handler))

        request = captured["request"]
        assert request.method == "POST"
        assert request.url.path.endswith(PAY_ENDPOINT)
        assert request.headers["X-MERCHANT-ID"] == MERCHANT_ID

        encoded = json.loads(request.content)["request"]
        digest, index = request.headers["X-VERIFY"].split("###")
        assert index == "1"
        assert digest == hashlib.sha256(f"{encoded}{PAY_ENDPOINT}{SALT_KEYS['1']}".encode()).hexdigest()

        payload = decode_payload(encoded)
        assert payload["merchantTransactionId"] == "MT-1"
        assert payload["amount"] == 90000
        assert payload["merchantUserId"] == "cust-001"
        assert payload["mobileNumber"] == "9876543210"
        assert payload["paymentInstrument"] == {"type": "PAY_PAGE"}

        assert session.redirect_url == "https://mercury-uat.phonepe.com/transact/pg?token=abc"
        assert session.gateway_code == "PAYMENT_INITIATED"

    def test_base64_wrapped_response(self):
        def handler(request):
            return httpx.Response(200, json={"response": encode_payload(PAY_RESPONSE)})

        session = _initiate(_gateway(handler))
        assert session.redirect_url.startswith("https://mercury-uat.phonepe.com/")

    def test_non_2xx_raises_gateway_error(self):
        def handler(request):
            return httpx.Response(400, json={"success": False, "code": "BAD_REQUEST"})

        with pytest.raises(GatewayError) as exc_info:
            _initiate(_gateway(handler))
        assert exc_info.value.status == 400

    def test_missing_redirect_url_raises_gateway_error(self):
        def handler(request):
            return httpx.Response(200, json={"success": True, "code": "PAYMENT_INITIATED", "data": {}})

        with pytest.raises(GatewayError):
            _initiate(_gateway(handler))

    def test_timeout_propagates(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(httpx.TransportError):
            _initiate(_gateway(handler))


class TestFetchStatus:
    def test_status_request_signed_over_endpoint(self):
        captured = {}

        def handler(request):
            captured["request"] = request
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "code": "PAYMENT_SUCCESS",
                    "data": {
                        "merchantTransactionId": "MT-1",
                        "transactionId": "T2403011234",
                        "amount": 90000,
                        "state": "COMPLETED",
                    },
                },
            )

        result = _gateway(handler).fetch_status("MT-1")

        endpoint = f"/pg/v1/status/{MERCHANT_ID}/MT-1"
        request = captured["request"]
        assert request.method == "GET"
        assert request.url.path.endswith(endpoint)
        assert request.headers["X-VERIFY"] == sign_payload("", endpoint, SALT_KEYS["1"], "1")

        assert result.is_paid is True
        assert result.transaction_id == "T2403011234"
        assert result.amount == 90000

    def test_failed_payment_status(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "code": "PAYMENT_ERROR", "data": {"state": "FAILED"}})

        result = _gateway(handler).fetch_status("MT-1")
        assert result.is_paid is False
        assert result.state == "FAILED"

    def test_server_error_raises_gateway_error(self):
        def handler(request):
            return httpx.Response(503, text="unavailable")

        with pytest.raises(GatewayError) as exc_info:
            _gateway(handler).fetch_status("MT-1")
        assert exc_info.value.status == 503


class TestVerifyCallback:
    def test_callbacks_signed_over_body_only(self):
        gateway = _gateway(lambda request: httpx.Response(200))
        encoded = encode_payload({"code": "PAYMENT_SUCCESS"})

        gateway.verify_callback(encoded, sign_payload(encoded, "", SALT_KEYS["1"], "1"))

        with pytest.raises(InvalidSignature):
            gateway.verify_callback(encoded, sign_payload(encoded, PAY_ENDPOINT, SALT_KEYS["1"], "1"))


class TestConstruction:
    def test_missing_salt_key_rejected(self):
        with pytest.raises(ValueError):
            PhonePeGateway(base_url=BASE_URL, merchant_id=MERCHANT_ID, salt_keys={}, salt_index="1")

    def test_fake_gateway_without_merchant(self):
        assert isinstance(build_gateway(Settings(gateway_merchant_id="")), FakeGateway)

    def test_phonepe_gateway_with_merchant(self):
        gateway = build_gateway(
            Settings(gateway_merchant_id=MERCHANT_ID, gateway_salt_keys=SALT_KEYS, gateway_salt_index="1")
        )
        try:
            assert isinstance(gateway, PhonePeGateway)
        finally:
            gateway.close()
