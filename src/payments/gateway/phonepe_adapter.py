"""PhonePe Pay Page adapter (checksum/salt flow).

Outbound calls carry an ``X-VERIFY`` signature and are bounded by the
configured timeout. Transport failures (timeouts, refused connections) are
left to the caller; see :mod:`payments.gateway.retry`.
"""

import httpx
import structlog

from payments.gateway.port import PaymentGateway, PaymentSession, PaymentStatusResult
from payments.gateway.signing import decode_payload, encode_payload, sign_payload, verify_signature
from shared.errors import GatewayError

logger = structlog.get_logger(__name__)

PAY_ENDPOINT = "/pg/v1/pay"
STATUS_ENDPOINT = "/pg/v1/status/{merchant_id}/{merchant_transaction_id}"


def _unwrap(document: dict) -> dict:
    """Some responses wrap the real document in a base64 ``response`` field."""
    encoded = document.get("response")
    if isinstance(encoded, str):
        try:
            return decode_payload(encoded)
        except ValueError:
            logger.warning("Gateway response field is not base64 JSON")
    return document


class PhonePeGateway(PaymentGateway):
    def __init__(
        self,
        base_url: str,
        merchant_id: str,
        salt_keys: dict[str, str],
        salt_index: str = "1",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not merchant_id:
            raise ValueError("Gateway merchant id is not configured")
        if not salt_keys.get(salt_index):
            raise ValueError(f"No salt key configured for index {salt_index}")

        self.merchant_id = merchant_id
        self.salt_keys = salt_keys
        self.salt_index = salt_index
        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def _sign(self, base64_payload: str, endpoint: str) -> str:
        return sign_payload(base64_payload, endpoint, self.salt_keys[self.salt_index], self.salt_index)

    def _json(self, response: httpx.Response, endpoint: str) -> dict:
        if not response.is_success:
            logger.warning(
                "Gateway request failed",
                endpoint=endpoint,
                status=response.status_code,
                body=response.text[:500],
            )
            raise GatewayError(response.status_code, response.text)
        try:
            document = response.json()
        except ValueError:
            raise GatewayError(response.status_code, response.text) from None
        return _unwrap(document)

    def initiate_payment(
        self,
        merchant_transaction_id: str,
        amount_minor: int,
        user_id: str,
        redirect_url: str,
        callback_url: str,
        mobile_number: str | None = None,
    ) -> PaymentSession:
        payload = {
            "merchantId": self.merchant_id,
            "merchantTransactionId": merchant_transaction_id,
            "merchantUserId": user_id or f"user_{merchant_transaction_id}",
            "amount": amount_minor,
            "redirectUrl": redirect_url,
            "redirectMode": "REDIRECT",
            "callbackUrl": callback_url,
            "paymentInstrument": {"type": "PAY_PAGE"},
        }
        if mobile_number:
            payload["mobileNumber"] = mobile_number

        encoded = encode_payload(payload)
        response = self.client.post(
            PAY_ENDPOINT,
            json={"request": encoded},
            headers={"X-VERIFY": self._sign(encoded, PAY_ENDPOINT), "X-MERCHANT-ID": self.merchant_id},
        )
        document = self._json(response, PAY_ENDPOINT)

        data = document.get("data") or {}
        redirect_info = (data.get("instrumentResponse") or {}).get("redirectInfo") or document.get("redirectInfo") or {}
        if not redirect_info.get("url"):
            raise GatewayError(response.status_code, "Gateway response has no redirect URL")

        logger.info(
            "Payment initiated",
            merchant_transaction_id=merchant_transaction_id,
            amount_minor=amount_minor,
            code=document.get("code"),
        )
        return PaymentSession(
            merchant_transaction_id=merchant_transaction_id,
            redirect_url=redirect_info["url"],
            gateway_code=document.get("code"),
        )

    def fetch_status(self, merchant_transaction_id: str) -> PaymentStatusResult:
        endpoint = STATUS_ENDPOINT.format(
            merchant_id=self.merchant_id, merchant_transaction_id=merchant_transaction_id
        )
        response = self.client.get(
            endpoint,
            headers={"X-VERIFY": self._sign("", endpoint), "X-MERCHANT-ID": self.merchant_id},
        )
        document = self._json(response, endpoint)
        data = document.get("data") or {}

        return PaymentStatusResult(
            merchant_transaction_id=data.get("merchantTransactionId", merchant_transaction_id),
            code=document.get("code", "UNKNOWN"),
            state=data.get("state"),
            transaction_id=data.get("transactionId"),
            amount=data.get("amount"),
            success=bool(document.get("success")),
        )

    def verify_callback(self, base64_payload: str, signature: str | None) -> None:
        # Callbacks are signed over the body alone
        verify_signature(base64_payload, signature, "", self.salt_keys)

    def close(self) -> None:
        self.client.close()
