import json

import pytest
from payments.gateway.fake_adapter import FAKE_SALT_INDEX, FAKE_SALT_KEY
from payments.gateway.signing import encode_payload, sign_payload


def build_callback(
    merchant_transaction_id,
    amount,
    code="PAYMENT_SUCCESS",
    success=True,
    transaction_id="T2403011234",
    state="COMPLETED",
    salt_key=FAKE_SALT_KEY,
    salt_index=FAKE_SALT_INDEX,
):
    """A gateway callback body and its X-VERIFY header, signed like the gateway signs them."""
    payload = {
        "success": success,
        "code": code,
        "message": "Your payment is successful." if success else "Payment failed",
        "data": {
            "merchantId": "MERCHANTUAT",
            "merchantTransactionId": merchant_transaction_id,
            "transactionId": transaction_id,
            "amount": amount,
            "state": state,
            "responseCode": "SUCCESS" if success else code,
        },
    }
    encoded = encode_payload(payload)
    return json.dumps({"response": encoded}), sign_payload(encoded, "", salt_key, salt_index)


@pytest.fixture()
def signed_callback():
    return build_callback


@pytest.fixture()
def prepaid_order(place_order):
    return place_order(payment_method="Prepaid")


@pytest.fixture()
def initiated(prepaid_order):
    """A payment session started for the prepaid order."""
    from payments.payment.initiation import initiate_payment

    return initiate_payment(prepaid_order.id)
