"""Shared test doubles."""

import json


class MockResponse:
    """Stand-in for requests.Response carrying a raw body."""

    def __init__(self, status_code=200, json_data=None, text=None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(json_data)

    def json(self):
        return json.loads(self.text)


def pay_link_ok(url="https://checkout.paddle.com/checkout/custom/abc123"):
    return MockResponse(200, {"success": True, "response": {"url": url}})


def public_key_ok(pem):
    return MockResponse(200, {"success": True, "response": {"public_key": pem}})


class FakeLedger:
    """In-memory OrderLedger keyed by order id."""

    def __init__(self, *order_ids):
        self.orders = {order_id: "pending" for order_id in order_ids}
        self.mark_paid_calls = []

    def get_order(self, order_id):
        if order_id not in self.orders:
            return None
        return self.orders[order_id]

    def mark_paid(self, order_id):
        self.mark_paid_calls.append(order_id)
        if self.orders[order_id] == "paid":
            return False
        self.orders[order_id] = "paid"
        return True
