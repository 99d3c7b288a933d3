# tests/test_api_client.py
import unittest
from unittest.mock import MagicMock

import requests

from fintrack_client.api_client import ApiClient, ApiError


def response(status_code, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    if payload is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


class TestApiClient(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.client = ApiClient("http://api.test/api/", session=self.session)

    def test_request_returns_envelope(self):
        self.session.request.return_value = response(200, {"success": True, "data": {"budgets": []}})
        payload = self.client.get_budgets()
        self.assertEqual(payload["data"], {"budgets": []})
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("GET", "http://api.test/api/budgets"))
        self.assertNotIn("Authorization", kwargs["headers"])
        self.assertEqual(kwargs["timeout"], 10)

    def test_bearer_token_attached(self):
        self.client.token = "abc"
        self.session.request.return_value = response(200, {"success": True})
        self.client.get_goals()
        headers = self.session.request.call_args[1]["headers"]
        self.assertEqual(headers["Authorization"], "Bearer abc")

    def test_error_status_raises_with_field_errors(self):
        errors = [{"field": "amount", "message": "Amount must be a positive number"}]
        self.session.request.return_value = response(
            400, {"success": False, "message": "Validation failed", "errors": errors}
        )
        with self.assertRaises(ApiError) as ctx:
            self.client.create_transaction({"amount": -1})
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, "Validation failed")
        self.assertEqual(ctx.exception.errors, errors)

    def test_error_without_body(self):
        self.session.request.return_value = response(502)
        with self.assertRaises(ApiError) as ctx:
            self.client.get_goals()
        self.assertEqual(ctx.exception.message, "HTTP error! status: 502")

    def test_transport_failure_has_status_zero(self):
        self.session.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(ApiError) as ctx:
            self.client.get_budgets()
        self.assertEqual(ctx.exception.status_code, 0)

    def test_login_stores_token(self):
        self.session.request.return_value = response(200, {"success": True, "data": {"token": "t1", "user": {}}})
        self.client.login("a@example.com", "secret1")
        self.assertEqual(self.client.token, "t1")

    def test_logout_clears_token_even_on_failure(self):
        self.client.token = "t1"
        self.session.request.return_value = response(401, {"success": False, "message": "Authentication required"})
        with self.assertRaises(ApiError):
            self.client.logout()
        self.assertIsNone(self.client.token)

    def test_get_all_transactions_walks_pages(self):
        def page(n, pages):
            return response(200, {"success": True, "data": {
                "transactions": [{"id": n}],
                "pagination": {"page": n, "limit": 100, "total": pages, "pages": pages},
            }})

        self.session.request.side_effect = [page(1, 3), page(2, 3), page(3, 3)]
        transactions = self.client.get_all_transactions(type="expense")
        self.assertEqual([t["id"] for t in transactions], [1, 2, 3])
        last_params = self.session.request.call_args[1]["params"]
        self.assertEqual(last_params, {"page": 3, "limit": 100, "type": "expense"})

    def test_get_all_transactions_with_no_rows(self):
        self.session.request.return_value = response(200, {"success": True, "data": {
            "transactions": [], "pagination": {"page": 1, "limit": 100, "total": 0, "pages": 0},
        }})
        self.assertEqual(self.client.get_all_transactions(), [])
        self.assertEqual(self.session.request.call_count, 1)

    def test_health_check_hits_root(self):
        self.session.get.return_value = response(200, {"status": "OK"})
        self.assertEqual(self.client.health_check(), {"status": "OK"})
        self.assertEqual(self.session.get.call_args[0][0], "http://api.test/health")


if __name__ == "__main__":
    unittest.main()
