"""
Unit tests for the retrying HTTP client.
"""
import unittest

import httpx

from waf_manager.core.http_client import RetryingClient, RetryPolicy
from waf_manager.exceptions.custom_exceptions import RequestError

URL = "https://api.cloudflare.com/client/v4/zones"


class SequenceTransport:
    """Replays a list of responses (or exceptions) and counts calls."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome.status_code, headers=outcome.headers, content=outcome.content)


class TestRetryingClient(unittest.IsolatedAsyncioTestCase):
    """Test cases for RetryingClient."""

    def setUp(self):
        """Set up test fixtures."""
        self.sleeps = []

    async def record_sleep(self, delay: float):
        self.sleeps.append(delay)

    def make_client(self, transport: SequenceTransport, **policy) -> RetryingClient:
        return RetryingClient(
            client=httpx.AsyncClient(transport=httpx.MockTransport(transport)),
            policy=RetryPolicy(**policy),
            sleep=self.record_sleep,
        )

    async def test_rate_limited_twice_then_success(self):
        """Test two 429s followed by a 200 succeed on the third attempt."""
        # Arrange
        transport = SequenceTransport([
            httpx.Response(429),
            httpx.Response(429),
            httpx.Response(200, json={"success": True}),
        ])
        client = self.make_client(transport, max_attempts=3)

        # Act
        response = await client.request("GET", URL)

        # Assert
        self.assertEqual(response.status_code, 200)
        self.assertEqual(transport.calls, 3)
        self.assertEqual(self.sleeps, [1.0, 2.0])

    async def test_always_rate_limited_exhausts_retries(self):
        """Test a permanently rate-limited endpoint surfaces the final failure."""
        # Arrange
        transport = SequenceTransport([httpx.Response(429, json={"success": False})])
        client = self.make_client(transport, max_attempts=3)

        # Act & Assert
        with self.assertRaises(RequestError) as context:
            await client.request("GET", URL)

        self.assertEqual(context.exception.status, 429)
        self.assertEqual(context.exception.url, URL)
        self.assertEqual(transport.calls, 3)
        self.assertEqual(len(self.sleeps), 2)

    async def test_retry_after_header_is_honoured(self):
        """Test Retry-After wins when it is longer than the backoff delay."""
        # Arrange
        transport = SequenceTransport([
            httpx.Response(429, headers={"Retry-After": "5"}),
            httpx.Response(200, json={"success": True}),
        ])
        client = self.make_client(transport)

        # Act
        await client.request("GET", URL)

        # Assert
        self.assertEqual(self.sleeps, [5.0])

    async def test_backoff_grows_from_retry_after(self):
        """Test the delay after a Retry-After wait is multiplied from that wait."""
        # Arrange
        transport = SequenceTransport([
            httpx.Response(429, headers={"Retry-After": "3"}),
            httpx.Response(429),
            httpx.Response(200, json={"success": True}),
        ])
        client = self.make_client(transport, max_attempts=3, base_delay=1.0, multiplier=2.0)

        # Act
        await client.request("GET", URL)

        # Assert
        self.assertEqual(self.sleeps, [3.0, 6.0])

    async def test_client_error_is_not_retried(self):
        """Test a 403 propagates immediately."""
        # Arrange
        transport = SequenceTransport([
            httpx.Response(403, json={"success": False, "errors": [{"message": "Authentication error"}]}),
        ])
        client = self.make_client(transport)

        # Act & Assert
        with self.assertRaises(RequestError) as context:
            await client.request("GET", URL)

        self.assertEqual(context.exception.status, 403)
        self.assertEqual(context.exception.body["errors"][0]["message"], "Authentication error")
        self.assertEqual(transport.calls, 1)
        self.assertEqual(self.sleeps, [])

    async def test_network_error_is_retried(self):
        """Test connection failures are retried with backoff."""
        # Arrange
        transport = SequenceTransport([
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json={"success": True}),
        ])
        client = self.make_client(transport)

        # Act
        response = await client.request("GET", URL)

        # Assert
        self.assertEqual(response.status_code, 200)
        self.assertEqual(transport.calls, 2)
        self.assertEqual(self.sleeps, [1.0])

    async def test_network_error_exhausts_retries(self):
        """Test persistent connection failures raise RequestError."""
        # Arrange
        transport = SequenceTransport([httpx.ConnectError("connection refused")])
        client = self.make_client(transport, max_attempts=2)

        # Act & Assert
        with self.assertRaises(RequestError) as context:
            await client.request("GET", URL)

        self.assertIsNone(context.exception.status)
        self.assertEqual(transport.calls, 2)

    async def test_gateway_error_is_retried(self):
        """Test 503 responses are treated as transient."""
        # Arrange
        transport = SequenceTransport([
            httpx.Response(503),
            httpx.Response(200, json={"success": True}),
        ])
        client = self.make_client(transport)

        # Act
        response = await client.request("GET", URL)

        # Assert
        self.assertEqual(response.status_code, 200)
        self.assertEqual(transport.calls, 2)

    async def test_per_call_policy_override(self):
        """Test a call site can override the retry count."""
        # Arrange
        transport = SequenceTransport([httpx.Response(429)])
        client = self.make_client(transport, max_attempts=3)
        policy = client.policy.with_overrides(retries=5, delay=0.5, backoff=3)

        # Act & Assert
        with self.assertRaises(RequestError):
            await client.request("GET", URL, policy=policy)

        self.assertEqual(transport.calls, 5)
        self.assertEqual(self.sleeps, [0.5, 1.5, 4.5, 13.5])

    async def test_malformed_json_body(self):
        """Test a non-JSON body raises RequestError without retrying."""
        # Arrange
        transport = SequenceTransport([httpx.Response(200, text="<html>oops</html>")])
        client = self.make_client(transport)

        # Act & Assert
        with self.assertRaises(RequestError) as context:
            await client.request_json("GET", URL)

        self.assertIn("Malformed", context.exception.message)
        self.assertEqual(transport.calls, 1)

    async def test_error_message_omits_url(self):
        """Test the failure message stays generic while the URL is kept on the error."""
        # Arrange
        url = "https://api.cloudflare.com/client/v4/zones/zone-secret-42/rulesets"
        transport = SequenceTransport([httpx.Response(403)])
        client = self.make_client(transport)

        # Act & Assert
        with self.assertRaises(RequestError) as context:
            await client.request("GET", url)

        self.assertEqual(context.exception.message, "Cloudflare request failed with status 403")
        self.assertNotIn("zone-secret-42", context.exception.message)
        self.assertEqual(context.exception.url, url)


if __name__ == '__main__':
    unittest.main()
