"""
Tests for the BounceBan email verifier.
Run with: python -m pytest tests/test_email_verifier.py -v
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from enrichment.email_verifier import EmailVerifier, VERIFY_URL, classify_response
from http_fakes import FakeResponse, FakeSession


class TestClassifyResponse:
    def test_safe_results(self):
        for word in ("deliverable", "safe", "valid", "DELIVERABLE"):
            result = classify_response("a@acme.com", 200, {"result": word})
            assert result.safe, word

    def test_unsafe_results(self):
        for word in ("undeliverable", "risky", "accept_all"):
            result = classify_response("a@acme.com", 200, {"result": word})
            assert not result.safe
            assert result.result == word

    def test_status_field_fallback(self):
        result = classify_response("a@acme.com", 200, {"status": "valid"})
        assert result.result == "valid"
        assert result.safe

    def test_missing_result_is_unknown(self):
        result = classify_response("a@acme.com", 200, {})
        assert result.result == "unknown"
        assert not result.safe

    def test_408_is_timeout(self):
        result = classify_response("a@acme.com", 408, None)
        assert result.result == "timeout"
        assert not result.safe

    def test_other_http_errors(self):
        for status in (401, 429, 500, 503):
            result = classify_response("a@acme.com", status, None)
            assert result.result == "error"
            assert not result.safe


class TestVerifyBatch:
    def _verify(self, handler, emails, on_progress=None):
        session = FakeSession(handler)
        verifier = EmailVerifier("bb-key", delay=0)

        async def run():
            return await verifier.verify_batch(session, emails, on_progress)

        return asyncio.run(run()), session

    def test_one_result_per_email_in_order(self):
        verdicts = {
            "a@acme.com": {"result": "deliverable"},
            "b@acme.com": {"result": "undeliverable"},
            "c@acme.com": {"result": "risky"},
        }
        results, _ = self._verify(
            lambda m, u, kw: FakeResponse(200, verdicts[kw["params"]["email"]]),
            list(verdicts),
        )
        assert [r.email for r in results] == ["a@acme.com", "b@acme.com", "c@acme.com"]
        assert [r.safe for r in results] == [True, False, False]

    def test_progress_after_each_email(self):
        progress = []
        self._verify(
            lambda m, u, kw: FakeResponse(200, {"result": "valid"}),
            ["a@acme.com", "b@acme.com", "c@acme.com"],
            on_progress=lambda done, total: progress.append((done, total)),
        )
        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_transport_error_marks_email_error(self):
        def handler(method, url, kwargs):
            if kwargs["params"]["email"] == "a@acme.com":
                return ConnectionError("refused")
            return FakeResponse(200, {"result": "valid"})

        results, _ = self._verify(handler, ["a@acme.com", "b@acme.com"])
        assert (results[0].result, results[0].safe) == ("error", False)
        assert results[1].safe

    def test_timeout_status(self):
        results, _ = self._verify(lambda m, u, kw: FakeResponse(408), ["a@acme.com"])
        assert results[0].result == "timeout"

    def test_request_shape(self):
        _, session = self._verify(lambda m, u, kw: FakeResponse(200, {"result": "valid"}), ["a@acme.com"])
        method, url, kwargs = session.calls[0]
        assert method == "GET"
        assert url == VERIFY_URL
        assert kwargs["params"] == {"email": "a@acme.com"}
        assert kwargs["headers"]["Authorization"] == "bb-key"

    def test_empty_batch(self):
        results, session = self._verify(lambda m, u, kw: FakeResponse(200), [])
        assert results == []
        assert session.calls == []
