"""
Market Pull — Email Verifier (BounceBan)
Checks candidate emails one at a time against the BounceBan waterfall API.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import aiohttp

logger = logging.getLogger(__name__)

VERIFY_URL = "https://api-waterfall.bounceban.com/v1/verify/single"

SAFE_RESULTS = {"deliverable", "safe", "valid"}

_VERIFY_DELAY = 0.2
# Waterfall verification can hold the connection open while it retries.
_REQUEST_TIMEOUT = 60


@dataclass
class VerificationResult:
    email: str
    result: str
    safe: bool


def classify_response(email: str, status_code: int, data: Optional[dict]) -> VerificationResult:
    """Map an HTTP status + JSON body onto a VerificationResult."""
    if status_code == 408:
        return VerificationResult(email, "timeout", False)
    if status_code < 200 or status_code >= 300:
        return VerificationResult(email, "error", False)

    data = data or {}
    result = str(data.get("result") or data.get("status") or "unknown").lower()
    return VerificationResult(email, result, result in SAFE_RESULTS)


class EmailVerifier:
    """Sequential deliverability checks with a fixed gap between requests."""

    def __init__(self, api_key: str, delay: float = _VERIFY_DELAY):
        self.api_key = api_key
        self.delay = delay

    async def verify_email(self, session: aiohttp.ClientSession, email: str) -> VerificationResult:
        try:
            async with session.get(
                VERIFY_URL,
                params={"email": email},
                headers={"Authorization": self.api_key},
                timeout=aiohttp.ClientTimeout(total=_REQUEST_TIMEOUT),
            ) as resp:
                data = None
                if 200 <= resp.status < 300:
                    data = await resp.json(content_type=None)
                return classify_response(email, resp.status, data)
        except Exception as e:
            logger.error(f"BounceBan error for {email}: {e}")
            return VerificationResult(email, "error", False)

    async def verify_batch(
        self,
        session: aiohttp.ClientSession,
        emails: List[str],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> List[VerificationResult]:
        """Verify every email in order, reporting (done, total) after each."""
        results: List[VerificationResult] = []
        total = len(emails)

        for i, email in enumerate(emails):
            results.append(await self.verify_email(session, email))
            if on_progress:
                on_progress(i + 1, total)
            if i < total - 1:
                await asyncio.sleep(self.delay)

        safe = sum(1 for r in results if r.safe)
        logger.info(f"  📬  BounceBan: {safe}/{total} emails safe")
        return results
