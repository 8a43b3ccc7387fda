"""HTTP client for the model-serving service used by the ML strategy."""

import asyncio
import logging
import time
from typing import Optional

import httpx

from scoreleague.config import get_settings
from scoreleague.models import Match
from scoreleague.providers.base import MlPredictionService, ScorePrediction

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding one-minute window limiter owned by a single client instance."""

    def __init__(self, requests_per_minute: int):
        self.requests_per_minute = max(1, requests_per_minute)
        self._requests: list[float] = []
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until another request fits in the window, then record it."""
        async with self._lock:
            now = time.monotonic()
            self._requests = [t for t in self._requests if now - t < 60]

            while len(self._requests) >= self.requests_per_minute:
                wait_time = 60 - (now - self._requests[0]) + 0.05
                if wait_time > 0:
                    logger.info(f"ML rate limit reached, waiting {wait_time:.1f}s")
                    await asyncio.sleep(wait_time)
                now = time.monotonic()
                self._requests = [t for t in self._requests if now - t < 60]

            self._requests.append(now)


class HttpMlPredictionService(MlPredictionService):
    """
    Talks to the model-serving API.

    Endpoints:
        GET  /models/active?model_type=...  -> {"version": "v1.2.0"} (404 = none)
        POST /predict/scores                -> {"home_score": 1.7, "away_score": 0.9, "model_version": "..."}
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        requests_per_minute: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url if base_url is not None else settings.ML_SERVICE_URL).rstrip("/")
        self.rate_limiter = RateLimiter(
            requests_per_minute or settings.ML_REQUESTS_PER_MINUTE
        )
        self.client = client or httpx.AsyncClient(
            timeout=timeout or settings.ML_SERVICE_TIMEOUT_SECONDS
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Rate-limited request with exponential backoff on 429."""
        max_retries = 3
        retry_delay = 1.0

        for attempt in range(max_retries):
            await self.rate_limiter.acquire()
            response = await self.client.request(method, f"{self.base_url}{path}", **kwargs)
            if response.status_code == 429 and attempt < max_retries - 1:
                wait_time = retry_delay * (2**attempt)
                logger.warning(f"ML service rate limited. Waiting {wait_time}s before retry...")
                await asyncio.sleep(wait_time)
                continue
            return response

        return response

    async def get_active_model_version(self, model_type: str) -> Optional[str]:
        if not self.is_configured:
            return None

        response = await self._request("GET", "/models/active", params={"model_type": model_type})
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json().get("version")

    async def predict_scores(self, match: Match) -> Optional[ScorePrediction]:
        if not self.is_configured:
            return None

        payload = {
            "match_id": match.id,
            "competition_id": match.competition_id,
            "home_team_id": match.home_team_id,
            "away_team_id": match.away_team_id,
            "kickoff_at": match.kickoff_at.isoformat(),
        }
        response = await self._request("POST", "/predict/scores", json=payload)
        response.raise_for_status()
        data = response.json()

        home = data.get("home_score")
        away = data.get("away_score")
        if home is None or away is None:
            logger.warning(f"ML service returned incomplete prediction for match {match.id}: {data}")
            return None

        return ScorePrediction(
            home_score=float(home),
            away_score=float(away),
            model_version=data.get("model_version"),
        )

    async def close(self) -> None:
        await self.client.aclose()


# ── Singleton ────────────────────────────────────────────────────────────────

_ml_service: Optional[HttpMlPredictionService] = None


def get_ml_prediction_service() -> HttpMlPredictionService:
    """Get or create the shared model-serving client."""
    global _ml_service
    if _ml_service is None:
        _ml_service = HttpMlPredictionService()
    return _ml_service


async def close_ml_prediction_service() -> None:
    global _ml_service
    if _ml_service is not None:
        await _ml_service.close()
        _ml_service = None
