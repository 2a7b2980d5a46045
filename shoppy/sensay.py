# shoppy/sensay.py
import logging
import time
from typing import Any, Dict, Optional

import httpx
from tenacity.wait import wait_base

from .config import (
    SENSAY_API_URL,
    SENSAY_API_KEY,
    SENSAY_API_VERSION,
    SENSAY_REPLICA_UUID,
    HTTP_TIMEOUT_SECONDS,
    HTTP_MAX_ATTEMPTS,
)
from .errors import AIServiceError
from .http_client import RetryableStatusError, request_with_retry

logger = logging.getLogger(__name__)


class SensayClient:
    """Thin client for the Sensay replica chat API."""

    def __init__(
        self,
        api_url: str = SENSAY_API_URL,
        api_key: str = SENSAY_API_KEY,
        replica_uuid: str = SENSAY_REPLICA_UUID,
        api_version: str = SENSAY_API_VERSION,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        max_attempts: int = HTTP_MAX_ATTEMPTS,
        retry_wait: Optional[wait_base] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"{api_url.rstrip('/')}/v1"
        self.replica_uuid = replica_uuid
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "X-ORGANIZATION-SECRET": api_key,
                "X-API-Version": api_version,
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = await request_with_retry(
                self._client, "POST", url,
                max_attempts=self.max_attempts, wait=self.retry_wait,
                json=payload, headers=headers,
            )
        except RetryableStatusError as e:
            raise AIServiceError(f"AI service unavailable ({e.response.status_code})") from e
        except httpx.HTTPError as e:
            raise AIServiceError(f"AI service network error: {e}") from e

        if resp.status_code >= 400:
            logger.error("[SENSAY] %s -> HTTP %s: %s", path, resp.status_code, resp.text[:300])
            raise AIServiceError(f"AI service HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise AIServiceError("AI service returned invalid JSON") from e

    async def create_user(self, external_id: str) -> str:
        body = await self._post("/users", {"id": external_id})
        user_id = body.get("id")
        if not user_id:
            raise AIServiceError("AI service did not return a user id")
        logger.info("[SENSAY] created user %s", user_id)
        return user_id

    async def chat(self, sensay_user_id: str, content: str) -> str:
        if not self.replica_uuid:
            raise AIServiceError("SENSAY_REPLICA_UUID is not configured")
        body = await self._post(
            f"/replicas/{self.replica_uuid}/chat/completions",
            {"content": content},
            headers={"X-USER-ID": sensay_user_id},
        )
        reply = body.get("content")
        if not isinstance(reply, str):
            raise AIServiceError("AI service returned no content")
        return reply


def external_user_id(user_id: str) -> str:
    return f"customer_{user_id}_{int(time.time() * 1000)}"
