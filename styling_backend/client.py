"""Async HTTP client for the credits API."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar
import logging

import httpx

from .models.credit import CreditPack

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = {425}


class CreditClientError(Exception):
    """Raised when the credits API answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    @property
    def retryable(self) -> bool:
        return self.status_code in RETRYABLE_STATUS_CODES


class CreditClient:
    """
    Client for /api/credits.

    Retries "425 Too Early" responses and connection errors with a linear
    backoff of delay * attempt seconds.

    Example:
        >>> async with CreditClient("http://localhost:4000") as client:
        ...     balance = await client.get_balance("firebase-uid-123")
    """

    def __init__(
        self,
        base_url: str = "http://localhost:4000",
        api_prefix: str = "/api",
        max_retries: int = 3,
        delay: float = 0.5,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.api_prefix = api_prefix.rstrip("/")
        self.max_retries = max(max_retries, 1)
        self.delay = delay
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=30.0)

    async def __aenter__(self) -> "CreditClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _with_retry(self, fn: Callable[[], Awaitable[T]]) -> T:
        for attempt in range(1, self.max_retries + 1):
            try:
                return await fn()
            except (httpx.TransportError, CreditClientError) as e:
                retryable = isinstance(e, httpx.TransportError) or e.retryable
                if attempt == self.max_retries or not retryable:
                    raise
                logger.warning(f"Credits API call failed ({e}), retry {attempt}/{self.max_retries - 1}")
                await asyncio.sleep(self.delay * attempt)
        raise CreditClientError("Max retries exceeded")

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_success:
            return payload or {}

        message = None
        code = None
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error")
            code = payload.get("code")
        if not isinstance(message, str):
            message = f"Request failed with status {response.status_code}"
        raise CreditClientError(message, status_code=response.status_code, code=code)

    async def list_packs(self) -> List[CreditPack]:
        async def call():
            response = await self._http.get(f"{self.api_prefix}/credits/packs")
            payload = self._raise_for_error(response)
            return [CreditPack.model_validate(pack) for pack in payload.get("packs") or []]

        return await self._with_retry(call)

    async def get_balance(self, user_id: str) -> int:
        async def call():
            response = await self._http.get(
                f"{self.api_prefix}/credits/balance",
                params={"userId": user_id}
            )
            payload = self._raise_for_error(response)
            balance = payload.get("balance")
            return balance if isinstance(balance, int) else 0

        return await self._with_retry(call)

    async def purchase_pack(self, user_id: str, pack_id: str) -> int:
        """Buy a pack and return the new balance."""
        async def call():
            response = await self._http.post(
                f"{self.api_prefix}/credits/purchase",
                json={"userId": user_id, "packId": pack_id}
            )
            payload = self._raise_for_error(response)
            return payload.get("balance") or 0

        return await self._with_retry(call)
