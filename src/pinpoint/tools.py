import httpx
import logging

from pinpoint.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


class PinpointClient:
    """HTTP client for the Pinpoint backend (customers, business config, estimates).

    Every call is wrapped in a circuit breaker and fails soft: after 3
    consecutive failures calls are skipped for 60s and an empty fallback is
    returned so the conversation can carry on without the backend.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._circuit = CircuitBreaker(
            failure_threshold=3,
            cooldown_seconds=60.0,
            label="Pinpoint backend",
        )
        if client is not None:
            self._client = client
        else:
            headers = {"Content-Type": "application/json"}
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
            )

    async def close(self):
        """Close the shared HTTP client. Call at end of session."""
        await self._client.aclose()

    async def search_customers(self, name: str) -> list[dict]:
        """Customers whose name loosely matches. Empty list on any failure."""
        if not self._circuit.allow():
            logger.warning("Pinpoint circuit breaker open, skipping customer search")
            return []
        try:
            resp = await self._client.get("/api/customers", params={"search": name})
            resp.raise_for_status()
            self._circuit.record_success()
            data = resp.json()
            if isinstance(data, dict):
                data = data.get("customers", [])
            return [c for c in data if isinstance(c, dict)]
        except Exception as e:
            self._circuit.record_failure()
            logger.error("search_customers failed: %s", e)
            return []

    async def get_business_config(self) -> dict:
        """Default rate, markup, tax and hours per day. Empty dict on failure."""
        if not self._circuit.allow():
            logger.warning("Pinpoint circuit breaker open, skipping business config")
            return {}
        try:
            resp = await self._client.get("/api/business-config")
            resp.raise_for_status()
            self._circuit.record_success()
            return resp.json()
        except Exception as e:
            self._circuit.record_failure()
            logger.error("get_business_config failed: %s", e)
            return {}

    async def create_estimate(self, payload: dict) -> dict:
        if not self._circuit.allow():
            logger.warning("Pinpoint circuit breaker open, not creating estimate")
            return {"success": False, "error": "Pinpoint backend unavailable"}
        try:
            resp = await self._client.post("/api/estimates", json=payload)
            resp.raise_for_status()
            self._circuit.record_success()
            return resp.json()
        except Exception as e:
            self._circuit.record_failure()
            logger.error("create_estimate failed: %s", e)
            return {"success": False, "error": str(e)}
