import logging
from typing import Any, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from app.config import REQUEST_TIMEOUT_SECONDS, SCANNER_API_TOKEN, SCANNER_API_URL
from app.errors import TransportError
from app.models import Repository, ScanJob, ScanResults, ScanStarted

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ScannerClient:
    """
    Async client for the scanner service and its repository store.

    Every failure, whether the connection, a non-2xx status or a payload
    that does not validate, is raised as TransportError. Retrying is left
    to the caller.
    """

    def __init__(
        self,
        base_url: str = SCANNER_API_URL,
        token: Optional[str] = SCANNER_API_TOKEN,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ScannerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str) -> Any:
        try:
            response = await self._client.request(method, url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Scanner answered {e.response.status_code} for {method} {url}")
            raise TransportError(
                f"{method} {url} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Scanner request {method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"{method} {url} returned invalid JSON") from e

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, url: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise TransportError(f"Unexpected payload from {url}: {e}") from e

    async def start_scan(self, repository_id: int) -> ScanStarted:
        url = f"/scans/{repository_id}"
        return self._parse(ScanStarted, await self._request("POST", url), url)

    async def get_scan_status(self, scan_id: int) -> ScanJob:
        url = f"/scans/{scan_id}"
        return self._parse(ScanJob, await self._request("GET", url), url)

    async def get_scan_results(self, scan_id: int) -> ScanResults:
        url = f"/scans/{scan_id}/results"
        return self._parse(ScanResults, await self._request("GET", url), url)

    async def list_repositories(self) -> List[Repository]:
        url = "/repositories"
        data = await self._request("GET", url)
        try:
            return TypeAdapter(List[Repository]).validate_python(data)
        except ValidationError as e:
            raise TransportError(f"Unexpected payload from {url}: {e}") from e

    async def get_repository(self, repository_id: int) -> Repository:
        url = f"/repositories/{repository_id}"
        return self._parse(Repository, await self._request("GET", url), url)
