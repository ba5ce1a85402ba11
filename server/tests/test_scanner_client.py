import asyncio

import httpx
import pytest

from app.errors import TransportError
from app.models import ScanStatus
from app.services.scanner_client import ScannerClient


def _client(handler) -> ScannerClient:
    return ScannerClient(
        base_url="http://scanner.test/api",
        token="opaque-token",
        transport=httpx.MockTransport(handler),
    )


def test_status_poll_parses_scan_job() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(
            200,
            json={
                "id": 7,
                "repositoryId": 3,
                "status": "RUNNING",
                "createdAt": "2024-05-01T10:00:00Z",
                "startedAt": "2024-05-01T10:00:02Z",
                "completedAt": None,
                "totalFiles": 120,
                "analyzedFiles": 40,
            },
        )

    async def scenario():
        async with _client(handler) as client:
            return await client.get_scan_status(7)

    job = asyncio.run(scenario())

    assert seen["url"] == "http://scanner.test/api/scans/7"
    assert seen["auth"] == "Bearer opaque-token"
    assert job.status is ScanStatus.RUNNING
    assert job.analyzed_files == 40
    assert job.completed_at is None


def test_start_scan_posts_to_repository() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/scans/3"
        return httpx.Response(201, json={"scanId": 11, "status": "PENDING"})

    async def scenario():
        async with _client(handler) as client:
            return await client.start_scan(3)

    started = asyncio.run(scenario())

    assert started.scan_id == 11


def test_results_payload_parses_records() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "scanId": 7,
                "completedAt": "2024-05-01T10:05:00Z",
                "metrics": [
                    {"filePath": "src/a.ts", "loc": 10, "sprawlScore": 0.5, "sprawlLevel": "clean"},
                ],
            },
        )

    async def scenario():
        async with _client(handler) as client:
            return await client.get_scan_results(7)

    results = asyncio.run(scenario())

    assert results.scan_id == 7
    assert [m.path for m in results.metrics] == ["src/a.ts"]


def test_error_status_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"message": "boom"})

    async def scenario():
        async with _client(handler) as client:
            await client.get_scan_status(7)

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.status_code == 500


def test_network_failure_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with _client(handler) as client:
            await client.get_scan_status(7)

    with pytest.raises(TransportError):
        asyncio.run(scenario())


def test_unexpected_payload_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": 7, "status": "EXPLODED"})

    async def scenario():
        async with _client(handler) as client:
            await client.get_scan_status(7)

    with pytest.raises(TransportError):
        asyncio.run(scenario())


def test_repository_details_include_scans() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/repositories":
            return httpx.Response(200, json=[{"id": 5, "name": "demo"}])
        return httpx.Response(
            200,
            json={
                "id": 5,
                "name": "demo",
                "fullName": "me/demo",
                "scans": [{"id": 9, "status": "COMPLETED"}, {"id": 3, "status": "FAILED"}],
            },
        )

    async def scenario():
        async with _client(handler) as client:
            return await client.list_repositories(), await client.get_repository(5)

    repositories, repository = asyncio.run(scenario())

    assert [r.name for r in repositories] == ["demo"]
    assert repository.full_name == "me/demo"
    assert [s.id for s in repository.scans] == [9, 3]
