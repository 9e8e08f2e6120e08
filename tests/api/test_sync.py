"""Tests for sync endpoints."""

from httpx import AsyncClient

from taxbridge_sync.core.exceptions import RemoteAPIError


class TestRunSync:
    """Tests for POST /api/sync/run."""

    async def test_syncs_queued_invoices(
        self, api_client: AsyncClient, memory_store, endpoint, record_factory
    ):
        record = await memory_store.append(record_factory())

        response = await api_client.post("/api/sync/run")

        assert response.status_code == 200
        assert response.json() == {"synced": 1, "deferred": 0, "failed": 0, "skipped": None}
        assert endpoint.calls == [record.id]
        assert (await memory_store.get(record.id)).synced

    async def test_mixed_outcomes(self, api_client: AsyncClient, memory_store, endpoint, record_factory):
        deferred = await memory_store.append(record_factory())
        failed = await memory_store.append(record_factory())
        endpoint.script[deferred.id] = [RemoteAPIError(503)]
        endpoint.script[failed.id] = [RemoteAPIError(400)]

        response = await api_client.post("/api/sync/run")

        assert response.json() == {"synced": 0, "deferred": 1, "failed": 1, "skipped": None}

    async def test_offline(self, api_client: AsyncClient, memory_store, endpoint, probe, record_factory):
        await memory_store.append(record_factory())
        probe.status = 503

        response = await api_client.post("/api/sync/run")

        assert response.status_code == 200
        assert response.json() == {"synced": 0, "deferred": 0, "failed": 0, "skipped": "offline"}
        assert endpoint.calls == []


class TestSyncStatus:
    """Tests for GET /api/sync/status."""

    async def test_before_and_after_pass(self, api_client: AsyncClient, memory_store, record_factory):
        await memory_store.append(record_factory())

        before = (await api_client.get("/api/sync/status")).json()
        await api_client.post("/api/sync/run")
        after = (await api_client.get("/api/sync/status")).json()

        assert before["unsynced"] == 1
        assert before["last_result"] is None
        assert before["is_running"] is False
        assert after["unsynced"] == 0
        assert after["total"] == 1
        assert after["is_reachable"] is True
        assert after["last_result"]["synced"] == 1
        assert after["last_completed_at"] is not None
        assert after["notifications"][0]["message"] == "1 invoice synced"
        assert after["notifications"][0]["trigger"] == "manual"
