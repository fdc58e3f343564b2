"""Root and health endpoints."""


async def test_root(client):
    data = (await client.get("/")).json()
    assert data["environment"] == "development"
    assert data["health"] == "/health"


async def test_health_reports_each_component(client):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["database"] == "healthy"
    assert data["payment_service"] == "healthy"
    assert data["geo_service"] == "healthy"
    assert data["identity_service"] == "healthy"
    # nothing listens on the test Redis port
    assert data["redis"].startswith("unhealthy")
    assert data["status"] == "degraded"


async def test_ready(client):
    response = await client.get("/health/ready")
    assert response.json() == {"status": "ready"}
