import httpx
import pytest

from conftest import make_ticket, make_user
from portal_sla.config import settings
from portal_sla.main import app

SECRET = "cron-test-secret"


@pytest.fixture
async def client(monitor, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", SECRET)
    app.state.sla_monitor = monitor
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    del app.state.sla_monitor


@pytest.fixture
def overdue_ticket(ticket_repo):
    ticket = make_ticket(creator=make_user())
    ticket_repo.tickets[ticket.id] = ticket
    return ticket


async def test_cron_requires_secret(client):
    response = await client.get("/internal/cron/sla-check")
    assert response.status_code == 401


async def test_cron_rejects_wrong_secret(client):
    response = await client.get("/internal/cron/sla-check", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


async def test_cron_fails_closed_without_configured_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", None)

    response = await client.get("/internal/cron/sla-check", params={"token": ""})

    assert response.status_code == 401


async def test_cron_with_bearer_header(client, overdue_ticket):
    response = await client.get(
        "/internal/cron/sla-check", headers={"Authorization": f"Bearer {SECRET}"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "checked": 1,
        "notified": 1,
        "tickets": [
            {"ticket_id": str(overdue_ticket.id), "ticket_number": 1001, "level": "warning"}
        ],
    }
    assert "X-Correlation-ID" in response.headers


async def test_cron_with_query_token(client):
    response = await client.get("/internal/cron/sla-check", params={"token": SECRET})

    assert response.status_code == 200
    assert response.json() == {"checked": 0, "notified": 0, "tickets": []}


async def test_on_demand_check(client, overdue_ticket):
    first = await client.post(f"/sla/tickets/{overdue_ticket.id}/check")
    second = await client.post(f"/sla/tickets/{overdue_ticket.id}/check")

    assert first.json() == {"ticket_id": str(overdue_ticket.id), "notified": True}
    assert second.json()["notified"] is False


async def test_on_demand_check_malformed_id(client):
    response = await client.post("/sla/tickets/not-a-uuid/check")

    assert response.status_code == 200
    assert response.json() == {"ticket_id": "not-a-uuid", "notified": False}


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["checks"]["sla_monitor"] == "ready"
