"""HTTP tests for the queue API."""

import uuid

import pytest

from tablequeue.config import get_settings


async def create_restaurant(client, slug="casa-nova"):
    response = await client.post(
        "/api/admin/restaurants",
        json={"name": "Casa Nova", "slug": slug, "timezone": "America/Sao_Paulo"},
    )
    assert response.status_code == 201
    return response.json()


async def join(client, restaurant_id, party_size=2, **extra):
    payload = {"customer_name": "Guest", "party_size": party_size, **extra}
    return await client.post(f"/api/restaurants/{restaurant_id}/queue/tickets", json=payload)


@pytest.fixture
def staff_key():
    settings = get_settings()
    settings.staff_api_key = "front-desk"
    yield "front-desk"
    settings.staff_api_key = None


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_restaurant_lookup_by_slug(client):
    created = await create_restaurant(client)

    response = await client.get("/api/restaurants/casa-nova")

    assert response.status_code == 200
    assert response.json()["id"] == created["id"]
    assert (await client.get("/api/restaurants/nowhere")).status_code == 404


async def test_duplicate_slug_rejected(client):
    await create_restaurant(client)
    response = await client.post(
        "/api/admin/restaurants", json={"name": "Again", "slug": "casa-nova"}
    )
    assert response.status_code == 422
    assert response.json()["code"] == "validation_failed"


async def test_unknown_timezone_rejected(client):
    response = await client.post(
        "/api/admin/restaurants",
        json={"name": "Olympus Grill", "slug": "olympus", "timezone": "Mars/Olympus"},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_failed"
    assert (await client.get("/api/restaurants/olympus")).status_code == 404


async def test_ticket_lifecycle_over_http(client):
    restaurant = await create_restaurant(client)
    rid = restaurant["id"]

    created = await join(client, rid, party_size=4, priority="high")
    assert created.status_code == 201
    ticket = created.json()
    assert ticket["status"] == "waiting"
    assert ticket["size_band"] == "3-4"
    assert ticket["position_number"] == 1

    called = await client.post(f"/api/restaurants/{rid}/queue/tickets/{ticket['id']}/call")
    assert called.status_code == 200
    assert called.json()["status"] == "called"

    seated = await client.post(f"/api/restaurants/{rid}/queue/tickets/{ticket['id']}/seat")
    assert seated.status_code == 200
    body = seated.json()
    assert body["ticket"]["status"] == "seated"
    assert body["ticket"]["terminal_at"] is not None
    assert body["warning"] is None

    canceled = await client.post(f"/api/restaurants/{rid}/queue/tickets/{ticket['id']}/cancel")
    assert canceled.status_code == 409
    assert canceled.json()["code"] == "invalid_transition"

    fetched = await client.get(f"/api/restaurants/{rid}/queue/tickets/{ticket['id']}")
    assert fetched.json()["status"] == "seated"


async def test_unknown_ticket_is_404(client):
    restaurant = await create_restaurant(client)
    response = await client.post(
        f"/api/restaurants/{restaurant['id']}/queue/tickets/{uuid.uuid4()}/call"
    )
    assert response.status_code == 404
    assert response.json()["code"] == "ticket_not_found"


async def test_enqueue_validation_errors(client):
    restaurant = await create_restaurant(client)
    rid = restaurant["id"]

    too_big = await join(client, rid, party_size=20)
    assert too_big.status_code == 422
    assert too_big.json()["code"] == "validation_failed"

    empty = await join(client, rid, party_size=0)
    assert empty.status_code == 422

    bad_priority = await join(client, rid, priority="royalty")
    assert bad_priority.status_code == 422


async def test_board_ranks_per_band(client):
    restaurant = await create_restaurant(client)
    rid = restaurant["id"]
    ids = [(await join(client, rid, party_size=size)).json()["id"] for size in (2, 2, 5)]

    response = await client.get(f"/api/restaurants/{rid}/queue/tickets")

    assert response.status_code == 200
    board = response.json()
    assert board["total_groups"] == 3
    assert board["total_people"] == 9
    assert board["waiting_by_band"]["1-2"] == 2
    assert board["waiting_by_band"]["5-6"] == 1

    by_id = {entry["id"]: entry for entry in board["tickets"]}
    assert [by_id[i]["band_rank"] for i in ids] == [1, 2, 1]
    assert [by_id[i]["queue_index"] for i in ids] == [1, 2, 3]
    assert by_id[ids[0]]["estimated_wait_minutes"] is None
    assert by_id[ids[2]]["size_group"] == "5–6 people"


async def test_clear_queue_over_http(client):
    restaurant = await create_restaurant(client)
    rid = restaurant["id"]
    for _ in range(4):
        await join(client, rid)

    first = await client.post(f"/api/restaurants/{rid}/queue/clear")
    second = await client.post(f"/api/restaurants/{rid}/queue/clear")

    assert first.json() == {"cleared": 4}
    assert second.status_code == 200
    assert second.json() == {"cleared": 0}

    board = (await client.get(f"/api/restaurants/{rid}/queue/tickets")).json()
    assert board["tickets"] == []


async def test_queue_info_endpoint(client):
    restaurant = await create_restaurant(client)
    other = await create_restaurant(client, slug="outra")
    rid = restaurant["id"]

    mine = (await join(client, rid, party_size=3)).json()
    theirs = (await join(client, other["id"])).json()

    response = await client.post("/api/queue/info", json={"restaurant_id": rid, "ticket_id": mine["id"]})
    assert response.status_code == 200
    info = response.json()
    assert info["position"] == 1
    assert info["band_rank"] == 1
    assert info["size_group"] == "3–4 people"
    assert info["ticket"]["id"] == mine["id"]

    response = await client.post("/api/queue/info", json={"restaurant_id": rid, "ticket_id": theirs["id"]})
    assert response.status_code == 200
    assert response.json()["position"] is None

    response = await client.post("/api/queue/info", json={"restaurant_id": str(uuid.uuid4())})
    assert response.status_code == 404


async def test_wait_times_and_settings(client):
    restaurant = await create_restaurant(client)
    rid = restaurant["id"]

    wait_times = (await client.get(f"/api/restaurants/{rid}/queue/wait-times")).json()
    assert wait_times["general_average_minutes"] is None
    assert [entry["band"] for entry in wait_times["bands"]] == ["1-2", "3-4", "5-6", "7-8", "9-10", "10+"]
    assert all(entry["minutes"] is None for entry in wait_times["bands"])

    defaults = (await client.get(f"/api/restaurants/{rid}/queue/settings")).json()
    assert defaults == {"max_party_size": 8, "queue_capacity": 50, "tolerance_minutes": 10}

    saved = await client.put(
        f"/api/restaurants/{rid}/queue/settings",
        json={"max_party_size": 14, "queue_capacity": 30, "tolerance_minutes": 5},
    )
    assert saved.status_code == 200
    assert saved.json()["max_party_size"] == 14
    assert (await join(client, rid, party_size=14)).status_code == 201


async def test_seat_records_customer_visit(client):
    restaurant = await create_restaurant(client)
    rid = restaurant["id"]
    customer = (await client.post(
        "/api/admin/customers",
        json={"restaurant_id": rid, "name": "Rita", "phone": "+5511912345678"},
    )).json()

    ticket = (await join(client, rid, phone="+5511912345678")).json()
    assert ticket["customer_id"] == customer["id"]

    await client.post(f"/api/restaurants/{rid}/queue/tickets/{ticket['id']}/call")
    seated = (await client.post(f"/api/restaurants/{rid}/queue/tickets/{ticket['id']}/seat")).json()
    assert seated["visit_recorded"] is True
    await client.post(f"/api/restaurants/{rid}/queue/tickets/{ticket['id']}/seat")

    refreshed = (await client.get(f"/api/admin/customers/{customer['id']}")).json()
    assert refreshed["total_visits"] == 1
    assert refreshed["last_visit_date"] is not None

    synced = await client.post("/api/admin/visits/sync")
    assert synced.json() == {"recorded": 0}


async def test_staff_key_required_when_configured(client, staff_key):
    restaurant_id = uuid.uuid4()

    missing = await client.get(f"/api/restaurants/{restaurant_id}/queue/tickets")
    wrong = await client.get(
        f"/api/restaurants/{restaurant_id}/queue/tickets",
        headers={"X-Staff-API-Key": "nope"},
    )
    right = await client.get(
        f"/api/restaurants/{restaurant_id}/queue/tickets",
        headers={"X-Staff-API-Key": staff_key},
    )

    assert missing.status_code == 403
    assert wrong.status_code == 403
    assert right.status_code == 404

    # The public status page needs no key
    public = await client.post("/api/queue/info", json={"restaurant_id": str(restaurant_id)})
    assert public.status_code == 404
