"""Management API tests over the SQLite-backed services."""

import json

import pytest

HOOK = "https://hooks.example.com/scribe"
SLACK = "https://hooks.slack.com/services/T9/B9/zzz"


async def _create_webhook(client, **overrides):
    body = {
        "destination_url": HOOK,
        "shared_secret": "whsec_123",
        "subscribed_events": ["summary.completed"],
        "scope_id": "org-42",
    }
    body.update(overrides)
    return await client.post("/api/v1/webhooks", json=body)


@pytest.mark.asyncio
async def test_webhook_crud(client):
    created = await _create_webhook(client)
    assert created.status_code == 201
    webhook = created.json()
    assert webhook["id"].startswith("whk_")
    assert "shared_secret" not in webhook

    fetched = await client.get(f"/api/v1/webhooks/{webhook['id']}")
    assert fetched.json()["destination_url"] == HOOK

    patched = await client.patch(
        f"/api/v1/webhooks/{webhook['id']}",
        json={"subscribed_events": ["summary.completed", "payment.success"]},
    )
    assert patched.status_code == 200
    assert patched.json()["subscribed_events"] == ["payment.success", "summary.completed"]

    listed = await client.get("/api/v1/webhooks", params={"scope_id": "org-42"})
    assert [w["id"] for w in listed.json()] == [webhook["id"]]

    deleted = await client.delete(f"/api/v1/webhooks/{webhook['id']}")
    assert deleted.json()["active"] is False
    active = await client.get("/api/v1/webhooks", params={"active_only": True})
    assert active.json() == []


@pytest.mark.asyncio
async def test_invalid_webhook_rejected_with_error_response(client):
    response = await _create_webhook(client, destination_url="not-a-url")
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "CONFIGURATION_ERROR"
    assert error["trace_id"].startswith("trc_")


@pytest.mark.asyncio
async def test_unknown_webhook_is_404(client):
    response = await client.get("/api/v1/webhooks/whk_missing")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_dispatch_event_and_inspect_delivery(client, http):
    http.route(HOOK, 200)
    webhook = (await _create_webhook(client)).json()

    response = await client.post(
        "/api/v1/events",
        json={
            "event_type": "summary.completed",
            "data": {"summary_id": "sum_1", "title": "Weekly Standup"},
            "scope_id": "org-42",
        },
    )
    assert response.status_code == 200
    summary = response.json()
    assert summary["succeeded"] == 1
    assert summary["failed"] == 0

    attempt_id = summary["attempt_ids"][0]
    attempt = (await client.get(f"/api/v1/deliveries/{attempt_id}")).json()
    assert attempt["status"] == "success"
    assert attempt["envelope_id"] == summary["envelope_id"]

    history = (await client.get(f"/api/v1/webhooks/{webhook['id']}/deliveries")).json()
    assert [a["id"] for a in history] == [attempt_id]


@pytest.mark.asyncio
async def test_dispatch_unknown_event_type_is_400(client):
    response = await client.post("/api/v1/events", json={"event_type": "nope.nope", "data": {}})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "UNKNOWN_EVENT_TYPE"


@pytest.mark.asyncio
async def test_dispatch_invalid_payload_is_400(client):
    response = await client.post("/api/v1/events", json={"event_type": "payment.success", "data": {}})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_failed_delivery_then_manual_retry_sweep(client, http, app):
    http.route(HOOK, 503)
    await _create_webhook(client)
    summary = (
        await client.post(
            "/api/v1/events",
            json={"event_type": "summary.completed", "data": {"summary_id": "s", "title": "T"}},
        )
    ).json()
    attempt_id = summary["attempt_ids"][0]
    attempt = (await client.get(f"/api/v1/deliveries/{attempt_id}")).json()
    assert attempt["status"] == "retrying"
    assert attempt["next_retry_at"] is not None

    # Not due yet: the first backoff step is a minute away
    sweep = (await client.post("/api/v1/deliveries/retry-sweep")).json()
    assert sweep["due"] == 0


@pytest.mark.asyncio
async def test_notifications_inbox_and_slack(client, http):
    http.route(SLACK, 200)
    configured = await client.put(
        "/api/v1/users/u-1/slack-integration",
        json={"webhook_url": SLACK, "organization_id": "org-42", "team_name": "Acme"},
    )
    assert configured.status_code == 200
    assert "webhook_url" not in configured.json()

    summary = (
        await client.post(
            "/api/v1/events",
            json={
                "event_type": "summary.completed",
                "data": {"summary_id": "sum_7", "title": "Weekly Standup"},
                "user_id": "u-1",
            },
        )
    ).json()
    results = summary["notifications"]["results"]
    assert results["in_app"]["status"] == "delivered"
    assert results["slack"]["status"] == "delivered"
    assert "Weekly Standup" in json.loads(http.requests_to(SLACK)[0].content)["text"]

    inbox = (await client.get("/api/v1/users/u-1/notifications")).json()
    assert len(inbox) == 1
    notification_id = inbox[0]["id"]

    wrong_user = await client.post(f"/api/v1/notifications/{notification_id}/read", json={"user_id": "u-2"})
    assert wrong_user.status_code == 404
    marked = await client.post(f"/api/v1/notifications/{notification_id}/read", json={"user_id": "u-1"})
    assert marked.json() == {"notification_id": notification_id, "read": True}
    assert (await client.get("/api/v1/users/u-1/notifications")).json() == []


@pytest.mark.asyncio
async def test_notification_preferences(client):
    assert (await client.get("/api/v1/users/u-3/notification-preferences")).json() == {
        "in_app": True,
        "push": True,
        "slack": True,
        "email": False,
    }
    await client.put("/api/v1/users/u-3/notification-preferences", json={"in_app": False})
    prefs = (await client.get("/api/v1/users/u-3/notification-preferences")).json()
    assert prefs["in_app"] is False

    summary = (
        await client.post(
            "/api/v1/events",
            json={"event_type": "file.uploaded", "data": {"file_id": "f1", "file_name": "call.mp3", "user_id": "u-3"}},
        )
    ).json()
    assert summary["notifications"]["results"]["in_app"]["status"] == "skipped"


@pytest.mark.asyncio
async def test_push_subscription_routes(client):
    response = await client.put(
        "/api/v1/users/u-4/push-subscription",
        json={"endpoint": "https://fcm.example.com/abc", "keys": {"auth": "a", "p256dh": "k"}},
    )
    assert response.status_code == 200
    removed = await client.delete("/api/v1/users/u-4/push-subscription")
    assert removed.status_code == 204


@pytest.mark.asyncio
async def test_deployment_notify_without_destinations(client):
    response = await client.post(
        "/api/v1/deployments/notify",
        json={
            "id": "dpl_1",
            "status": "success",
            "environment": "production",
            "branch": "main",
            "commit": {"sha": "abcdef1234", "message": "Ship it", "author": "dev"},
            "start_time": "2026-03-01T12:00:00Z",
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["results"]["slack"]["status"] == "skipped"
    assert body["results"]["discord"]["status"] == "skipped"
