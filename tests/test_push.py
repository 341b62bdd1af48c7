import asyncio
import base64

from pywebpush import WebPushException

from carelink.services import push as push_module
from carelink.services.push import PushDispatcher, WebPushSender, build_envelope, build_webpush_sender
from carelink.services.vapid_keys import generate_vapid_keys

NOTIFICATION = {"id": "n1", "type": "sos", "message": "SOS from Ana", "from": "u1", "time": 1, "read": False}

BROWSER_SUB = {
    "endpoint": "https://fcm.googleapis.com/fcm/send/abc",
    "expirationTime": None,
    "keys": {"p256dh": "BNc...", "auth": "tB..."},
}


def seed_subscriptions(store, count):
    with store.transaction() as doc:
        doc["webpushSubscriptions"] = [{"token": f"tok-{i}", "platform": "web"} for i in range(count)]


def key_of(subscription):
    return subscription.get("token") or subscription.get("endpoint")


class FlakySender:
    """Fails for the tokens/endpoints listed in `failing`, records every attempt."""

    def __init__(self, failing=(), error="boom"):
        self.failing = set(failing)
        self.error = error
        self.attempts = []

    def __call__(self, subscription, envelope):
        self.attempts.append((key_of(subscription), envelope))
        if key_of(subscription) in self.failing:
            if isinstance(self.error, Exception):
                raise self.error
            raise RuntimeError(self.error)


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code
        self.text = ""


def fcm_dispatcher(store, sender, **kwargs):
    return PushDispatcher(store, fcm_sender=sender, fcm_ready=lambda: True, **kwargs)


def test_envelope_shape():
    env = build_envelope(NOTIFICATION, "AlzAssist")
    assert env == {"title": "AlzAssist", "body": "SOS from Ana", "data": NOTIFICATION}


def test_one_failure_does_not_stop_the_others(store):
    seed_subscriptions(store, 5)
    sender = FlakySender(failing={"tok-2"})
    dispatcher = fcm_dispatcher(store, sender)

    results = asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert sorted(token for token, _ in sender.attempts) == [f"tok-{i}" for i in range(5)]
    assert [r.ok for r in results] == [True, True, False, True, True]
    assert results[2].error == "boom"


def test_every_delivery_gets_the_same_envelope(store):
    seed_subscriptions(store, 3)
    sender = FlakySender()
    dispatcher = fcm_dispatcher(store, sender, title="Care")

    asyncio.run(dispatcher.dispatch(NOTIFICATION))

    envelopes = [env for _, env in sender.attempts]
    assert all(env == {"title": "Care", "body": "SOS from Ana", "data": NOTIFICATION} for env in envelopes)


def test_noop_without_credentials(store):
    seed_subscriptions(store, 2)
    sender = FlakySender()
    dispatcher = PushDispatcher(store, fcm_sender=sender, fcm_ready=lambda: False)

    assert asyncio.run(dispatcher.dispatch(NOTIFICATION)) == []
    assert sender.attempts == []


def test_failed_subscriptions_are_kept_by_default(store):
    seed_subscriptions(store, 2)
    sender = FlakySender(failing={"tok-0"}, error="Requested entity was not found: unregistered")
    dispatcher = fcm_dispatcher(store, sender)

    results = asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert results[0].dead is True
    assert len(store.load()["webpushSubscriptions"]) == 2


def test_prune_dead_removes_only_dead_subscriptions(store):
    seed_subscriptions(store, 3)
    sender = FlakySender(failing={"tok-1"}, error="registration-token-not-registered")
    dispatcher = fcm_dispatcher(store, sender, prune_dead=True)

    asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert [s["token"] for s in store.load()["webpushSubscriptions"]] == ["tok-0", "tok-2"]


def test_transient_failures_are_not_pruned(store):
    seed_subscriptions(store, 2)
    sender = FlakySender(failing={"tok-0"}, error="timeout")
    dispatcher = fcm_dispatcher(store, sender, prune_dead=True)

    asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert len(store.load()["webpushSubscriptions"]) == 2


# ---------- transport routing ----------
def test_browser_subscription_goes_through_web_push(store):
    with store.transaction() as doc:
        doc["webpushSubscriptions"] = [BROWSER_SUB]
    fcm = FlakySender()
    web = FlakySender()
    dispatcher = PushDispatcher(store, fcm_sender=fcm, webpush_sender=web, fcm_ready=lambda: False)

    results = asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert [r.ok for r in results] == [True]
    assert [k for k, _ in web.attempts] == [BROWSER_SUB["endpoint"]]
    assert fcm.attempts == []


def test_mixed_subscriptions_are_routed_per_descriptor(store):
    with store.transaction() as doc:
        doc["webpushSubscriptions"] = [{"token": "tok-0"}, BROWSER_SUB, {"platform": "web"}]
    fcm = FlakySender()
    web = FlakySender()
    dispatcher = PushDispatcher(store, fcm_sender=fcm, webpush_sender=web, fcm_ready=lambda: True)

    results = asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert [r.ok for r in results] == [True, True, False]
    assert "neither endpoint nor token" in results[2].error
    assert [k for k, _ in fcm.attempts] == ["tok-0"]
    assert [k for k, _ in web.attempts] == [BROWSER_SUB["endpoint"]]


def test_browser_subscription_without_vapid_keys_fails(store):
    with store.transaction() as doc:
        doc["webpushSubscriptions"] = [BROWSER_SUB, {"token": "tok-0"}]
    fcm = FlakySender()
    dispatcher = fcm_dispatcher(store, fcm)

    results = asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert [r.ok for r in results] == [False, True]
    assert "VAPID" in results[0].error


def test_token_subscription_without_firebase_fails(store):
    with store.transaction() as doc:
        doc["webpushSubscriptions"] = [{"token": "tok-0"}, BROWSER_SUB]
    web = FlakySender()
    dispatcher = PushDispatcher(store, webpush_sender=web, fcm_ready=lambda: False)

    results = asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert [r.ok for r in results] == [False, True]
    assert "FCM" in results[0].error


def test_gone_endpoint_is_dead_and_pruned(store):
    with store.transaction() as doc:
        doc["webpushSubscriptions"] = [BROWSER_SUB, dict(BROWSER_SUB, endpoint="https://push.example/keep")]
    gone = WebPushException("Push failed: 410 Gone", response=FakeResponse(410))
    web = FlakySender(failing={BROWSER_SUB["endpoint"]}, error=gone)
    dispatcher = PushDispatcher(store, prune_dead=True, webpush_sender=web, fcm_ready=lambda: False)

    results = asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert results[0].dead is True
    assert [s["endpoint"] for s in store.load()["webpushSubscriptions"]] == ["https://push.example/keep"]


def test_server_error_from_push_service_is_not_dead(store):
    with store.transaction() as doc:
        doc["webpushSubscriptions"] = [BROWSER_SUB]
    flaky = WebPushException("Push failed: 503", response=FakeResponse(503))
    web = FlakySender(failing={BROWSER_SUB["endpoint"]}, error=flaky)
    dispatcher = PushDispatcher(store, prune_dead=True, webpush_sender=web, fcm_ready=lambda: False)

    results = asyncio.run(dispatcher.dispatch(NOTIFICATION))

    assert results[0].dead is False
    assert len(store.load()["webpushSubscriptions"]) == 1


def test_web_push_sender_signs_with_vapid(monkeypatch):
    calls = []
    monkeypatch.setattr(push_module, "webpush", lambda **kwargs: calls.append(kwargs))
    sender = WebPushSender("private-key", "mailto:ops@example.com")

    sender(BROWSER_SUB, build_envelope(NOTIFICATION, "AlzAssist"))

    assert len(calls) == 1
    assert calls[0]["subscription_info"] == BROWSER_SUB
    assert calls[0]["vapid_private_key"] == "private-key"
    assert calls[0]["vapid_claims"] == {"sub": "mailto:ops@example.com"}
    assert '"title": "AlzAssist"' in calls[0]["data"]


def test_web_push_sender_needs_both_keys():
    assert build_webpush_sender("", "priv", "mailto:a@b.c") is None
    assert build_webpush_sender("pub", "", "mailto:a@b.c") is None
    assert isinstance(build_webpush_sender("pub", "priv", "mailto:a@b.c"), WebPushSender)


def test_generated_vapid_keys_have_raw_sizes():
    public, private = generate_vapid_keys()

    def decode(s):
        return base64.urlsafe_b64decode(s + "=" * (-len(s) % 4))

    assert "=" not in public and "=" not in private
    assert len(decode(public)) == 65
    assert decode(public)[0] == 4
    assert len(decode(private)) == 32


def test_dispatch_in_background_runs_to_completion(store):
    seed_subscriptions(store, 2)
    sender = FlakySender(failing={"tok-0"})
    dispatcher = fcm_dispatcher(store, sender)

    async def run():
        task = dispatcher.dispatch_in_background(NOTIFICATION)
        return await task

    results = asyncio.run(run())

    assert len(results) == 2
    assert len(sender.attempts) == 2
