# carelink/services/push.py
from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

import firebase_admin
from firebase_admin import credentials, messaging
from pywebpush import WebPushException, webpush

from carelink.config.settings import settings
from carelink.db.store import DocumentStore, store as default_store

logger = logging.getLogger(__name__)

Sender = Callable[[Dict[str, Any], Dict[str, Any]], None]

# push services answer 404/410 for expired or unsubscribed endpoints
DEAD_ENDPOINT_STATUS = (404, 410)


@dataclass
class PushResult:
    index: int
    ok: bool
    error: Optional[str] = None
    dead: bool = False


def init_firebase(key_path: str) -> bool:
    """
    Connect the Firebase Admin SDK once. Missing key -> FCM stays disabled.
    """
    if not key_path:
        logger.info("[push] no FIREBASE_CREDENTIALS configured - FCM disabled")
        return False
    if not os.path.exists(key_path):
        logger.warning("[push] key file '%s' not found - FCM disabled", key_path)
        return False
    if not firebase_admin._apps:
        firebase_admin.initialize_app(credentials.Certificate(key_path))
        logger.info("[push] Firebase(FCM) app initialized")
    else:
        logger.info("[push] Firebase app already initialized")
    return True


def _firebase_ready() -> bool:
    return bool(getattr(firebase_admin, "_apps", None))


def _is_dead_token(exc: Exception) -> bool:
    status = getattr(getattr(exc, "response", None), "status_code", None)
    if status in DEAD_ENDPOINT_STATUS:
        return True
    msg = (str(exc) or "").lower()
    name = exc.__class__.__name__.lower()
    return (
        "unregistered" in name
        or "unregistered" in msg
        or "not registered" in msg
        or "registration-token-not-registered" in msg
        or "invalid registration" in msg
    )


def build_envelope(notification: Dict[str, Any], title: str) -> Dict[str, Any]:
    return {"title": title, "body": notification.get("message", ""), "data": notification}


def send_via_fcm(subscription: Dict[str, Any], envelope: Dict[str, Any]) -> None:
    messaging.send(
        messaging.Message(
            token=subscription["token"],
            notification=messaging.Notification(title=envelope["title"], body=envelope["body"]),
            # FCM data values must be strings
            data={"payload": json.dumps(envelope["data"], default=str)},
        )
    )


class WebPushSender:
    """
    Standard browser subscriptions {endpoint, keys: {p256dh, auth}},
    signed with the VAPID key pair (same keys the browser used to subscribe).
    """

    def __init__(self, private_key: str, subject: str):
        self.private_key = private_key
        self.subject = subject

    def __call__(self, subscription: Dict[str, Any], envelope: Dict[str, Any]) -> None:
        try:
            webpush(
                subscription_info=subscription,
                data=json.dumps(envelope, default=str),
                vapid_private_key=self.private_key,
                vapid_claims={"sub": self.subject},
            )
        except WebPushException as e:
            status = getattr(e.response, "status_code", None)
            logger.warning("[push] web push rejected endpoint=%s status=%s", subscription.get("endpoint"), status)
            raise


def build_webpush_sender(public_key: str, private_key: str, subject: str) -> Optional[WebPushSender]:
    if not (public_key and private_key):
        logger.info("[push] no VAPID_PUBLIC/VAPID_PRIVATE configured - web push disabled")
        return None
    return WebPushSender(private_key, subject)


class PushDispatcher:
    """
    Best-effort delivery of a notification to every stored push subscription.

    Each subscription is tried independently (all-settle). A failing
    subscription never stops the others and dispatch() never raises.
    Dead subscriptions stay stored unless prune_dead is on.

    Transport is picked per descriptor
    - {"endpoint": ..., "keys": {...}} -> web push (VAPID)
    - {"token": ...}                   -> FCM
    """

    def __init__(
        self,
        store: DocumentStore,
        title: str = "AlzAssist",
        prune_dead: bool = False,
        fcm_sender: Sender = send_via_fcm,
        webpush_sender: Optional[Sender] = None,
        fcm_ready: Callable[[], bool] = _firebase_ready,
    ):
        self.store = store
        self.title = title
        self.prune_dead = prune_dead
        self.fcm_sender = fcm_sender
        self.webpush_sender = webpush_sender
        self.fcm_ready = fcm_ready
        self._tasks: Set[asyncio.Task] = set()

    def is_ready(self) -> bool:
        return self.webpush_sender is not None or self.fcm_ready()

    def _pick_sender(self, subscription: Any) -> Sender:
        if not isinstance(subscription, dict):
            raise ValueError("subscription is not an object")
        if subscription.get("endpoint"):
            if self.webpush_sender is None:
                raise RuntimeError("web push not configured (VAPID keys missing)")
            return self.webpush_sender
        if subscription.get("token"):
            if not self.fcm_ready():
                raise RuntimeError("FCM not configured")
            return self.fcm_sender
        raise ValueError("subscription has neither endpoint nor token")

    def _deliver(self, index: int, subscription: Dict[str, Any], envelope: Dict[str, Any]) -> PushResult:
        try:
            sender = self._pick_sender(subscription)
            sender(subscription, envelope)
            return PushResult(index=index, ok=True)
        except Exception as e:
            logger.warning("[push] delivery failed sub=%d err=%s", index, e)
            return PushResult(index=index, ok=False, error=str(e), dead=_is_dead_token(e))

    async def dispatch(self, notification: Dict[str, Any]) -> List[PushResult]:
        if not self.is_ready():
            logger.info("[push] not configured - skipping id=%s", notification.get("id"))
            return []

        subs = list(self.store.load().get("webpushSubscriptions") or [])
        if not subs:
            return []

        envelope = build_envelope(notification, self.title)
        outcomes = await asyncio.gather(
            *(asyncio.to_thread(self._deliver, i, s, envelope) for i, s in enumerate(subs)),
            return_exceptions=True,
        )

        results: List[PushResult] = []
        for i, outcome in enumerate(outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("[push] delivery crashed sub=%d err=%s", i, outcome)
                results.append(PushResult(index=i, ok=False, error=str(outcome)))
            else:
                results.append(outcome)

        success = sum(1 for r in results if r.ok)
        logger.info(
            "[push] id=%s success=%d fail=%d", notification.get("id"), success, len(results) - success
        )

        if self.prune_dead:
            self.prune(subs, results)
        return results

    def prune(self, sent_to: List[Dict[str, Any]], results: List[PushResult]) -> int:
        dead = [sent_to[r.index] for r in results if r.dead]
        if not dead:
            return 0
        with self.store.transaction() as doc:
            before = len(doc["webpushSubscriptions"])
            doc["webpushSubscriptions"] = [s for s in doc["webpushSubscriptions"] if s not in dead]
            removed = before - len(doc["webpushSubscriptions"])
        logger.info("[push] pruned %d dead subscription(s)", removed)
        return removed

    def dispatch_in_background(self, notification: Dict[str, Any]) -> asyncio.Task:
        """Fire-and-forget: schedule dispatch on the running loop."""
        task = asyncio.get_running_loop().create_task(self.dispatch(notification))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("[push] background dispatch failed", exc_info=task.exception())


dispatcher = PushDispatcher(
    default_store,
    title=settings.push_title,
    prune_dead=settings.push_prune_dead,
    webpush_sender=build_webpush_sender(
        settings.vapid_public, settings.vapid_private, settings.vapid_subject
    ),
)


# FastAPI dependency
def get_dispatcher() -> PushDispatcher:
    return dispatcher
