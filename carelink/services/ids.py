# carelink/services/ids.py
import time
import uuid


def new_id() -> str:
    # random ids: two records created in the same millisecond never collide
    return uuid.uuid4().hex


def now_ms() -> int:
    return int(time.time() * 1000)
