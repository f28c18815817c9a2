import threading
import time

import pytest

from mcq_exam.models.attempt_model import Attempt, AttemptAnswer, AttemptStatus
from mcq_exam.services.attempt_store import AttemptStore
from mcq_exam.services.errors import NotFoundError

from conftest import START


def new_attempt(attempt_id="a1", user="alice"):
    return Attempt(id=attempt_id, user_id=user, exam_id="e1", started_at=START)


def test_changes_are_discarded_when_block_raises():
    store = AttemptStore()
    store.insert(new_attempt())
    with pytest.raises(RuntimeError):
        with store.locked("a1") as attempt:
            attempt.answers["q1"] = AttemptAnswer(question_id="q1", selected_options=["A"])
            raise RuntimeError("boom")
    assert store.get("a1").answers == {}


def test_active_index_follows_status():
    store = AttemptStore()
    store.insert(new_attempt())
    assert store.find_active("e1", "alice").id == "a1"
    with store.locked("a1") as attempt:
        attempt.status = AttemptStatus.SUBMITTED
    assert store.find_active("e1", "alice") is None
    assert [a.id for a in store.list_for_user("e1", "alice")] == ["a1"]


def test_missing_attempt():
    store = AttemptStore()
    assert store.get("nope") is None
    with pytest.raises(NotFoundError):
        with store.locked("nope"):
            pass


def test_duplicate_insert_is_rejected():
    store = AttemptStore()
    store.insert(new_attempt())
    with pytest.raises(ValueError):
        store.insert(new_attempt())


def test_key_locks_are_released_after_use():
    store = AttemptStore()
    store.insert(new_attempt())
    with store.user_lock("e1", "alice"):
        pass
    with store.locked("a1"):
        pass
    with pytest.raises(NotFoundError):
        with store.locked("nope"):
            pass
    assert store._key_locks == {}


def test_waiting_thread_keeps_the_same_lock():
    store = AttemptStore()
    entered = threading.Event()
    release = threading.Event()
    order = []

    def first():
        with store.user_lock("e1", "alice"):
            entered.set()
            release.wait(5)
            order.append("first")

    def second():
        entered.wait(5)
        with store.user_lock("e1", "alice"):
            order.append("second")

    threads = [threading.Thread(target=first), threading.Thread(target=second)]
    for t in threads:
        t.start()
    entered.wait(5)
    time.sleep(0.05)
    release.set()
    for t in threads:
        t.join()
    assert order == ["first", "second"]
    assert store._key_locks == {}
