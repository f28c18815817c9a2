"""
services/attempt_store.py — 시도(Attempt) 인메모리 저장소

시도 id별로 독립된 잠금을 두어 같은 시도에 대한 저장/위반 기록/제출이
서로 끼어들지 않게 직렬화한다. 서로 다른 시도는 완전히 독립적이다.
(exam_id, user_id) → 진행 중 시도 id 보조 인덱스를 함께 유지.

변경은 복사본에서 이루어지고 with 블록이 정상 종료될 때만 반영된다.
중간에 예외가 나면 아무것도 저장되지 않는다.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List, Optional, Tuple

from mcq_exam.models.attempt_model import Attempt, AttemptStatus
from mcq_exam.services.errors import NotFoundError


class AttemptStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._attempts: Dict[str, Attempt] = {}
        self._active: Dict[Tuple[str, str], str] = {}
        # key → [잠금, 대기/보유 중인 스레드 수]. 아무도 쓰지 않으면 제거
        self._key_locks: Dict[Hashable, list] = {}

    @contextmanager
    def _hold(self, key: Hashable) -> Iterator[None]:
        with self._lock:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._key_locks[key]

    @contextmanager
    def user_lock(self, exam_id: str, user_id: str) -> Iterator[None]:
        """같은 (exam_id, user_id)의 시작 요청을 직렬화."""
        with self._hold(("user", exam_id, user_id)):
            yield

    @contextmanager
    def locked(self, attempt_id: str) -> Iterator[Attempt]:
        """
        시도를 잠그고 변경 가능한 복사본을 넘긴다.
        블록이 예외 없이 끝나면 복사본을 저장한다.
        """
        with self._hold(("attempt", attempt_id)):
            with self._lock:
                current = self._attempts.get(attempt_id)
            if current is None:
                raise NotFoundError(f"시도를 찾을 수 없습니다: {attempt_id}")
            working = current.model_copy(deep=True)
            yield working
            self._commit(working)

    def insert(self, attempt: Attempt) -> None:
        with self._lock:
            if attempt.id in self._attempts:
                raise ValueError(f"이미 존재하는 시도 id: {attempt.id}")
        self._commit(attempt.model_copy(deep=True))

    def _commit(self, attempt: Attempt) -> None:
        key = (attempt.exam_id, attempt.user_id)
        with self._lock:
            self._attempts[attempt.id] = attempt
            if attempt.status == AttemptStatus.IN_PROGRESS:
                self._active[key] = attempt.id
            elif self._active.get(key) == attempt.id:
                del self._active[key]

    def get(self, attempt_id: str) -> Optional[Attempt]:
        """읽기 전용 스냅샷. 없으면 None."""
        with self._lock:
            attempt = self._attempts.get(attempt_id)
            return attempt.model_copy(deep=True) if attempt else None

    def find_active(self, exam_id: str, user_id: str) -> Optional[Attempt]:
        with self._lock:
            attempt_id = self._active.get((exam_id, user_id))
            if attempt_id is None:
                return None
            return self._attempts[attempt_id].model_copy(deep=True)

    def list_for_user(self, exam_id: str, user_id: str) -> List[Attempt]:
        with self._lock:
            return [
                a.model_copy(deep=True)
                for a in self._attempts.values()
                if a.exam_id == exam_id and a.user_id == user_id
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._attempts)
