"""
api/deps.py — 서비스 객체 조립

문제 은행, 시도 저장소, 시도 서비스, 감독 모니터를 하나로 묶어 앱 상태에 올린다.
테스트에서는 build_services()로 독립된 인스턴스를 만들어 create_app()에 넘긴다.
"""

import logging
import random
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import config
from api.sample_data import SAMPLE_EXAMS, SAMPLE_QUESTIONS
from mcq_exam.services.attempt_service import AttemptService, utc_now
from mcq_exam.services.attempt_store import AttemptStore
from mcq_exam.services.proctoring import ProctoringMonitor
from mcq_exam.services.question_bank import InMemoryQuestionBank

logger = logging.getLogger(__name__)


@dataclass
class Services:
    bank: InMemoryQuestionBank
    store: AttemptStore
    attempts: AttemptService
    monitor: ProctoringMonitor
    clock: Callable[[], datetime]
    rng_factory: Callable[[], random.Random]


def make_rng_factory(seed: Optional[int]) -> Callable[[], random.Random]:
    """
    시도마다 새 난수원을 만든다.
    seed가 있으면 시드된 마스터 난수원에서 파생 (재현 가능), 없으면 OS 엔트로피.
    """
    if seed is None:
        return random.Random

    master = random.Random(seed)
    lock = threading.Lock()

    def factory() -> random.Random:
        with lock:
            return random.Random(master.getrandbits(64))

    return factory


def build_services(
    load_samples: bool = config.LOAD_SAMPLE_DATA,
    seed: Optional[int] = config.RANDOM_SEED,
    clock: Callable[[], datetime] = utc_now,
) -> Services:
    bank = InMemoryQuestionBank()
    store = AttemptStore()
    rng_factory = make_rng_factory(seed)
    attempts = AttemptService(bank, store, clock=clock, rng_factory=rng_factory)
    monitor = ProctoringMonitor(attempts.record_violation, clock)

    if load_samples:
        bank.load(SAMPLE_QUESTIONS, SAMPLE_EXAMS)

    logger.info(f"서비스 구성 완료 (샘플 데이터={load_samples}, seed={seed})")
    return Services(bank, store, attempts, monitor, clock, rng_factory)
