import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
LOG_FILE = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "launch.log"))

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "0.0.0.0")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 시험 진행 설정
AUTOSAVE_INTERVAL_SECONDS = int(os.getenv("AUTOSAVE_INTERVAL_SECONDS", "10"))  # 클라이언트 자동 저장 주기
LATE_SAVE_GRACE_SECONDS = int(os.getenv("LATE_SAVE_GRACE_SECONDS", "30"))      # 종료 후 저장 허용 유예
PASS_SCORE = float(os.getenv("PASS_SCORE", "60"))

# 타이머 표시 설정
TIMER_WARNING_MINUTES = 15
TIMER_CRITICAL_MINUTES = 5

# 샘플 데이터 / 재현용 시드
LOAD_SAMPLE_DATA = os.getenv("LOAD_SAMPLE_DATA", "1").lower() in ("1", "true", "yes")
RANDOM_SEED = int(os.environ["RANDOM_SEED"]) if os.getenv("RANDOM_SEED") else None
