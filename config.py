import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
LOG_FILE = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "launch.log"))

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "0.0.0.0")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 시험 설정
DEFAULT_DURATION_SECONDS = int(os.getenv("DEFAULT_DURATION_SECONDS", "1800"))  # 과목에 시간 정보가 없을 때 30분
TRIAL_QUESTION_LIMIT = int(os.getenv("TRIAL_QUESTION_LIMIT", "5"))            # 무료 회원 체험 문항 수
TICK_INTERVAL_SECONDS = float(os.getenv("TICK_INTERVAL_SECONDS", "1.0"))
TIME_WARNING_SECONDS = 60   # 남은 시간 경고 기준

# 채점 정책: "points" (정답당 고정 점수, 상한 없음) | "percentage" (100점 만점 환산)
SCORING_POLICY = os.getenv("SCORING_POLICY", "points")
POINTS_PER_CORRECT = int(os.getenv("POINTS_PER_CORRECT", "5"))

# 백엔드(BaaS) 설정 — BACKEND_URL이 비어 있으면 인메모리 샘플 백엔드 사용
BACKEND_URL = os.getenv("BACKEND_URL", "")
BACKEND_ANON_KEY = os.getenv("BACKEND_ANON_KEY", "")
BACKEND_TIMEOUT = float(os.getenv("BACKEND_TIMEOUT", "15.0"))

# 세션 설정
SESSION_TTL = int(os.getenv("SESSION_TTL", "3600"))                     # 1시간
SESSION_CLEANUP_INTERVAL = int(os.getenv("SESSION_CLEANUP_INTERVAL", "300"))
