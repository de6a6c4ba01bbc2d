"""
services/errors.py

시험 도메인 예외 정의.
라우터에서 HTTPException으로 변환한다.
"""


class ExamError(Exception):
    """시험 도메인 예외의 기본 클래스."""


class NoQuestionsAvailable(ExamError):
    def __init__(self, course_id=None):
        self.course_id = course_id
        super().__init__(f"과목 {course_id}에 등록된 문제가 없습니다." if course_id is not None
                         else "등록된 문제가 없습니다.")


class InvalidSelection(ExamError):
    def __init__(self, question_id, option_key: str, reason: str = ""):
        self.question_id = question_id
        self.option_key = option_key
        super().__init__(reason or f"문제 {question_id}에 보기 '{option_key}'가 없습니다.")


class ExamNotInProgress(ExamError):
    """진행 중이 아닌 세션에 답안/이동 요청이 들어온 경우."""


class ResultSubmissionFailed(ExamError):
    """결과 저장 실패. 로컬 채점 결과는 유지된다."""


class BackendUnavailable(ExamError):
    """문제/과목/권한 조회 실패."""
