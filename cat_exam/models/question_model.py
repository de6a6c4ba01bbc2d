from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, model_validator

MIN_OPTIONS = 2
MAX_OPTIONS = 5


class Option(BaseModel):
    """
    객관식 보기 한 개.
    텍스트 또는 이미지 중 최소 하나는 있어야 화면에 표시할 수 있다.
    """
    key: str = Field(
        ...,
        min_length=1,
        max_length=1,
        description="보기 식별 문자 (관례상 A~E)"
    )
    text: Optional[str] = Field(
        None,
        description="보기 내용 (이미지 전용 보기는 None)"
    )
    image_url: Optional[str] = Field(
        None,
        description="보기 이미지 주소"
    )

    @model_validator(mode='after')
    def validate_renderable(self) -> 'Option':
        if not self.text and not self.image_url:
            raise ValueError(f"보기 '{self.key}'에 텍스트와 이미지가 모두 없습니다.")
        return self


class Question(BaseModel):
    """
    CAT 모의고사 문제 모델
    Pydantic v2 적용
    """
    id: int = Field(
        ...,
        description="문제 번호 (고유 식별자, 시험 동안 고정)"
    )
    text: str = Field(
        "",
        description="발문 (이미지 전용 문제는 빈 문자열)"
    )
    image_url: Optional[str] = Field(
        None,
        description="문제 이미지 주소"
    )
    options: List[Option] = Field(
        ...,
        description="보기 리스트 (순서 유지)"
    )
    correct_option_key: str = Field(
        ...,
        description="정답 보기의 key"
    )
    explanation: Optional[str] = Field(
        None,
        description="해설 (제출 후에만 노출)"
    )
    category: Optional[str] = Field(
        None,
        description="문제 분류 (예: TWK, TIU)"
    )

    @field_validator('options')
    @classmethod
    def validate_options(cls, v: List[Option]) -> List[Option]:
        """
        검증 로직 1: 보기는 2~5개, key는 문제 안에서 유일해야 한다.
        """
        if not MIN_OPTIONS <= len(v) <= MAX_OPTIONS:
            raise ValueError(
                f"보기(options)는 {MIN_OPTIONS}~{MAX_OPTIONS}개여야 합니다. (현재 {len(v)}개)"
            )
        keys = [opt.key for opt in v]
        if len(set(keys)) != len(keys):
            raise ValueError(f"보기 key가 중복되었습니다: {keys}")
        return v

    @model_validator(mode='after')
    def validate_correct_key(self) -> 'Question':
        """
        검증 로직 2: 정답 key는 반드시 보기 key 중 하나여야 한다.
        """
        if self.correct_option_key not in self.option_keys:
            raise ValueError(
                f"정답('{self.correct_option_key}')이 보기 key({self.option_keys})에 존재하지 않습니다."
            )
        return self

    @property
    def option_keys(self) -> List[str]:
        return [opt.key for opt in self.options]

    def has_option(self, key: str) -> bool:
        return key in self.option_keys


class Course(BaseModel):
    """과목(코스) 정보. 시험 시간의 출처."""
    id: int
    title: Optional[str] = None
    slug: Optional[str] = None
    duration_minutes: Optional[int] = None
    question_count: Optional[int] = None
    image_url: Optional[str] = None
