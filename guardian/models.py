import re
from types import MappingProxyType
from typing import Optional, List, Dict, Mapping, Tuple, Literal
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


ViolationKind = Literal["scene_ending", "show_dont_tell", "dialogue"]
Severity = Literal["low", "medium", "high"]
PatternCategory = Literal["forbidden_ending", "emotion_label", "formality", "formality_exemption"]


class Pattern(BaseModel):
    """A named matcher plus the rule category it belongs to."""
    model_config = ConfigDict(frozen=True)

    name: str
    regex: str
    category: PatternCategory

    _compiled: re.Pattern = PrivateAttr()

    @field_validator("regex")
    @classmethod
    def check_regex(cls, v: str) -> str:
        try:
            re.compile(v, re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"invalid regex {v!r}: {e}")
        return v

    def model_post_init(self, __context) -> None:
        self._compiled = re.compile(self.regex, re.IGNORECASE)

    @property
    def compiled(self) -> re.Pattern:
        return self._compiled

    def search(self, text: str) -> Optional[re.Match]:
        return self.compiled.search(text)

    def finditer(self, text: str):
        return self.compiled.finditer(text)


class PatternLibrary(BaseModel):
    """Static rule data consumed by the analyzer and the fallback corrector."""
    model_config = ConfigDict(frozen=True)

    forbidden_endings: Tuple[Pattern, ...] = ()
    emotion_labels: Tuple[Pattern, ...] = ()
    good_ending_keywords: Mapping[str, Tuple[str, ...]] = Field(default_factory=dict, validate_default=True)
    dialogue_formality: Pattern
    formality_exemption: Pattern

    @field_validator("good_ending_keywords")
    @classmethod
    def freeze_keywords(cls, v: Mapping[str, Tuple[str, ...]]) -> Mapping[str, Tuple[str, ...]]:
        # Read-only view; frozen=True only guards attribute assignment.
        return MappingProxyType(dict(v))

    def is_forbidden_ending(self, sentence: str) -> bool:
        return any(p.search(sentence) for p in self.forbidden_endings)


class Violation(BaseModel):
    """A single detected guideline violation."""
    model_config = ConfigDict(frozen=True)

    kind: ViolationKind
    severity: Severity
    matched_text: str
    message: str
    source_pattern: Optional[str] = None
    span: Optional[Tuple[int, int]] = None


class AnalysisResult(BaseModel):
    """Violations and derived facts for one analyzed message."""
    model_config = ConfigDict(frozen=True)

    violations: List[Violation] = Field(default_factory=list)
    last_sentences: List[str] = Field(default_factory=list)
    word_count: int = Field(default=0, ge=0)

    @property
    def has_violations(self) -> bool:
        return bool(self.violations)

    def of_kind(self, kind: str) -> List[Violation]:
        return [v for v in self.violations if v.kind == kind]


class RuleConfig(BaseModel):
    """Which checks run for one analysis/correction pass."""
    scene_endings: bool = True
    show_dont_tell: bool = True
    dialogue_naturalness: bool = True
    strict_mode: bool = False
    auto_correct: bool = True


class RewriteResult(BaseModel):
    """Outcome of a single call to the rewrite backend."""
    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "failed", "timeout", "empty", "unchanged"]
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class ViolationReport(BaseModel):
    """Violations grouped by severity, plus the rendered summary."""
    model_config = ConfigDict(frozen=True)

    high: List[Violation] = Field(default_factory=list)
    medium: List[Violation] = Field(default_factory=list)
    low: List[Violation] = Field(default_factory=list)
    text: str = ""

    @property
    def total(self) -> int:
        return len(self.high) + len(self.medium) + len(self.low)

    @property
    def counts(self) -> Dict[str, int]:
        return {"high": len(self.high), "medium": len(self.medium), "low": len(self.low)}


class ChatMessage(BaseModel):
    """A candidate message handed over by the message source."""
    message_id: str
    text: str
    is_user: bool = False


class GuardOutcome(BaseModel):
    """What the guardian did with one message."""
    message_id: str
    skipped: bool = False
    analysis: Optional[AnalysisResult] = None
    corrected_text: Optional[str] = None
    correction_applied: bool = False
    report: Optional[ViolationReport] = None
