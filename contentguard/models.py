from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


# Violation kinds, most severe first
DANGEROUS_CONTENT = "dangerous_content"
ABUSIVE_LANGUAGE = "abusive_language"
INVALID_STRUCTURE = "invalid_structure"
SPAM = "spam"
KIND_RANK = {DANGEROUS_CONTENT: 4, ABUSIVE_LANGUAGE: 3, INVALID_STRUCTURE: 2, SPAM: 1}

SEVERITY_ORDER = {"low": 1, "medium": 2, "high": 3, "critical": 4}
REVIEW_SEVERITIES = ("high", "critical")


@dataclass(frozen=True)
class Thresholds:
    max_length: int = 10_000
    repetition_min_tokens: int = 8  # must be exceeded
    repetition_min_token_length: int = 3
    repetition_max_share: float = 0.25
    char_run_length: int = 5
    caps_min_length: int = 15
    caps_max_ratio: float = 0.5
    symbols_min_length: int = 10
    symbols_max_ratio: float = 0.4
    abusive_high_matches: int = 2  # must be exceeded
    dangerous_critical_matches: int = 1  # must be exceeded
    base_confidence: float = 0.7
    multi_category_bonus: float = 0.2
    short_content_length: int = 50
    short_content_penalty: float = 0.1
    high_severity_bonus: float = 0.15
    min_confidence: float = 0.5
    max_confidence: float = 0.95


@dataclass
class ClassificationRequest:
    content: object
    author_id: str
    content_type: str = "message"  # "message" | "post" | "comment" | "profile"
    content_id: Optional[str] = None


@dataclass
class StructureCheck:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass
class PatternMatch:
    kind: str
    group: str  # pattern group that matched first, e.g. "harassment"
    count: int  # occurrences of that group's pattern


@dataclass
class Violation:
    kind: str
    confidence: float


@dataclass
class Verdict:
    success: bool
    flagged: bool
    violations: List[Violation] = field(default_factory=list)
    severity_level: Optional[str] = None  # "critical" | "high" | "medium" | "low"
    confidence: Optional[float] = None
    requires_review: bool = False
    errors: List[str] = field(default_factory=list)
    matches: List[PatternMatch] = field(default_factory=list)
    message: str = ""

    @property
    def kinds(self) -> List[str]:
        return [v.kind for v in self.violations]

    @property
    def primary_kind(self) -> Optional[str]:
        if not self.violations:
            return None
        return max(self.kinds, key=lambda k: KIND_RANK.get(k, 0))

    def to_response(self) -> Dict:
        """Render the caller-facing payload."""
        if not self.success:
            return {
                "success": False,
                "flagged": True,
                "violations": self.kinds,
                "errors": list(self.errors),
            }
        if not self.flagged:
            return {
                "success": True,
                "flagged": False,
                "violations": [],
                "message": self.message,
            }
        return {
            "success": True,
            "flagged": True,
            "violations": self.kinds,
            "severityLevel": self.severity_level,
            "requiresReview": self.requires_review,
            "message": self.message,
        }


@dataclass
class EscalationReport:
    moderation_id: Optional[int] = None
    notified: List[str] = field(default_factory=list)
    warning_id: Optional[int] = None
    alert_sent: bool = False
    failures: List[str] = field(default_factory=list)
