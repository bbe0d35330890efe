"""
Content Classification Pipeline
Structure check → Pattern matching (abusive + dangerous) → Severity/confidence scoring

Everything in this module is pure: no I/O, no shared mutable state.
Escalation side effects live in contentguard.services.escalation.
"""
import re
import logging
from collections import Counter
from typing import Dict, List, Optional, Tuple

from config import (
    ABUSIVE_PHRASES,
    DANGEROUS_PATTERNS,
    LEET_CLASSES,
    LEET_DIGITS,
    LINK_PATTERN,
    PERSONAL_INFO_PATTERNS,
    THRESHOLDS,
)
from contentguard.models import (
    ABUSIVE_LANGUAGE,
    DANGEROUS_CONTENT,
    INVALID_STRUCTURE,
    REVIEW_SEVERITIES,
    PatternMatch,
    StructureCheck,
    Thresholds,
    Verdict,
    Violation,
)

logger = logging.getLogger(__name__)

APPROVED_MESSAGE = "Content approved"
FLAGGED_MESSAGE = "Content flagged for moderation review"

ERR_NOT_STRING = "Content must be a non-empty string"
ERR_TOO_LONG = "Content exceeds maximum length ({limit:,} characters)"
ERR_REPETITION = "Content appears to be spam (excessive repetition)"
ERR_CHAR_REPETITION = "Content contains excessive character repetition"
ERR_CAPS = "Content contains excessive capitalization"
ERR_SYMBOLS = "Content contains suspicious character patterns"
ERR_LINKS = "External links not allowed"


# ============================================================================
# PATTERN COMPILATION (once, at import)
# ============================================================================

_WORD_START = r"(?<![a-z0-9])"
_WORD_END = r"(?![a-z0-9])"
_SEPARATOR = r"[\s._-]*"


def obfuscated_phrase(phrase: str) -> str:
    """
    Turn a plain phrase into a regex that also accepts leetspeak spellings.

    "kill you" -> k[i!1][l1][l1][\\s._-]*y[o0]u
    """
    parts = []
    for ch in phrase.lower():
        if ch == " ":
            parts.append(_SEPARATOR)
        elif ch == "'":
            parts.append("'?")
        else:
            parts.append(LEET_CLASSES.get(ch, re.escape(ch)))
    return "".join(parts)


def _compile_group(phrases: List[str]) -> re.Pattern:
    body = "|".join(obfuscated_phrase(p) for p in phrases)
    return re.compile(_WORD_START + "(?:" + body + ")" + _WORD_END, re.IGNORECASE)


# Ordered (group, pattern) tables; first match per table wins
ABUSIVE_TABLE: List[Tuple[str, re.Pattern]] = [
    (group, _compile_group(phrases)) for group, phrases in ABUSIVE_PHRASES.items()
] + [("personal_info", re.compile(p)) for p in PERSONAL_INFO_PATTERNS]

DANGEROUS_TABLE: List[Tuple[str, re.Pattern]] = [
    (group, re.compile(pattern, re.IGNORECASE)) for group, pattern in DANGEROUS_PATTERNS.items()
]

_LINK_RE = re.compile(LINK_PATTERN)
_UPPER_RE = re.compile(r"[A-Z]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_LEET_TRANSLATION = str.maketrans(LEET_DIGITS)


# ============================================================================
# STRUCTURAL VALIDATOR
# ============================================================================

def normalize_tokens(content: str, min_length: int = 3) -> List[str]:
    """Lowercase, strip punctuation, fold leet digits, keep tokens of min_length+."""
    cleaned = _NON_ALNUM_RE.sub("", content.lower()).translate(_LEET_TRANSLATION)
    return [token for token in cleaned.split() if len(token) >= min_length]


def has_word_repetition(content: str, thresholds: Thresholds = THRESHOLDS) -> bool:
    tokens = normalize_tokens(content, thresholds.repetition_min_token_length)
    if len(tokens) <= thresholds.repetition_min_tokens:
        return False
    _, top_count = Counter(tokens).most_common(1)[0]
    return top_count / len(tokens) > thresholds.repetition_max_share


def has_char_run(content: str, thresholds: Thresholds = THRESHOLDS) -> bool:
    run = max(thresholds.char_run_length - 1, 1)
    return re.search(r"(.)\1{%d,}" % run, content, re.DOTALL) is not None


def caps_ratio(content: str) -> float:
    if not content:
        return 0.0
    return len(_UPPER_RE.findall(content)) / len(content)


def symbol_ratio(content: str) -> float:
    if not content:
        return 0.0
    symbols = sum(1 for ch in content if not ch.isalpha() and not ch.isspace())
    return symbols / len(content)


def contains_link(content: str) -> bool:
    return _LINK_RE.search(content) is not None


def validate_structure(content, thresholds: Thresholds = THRESHOLDS) -> StructureCheck:
    """
    Reject malformed or spam-shaped content before any semantic matching.
    All checks are independent; every failing check contributes one reason.
    """
    if not isinstance(content, str) or content == "":
        return StructureCheck(is_valid=False, errors=[ERR_NOT_STRING])

    errors: List[str] = []
    length = len(content)

    if length > thresholds.max_length:
        errors.append(ERR_TOO_LONG.format(limit=thresholds.max_length))

    if has_word_repetition(content, thresholds):
        errors.append(ERR_REPETITION)

    if has_char_run(content, thresholds):
        errors.append(ERR_CHAR_REPETITION)

    if length > thresholds.caps_min_length and caps_ratio(content) > thresholds.caps_max_ratio:
        errors.append(ERR_CAPS)

    if length > thresholds.symbols_min_length and symbol_ratio(content) > thresholds.symbols_max_ratio:
        errors.append(ERR_SYMBOLS)

    if contains_link(content):
        errors.append(ERR_LINKS)

    return StructureCheck(is_valid=not errors, errors=errors)


# ============================================================================
# SEMANTIC PATTERN MATCHER
# ============================================================================

def _first_match(content: str, table: List[Tuple[str, re.Pattern]]) -> Optional[Tuple[str, int]]:
    for group, pattern in table:
        count = sum(1 for _ in pattern.finditer(content))
        if count:
            return group, count
    return None


def match_patterns(content: str) -> List[PatternMatch]:
    """
    Run both pattern tables. Each table stops at its first matching group,
    so at most one match per violation kind is returned.
    """
    matches: List[PatternMatch] = []

    hit = _first_match(content, ABUSIVE_TABLE)
    if hit:
        matches.append(PatternMatch(kind=ABUSIVE_LANGUAGE, group=hit[0], count=hit[1]))

    hit = _first_match(content, DANGEROUS_TABLE)
    if hit:
        matches.append(PatternMatch(kind=DANGEROUS_CONTENT, group=hit[0], count=hit[1]))

    return matches


# ============================================================================
# SEVERITY & CONFIDENCE
# ============================================================================

def score_violations(
    matches: List[PatternMatch],
    content: str,
    thresholds: Thresholds = THRESHOLDS,
) -> Tuple[str, float]:
    """
    Returns (severity_level, confidence).

    dangerous_content: high, critical when its pattern matched more than once
    abusive_language:  medium, high when its pattern matched more than twice
    anything else:     low
    """
    by_kind: Dict[str, PatternMatch] = {m.kind: m for m in matches}

    if DANGEROUS_CONTENT in by_kind:
        severity = "high"
        if by_kind[DANGEROUS_CONTENT].count > thresholds.dangerous_critical_matches:
            severity = "critical"
    elif ABUSIVE_LANGUAGE in by_kind:
        severity = "medium"
        if by_kind[ABUSIVE_LANGUAGE].count > thresholds.abusive_high_matches:
            severity = "high"
    else:
        severity = "low"

    confidence = thresholds.base_confidence
    if ABUSIVE_LANGUAGE in by_kind and DANGEROUS_CONTENT in by_kind:
        confidence += thresholds.multi_category_bonus
    if len(content) < thresholds.short_content_length:
        confidence -= thresholds.short_content_penalty
    if severity == "high":
        confidence += thresholds.high_severity_bonus

    confidence = min(thresholds.max_confidence, max(thresholds.min_confidence, confidence))
    return severity, round(confidence, 4)


def requires_review(severity: str, kinds: List[str]) -> bool:
    return severity in REVIEW_SEVERITIES or len(set(kinds)) > 1


# ============================================================================
# VERDICT ASSEMBLY
# ============================================================================

def classify_content(content, thresholds: Thresholds = THRESHOLDS) -> Verdict:
    """
    Full pure pipeline. Structural failure short-circuits before matching.
    """
    structure = validate_structure(content, thresholds)
    if not structure.is_valid:
        return Verdict(
            success=False,
            flagged=True,
            violations=[Violation(kind=INVALID_STRUCTURE, confidence=1.0)],
            errors=structure.errors,
        )

    matches = match_patterns(content)
    if not matches:
        return Verdict(success=True, flagged=False, message=APPROVED_MESSAGE)

    severity, confidence = score_violations(matches, content, thresholds)
    kinds = [m.kind for m in matches]
    return Verdict(
        success=True,
        flagged=True,
        violations=[Violation(kind=kind, confidence=confidence) for kind in kinds],
        severity_level=severity,
        confidence=confidence,
        requires_review=requires_review(severity, kinds),
        matches=matches,
        message=FLAGGED_MESSAGE,
    )
