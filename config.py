"""
Configuration for the Content Guard moderation service
Loads secrets and tunables from environment variables (.env supported)
"""
import os

from dotenv import load_dotenv

from contentguard.models import Thresholds

load_dotenv()

# ============================================================================
# SERVICE CONFIGURATION
# ============================================================================
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
MODERATION_DB_PATH = os.getenv("MODERATION_DB_PATH", "moderation.db")

# Shared secret for the reviewer endpoints (pending queue, stats)
REVIEW_API_TOKEN = os.getenv("REVIEW_API_TOKEN", "")

# Optional Telegram channel that mirrors high/critical reviewer notifications
REVIEW_ALERT_BOT_TOKEN = os.getenv("REVIEW_ALERT_BOT_TOKEN", "")
REVIEW_ALERT_CHAT_ID = int(os.getenv("REVIEW_ALERT_CHAT_ID", "0")) if os.getenv("REVIEW_ALERT_CHAT_ID") else None

# Roles whose holders receive reviewer notifications
REVIEWER_ROLES = ("admin", "moderator")
KNOWN_ROLES = ("admin", "moderator", "user")

CONTENT_TYPES = ("message", "post", "comment", "profile")

# Stored excerpt sizes
FLAGGED_CONTENT_MAX_CHARS = 500
NOTIFICATION_EXCERPT_CHARS = 100


# ============================================================================
# TUNABLE THRESHOLDS
# ============================================================================

def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


THRESHOLDS = Thresholds(
    max_length=_env_int("MAX_CONTENT_LENGTH", 10_000),
    repetition_min_tokens=_env_int("REPETITION_MIN_TOKENS", 8),
    repetition_min_token_length=_env_int("REPETITION_MIN_TOKEN_LENGTH", 3),
    repetition_max_share=_env_float("REPETITION_MAX_SHARE", 0.25),
    char_run_length=_env_int("CHAR_RUN_LENGTH", 5),
    caps_min_length=_env_int("CAPS_MIN_LENGTH", 15),
    caps_max_ratio=_env_float("CAPS_MAX_RATIO", 0.5),
    symbols_min_length=_env_int("SYMBOLS_MIN_LENGTH", 10),
    symbols_max_ratio=_env_float("SYMBOLS_MAX_RATIO", 0.4),
    abusive_high_matches=_env_int("ABUSIVE_HIGH_MATCHES", 2),
    dangerous_critical_matches=_env_int("DANGEROUS_CRITICAL_MATCHES", 1),
    base_confidence=_env_float("BASE_CONFIDENCE", 0.7),
    multi_category_bonus=_env_float("MULTI_CATEGORY_BONUS", 0.2),
    short_content_length=_env_int("SHORT_CONTENT_LENGTH", 50),
    short_content_penalty=_env_float("SHORT_CONTENT_PENALTY", 0.1),
    high_severity_bonus=_env_float("HIGH_SEVERITY_BONUS", 0.15),
    min_confidence=_env_float("MIN_CONFIDENCE", 0.5),
    max_confidence=_env_float("MAX_CONFIDENCE", 0.95),
)


# ============================================================================
# OBFUSCATION MAPS
# ============================================================================

# Digits folded back to letters before counting repeated words
LEET_DIGITS = {
    "0": "o", "1": "i", "3": "e", "4": "a",
    "5": "s", "7": "t", "8": "b", "9": "g",
}

# Character classes used when compiling abusive phrases
LEET_CLASSES = {
    "a": "[a@4]",
    "b": "[b8]",
    "e": "[e3]",
    "g": "[g9]",
    "i": "[i!1]",
    "l": "[l1]",
    "o": "[o0]",
    "s": "[s5$]",
    "t": "[t7]",
}


# ============================================================================
# ABUSIVE LANGUAGE (obfuscation tolerant)
# ============================================================================
# Plain phrases; each letter is expanded into its leetspeak class at compile
# time and spaces accept any run of whitespace or separators.
# Groups are evaluated in order; the first group that matches wins.

ABUSIVE_PHRASES = {
    "threats": [
        "kill you", "murder you", "i will kill", "i'll kill", "gonna kill",
        "going to kill", "death threat", "hurt you", "beat you up",
        "find where you live", "you will regret", "watch your back",
    ],
    "harassment": [
        "kill yourself", "kys", "go die", "nobody likes you", "stupid",
        "idiot", "moron", "loser", "worthless", "pathetic", "you're ugly",
        "piece of trash", "waste of space",
    ],
    "sexual_harassment": [
        "send nudes", "send me nudes", "send pics", "nudes", "sext",
        "show me your body", "sleep with me", "sexy pics",
    ],
    "hate_speech": [
        "faggot", "retard", "subhuman", "white power", "heil hitler",
        "go back to your country", "nigger", "kike", "tranny",
    ],
    "doxxing": [
        "what's your address", "where do you live", "your home address",
        "send me your address", "your phone number", "social security number",
        "post your address",
    ],
}

# Personal information shapes, matched verbatim
PERSONAL_INFO_PATTERNS = [
    r"\b\d{3}-\d{2}-\d{4}\b",  # SSN
    r"\b\d{4}\s?\d{4}\s?\d{4}\s?\d{4}\b",  # card number
]


# ============================================================================
# DANGEROUS CONTENT (plain words)
# ============================================================================

DANGEROUS_PATTERNS = {
    "self_harm": r"\b(?:suicide|suicidal|kill\s+myself|end\s+my\s+life|self[\s-]?harm|cut\s+myself|want\s+to\s+die)\b",
    "violence": r"\b(?:bombs?|explosives?|weapons?|guns?|shooting|massacre|terrorists?|terrorism)\b",
    "illegal_activity": (
        r"\b(?:drug\s+dealing|sell(?:ing)?\s+drugs|illegal\s+drugs|trafficking|smuggling|hacking|"
        r"hack\s+into|identity\s+theft|credit\s+card\s+fraud|money\s+laundering)\b"
    ),
}


# ============================================================================
# LINKS
# ============================================================================

LINK_TLDS = [
    "com", "net", "org", "io", "co", "info", "biz", "xyz", "ru", "me",
    "ly", "app", "dev", "gg", "tk", "online", "site", "shop",
]

# Scheme and www prefix match in any case; bare domains need a lowercase TLD
# so a sentence missing the space after a period ("home.Me") is not a link.
LINK_PATTERN = (
    r"(?i:https?://|www\.)"
    r"|\b[A-Za-z0-9][A-Za-z0-9-]*(?:\.[A-Za-z0-9-]+)*\.(?:" + "|".join(LINK_TLDS) + r")\b"
)
