import re
from typing import Any, Dict, Optional

from services.errors import VALIDATION_FAILURE

SPAM_KEYWORDS = [
    'viagra', 'casino', 'lottery', 'poker', 'blackjack', 'roulette',
    'buy now', 'click here', 'limited offer', 'act now', 'buy today',
    'free money', 'make money fast', 'work from home', 'get rich quick',
    'click here now', 'check out', 'hot deals', 'special offer',
    'best price', 'order now', 'call now', 'apply now', 'join now'
]

SPAM_URL_PATTERNS = [
    re.compile(r'http://|https://', re.I),
    re.compile(r'www\.', re.I),
    re.compile(r'\.tk|\.ml|\.ga|\.cf', re.I),  # Suspicious TLDs
]

# Anything outside word characters, whitespace and basic punctuation
SPECIAL_CHAR_PATTERN = re.compile(r'[^\w\s.,!?\-]', re.ASCII)

MIN_TITLE_LENGTH = 3
MIN_CONTENT_LENGTH = 10
MAX_TITLE_LENGTH = 300
MAX_CONTENT_LENGTH = 5000
MAX_SPECIAL_CHAR_RATIO = 0.3


class Classification:
    """Verdict for one submission"""

    def __init__(self, is_bot: bool, reason: Optional[str] = None):
        self.is_bot = is_bot
        self.reason = reason

    @property
    def failure(self):
        return VALIDATION_FAILURE if self.is_bot else None

    def to_dict(self):
        return {'isBot': self.is_bot, 'reason': self.reason}


def detect_spam_content(text: str) -> bool:
    """True if text contains a spam keyword or a URL-like pattern"""
    if not text:
        return False

    lower_text = text.lower()
    if any(keyword in lower_text for keyword in SPAM_KEYWORDS):
        return True

    return any(pattern.search(text) for pattern in SPAM_URL_PATTERNS)


def special_char_ratio(text: str) -> float:
    if not text:
        return 0.0
    return len(SPECIAL_CHAR_PATTERN.findall(text)) / len(text)


class HeuristicClassifier:
    """
    Scores a submission for bot-likeness

    Rules run in priority order and the first one that fires decides:
    honeypot, field types, short title, short content, oversize, spam keywords/URLs,
    special character ratio.
    """

    def classify(self, submission: Dict[str, Any]) -> Classification:
        title = submission.get('title') or ''
        content = submission.get('content') or ''
        honeypot = submission.get('honeypot') or ''

        # Hidden field real users never see; any non-text value counts as filled
        if not isinstance(honeypot, str) or honeypot.strip():
            return Classification(True, 'Honeypot field filled')

        if not isinstance(title, str) or not isinstance(content, str):
            return Classification(True, 'Invalid submission fields')

        if len(title.strip()) < MIN_TITLE_LENGTH:
            return Classification(True, 'Title too short')

        if len(content.strip()) < MIN_CONTENT_LENGTH:
            return Classification(True, 'Content too short')

        if len(title) > MAX_TITLE_LENGTH or len(content) > MAX_CONTENT_LENGTH:
            return Classification(True, 'Content too long')

        if detect_spam_content(title) or detect_spam_content(content):
            return Classification(True, 'Spam content detected')

        if special_char_ratio(title + content) > MAX_SPECIAL_CHAR_RATIO:
            return Classification(True, 'Suspicious character patterns')

        return Classification(False)
