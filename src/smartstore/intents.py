"""Keyword-based intent parsing for chat-style organization requests."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from smartstore.classification import Category
from smartstore.organization.models import DateGranularity, OrganizationRule, RuleOptions


class IntentType(str, Enum):
    ORGANIZE = "organize"
    SEARCH = "search"
    ANALYZE = "analyze"
    UNDO = "undo"
    PREVIEW = "preview"
    APPLY = "apply"
    CANCEL = "cancel"
    HELP = "help"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class ParsedIntent:
    """Result of parsing one message.

    Attributes:
        type: Detected intent.
        confidence: Rough confidence of the match.
        raw_text: Message as received.
        rule: Organization rule named by the message, if any.
        category: File category mentioned in the message, if any.
        query: Search text for search intents.
    """

    type: IntentType
    confidence: float
    raw_text: str
    rule: Optional[OrganizationRule] = None
    category: Optional[Category] = None
    query: Optional[str] = None


@dataclass(frozen=True, slots=True)
class _Pattern:
    regex: re.Pattern[str]
    intent: IntentType
    rule: Optional[OrganizationRule] = None
    query: Optional[Callable[[re.Match[str]], str]] = None


def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


# first match wins
_PATTERNS: tuple[_Pattern, ...] = (
    _Pattern(
        _compile(r"\b(organize|sort|arrange|group|categorize)\b.*\b(by\s+)?(type|file\s*type|category)"),
        IntentType.ORGANIZE,
        rule=OrganizationRule.BY_TYPE,
    ),
    _Pattern(
        _compile(r"\b(organize|sort|arrange|group)\b.*\b(by\s+)?(date|time|when|year|month)"),
        IntentType.ORGANIZE,
        rule=OrganizationRule.BY_DATE,
    ),
    _Pattern(
        _compile(r"\b(organize|sort|arrange|group)\b.*\b(by\s+)?(size|big|small|large)"),
        IntentType.ORGANIZE,
        rule=OrganizationRule.BY_SIZE,
    ),
    _Pattern(
        _compile(r"\b(organize|sort|arrange|group)\b.*\b(by\s+)?(extension|ext)"),
        IntentType.ORGANIZE,
        rule=OrganizationRule.BY_EXTENSION,
    ),
    _Pattern(
        _compile(r"\b(flatten|un-?nest)\b"),
        IntentType.ORGANIZE,
        rule=OrganizationRule.FLATTEN,
    ),
    _Pattern(_compile(r"\b(organize|sort|clean\s*up|tidy|arrange)\b"), IntentType.ORGANIZE),
    _Pattern(
        _compile(r"\b(find|search|look\s*for|where\s*(is|are)|locate)\b\s*(all\s+)?(the\s+)?(.+)"),
        IntentType.SEARCH,
        query=lambda match: (match.group(5) or "").strip(),
    ),
    _Pattern(
        _compile(r"\b(show\s*me|list)\b\s*(all\s+)?(the\s+)?(.+)"),
        IntentType.SEARCH,
        query=lambda match: (match.group(4) or "").strip(),
    ),
    _Pattern(
        _compile(r"\b(what('s|\s+is)\s+(taking|using)\s+(up\s+)?(space|storage|room))"),
        IntentType.ANALYZE,
    ),
    _Pattern(_compile(r"\b(analyze|analysis|statistics|stats|summary|overview)\b"), IntentType.ANALYZE),
    _Pattern(_compile(r"\b(how\s+(much|many)|size|space|storage)\b"), IntentType.ANALYZE),
    _Pattern(_compile(r"\b(undo|revert|rollback|go\s*back|restore)\b"), IntentType.UNDO),
    _Pattern(_compile(r"\b(preview|show|what\s+would|how\s+would|simulate)\b"), IntentType.PREVIEW),
    _Pattern(
        _compile(r"\b(yes|apply|confirm|do\s+it|go\s+ahead|proceed|ok|okay|sure)\b"),
        IntentType.APPLY,
    ),
    _Pattern(
        _compile(r"\b(no|cancel|stop|never\s*mind|forget\s*it|don't|abort)\b"),
        IntentType.CANCEL,
    ),
    _Pattern(
        _compile(r"\b(help|what\s+can\s+you|how\s+do\s+(i|you)|commands?|options?|features?)\b"),
        IntentType.HELP,
    ),
)

_CATEGORY_PATTERNS: tuple[tuple[re.Pattern[str], Category], ...] = (
    (_compile(r"\b(image|images|photo|photos|picture|pictures|jpg|jpeg|png|gif)\b"), Category.IMAGE),
    (_compile(r"\b(video|videos|movie|movies|mp4|mov|avi)\b"), Category.VIDEO),
    (_compile(r"\b(audio|music|song|songs|mp3|wav|flac)\b"), Category.AUDIO),
    (_compile(r"\b(document|documents|doc|docx|word)\b"), Category.DOCUMENT),
    (_compile(r"\b(pdf|pdfs)\b"), Category.PDF),
    (_compile(r"\b(spreadsheet|spreadsheets|excel|xlsx|xls|csv)\b"), Category.SPREADSHEET),
    (_compile(r"\b(presentation|presentations|powerpoint|pptx|ppt|slides)\b"), Category.PRESENTATION),
    (_compile(r"\b(archive|archives|zip|rar|compressed)\b"), Category.ARCHIVE),
    (_compile(r"\b(code|source|script|program|js|ts|py|java)\b"), Category.CODE),
)

_GRANULARITY_PATTERNS: tuple[tuple[re.Pattern[str], DateGranularity], ...] = (
    (_compile(r"\b(day|daily|days)\b"), DateGranularity.YEAR_MONTH_DAY),
    (_compile(r"\b(month|monthly|months)\b"), DateGranularity.YEAR_MONTH),
    (_compile(r"\b(year|yearly|years|annual)\b"), DateGranularity.YEAR),
)


def parse_intent(message: str) -> ParsedIntent:
    """Classify a free-text message into an intent with extracted entities."""

    normalized = message.strip().lower()
    category = next(
        (category for pattern, category in _CATEGORY_PATTERNS if pattern.search(normalized)),
        None,
    )
    for pattern in _PATTERNS:
        match = pattern.regex.search(normalized)
        if match is None:
            continue
        return ParsedIntent(
            type=pattern.intent,
            confidence=0.8,
            raw_text=message,
            rule=pattern.rule,
            category=category,
            query=pattern.query(match) if pattern.query else None,
        )
    return ParsedIntent(type=IntentType.UNKNOWN, confidence=0.2, raw_text=message)


def resolve_intent_to_rule(
    message: str,
    base_options: Optional[RuleOptions] = None,
) -> Optional[tuple[OrganizationRule, RuleOptions]]:
    """Return the rule and options an organize request asks for.

    Generic organize requests default to the type rule; date requests may pick
    a granularity ("by day", "by year"). Anything that is not an organize
    intent yields ``None``.
    """

    intent = parse_intent(message)
    if intent.type is not IntentType.ORGANIZE:
        return None
    rule = intent.rule or OrganizationRule.BY_TYPE
    options = base_options or RuleOptions()
    if rule is OrganizationRule.BY_DATE:
        lowered = message.lower()
        for pattern, granularity in _GRANULARITY_PATTERNS:
            if pattern.search(lowered):
                options = options.model_copy(update={"date_granularity": granularity})
                break
    return rule, options


__all__ = ["IntentType", "ParsedIntent", "parse_intent", "resolve_intent_to_rule"]
