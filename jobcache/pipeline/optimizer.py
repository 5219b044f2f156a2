"""Query optimizer: abbreviation expansion and fuzzy category matching.

Both entry points are pure functions of the query and the two tables, so the
same input always yields the same provider query and suggestions.

Pipeline:
  1. Variants:  the query plus one variant per abbreviated word
  2. Matching:  taxonomy phrases matched by substring or word prefixes
  3. Pruning:   candidates equal to or shorter than the query are dropped
  4. Selection: optimize() takes the longest, suggest() the first five
"""

import logging
import re
from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)

MIN_PREFIX_LENGTH = 2
MAX_SUGGESTIONS = 5

# Category key -> related phrases, in preference order. The key is a phrase too.
JOB_CATEGORIES: dict[str, tuple[str, ...]] = {
    # Tech / software
    "software": (
        "software engineer", "software developer", "swe", "programmer", "coder", "developer",
    ),
    "frontend": (
        "frontend developer", "front-end developer", "frontend engineer", "react developer",
        "angular developer", "vue developer", "ui developer", "javascript developer",
        "web developer",
    ),
    "backend": (
        "backend developer", "back-end developer", "backend engineer", "api developer",
        "server developer", "php developer", "python developer", "java developer",
        "node developer",
    ),
    "fullstack": ("full stack developer", "full-stack developer", "web developer"),
    "mobile": (
        "mobile developer", "android developer", "ios developer", "react native developer",
        "app developer",
    ),
    "devops": (
        "devops engineer", "cloud engineer", "sre", "site reliability engineer",
        "infrastructure engineer",
    ),
    "qa": ("qa engineer", "quality assurance engineer", "test engineer", "automation engineer"),
    "security": ("security engineer", "security analyst", "penetration tester"),
    # Data
    "data": (
        "data scientist", "data analyst", "data engineer", "business analyst",
        "database administrator",
    ),
    "analytics": (
        "analytics", "business intelligence", "bi analyst", "data visualization", "tableau",
    ),
    "machine learning": (
        "machine learning engineer", "ml engineer", "ai engineer", "artificial intelligence",
        "deep learning", "nlp",
    ),
    # Design
    "design": ("ui designer", "ux designer", "graphic designer", "web designer", "product designer"),
    "product": ("product designer", "product manager", "product owner", "ux researcher"),
    # Business
    "marketing": (
        "digital marketing", "content marketing", "seo specialist", "social media manager",
        "marketing manager",
    ),
    "sales": ("sales representative", "account executive", "business development", "sales manager"),
    "finance": ("financial analyst", "accountant", "controller", "finance manager", "bookkeeper"),
    "support": ("customer support", "technical support", "support engineer"),
    # Management
    "manager": ("project manager", "team lead", "director", "program manager", "scrum master"),
    "executive": ("cto", "ceo", "vp", "vice president", "chief"),
    # Seniority
    "intern": ("internship", "co-op", "student", "graduate", "junior"),
    "senior": ("sr", "lead", "principal", "architect", "expert"),
    "junior": ("jr", "entry level", "associate", "trainee", "beginner"),
}

# Single word -> expansion. Applied one word at a time.
ABBREVIATIONS: dict[str, str] = {
    "eng": "engineer",
    "engr": "engineer",
    "dev": "developer",
    "swe": "software engineer",
    "sde": "software engineer",
    "sre": "site reliability engineer",
    "fe": "frontend",
    "be": "backend",
    "fs": "full stack",
    "qa": "quality assurance",
    "ml": "machine learning",
    "ai": "artificial intelligence",
    "ds": "data scientist",
    "ba": "business analyst",
    "pm": "product manager",
    "mgr": "manager",
    "sr": "senior",
    "jr": "junior",
}

_BOOLEAN_OPERATOR = re.compile(r"\b(?:OR|AND)\b")


def optimize(
    query: str,
    categories: Mapping[str, Sequence[str]] = JOB_CATEGORIES,
    abbreviations: Mapping[str, str] = ABBREVIATIONS,
) -> str:
    """Rewrite a free-text title query into the best matching taxonomy phrase.

    Returns the query unchanged when it is empty, already uses OR/AND, or
    nothing longer than it matches.
    """
    if _is_passthrough(query):
        return query

    candidates = _pruned_candidates(query, categories, abbreviations, drop_shorter=True)
    if not candidates:
        return query

    best = candidates[0]
    for candidate in candidates[1:]:
        if len(candidate) > len(best):
            best = candidate
    logger.debug("Optimized query '%s' -> '%s'", query, best)
    return best


def suggest(
    query: str,
    categories: Mapping[str, Sequence[str]] = JOB_CATEGORIES,
    abbreviations: Mapping[str, str] = ABBREVIATIONS,
    limit: int = MAX_SUGGESTIONS,
) -> list[str]:
    """Return up to ``limit`` distinct related phrases for display."""
    if _is_passthrough(query):
        return []
    candidates = _pruned_candidates(query, categories, abbreviations, drop_shorter=False)
    return candidates[:limit]


def expand_abbreviations(query: str, abbreviations: Mapping[str, str] = ABBREVIATIONS) -> list[str]:
    """Return the query followed by one variant per abbreviated word."""
    normalized = _normalize(query)
    words = normalized.split()
    variants = [normalized]
    for i, word in enumerate(words):
        expansion = abbreviations.get(word)
        if expansion is None:
            continue
        variant = " ".join([*words[:i], expansion, *words[i + 1:]])
        if variant not in variants:
            variants.append(variant)
    return variants


def matches_phrase(query: str, phrase: str) -> bool:
    """True if ``phrase`` contains the query, or every query word prefixes a phrase word."""
    if query in phrase:
        return True
    return _word_prefix_match(query, phrase)


def _word_prefix_match(query: str, phrase: str) -> bool:
    query_words = query.split()
    if not query_words:
        return False
    phrase_words = phrase.split()
    for word in query_words:
        if len(word) < MIN_PREFIX_LENGTH:
            return False
        if not any(pw.startswith(word) for pw in phrase_words):
            return False
    return True


def _pruned_candidates(
    query: str,
    categories: Mapping[str, Sequence[str]],
    abbreviations: Mapping[str, str],
    *,
    drop_shorter: bool,
) -> list[str]:
    original = _normalize(query)
    collected: list[str] = []
    for variant in expand_abbreviations(query, abbreviations):
        for phrase in _phrases(categories):
            if phrase not in collected and matches_phrase(variant, phrase):
                collected.append(phrase)

    result: list[str] = []
    for candidate in collected:
        if candidate == original:
            continue
        if drop_shorter and len(candidate) < len(original):
            continue
        result.append(candidate)
    return result


def _phrases(categories: Mapping[str, Sequence[str]]) -> list[str]:
    phrases: list[str] = []
    for key, related in categories.items():
        for phrase in (key, *related):
            normalized = _normalize(phrase)
            if normalized not in phrases:
                phrases.append(normalized)
    return phrases


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def _is_passthrough(query: str) -> bool:
    if not query or not query.strip():
        return True
    return _BOOLEAN_OPERATOR.search(query) is not None
