"""Text Feature Extractor.

Turns an idea's title + description into ``TextFeatures``: language,
keywords, categories, sentiment, market potential, technical complexity
and innovation score.

Only categorization (and ``classify_idea``) talks to the completion
service.  Every other feature is a deterministic rule, so when the
completion service is slow, down or unconfigured the extractor still
answers, tagged ``Fallback(features, reason)``.

Results are cached by content hash (read-through, upsert on write).
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional

from textblob import TextBlob, Word

from ..constants import (
    BUSINESS_CATEGORY_KEYWORDS,
    CATEGORY_KEYWORD_MAP,
    COMPLEX_TECH_KEYWORDS,
    DEFAULT_TECHNICAL_COMPLEXITY,
    EMERGING_TECH_KEYWORDS,
    ENGLISH_STOPWORDS,
    HIGH_POTENTIAL_KEYWORDS,
    IDEA_CATEGORIES,
    INNOVATION_BASE,
    INNOVATION_PER_KEYWORD,
    INNOVATION_PROBLEM_SOLUTION_BONUS,
    INNOVATION_TECH_COMBO_BONUS,
    INNOVATIVE_KEYWORDS,
    KO_NEGATIVE_WORDS,
    KO_POSITIVE_WORDS,
    KO_SENTIMENT_STEP,
    KOREAN_PARTICLES,
    MEDIUM_POTENTIAL_KEYWORDS,
    MODERATE_TECH_KEYWORDS,
    PROBLEM_SOLUTION_KEYWORDS,
    SIMPLE_TECH_KEYWORDS,
    TECH_CATEGORY_KEYWORDS,
)
from ..exceptions import ExternalServiceError
from ..schemas.text_features_schema import (
    ExtractionOutcome,
    Fallback,
    IdeaClassification,
    Language,
    MarketPotential,
    Ok,
    TextFeatures,
)
from .background import BackgroundDispatcher
from .completion_client import CompletionClient, parse_json_object
from .scoring_engine import _clamp
from .store import ScoringStore, bounded_read

logger = logging.getLogger(__name__)

_HANGUL = re.compile(r"[가-힣]")
_KO_STRIP = re.compile(r"[^\w\s가-힣]")
_PUNCT = re.compile(r"[^\w\s]")
_WS = re.compile(r"\s+")

MAX_KEYWORDS = 10
MAX_CATEGORIES = 3
MAX_CLASSIFICATION_TAGS = 5
KOREAN_RATIO_THRESHOLD = 0.1
CLASSIFICATION_FALLBACK_CONFIDENCE = 50.0
MIN_KO_STEM = 2

# ── Prompt templates ────────────────────────────────────────────────────

_CATEGORIZE_SYSTEM = {
    "en": (
        "You are an idea classification expert. Categorize the given text into "
        "technology, business, and industry categories. Respond ONLY with JSON: "
        '{"categories": ["<category>", ...]} with at most 3 short lowercase categories.'
    ),
    "ko": (
        "당신은 아이디어 분류 전문가입니다. 주어진 텍스트를 기술, 비즈니스, 산업 카테고리로 "
        '분류해주세요. JSON으로만 답하세요: {"categories": ["<카테고리>", ...]} (최대 3개).'
    ),
}

_CATEGORIZE_USER = {
    "en": "Analyze the following text and categorize it into 3 relevant categories: {text}",
    "ko": "다음 텍스트를 분석하여 적절한 카테고리 3개를 선택해주세요: {text}",
}

_CLASSIFY_SYSTEM = (
    "You are an expert at categorizing startup ideas. Classify the idea into the most "
    "relevant categories from this list: {categories}.\n"
    "Respond ONLY with JSON:\n"
    '{{"primary_category": "<one of the list>", "sub_categories": ["<up to 2 of the list>"], '
    '"confidence": <0-100>, "tags": ["<up to 5 short lowercase tags>"]}}'
)


# ===================================================================== #
#  Pure helpers                                                           #
# ===================================================================== #

def content_hash(text: str, title: Optional[str] = None) -> str:
    """SHA-256 hex digest of the raw input (title and text, NUL separated)."""
    raw = f"{title or ''}\x00{text}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def neutral_features(language: Language = "en") -> TextFeatures:
    return TextFeatures(language=language)


def detect_language(text: str) -> Language:
    """``ko`` when Hangul syllables are more than 10% of all characters."""
    if not text:
        return "en"
    hangul = len(_HANGUL.findall(text))
    return "ko" if hangul / len(text) > KOREAN_RATIO_THRESHOLD else "en"


def normalize_text(text: str, language: Language) -> str:
    """Lowercase, punctuation to spaces, collapsed whitespace."""
    pattern = _KO_STRIP if language == "ko" else _PUNCT
    return _WS.sub(" ", pattern.sub(" ", text.lower())).strip()


def _strip_particle(token: str) -> str:
    """Drop a trailing particle only when a stem of 2+ syllables remains (결과, 속도 stay whole)."""
    for particle in KOREAN_PARTICLES:
        if token.endswith(particle) and len(token) - len(particle) >= MIN_KO_STEM:
            return token[: -len(particle)]
    return token


def tokenize(text: str, language: Language) -> List[str]:
    """Preprocessed tokens, in text order."""
    words = normalize_text(text, language).split()
    if language == "ko":
        tokens = (
            _strip_particle(w)
            for w in words
            if w not in KOREAN_PARTICLES and _HANGUL.search(w)
        )
        return [t for t in tokens if len(t) > 1]
    return [
        Word(w).stem()
        for w in words
        if len(w) > 2 and w not in ENGLISH_STOPWORDS
    ]


def extract_keywords(tokens: List[str], limit: int = MAX_KEYWORDS) -> List[str]:
    """Top *limit* tokens by frequency; ties keep first-occurrence order."""
    return [token for token, _ in Counter(tokens).most_common(limit)]


def _contains(haystack: str, term: str) -> bool:
    """Hangul terms match as substrings, Latin terms as whole words."""
    if _HANGUL.search(term):
        return term in haystack
    return re.search(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])", haystack) is not None


def _hits(haystack: str, terms: List[str]) -> List[str]:
    return [term for term in terms if _contains(haystack, term)]


def fallback_categories(normalized: str) -> List[str]:
    categories = []
    if _hits(normalized, TECH_CATEGORY_KEYWORDS):
        categories.append("technology")
    if _hits(normalized, BUSINESS_CATEGORY_KEYWORDS):
        categories.append("business")
    return categories or ["general"]


def score_sentiment(text: str, normalized: str, language: Language) -> float:
    if language == "en":
        polarity = TextBlob(text).sentiment.polarity
    else:
        positive = len(_hits(normalized, KO_POSITIVE_WORDS))
        negative = len(_hits(normalized, KO_NEGATIVE_WORDS))
        polarity = (positive - negative) * KO_SENTIMENT_STEP
    return round(_clamp(polarity, -1.0, 1.0), 4)


def assess_market_potential(normalized: str) -> MarketPotential:
    high = len(_hits(normalized, HIGH_POTENTIAL_KEYWORDS))
    medium = len(_hits(normalized, MEDIUM_POTENTIAL_KEYWORDS))
    if high >= 2:
        return "high"
    if high >= 1 or medium >= 2:
        return "medium"
    return "low"


def assess_technical_complexity(normalized: str) -> int:
    if _hits(normalized, COMPLEX_TECH_KEYWORDS):
        return 5
    if _hits(normalized, MODERATE_TECH_KEYWORDS):
        return 3
    if _hits(normalized, SIMPLE_TECH_KEYWORDS):
        return 1
    return DEFAULT_TECHNICAL_COMPLEXITY


def score_innovation(normalized_with_title: str) -> float:
    score = INNOVATION_BASE
    score += INNOVATION_PER_KEYWORD * len(_hits(normalized_with_title, INNOVATIVE_KEYWORDS))
    if len(_hits(normalized_with_title, EMERGING_TECH_KEYWORDS)) >= 2:
        score += INNOVATION_TECH_COMBO_BONUS
    if _hits(normalized_with_title, PROBLEM_SOLUTION_KEYWORDS):
        score += INNOVATION_PROBLEM_SOLUTION_BONUS
    return _clamp(float(score))


def _dedupe(values: List[str]) -> List[str]:
    seen: set[str] = set()
    out: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            out.append(value)
    return out


def _list_field(data: dict, key: str) -> list:
    """Optional list member of a completion answer; any other type is malformed."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' is not a list")
    return value


def classify_by_keywords(normalized: str, tags: List[str]) -> IdeaClassification:
    """Deterministic taxonomy placement, used when the completion service fails."""
    hits: Counter[str] = Counter()
    for keyword, category in CATEGORY_KEYWORD_MAP.items():
        if _contains(normalized, keyword):
            hits[category] += 1
    ranked = sorted(hits, key=lambda c: (-hits[c], IDEA_CATEGORIES.index(c)))
    primary = ranked[0] if ranked else IDEA_CATEGORIES[0]
    return IdeaClassification(
        primary_category=primary,
        sub_categories=ranked[1:3],
        confidence_score=CLASSIFICATION_FALLBACK_CONFIDENCE,
        suggested_tags=tags[:MAX_CLASSIFICATION_TAGS],
    )


@dataclass(frozen=True)
class AnalysisRun:
    """An extraction outcome plus how it was obtained."""

    outcome: ExtractionOutcome
    content_hash: str
    cached: bool


# ===================================================================== #
#  Extractor                                                              #
# ===================================================================== #

class TextFeatureExtractor:
    def __init__(
        self,
        completion: CompletionClient,
        store: ScoringStore,
        dispatcher: BackgroundDispatcher,
        *,
        completion_timeout: float = 15.0,
        store_timeout: float = 5.0,
    ):
        self._completion = completion
        self._store = store
        self._dispatcher = dispatcher
        self._completion_timeout = completion_timeout
        self._store_timeout = store_timeout

    async def analyze(self, text: str, title: Optional[str] = None) -> ExtractionOutcome:
        run = await self.analyze_detailed(text, title)
        return run.outcome

    async def analyze_detailed(
        self, text: str, title: Optional[str] = None, *, force_refresh: bool = False
    ) -> AnalysisRun:
        key = content_hash(text, title)
        if not text or not text.strip():
            return AnalysisRun(Fallback(neutral_features(), "empty input"), key, cached=False)

        if not force_refresh:
            hit = await self._read_cache(key)
            if hit is not None:
                return AnalysisRun(hit, key, cached=True)

        outcome = await self._extract(text, title)
        reason = outcome.reason if isinstance(outcome, Fallback) else None
        self._dispatcher.dispatch(
            f"text-cache:{key[:12]}",
            lambda: self._store.upsert_text_features(key, text, outcome.features, reason),
        )
        return AnalysisRun(outcome, key, cached=False)

    async def classify_idea(self, text: str) -> IdeaClassification:
        """Place *text* in the fixed idea taxonomy."""
        language = detect_language(text)
        normalized = normalize_text(text, language)
        try:
            raw = await asyncio.wait_for(
                self._completion.complete(
                    _CLASSIFY_SYSTEM.format(categories=", ".join(IDEA_CATEGORIES)),
                    f"Categorize this idea and provide your confidence level (0-100): {text}",
                    max_tokens=200,
                    temperature=0.2,
                ),
                timeout=self._completion_timeout,
            )
            return self._parse_classification(raw)
        except (asyncio.TimeoutError, ExternalServiceError, TypeError, ValueError) as exc:
            logger.warning("Idea classification fell back to keyword rules: %s", exc or type(exc).__name__)
            return classify_by_keywords(normalized, extract_keywords(tokenize(text, language)))

    # ------------------------------------------------------------------ #
    #  Internals                                                           #
    # ------------------------------------------------------------------ #

    async def _read_cache(self, key: str) -> Optional[ExtractionOutcome]:
        try:
            cached = await bounded_read(
                self._store.get_text_features(key), self._store_timeout, "text feature cache read"
            )
        except ExternalServiceError as exc:
            logger.warning("Text feature cache read failed for %s: %s", key[:12], exc)
            return None
        if cached is None:
            return None
        if cached.fallback_reason:
            return Fallback(cached.features, cached.fallback_reason)
        return Ok(cached.features)

    async def _extract(self, text: str, title: Optional[str]) -> ExtractionOutcome:
        language = detect_language(text)
        normalized = normalize_text(text, language)
        combined = normalize_text(f"{title or ''} {text}", language)

        categories, fallback_reason = await self._categorize(text, normalized, language)
        features = TextFeatures(
            categories=categories,
            keywords=extract_keywords(tokenize(text, language)),
            sentiment=score_sentiment(text, normalized, language),
            language=language,
            market_potential=assess_market_potential(normalized),
            technical_complexity=assess_technical_complexity(normalized),
            innovation_score=score_innovation(combined),
        )
        if fallback_reason is not None:
            return Fallback(features, fallback_reason)
        return Ok(features)

    async def _categorize(self, text: str, normalized: str, language: Language) -> tuple[List[str], Optional[str]]:
        """Completion-backed categories, or the keyword rule plus the reason it was used."""
        try:
            raw = await asyncio.wait_for(
                self._completion.complete(
                    _CATEGORIZE_SYSTEM[language],
                    _CATEGORIZE_USER[language].format(text=text),
                    max_tokens=100,
                    temperature=0.3,
                ),
                timeout=self._completion_timeout,
            )
            return self._parse_categories(raw), None
        except asyncio.TimeoutError:
            reason = f"completion timed out after {self._completion_timeout:.0f}s"
        except ExternalServiceError as exc:
            reason = str(exc)
        except (TypeError, ValueError) as exc:
            reason = f"malformed completion: {exc}"
        logger.warning("Categorization fell back to keyword rules (%s)", reason)
        return fallback_categories(normalized), reason

    @staticmethod
    def _parse_categories(raw: str) -> List[str]:
        data = parse_json_object(raw)
        values = data.get("categories")
        if not isinstance(values, list):
            raise ValueError("'categories' is not a list")
        categories = _dedupe([str(v).strip().lower() for v in values if isinstance(v, str)])
        if not categories:
            raise ValueError("no categories returned")
        return categories[:MAX_CATEGORIES]

    @staticmethod
    def _parse_classification(raw: str) -> IdeaClassification:
        data = parse_json_object(raw)
        canonical = {c.lower(): c for c in IDEA_CATEGORIES}

        primary = canonical.get(str(data.get("primary_category", "")).strip().lower())
        if primary is None:
            raise ValueError(f"unknown primary category {data.get('primary_category')!r}")

        subs_raw = _list_field(data, "sub_categories")
        subs = _dedupe([
            canonical[s.strip().lower()]
            for s in subs_raw
            if isinstance(s, str) and s.strip().lower() in canonical
        ])
        subs = [s for s in subs if s != primary][:2]

        try:
            confidence = float(data.get("confidence", CLASSIFICATION_FALLBACK_CONFIDENCE))
        except (TypeError, ValueError):
            confidence = CLASSIFICATION_FALLBACK_CONFIDENCE

        tags_raw = _list_field(data, "tags")
        tags = _dedupe([t.strip().lower() for t in tags_raw if isinstance(t, str)])

        return IdeaClassification(
            primary_category=primary,
            sub_categories=subs,
            confidence_score=_clamp(confidence),
            suggested_tags=tags[:MAX_CLASSIFICATION_TAGS],
        )
