"""Centralized constants shared by the three scoring components.

This module is the SINGLE SOURCE OF TRUTH for keyword lists, the idea
taxonomy, and the fixed adjustment tables.  Reused by:
  - Text Feature Extractor
  - Success Prediction Engine
  - Recommendation Engine

Latin terms are matched as whole words, Hangul terms as substrings
(Korean particles attach directly to the stem).
"""

from __future__ import annotations

# ── Idea taxonomy ───────────────────────────────────────────────────────
# Used by classify_idea().  Order matters: the first entry is the default
# primary category when nothing else matches.

IDEA_CATEGORIES: list[str] = [
    "AI & Machine Learning",
    "Mobile Apps",
    "Web Applications",
    "E-commerce",
    "FinTech",
    "HealthTech",
    "EdTech",
    "PropTech",
    "AgriTech",
    "CleanTech",
    "IoT",
    "Blockchain",
    "AR/VR",
    "Gaming",
    "Social Media",
    "Productivity",
    "Analytics",
    "Security",
    "DevTools",
    "Marketing Tools",
]

# Keyword -> taxonomy entry, used when the completion service is unavailable.
CATEGORY_KEYWORD_MAP: dict[str, str] = {
    "ai": "AI & Machine Learning",
    "machine learning": "AI & Machine Learning",
    "ml": "AI & Machine Learning",
    "인공지능": "AI & Machine Learning",
    "머신러닝": "AI & Machine Learning",
    "mobile": "Mobile Apps",
    "app": "Mobile Apps",
    "모바일": "Mobile Apps",
    "앱": "Mobile Apps",
    "web": "Web Applications",
    "website": "Web Applications",
    "웹": "Web Applications",
    "shop": "E-commerce",
    "commerce": "E-commerce",
    "쇼핑": "E-commerce",
    "fintech": "FinTech",
    "payment": "FinTech",
    "finance": "FinTech",
    "핀테크": "FinTech",
    "결제": "FinTech",
    "health": "HealthTech",
    "healthcare": "HealthTech",
    "헬스케어": "HealthTech",
    "education": "EdTech",
    "learning": "EdTech",
    "교육": "EdTech",
    "real estate": "PropTech",
    "부동산": "PropTech",
    "farm": "AgriTech",
    "agriculture": "AgriTech",
    "농업": "AgriTech",
    "energy": "CleanTech",
    "climate": "CleanTech",
    "에너지": "CleanTech",
    "iot": "IoT",
    "sensor": "IoT",
    "사물인터넷": "IoT",
    "blockchain": "Blockchain",
    "crypto": "Blockchain",
    "블록체인": "Blockchain",
    "ar": "AR/VR",
    "vr": "AR/VR",
    "증강현실": "AR/VR",
    "가상현실": "AR/VR",
    "game": "Gaming",
    "gaming": "Gaming",
    "게임": "Gaming",
    "social": "Social Media",
    "community": "Social Media",
    "커뮤니티": "Social Media",
    "productivity": "Productivity",
    "생산성": "Productivity",
    "analytics": "Analytics",
    "dashboard": "Analytics",
    "분석": "Analytics",
    "security": "Security",
    "보안": "Security",
    "developer": "DevTools",
    "api": "DevTools",
    "개발자": "DevTools",
    "marketing": "Marketing Tools",
    "마케팅": "Marketing Tools",
}

# ── Fallback categorization buckets ─────────────────────────────────────

TECH_CATEGORY_KEYWORDS: list[str] = [
    "ai", "ml", "blockchain", "iot", "app", "web", "mobile",
    "인공지능", "앱", "웹", "모바일",
]

BUSINESS_CATEGORY_KEYWORDS: list[str] = [
    "startup", "business", "service", "platform",
    "비즈니스", "서비스", "플랫폼",
]

# ── Preprocessing ───────────────────────────────────────────────────────

KOREAN_PARTICLES: list[str] = [
    # Longest first so "에서" is stripped before "에".
    "에서", "으로", "부터", "까지",
    "이", "가", "을", "를", "에", "로", "의", "과", "와", "도", "만", "은", "는",
]

ENGLISH_STOPWORDS: frozenset[str] = frozenset(
    """
    a about above after again against all am an and any are as at be because been before being below
    between both but by can could did do does doing down during each few for from further had has have
    having he her here hers herself him himself his how i if in into is it its itself just me more most
    my myself no nor not now of off on once only or other our ours ourselves out over own same she should
    so some such than that the their theirs them themselves then there these they this those through to
    too under until up very was we were what when where which while who whom why will with would you your
    yours yourself yourselves also using use used via into onto per etc
    """.split()
)

# ── Sentiment (Korean keyword heuristic) ────────────────────────────────

KO_POSITIVE_WORDS: list[str] = ["좋은", "훌륭한", "대단한", "혁신적인", "유용한", "효과적인"]
KO_NEGATIVE_WORDS: list[str] = ["나쁜", "문제", "어려운", "복잡한", "비싼"]
KO_SENTIMENT_STEP = 0.1

# ── Market potential ────────────────────────────────────────────────────

HIGH_POTENTIAL_KEYWORDS: list[str] = [
    "ai", "blockchain", "fintech", "healthcare", "automation",
    "인공지능", "블록체인", "핀테크", "헬스케어", "자동화",
]

MEDIUM_POTENTIAL_KEYWORDS: list[str] = [
    "app", "web", "mobile", "platform", "service",
    "앱", "웹", "모바일", "플랫폼", "서비스",
]

# ── Technical complexity (1 / 3 / 5) ────────────────────────────────────

COMPLEX_TECH_KEYWORDS: list[str] = [
    "ai", "machine learning", "blockchain", "quantum", "ar", "vr",
    "인공지능", "머신러닝", "블록체인", "양자", "증강현실", "가상현실",
]

MODERATE_TECH_KEYWORDS: list[str] = [
    "api", "database", "mobile app", "web app", "iot",
    "데이터베이스", "모바일앱", "웹앱", "사물인터넷",
]

SIMPLE_TECH_KEYWORDS: list[str] = [
    "website", "blog", "landing page", "form", "survey",
    "웹사이트", "블로그", "랜딩페이지", "폼", "설문",
]

DEFAULT_TECHNICAL_COMPLEXITY = 3

# ── Innovation score ────────────────────────────────────────────────────

INNOVATIVE_KEYWORDS: list[str] = [
    "revolutionary", "innovative", "breakthrough", "disruptive", "novel",
    "혁신적인", "획기적인", "새로운", "독창적인", "창의적인",
]

EMERGING_TECH_KEYWORDS: list[str] = ["ai", "blockchain", "iot", "ar", "vr", "ml"]

PROBLEM_SOLUTION_KEYWORDS: list[str] = ["problem", "solution", "문제", "해결"]

INNOVATION_BASE = 50
INNOVATION_PER_KEYWORD = 10
INNOVATION_TECH_COMBO_BONUS = 20
INNOVATION_PROBLEM_SOLUTION_BONUS = 15

# ── Success prediction: technical feasibility ───────────────────────────

COMPLEX_TECHNOLOGIES: list[str] = [
    "blockchain", "machine learning", "ai", "quantum", "ar", "vr",
    "kubernetes", "microservices", "distributed systems",
]

MATURE_TECHNOLOGIES: list[str] = ["react", "nextjs", "node", "python", "javascript", "typescript"]

CUTTING_EDGE_TECHNOLOGIES: frozenset[str] = frozenset({"blockchain", "quantum"})

# ── Success prediction: market timing ───────────────────────────────────

TREND_ADJUSTMENT: dict[str, float] = {
    "rising": 20.0,
    "stable": 10.0,
    "falling": -10.0,
}

# Summed across signals and SUBTRACTED from the score: low competition
# is negative, i.e. it raises market timing.
COMPETITION_PENALTY: dict[str, float] = {
    "low": -5.0,
    "medium": 0.0,
    "high": 10.0,
}

LARGE_MARKET_THRESHOLD = 1_000_000
LARGE_MARKET_BONUS = 15.0

# ── Success prediction: funding probability ─────────────────────────────

HIGH_POTENTIAL_CATEGORIES: list[str] = [
    "ai", "fintech", "healthtech", "cleantech", "edtech",
    "automation", "blockchain", "cybersecurity",
]

STRONG_REVENUE_MODELS: list[str] = ["subscription", "saas", "marketplace", "freemium"]

# ── Recommendation engine ───────────────────────────────────────────────

PURCHASE_HISTORY_LIMIT = 50
POPULARITY_POOL_SIZE = 100
DEFAULT_AVERAGE_PRICE = 100_000.0
DEFAULT_DIFFICULTY_LEVELS: list[int] = [1, 2, 3]
TASTE_TOP_CATEGORIES = 3
