"""Keyword based intent routing and slot extraction for chat messages.

Every table here is an ordered tuple: earlier entries take precedence. Matching
is case-insensitive substring matching except for the short English gender
words, which need word boundaries so that "women" does not also read as "men".
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Mapping, Optional, Tuple

APP_INFO = "APP_INFO"
FOUNDERS = "FOUNDERS"
COMPARE = "COMPARE"
PER_LOCATION = "PER_LOCATION"
DEEP_ANALYSIS = "DEEP_ANALYSIS"
GENERAL = "GENERAL"

SERVICE_INQUIRY = "service_inquiry"
LOCATION_BASED = "location_based"
RECOMMENDATION = "recommendation"
APPOINTMENT = "appointment"
GENERAL_QUERY = "general"

DEFAULT_CITY = "رام الله"
DEFAULT_GENDER = "female"

# Profile values that mean "not filled in"
UNSET_PROFILE_VALUES = frozenset({"", "غير محدد", "unknown", "none", "null"})


@dataclass(frozen=True)
class KeywordRule:
    label: str
    keywords: Tuple[str, ...]
    confidence: float = 0.0

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


AIM_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(
        APP_INFO,
        ("about app", "about saloony", "what is saloony", "شو صالوني", "عن التطبيق", "معلومات عن التطبيق"),
        0.9,
    ),
    KeywordRule(
        FOUNDERS,
        ("founder", "founders", "adam", "osama", "مؤسس", "المؤسسين", "آدم", "أسامة"),
        0.9,
    ),
    KeywordRule(
        COMPARE,
        ("قارن", "مقارنة", "أرخص", "سعر", "أسعار", "price", "compare", "cheapest"),
        0.7,
    ),
    KeywordRule(
        PER_LOCATION,
        ("قريب", "قرب", "منطقة", "مدينة", "بالقرب", "near", "around", "location", "city"),
        0.7,
    ),
    KeywordRule(
        DEEP_ANALYSIS,
        ("حلل", "تحليل", "أحسن صالون", "best salon", "analyze", "analysis"),
        0.6,
    ),
)

# Secondary classifier, highest precedence first
QUERY_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(
        APPOINTMENT,
        ("موعد", "حجز", "متاح", "فاضي", "appointment", "booking", "available", "schedule"),
    ),
    KeywordRule(
        RECOMMENDATION,
        ("أفضل", "أحسن", "مميز", "ممتاز", "نصحني", "اقترح", "best", "recommend", "suggest", "good"),
    ),
    KeywordRule(
        LOCATION_BASED,
        ("قريب", "منطقة", "مدينة", "عندي", "هنا", "near", "location", "area", "city"),
    ),
    KeywordRule(
        SERVICE_INQUIRY,
        ("خدمة", "خدمات", "سعر", "أسعار", "كم", "تكلفة", "مدة", "وقت", "service", "price", "cost", "duration"),
    ),
)

QUERY_TO_AIM: Mapping[str, Tuple[str, float]] = {
    SERVICE_INQUIRY: (COMPARE, 0.6),
    LOCATION_BASED: (PER_LOCATION, 0.6),
    RECOMMENDATION: (PER_LOCATION, 0.5),
    APPOINTMENT: (GENERAL, 0.5),
    GENERAL_QUERY: (GENERAL, 0.4),
}

# category -> terms; a category matches on its own name or any of its terms
SERVICE_CATEGORIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("شعر", ("قص", "صبغة", "فرد", "كيراتين", "بروتين", "تسريح")),
    ("أظافر", ("مانيكير", "باديكير", "جل", "أكريليك")),
    ("وجه", ("تنظيف", "ماسك", "فيشل", "تقشير")),
    ("حواجب", ("تشقير", "تهذيب", "رسم", "تاتو")),
    ("رموش", ("تركيب", "رفع", "صبغة", "كيرلي")),
    ("جسم", ("مساج", "تدليك", "سكراب", "تقشير")),
    ("إزالة شعر", ("ليزر", "شمع", "حلاوة", "خيط")),
)

KNOWN_CITIES: Tuple[str, ...] = (
    "رام الله",
    "القدس",
    "غزة",
    "نابلس",
    "الخليل",
    "بيت لحم",
    "البيرة",
    "جنين",
    "طولكرم",
    "قلقيلية",
)

_MALE_PATTERN = re.compile(r"رجالي|\bmen\b|\bmale\b")
_FEMALE_PATTERN = re.compile(r"نسائي|\bwomen\b|\bfemale\b")

LOW_BUDGET_TERMS = ("أرخص", "رخيص", "cheap")
HIGH_BUDGET_TERMS = ("غالي", "غالية", "expensive")

URGENT_TERMS_AR = ("فوري", "سريع", "مستعجل", "الآن", "هسا", "خلال ساعة", "قريب", "اليوم", "اقرب موعد", "أقرب موعد")
URGENT_TERMS_EN = ("urgent", "now", "asap", "next hour", "today", "soon")

SALON_CONTEXT_TERMS = (
    "صالون", "حلاقة", "قص", "شعر", "بشرة", "تجميل", "عناية",
    "salon", "hair", "cut", "beauty", "skin", "care",
    "أرخص", "أفضل", "قريب", "منطقة", "سعر", "خدمة",
)

_ARABIC_CHAR = re.compile(r"[\u0600-\u06FF]")
_LATIN_CHAR = re.compile(r"[a-zA-Z]")
_ARABIC_HINT_WORDS = ("شو", "كيف", "وين", "ليش", "متى", "مين", "ايش", "بدي", "عايز", "صالون", "حلاقة", "شعر", "بشرة")
_ENGLISH_HINT_WORDS = ("what", "how", "where", "why", "when", "who", "want", "need", "salon", "hair", "skin")


@dataclass(frozen=True)
class Intent:
    aim: str
    confidence: float


@dataclass(frozen=True)
class Slots:
    service: Optional[str]
    city: str
    gender: str
    budget_intent: Optional[str]

    def as_dict(self) -> dict:
        return asdict(self)


def _normalise(message: str | None) -> str:
    return (message or "").lower()


def classify_query(message: str) -> str:
    """Coarse query type used to pick which salon rows go in the prompt."""

    text = _normalise(message)
    for rule in QUERY_RULES:
        if rule.matches(text):
            return rule.label
    return GENERAL_QUERY


def classify(message: str) -> Intent:
    text = _normalise(message)
    for rule in AIM_RULES:
        if rule.matches(text):
            return Intent(rule.label, rule.confidence)
    aim, confidence = QUERY_TO_AIM[classify_query(message)]
    return Intent(aim, confidence)


def service_category(message: str) -> Optional[str]:
    text = _normalise(message)
    for category, terms in SERVICE_CATEGORIES:
        if category in text or any(term in text for term in terms):
            return category
    return None


def _profile_value(profile: Mapping[str, object] | None, key: str) -> Optional[str]:
    if not profile:
        return None
    value = profile.get(key)
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in UNSET_PROFILE_VALUES:
        return None
    return text


def city_in(message: str) -> Optional[str]:
    text = _normalise(message)
    for city in KNOWN_CITIES:
        if city in text:
            return city
    return None


def gender_in(message: str) -> Optional[str]:
    text = _normalise(message)
    if _MALE_PATTERN.search(text):
        return "male"
    if _FEMALE_PATTERN.search(text):
        return "female"
    return None


def budget_intent(message: str) -> Optional[str]:
    text = _normalise(message)
    if any(term in text for term in LOW_BUDGET_TERMS):
        return "low"
    if any(term in text for term in HIGH_BUDGET_TERMS):
        return "high"
    return None


def extract_slots(message: str, profile: Mapping[str, object] | None = None) -> Slots:
    """Pull service/city/gender/budget out of ``message``.

    A city or gender named in the message wins, then the stored profile, then
    the fixed fallbacks.
    """

    city = city_in(message) or _profile_value(profile, "city") or DEFAULT_CITY
    gender = gender_in(message) or _profile_value(profile, "gender") or DEFAULT_GENDER
    return Slots(
        service=service_category(message),
        city=city,
        gender=gender,
        budget_intent=budget_intent(message),
    )


def detect_urgency(message: str) -> bool:
    text = _normalise(message)
    return any(term in text for term in URGENT_TERMS_AR) or any(term in text for term in URGENT_TERMS_EN)


def needs_salon_context(message: str) -> bool:
    text = _normalise(message)
    return any(term in text for term in SALON_CONTEXT_TERMS)


def detect_language(text: str | None) -> str:
    """Return ``"ar"`` or ``"en"``; Arabic when unclear."""

    if not text:
        return "ar"
    arabic = len(_ARABIC_CHAR.findall(text))
    latin = len(_LATIN_CHAR.findall(text))
    total = len(re.sub(r"\s", "", text))

    if arabic > latin and arabic > total * 0.3:
        return "ar"
    if latin > arabic and latin > total * 0.3:
        return "en"

    lowered = text.lower()
    arabic_hits = sum(1 for word in _ARABIC_HINT_WORDS if word in lowered)
    english_hits = sum(1 for word in _ENGLISH_HINT_WORDS if word in lowered)
    if english_hits > arabic_hits:
        return "en"
    return "ar"
