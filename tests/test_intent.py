import pytest

from saloony.services.intent import (
    APP_INFO,
    APPOINTMENT,
    COMPARE,
    DEEP_ANALYSIS,
    FOUNDERS,
    GENERAL,
    GENERAL_QUERY,
    LOCATION_BASED,
    PER_LOCATION,
    RECOMMENDATION,
    SERVICE_INQUIRY,
    classify,
    classify_query,
    detect_language,
    detect_urgency,
    extract_slots,
    needs_salon_context,
)


@pytest.mark.parametrize(
    "message, aim, confidence",
    [
        ("بدي أرخص صالون", COMPARE, 0.7),
        ("في صالون قريب مني؟", PER_LOCATION, 0.7),
        ("hello there", GENERAL, 0.4),
        ("tell me about saloony", APP_INFO, 0.9),
        ("مين المؤسسين؟", FOUNDERS, 0.9),
        ("ممكن تحليل للصالونات", DEEP_ANALYSIS, 0.6),
    ],
)
def test_classify_primary_rules(message, aim, confidence) -> None:
    intent = classify(message)

    assert intent.aim == aim
    assert intent.confidence == confidence


def test_first_matching_rule_wins() -> None:
    # both a compare and a location keyword
    assert classify("أرخص صالون قريب").aim == COMPARE


def test_secondary_classifier_fallbacks() -> None:
    assert classify_query("بدي موعد بكرا") == APPOINTMENT
    assert classify_query("recommend me something") == RECOMMENDATION
    assert classify_query("what is in my area") == LOCATION_BASED
    assert classify_query("how long is the service") == SERVICE_INQUIRY
    assert classify_query("hello there") == GENERAL_QUERY

    assert classify("how much does the service cost").aim == COMPARE
    assert classify("how much does the service cost").confidence == 0.6
    assert classify("recommend me something").aim == PER_LOCATION
    assert classify("recommend me something").confidence == 0.5
    assert classify("بدي موعد").aim == GENERAL


def test_slots_prefer_message_then_profile_then_defaults() -> None:
    profile = {"city": "نابلس", "gender": "male"}

    from_message = extract_slots("بدي قص شعر نسائي في الخليل", profile)
    from_profile = extract_slots("بدي قص شعر", profile)
    defaults = extract_slots("hello", {"city": "غير محدد", "gender": "unknown"})

    assert (from_message.city, from_message.gender, from_message.service) == ("الخليل", "female", "شعر")
    assert (from_profile.city, from_profile.gender) == ("نابلس", "male")
    assert (defaults.city, defaults.gender, defaults.service) == ("رام الله", "female", None)


def test_english_gender_words_need_word_boundaries() -> None:
    assert extract_slots("salon for women").gender == "female"
    assert extract_slots("salon for men", {"gender": "female"}).gender == "male"


def test_budget_intent() -> None:
    assert extract_slots("بدي اشي رخيص").budget_intent == "low"
    assert extract_slots("something expensive please").budget_intent == "high"
    assert extract_slots("hello").budget_intent is None


def test_urgency_language_and_context_checks() -> None:
    assert detect_urgency("بدي صالون هسا")
    assert detect_urgency("any salon open ASAP?")
    assert not detect_urgency("مرحبا")

    assert detect_language("مرحبا كيفك") == "ar"
    assert detect_language("Where can I get a haircut?") == "en"
    assert detect_language("") == "ar"

    assert needs_salon_context("وين في صالون منيح")
    assert not needs_salon_context("hello")
