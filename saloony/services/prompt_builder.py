"""System prompt assembly for the beauty assistant."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional

from saloony.services.intent import (
    APP_INFO,
    COMPARE,
    DEEP_ANALYSIS,
    FOUNDERS,
    PER_LOCATION,
    Slots,
)

SECTION_SEPARATOR = "\n\n"

PERSONA_AR = """أنت "نوڤا"، مساعد الجمال الذكي لتطبيق صالوني، مستشار جمال فلسطيني بتحكي باللهجة الفلسطينية الطبيعية والودودة.

عن صالوني: أول تطبيق فلسطيني بيدمج الذكاء الاصطناعي مع قطاع الجمال. العملاء بيكتشفوا الصالونات وبيقارنوا الأسعار وبيحجزوا مواعيدهم، وأصحاب الصالونات بيديروا الموظفين والجدول والخدمات.
المؤسسون: آدم حواش (المؤسس والمطور الرئيسي) وأسامة الصيفي (الشريك والمؤسس المشارك).

قواعدك:
• كن طبيعي ومختصر، زي صديق خبير بالجمال.
• لا تذكر الصالونات بالتحيات العادية، استنى المستخدم يسأل عنها.
• استخدم البيانات الحقيقية المرفقة فقط ولا تخترع أسعار أو صالونات.
• للحجز والأوقات، وجّه المستخدم لصفحة الصالون."""

PERSONA_EN = """You are "Nova", the smart beauty assistant of the Saloony app, a friendly Palestinian beauty consultant.

About Saloony: the first Palestinian app combining AI with the beauty sector. Customers discover salons, compare prices and book appointments; salon owners manage staff, schedules and services.
Founders: Adam Hawash (founder and lead developer) and Osama Al Saify (co-founder).

Your rules:
• Be natural and concise, like a friend who knows beauty.
• Do not list salons in plain greetings; wait until the user asks.
• Only use the real data provided below; never invent prices or salons.
• For booking and free times, point the user to the salon's page."""

_GENDER_LABELS = {
    "ar": {"female": "أنثى", "male": "ذكر"},
    "en": {"female": "female", "male": "male"},
}


@dataclass(frozen=True)
class PromptSection:
    name: str
    body: str
    header: Optional[str] = None

    def render(self) -> str:
        body = self.body.strip()
        if self.header:
            return f"[{self.header}]\n{body}"
        return body


class PromptBuilder:
    """Ordered list of named sections; blank sections are left out."""

    def __init__(self) -> None:
        self._sections: List[PromptSection] = []

    def add(self, name: str, body: Optional[str], *, header: Optional[str] = None) -> "PromptBuilder":
        if body and body.strip():
            self._sections.append(PromptSection(name=name, body=body, header=header))
        return self

    @property
    def section_names(self) -> List[str]:
        return [section.name for section in self._sections]

    def build(self) -> str:
        return SECTION_SEPARATOR.join(section.render() for section in self._sections)


def aim_instruction(aim: str, slots: Slots) -> str:
    if aim == APP_INFO:
        return (
            "Aim=APP_INFO: Briefly explain Saloony app features and how to use discovery, "
            "booking, and comparisons. Keep friendly and concise."
        )
    if aim == FOUNDERS:
        return (
            "Aim=FOUNDERS: Share concise info about the Palestinian founders and vision. "
            "Be respectful and factual."
        )
    if aim == COMPARE:
        return (
            f'Aim=COMPARE: Compare real prices and offerings for service="{slots.service or "عام"}" '
            "in the user's city. If city unknown, ask politely."
        )
    if aim == PER_LOCATION:
        return (
            f"Aim=PER_LOCATION: List and describe nearby salons in {slots.city or 'المنطقة'}, "
            "focusing on specialties and diversity of services."
        )
    if aim == DEEP_ANALYSIS:
        return (
            "Aim=DEEP_ANALYSIS: Provide balanced insights using real aggregates "
            "(ratings, service counts, price trends). Avoid bias."
        )
    return (
        "Aim=GENERAL: Be a natural consultant. Offer helpful guidance and ask clarifying "
        "questions if needed."
    )


def profile_section(profile: Mapping[str, object], language: str) -> str:
    labels = _GENDER_LABELS.get(language, _GENDER_LABELS["ar"])
    gender = labels.get(str(profile.get("gender") or ""), "غير محدد" if language == "ar" else "unknown")
    if language == "en":
        return (
            "User information:\n"
            f"- Name: {profile.get('name') or 'friend'}\n"
            f"- Gender: {gender}\n"
            f"- City: {profile.get('city') or 'Palestine'}"
        )
    return (
        "معلومات المستخدم:\n"
        f"- الاسم: {profile.get('name') or 'حبيبي/حبيبتي'}\n"
        f"- الجنس: {gender}\n"
        f"- المدينة: {profile.get('city') or 'فلسطين'}"
    )


def salon_context_section(salon_context: str, city: str, language: str) -> str:
    if not salon_context:
        return ""
    if language == "en":
        return f"Available salons in {city}:\n{salon_context}"
    return f"🏪 الصالونات المتاحة في {city}:\n{salon_context}"


def build_system_prompt(
    *,
    language: str,
    profile: Mapping[str, object],
    salon_context: str,
    aim: str,
    slots: Slots,
    urgent_data: str = "",
    real_data: str = "",
) -> str:
    """Persona, profile, salon context, aim, next-hour availability, real data."""

    builder = PromptBuilder()
    builder.add("persona", PERSONA_EN if language == "en" else PERSONA_AR)
    builder.add("profile", profile_section(profile, language))
    builder.add("salon_context", salon_context_section(salon_context, slots.city, language))
    builder.add("aim", aim_instruction(aim, slots))
    builder.add("urgent", urgent_data, header="AVAILABILITY_NEXT_HOUR")
    builder.add("real_data", real_data, header="REAL_DATA")
    return builder.build()
