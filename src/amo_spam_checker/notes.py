"""Text of the notes attached to checked leads."""

from __future__ import annotations

from datetime import datetime

from .models import SpamVerdict

SOURCE_NAME = "SpravPortal API"
TIMESTAMP_FORMAT = "%d.%m.%Y, %H:%M:%S"


def _details(verdict: SpamVerdict) -> list[str]:
    lines = []
    if verdict.organization:
        lines.append(f"🏢 Организация: {verdict.organization}")
    if verdict.region:
        lines.append(f"📍 Регион: {verdict.region}")
    if verdict.operator:
        lines.append(f"📱 Оператор: {verdict.operator}")
    return lines


def _footer(checked_at: datetime | None) -> list[str]:
    checked_at = checked_at or datetime.now()
    return [
        "",
        f"⏰ Проверено: {checked_at.strftime(TIMESTAMP_FORMAT)}",
        f"🔍 Источник: {SOURCE_NAME}",
    ]


def format_spam_note(verdict: SpamVerdict, checked_at: datetime | None = None) -> str:
    lines = [
        "🚫 СПАМ-НОМЕР ОБНАРУЖЕН",
        "",
        f"📞 Номер: +{verdict.phone}",
        f"⛔ Статус: {verdict.action} (ЗАБЛОКИРОВАТЬ)",
        f"📊 Оценка спама: {verdict.spam_score}%",
        f"📁 Категория: {verdict.category_name}",
        *_details(verdict),
        *_footer(checked_at),
    ]
    return "\n".join(lines)


def format_clean_note(verdict: SpamVerdict, checked_at: datetime | None = None) -> str:
    lines = [
        "✅ НОМЕР ПРОВЕРЕН",
        "",
        f"📞 Номер: +{verdict.phone}",
        f"📊 Оценка спама: {verdict.spam_score}%",
        *_details(verdict),
        *_footer(checked_at),
    ]
    return "\n".join(lines)
