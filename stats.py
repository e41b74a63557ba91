"""
=============================================================================
STATS.PY — Rachas, tendencias y resumen de estadísticas
=============================================================================
Todo son funciones puras sobre una lista de entradas ya cargada de la BD.
No se guarda nada: cada petición lo recalcula desde cero.
"""

from collections import Counter
from datetime import date, timedelta

from clock import today_local, to_local_date, week_start

# ─────────────────────────────────────────────────────────────────────────────
# PUNTUACIÓN DE MOOD (1-5)
# ─────────────────────────────────────────────────────────────────────────────
# Compartida por tendencias, heatmap e insights. Mood desconocido → 3.

MOOD_SCORES = {
    "happy": 5, "great": 5, "amazing": 5, "proud": 5, "accomplished": 5, "energized": 5,
    "good": 4, "motivated": 4, "calm": 4, "relaxed": 4, "grateful": 4,
    "neutral": 3, "indifferent": 3,
    "tired": 2, "stressed": 2, "anxious": 2, "bored": 2, "groggy": 2,
    "sad": 1, "guilty": 1, "ashamed": 1, "bad": 1, "angry": 1, "frustrated": 1,
    "disgusted": 1, "regretful": 1,
}
DEFAULT_MOOD_SCORE = 3


def mood_score(mood: str) -> int:
    return MOOD_SCORES.get(mood, DEFAULT_MOOD_SCORE)


# =============================================================================
# ===================== RACHAS ================================================
# =============================================================================

def distinct_days(entries) -> list[date]:
    """Días (sin repetir) con al menos una entrada, del más reciente al más antiguo"""
    return sorted({to_local_date(e.date) for e in entries}, reverse=True)


def current_streak(days, today: date = None) -> int:
    """
    Días seguidos con entradas contando hacia atrás DESDE HOY.
    Si hoy no hay ninguna entrada, la racha es 0.
    """
    today = today or today_local()
    present = set(days)
    streak = 0
    check = today
    while check in present:
        streak += 1
        check -= timedelta(days=1)
    return streak


def longest_streak(days) -> int:
    """Tramo más largo de días consecutivos en toda la historia"""
    ordered = sorted(set(days), reverse=True)
    longest = 0
    run = 0
    previous = None
    for day in ordered:
        if previous is not None and (previous - day).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day
    return longest


def calculate_streaks(entries, today: date = None) -> dict:
    days = distinct_days(entries)
    return {
        "current": current_streak(days, today),
        "longest": longest_streak(days),
        "total_days": len(days),
    }


# =============================================================================
# ===================== TENDENCIAS ============================================
# =============================================================================

def bucket_key(value, group_by: str) -> str:
    """
    day   → "2026-10-17"
    week  → fecha ISO del domingo de esa semana
    month → "2026-10"
    """
    day = to_local_date(value)
    if group_by == "week":
        return week_start(day).isoformat()
    if group_by == "month":
        return f"{day.year}-{day.month:02d}"
    return day.isoformat()


def group_entries_by_period(entries, group_by: str = "day") -> list[dict]:
    """
    Agrupa las entradas en cubos de día/semana/mes.

    Por cubo: número de entradas, suma de cantidades, conteo por actividad y
    media de mood (solo de las entradas que tienen mood), calculada de forma
    incremental.
    """
    grouped = {}

    for entry in entries:
        key = bucket_key(entry.date, group_by)
        bucket = grouped.setdefault(key, {
            "date": key,
            "count": 0,
            "total_quantity": 0.0,
            "activities": {},
            "avg_mood": 0.0,
            "mood_counts": {},
        })

        bucket["count"] += 1
        if entry.quantity is not None:
            bucket["total_quantity"] += entry.quantity
        if entry.activity:
            bucket["activities"][entry.activity] = bucket["activities"].get(entry.activity, 0) + 1
        if entry.mood:
            bucket["mood_counts"][entry.mood] = bucket["mood_counts"].get(entry.mood, 0) + 1
            n = sum(bucket["mood_counts"].values())
            bucket["avg_mood"] += (mood_score(entry.mood) - bucket["avg_mood"]) / n

    return [grouped[key] for key in sorted(grouped)]


# =============================================================================
# ===================== RESUMEN ===============================================
# =============================================================================

DISTANCE_UNITS = ("km", "miles")
DURATION_UNITS = ("minutes", "hours")


def _most_frequent(counter: Counter) -> str:
    # Counter.most_common respeta el orden de aparición en los empates
    return counter.most_common(1)[0][0] if counter else ""


def summarize_entries(entries) -> dict:
    """Totales, medias y distribuciones del bloque 'summary'"""
    activities = Counter()
    categories = Counter()
    moods = Counter()
    sentiments = Counter()
    quantities = []
    total_distance = 0.0
    total_duration = 0.0

    for entry in entries:
        if entry.activity:
            activities[entry.activity] += 1
        if entry.category:
            categories[entry.category] += 1
        if entry.mood:
            moods[entry.mood] += 1
        if entry.sentiment:
            sentiments[entry.sentiment] += 1

        if entry.quantity is not None:
            quantities.append(entry.quantity)
            if entry.unit in DISTANCE_UNITS:
                total_distance += entry.quantity
            if entry.unit in DURATION_UNITS:
                # todo en minutos
                total_duration += entry.quantity * 60 if entry.unit == "hours" else entry.quantity

    return {
        "total_entries": len(entries),
        "total_distance": total_distance,
        "total_duration": total_duration,
        "avg_quantity": sum(quantities) / len(quantities) if quantities else 0,
        "most_frequent_activity": _most_frequent(activities),
        "most_frequent_category": _most_frequent(categories),
        "mood_distribution": dict(moods),
        "sentiment_distribution": dict(sentiments),
        "activity_breakdown": dict(activities),
        "category_breakdown": dict(categories),
    }


def build_stats(entries, group_by: str = "day", today: date = None) -> dict:
    return {
        "summary": summarize_entries(entries),
        "trends": group_entries_by_period(entries, group_by),
        "streaks": calculate_streaks(entries, today),
    }
