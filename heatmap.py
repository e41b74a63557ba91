"""
=============================================================================
HEATMAP.PY — Mapas de calor de mood, actividad y sentimiento
=============================================================================
Tres vistas independientes sobre las entradas de los últimos N días:

  mood      → media de mood por día, por hora y por día de la semana
  activity  → top 10 actividades y su rejilla diaria (con ceros)
  sentiment → positivo/neutral/negativo por día y por semana

Semana de domingo a sábado (0=domingo ... 6=sábado).
"""

from collections import Counter
from datetime import date, timedelta

from clock import today_local, to_local_date, week_start, sunday_index
from stats import mood_score

WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

MOOD_COLORS = {
    "happy": "#22c55e", "great": "#22c55e", "amazing": "#16a34a", "proud": "#22c55e",
    "accomplished": "#22c55e", "energized": "#84cc16", "motivated": "#84cc16",
    "good": "#a3e635", "calm": "#14b8a6", "relaxed": "#14b8a6",
    "neutral": "#6b7280",
    "tired": "#f59e0b", "stressed": "#f97316", "anxious": "#fb923c",
    "sad": "#ef4444", "guilty": "#dc2626", "ashamed": "#b91c1c",
    "bad": "#dc2626", "angry": "#b91c1c", "frustrated": "#ea580c",
}
DEFAULT_COLOR = "#6b7280"

SENTIMENT_COLORS = {
    "positive": "#22c55e",
    "neutral": "#6b7280",
    "negative": "#ef4444",
}


def _day_labels(day: date) -> dict:
    return {
        "day": WEEKDAY_LABELS[sunday_index(day)],
        "day_num": str(day.day),
        "month": day.strftime("%b"),
    }


def _hour_label(hour: int) -> str:
    """0 → '12AM', 13 → '1PM'"""
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}{suffix}"


def _average(scores) -> float:
    return round(sum(scores) / len(scores), 1) if scores else 0


def _is_type(entry, word: str) -> bool:
    return bool(entry.type) and word in entry.type


# =============================================================================
# ===================== VISTA MOOD ============================================
# =============================================================================

def mood_heatmap(entries) -> dict:
    # ── Por día ──
    day_moods = {}
    for entry in entries:
        day = to_local_date(entry.date)
        moods = day_moods.setdefault(day, [])
        if entry.mood:
            moods.append(entry.mood)

    daily = []
    for day in sorted(day_moods):
        moods = day_moods[day]
        avg = sum(mood_score(m) for m in moods) / len(moods) if moods else 3
        # most_common: en empate gana el mood que apareció antes ese día
        dominant = Counter(moods).most_common(1)[0][0] if moods else "neutral"
        daily.append({
            "date": day.isoformat(),
            **_day_labels(day),
            "score": round(avg, 1),
            "count": len(moods),
            "mood": dominant,
            "color": MOOD_COLORS.get(dominant, DEFAULT_COLOR),
            "intensity": round(avg / 5 * 100),
        })

    # ── Por hora ──
    hourly = [{"hour": h, "label": _hour_label(h), "count": 0, "avg_mood": 0, "moods": []} for h in range(24)]
    for entry in entries:
        slot = hourly[entry.date.hour]
        slot["count"] += 1
        if entry.mood:
            slot["moods"].append(entry.mood)
    for slot in hourly:
        slot["avg_mood"] = _average([mood_score(m) for m in slot["moods"]])

    # ── Por día de la semana ──
    weekly = [
        {"day": label, "day_index": i, "count": 0, "avg_mood": 0, "moods": [], "positive": 0, "negative": 0}
        for i, label in enumerate(WEEKDAY_LABELS)
    ]
    for entry in entries:
        slot = weekly[sunday_index(to_local_date(entry.date))]
        slot["count"] += 1
        if entry.mood:
            slot["moods"].append(entry.mood)
        if _is_type(entry, "positive"):
            slot["positive"] += 1
        if _is_type(entry, "negative"):
            slot["negative"] += 1
    for slot in weekly:
        slot["avg_mood"] = _average([mood_score(m) for m in slot["moods"]])

    # ── Resumen ──
    # max/min devuelven el PRIMER día (el más antiguo) en caso de empate
    return {
        "type": "mood",
        "daily": daily,
        "hourly": hourly,
        "weekly": weekly,
        "summary": {
            "total_days": len(daily),
            "average_mood": round(sum(d["score"] for d in daily) / len(daily), 1) if daily else 3,
            "best_day": max(daily, key=lambda d: d["score"]) if daily else None,
            "worst_day": min(daily, key=lambda d: d["score"]) if daily else None,
        },
    }


# =============================================================================
# ===================== VISTA ACTIVIDAD =======================================
# =============================================================================

def activity_heatmap(entries, days: int, today: date = None) -> dict:
    today = today or today_local()

    per_activity = {}
    for entry in entries:
        activity = entry.activity or "unknown"
        counts = per_activity.setdefault(activity, Counter())
        counts[to_local_date(entry.date)] += 1

    totals = Counter({activity: sum(c.values()) for activity, c in per_activity.items()})
    top = [activity for activity, _ in totals.most_common(10)]

    # Rejilla densa: todos los días de la ventana, también los vacíos
    window = [today - timedelta(days=offset) for offset in range(days, -1, -1)]
    grid = [
        {
            "activity": activity,
            "data": [
                {"date": day.isoformat(), "day": WEEKDAY_LABELS[sunday_index(day)], "count": per_activity[activity][day]}
                for day in window
            ],
        }
        for activity in top
    ]

    weekly_by_activity = {}
    for entry in entries:
        histogram = weekly_by_activity.setdefault(entry.activity or "unknown", [0] * 7)
        histogram[sunday_index(to_local_date(entry.date))] += 1

    return {
        "type": "activity",
        "activities": top,
        "heatmap": grid,
        "weekly_by_activity": weekly_by_activity,
        "summary": {
            "total_activities": len(per_activity),
            "most_frequent": top[0] if top else "none",
            "total_entries": len(entries),
        },
    }


# =============================================================================
# ===================== VISTA SENTIMIENTO =====================================
# =============================================================================

def dominant_sentiment(positive: int, neutral: int, negative: int) -> str:
    """Positivo gana empates; negativo gana a neutral; si no, neutral"""
    if positive > 0 and positive >= negative and positive >= neutral:
        return "positive"
    if negative > 0 and negative >= neutral:
        return "negative"
    return "neutral"


def _ratio(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def sentiment_heatmap(entries, days: int, today: date = None) -> dict:
    today = today or today_local()

    day_counts = {}
    for entry in entries:
        counts = day_counts.setdefault(
            to_local_date(entry.date), {"positive": 0, "neutral": 0, "negative": 0, "total": 0}
        )
        counts["total"] += 1
        if entry.sentiment in ("positive", "neutral", "negative"):
            counts[entry.sentiment] += 1

    daily = []
    for day in sorted(day_counts):
        c = day_counts[day]
        dominant = dominant_sentiment(c["positive"], c["neutral"], c["negative"])
        daily.append({
            "date": day.isoformat(),
            "day": WEEKDAY_LABELS[sunday_index(day)],
            "day_num": str(day.day),
            **c,
            "dominant_sentiment": dominant,
            "positive_ratio": _ratio(c["positive"], c["total"]),
            "color": SENTIMENT_COLORS[dominant],
        })

    # Semanas (domingo-sábado) que tocan la ventana
    weekly_trend = []
    start = week_start(today - timedelta(days=days))
    while start <= today:
        end = start + timedelta(days=6)
        week_entries = [e for e in entries if start <= to_local_date(e.date) <= end]
        counts = Counter(e.sentiment for e in week_entries)
        weekly_trend.append({
            "week_start": start.isoformat(),
            "week_end": end.isoformat(),
            "positive": counts["positive"],
            "negative": counts["negative"],
            "neutral": counts["neutral"],
            "total": len(week_entries),
            "positive_ratio": _ratio(counts["positive"], len(week_entries)),
        })
        start += timedelta(days=7)

    totals = Counter(e.sentiment for e in entries)
    return {
        "type": "sentiment",
        "daily": daily,
        "weekly_trend": weekly_trend,
        "summary": {
            "total_positive": totals["positive"],
            "total_negative": totals["negative"],
            "total_neutral": totals["neutral"],
            "positive_ratio": _ratio(totals["positive"], len(entries)),
        },
    }


def build_heatmap(entries, view: str = "mood", days: int = 30, today: date = None) -> dict:
    if view == "activity":
        return activity_heatmap(entries, days, today)
    if view == "sentiment":
        return sentiment_heatmap(entries, days, today)
    return mood_heatmap(entries)
