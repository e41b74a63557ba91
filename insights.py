"""
=============================================================================
INSIGHTS.PY — Recomendaciones, avisos y predicciones
=============================================================================
Dos fuentes que se juntan (máximo 10 elementos):
  1. Oráculo (LLM), si está disponible → va primero.
  2. Reglas fijas sobre los patrones de los últimos 30 días → siempre.

Sin entradas → dos consejos fijos de bienvenida.
Si el oráculo falla → solo reglas, sin avisar al usuario.
"""

import json
import logging
from collections import Counter

from clock import now_local, to_local_date
from oracle import OracleError, extract_json_array
from stats import distinct_days, current_streak, mood_score, MOOD_SCORES

logger = logging.getLogger("habitlog.insights")

MAX_INSIGHTS = 10
INSIGHT_TYPES = ("recommendation", "warning", "achievement", "prediction")
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

ONBOARDING_INSIGHTS = [
    {
        "type": "recommendation",
        "title": "Start Your Journey",
        "content": 'Log your first habit to begin tracking. Try typing something like "ran 5km this morning" or "read 20 pages before bed".',
        "confidence": 1,
        "category": "onboarding",
        "icon": "🎯",
    },
    {
        "type": "recommendation",
        "title": "Set Your First Goal",
        "content": "Create a monthly goal to give your habits direction. For example, aim to run 30km this month.",
        "confidence": 1,
        "category": "goals",
        "icon": "🏆",
    },
]


def analyze_patterns(entries, now=None) -> dict:
    """'entries' ordenadas de la más reciente a la más antigua"""
    now = now or now_local()
    activity_frequency = Counter()
    mood_by_day = {}
    positive_count = 0
    negative_count = 0
    scored_moods = []
    skip_patterns = []

    for entry in entries:
        entry_type = entry.type or ""
        if "positive" in entry_type:
            positive_count += 1
        if "negative" in entry_type:
            negative_count += 1
            if entry.activity:
                skip_patterns.append(entry.activity)
        if entry.activity:
            activity_frequency[entry.activity] += 1
        if entry.mood:
            if entry.mood in MOOD_SCORES:
                scored_moods.append(mood_score(entry.mood))
            day_name = WEEKDAY_NAMES[(to_local_date(entry.date).weekday() + 1) % 7]
            mood_by_day.setdefault(day_name, []).append(entry.mood)

    streak_risk = 0
    if entries:
        days_since_last = (now - entries[0].date).days
        # el riesgo crece durante 3 días y se queda en 1
        streak_risk = min(max(days_since_last, 0) / 3, 1)

    return {
        "total_entries": len(entries),
        "positive_count": positive_count,
        "negative_count": negative_count,
        "most_frequent_activity": activity_frequency.most_common(1)[0][0] if activity_frequency else "",
        "activity_frequency": dict(activity_frequency),
        "average_mood_score": sum(scored_moods) / len(scored_moods) if scored_moods else 3,
        "consecutive_days": current_streak(distinct_days(entries), now.date()),
        "streak_risk": streak_risk,
        "mood_by_day": mood_by_day,
        "skip_patterns": skip_patterns,
    }


# =============================================================================
# ===================== REGLAS ================================================
# =============================================================================

def rule_based_insights(patterns: dict, goals) -> list[dict]:
    insights = []
    streak = patterns["consecutive_days"]

    if patterns["streak_risk"] > 0.5 and streak > 3:
        insights.append({
            "type": "warning",
            "title": "Streak at Risk!",
            "content": f"You haven't logged any activities in a while. Your {streak}-day streak is in danger! Log a quick habit to keep it going.",
            "confidence": 0.9,
            "category": "streak",
            "icon": "⚠️",
        })

    if patterns["negative_count"] > patterns["positive_count"] * 0.5 and patterns["negative_count"] > 3:
        insights.append({
            "type": "warning",
            "title": "Negative Behavior Pattern Detected",
            "content": f"You've logged {patterns['negative_count']} negative behaviors recently. Consider what triggers these patterns and how to redirect them.",
            "confidence": 0.8,
            "category": "mood",
            "icon": "🔍",
        })

    if streak >= 7:
        insights.append({
            "type": "achievement",
            "title": f"{streak} Day Streak! 🎉",
            "content": f"Amazing! You've been consistent for {streak} days. Keep up the great work!",
            "confidence": 1,
            "category": "streak",
            "icon": "🔥",
        })

    if patterns["average_mood_score"] < 3 and patterns["total_entries"] > 5:
        insights.append({
            "type": "recommendation",
            "title": "Focus on Well-being",
            "content": "Your recent mood scores have been lower than usual. Consider adding more mood-boosting activities like exercise, meditation, or social time.",
            "confidence": 0.7,
            "category": "mood",
            "icon": "💭",
        })

    if patterns["most_frequent_activity"]:
        insights.append({
            "type": "prediction",
            "title": "Keep the Momentum",
            "content": f'Based on your patterns, "{patterns["most_frequent_activity"]}" is your most consistent habit. You\'re likely to continue this streak!',
            "confidence": 0.75,
            "category": "productivity",
            "icon": "📈",
        })

    behind = [g for g in goals if (g.current_value or 0) < g.target_value * 0.5]
    if behind:
        insights.append({
            "type": "recommendation",
            "title": "Goal Check-in",
            "content": f'You have {len(behind)} goal(s) that need attention. Focus on "{behind[0].activity}" to make progress!',
            "confidence": 0.8,
            "category": "goals",
            "icon": "🎯",
        })

    day_scores = [
        (day, sum(mood_score(m) for m in moods) / len(moods))
        for day, moods in patterns["mood_by_day"].items() if moods
    ]
    if day_scores:
        best_day, best_score = max(day_scores, key=lambda item: item[1])
        if best_score > 3.5:
            insights.append({
                "type": "recommendation",
                "title": f"Best Day: {best_day}",
                "content": f"You tend to have your best moods on {best_day}s. Consider scheduling important habits or challenging tasks on this day!",
                "confidence": 0.7,
                "category": "productivity",
                "icon": "📅",
            })

    return insights


# =============================================================================
# ===================== ORÁCULO ===============================================
# =============================================================================

COACH_PROMPT = "You are an AI habit coach that provides personalized insights based on tracking data."


def _build_prompt(patterns: dict, entries, goals) -> str:
    recent = "\n".join(f"- {e.raw_text} ({e.type}, mood: {e.mood or 'neutral'})" for e in entries[:5])
    return f"""Analyze this habit tracking data and provide 2-3 actionable insights.

Data Summary:
- Total entries: {patterns['total_entries']}
- Positive habits: {patterns['positive_count']}
- Negative behaviors: {patterns['negative_count']}
- Most frequent activity: {patterns['most_frequent_activity']}
- Average mood score: {patterns['average_mood_score']:.1f}/5
- Current streak: {patterns['consecutive_days']} days
- Streak risk: {round(patterns['streak_risk'] * 100)}%
- Activity frequency: {json.dumps(patterns['activity_frequency'])}
- Skip patterns: {', '.join(patterns['skip_patterns'][:5])}
- Active goals: {len(goals)}

Recent entries (last 5):
{recent}

Respond with ONLY a JSON array of objects with the keys
"type" ("prediction" | "recommendation" | "warning" | "achievement"), "title", "content",
"confidence" (0.0-1.0), "category" ("productivity" | "health" | "mood" | "streak" | "goals"), "icon" (emoji)."""


def _clean_insight(item):
    """Solo se aceptan objetos con título y contenido; el resto se descarta"""
    if not isinstance(item, dict) or not item.get("title") or not item.get("content"):
        return None
    confidence = item.get("confidence")
    return {
        "type": item.get("type") if item.get("type") in INSIGHT_TYPES else "recommendation",
        "title": str(item["title"]),
        "content": str(item["content"]),
        "confidence": float(confidence) if isinstance(confidence, (int, float)) else 0.5,
        "category": str(item.get("category") or "productivity"),
        "icon": str(item.get("icon") or "💡"),
    }


def oracle_insights(oracle, patterns: dict, entries, goals) -> list[dict]:
    if oracle is None:
        return []
    try:
        response = oracle.complete(COACH_PROMPT, _build_prompt(patterns, entries, goals))
    except OracleError as e:
        logger.warning(f"⚠️ Insights del oráculo no disponibles: {e}")
        return []
    except Exception as e:
        logger.warning(f"⚠️ Error inesperado del oráculo ({type(e).__name__}): {e}")
        return []

    items = extract_json_array(response) or []
    return [clean for clean in (_clean_insight(i) for i in items) if clean]


def generate_insights(entries, goals, oracle=None, now=None) -> list[dict]:
    if not entries:
        return [dict(item) for item in ONBOARDING_INSIGHTS]

    patterns = analyze_patterns(entries, now)
    combined = oracle_insights(oracle, patterns, entries, goals) + rule_based_insights(patterns, goals)
    return combined[:MAX_INSIGHTS]
