"""
=============================================================================
GAMIFICATION.PY — Puntos, rachas, logros y niveles
=============================================================================
Gestiona:
  - Puntos (positivo +10, negativo -5, resto +5, objetivo cumplido +50,
    racha actual x5)
  - Rachas (días seguidos con alguna entrada)
  - Logros (badges) con un umbral numérico cada uno
  - Niveles (Beginner → Transcendent)

IMPORTANTE: nada se acumula poco a poco. En cada petición se recalcula TODO
desde las entradas y los objetivos. La única excepción es longest_streak,
que es max(racha actual, la que ya estaba guardada).

Consecuencia aceptada: los +50 de un objetivo cumplido se cuentan mientras
el objetivo siga cumplido; los puntos son una foto del estado actual, no
un libro de cuentas.
"""

from sqlalchemy.orm import Session

from models import HabitEntry, Goal, UserProfile, Badge
from stats import distinct_days, current_streak
from clock import today_local
import logging

logger = logging.getLogger("habitlog.gamification")


# =============================================================================
# ===================== PUNTOS ================================================
# =============================================================================

POINTS = {
    "positive": 10,
    "negative": -5,
    "other": 5,
    "goal_complete": 50,
    "streak_day": 5,
}


# =============================================================================
# ===================== NIVELES ===============================================
# =============================================================================

LEVELS = [
    {"min": 0, "level": 1, "title": "Beginner", "icon": "🌱"},
    {"min": 50, "level": 2, "title": "Apprentice", "icon": "📖"},
    {"min": 150, "level": 3, "title": "Habit Builder", "icon": "🏗️"},
    {"min": 300, "level": 4, "title": "Consistent", "icon": "⚖️"},
    {"min": 500, "level": 5, "title": "Dedicated", "icon": "💎"},
    {"min": 800, "level": 6, "title": "Habit Master", "icon": "🎯"},
    {"min": 1200, "level": 7, "title": "Champion", "icon": "🏆"},
    {"min": 1700, "level": 8, "title": "Legend", "icon": "⭐"},
    {"min": 2500, "level": 9, "title": "Habit God", "icon": "👑"},
    {"min": 3500, "level": 10, "title": "Transcendent", "icon": "🌟"},
]


def calculate_level(points: int) -> dict:
    """El nivel más alto cuyo mínimo no supera los puntos (negativos → nivel 1)"""
    current = LEVELS[0]
    for level in LEVELS:
        if points >= level["min"]:
            current = level
    return dict(current)


def next_level_progress(points: int) -> dict:
    """
    Progreso hacia el siguiente nivel, en porcentaje entero.
    Por encima del último nivel se devuelve saturado (100%, needed=100).
    """
    if points < 0:
        return {"current": 0, "needed": LEVELS[1]["min"], "progress": 0}

    for level, following in zip(LEVELS, LEVELS[1:]):
        if level["min"] <= points < following["min"]:
            current = points - level["min"]
            needed = following["min"] - level["min"]
            return {"current": current, "needed": needed, "progress": round(current / needed * 100)}

    return {"current": points, "needed": 100, "progress": 100}


# =============================================================================
# ===================== LOGROS ================================================
# =============================================================================
# Cada logro mira UNA sola métrica de las estadísticas recalculadas.
# "metric" es la clave en el dict que devuelve recalculate_stats().

BADGES = [
    {"name": "First Step", "description": "Log your first habit", "icon": "🎯", "metric": "total_entries", "threshold": 1},
    {"name": "Three Day Spark", "description": "3-day streak", "icon": "✨", "metric": "current_streak", "threshold": 3},
    {"name": "Week Warrior", "description": "7-day streak", "icon": "🔥", "metric": "current_streak", "threshold": 7},
    {"name": "Two Week Champion", "description": "14-day streak", "icon": "💪", "metric": "current_streak", "threshold": 14},
    {"name": "Month Master", "description": "30-day streak", "icon": "👑", "metric": "current_streak", "threshold": 30},
    {"name": "Half Century", "description": "Log 50 habits", "icon": "🥈", "metric": "total_entries", "threshold": 50},
    {"name": "100 Club", "description": "Log 100 habits", "icon": "💯", "metric": "total_entries", "threshold": 100},
    {"name": "Goal Crusher", "description": "Complete your first goal", "icon": "🏆", "metric": "goals_completed", "threshold": 1},
    {"name": "Mood Tracker", "description": "Log 10 entries with mood", "icon": "😊", "metric": "mood_entries", "threshold": 10},
    {"name": "Early Bird", "description": "Log 5 morning habits (before 8am)", "icon": "🌅", "metric": "morning_entries", "threshold": 5},
    {"name": "Night Owl", "description": "Log 5 evening habits (after 9pm)", "icon": "🦉", "metric": "evening_entries", "threshold": 5},
    {"name": "Variety King", "description": "Log 10 different activities", "icon": "🎭", "metric": "unique_activities", "threshold": 10},
    {"name": "Positive Vibes", "description": "Log 20 positive habits", "icon": "🌈", "metric": "positive_count", "threshold": 20},
    {"name": "Triple Threat", "description": "Log 3 different categories", "icon": "🎪", "metric": "categories", "threshold": 3},
    {"name": "Explorer", "description": "Log 6 different categories", "icon": "🧭", "metric": "categories", "threshold": 6},
]

BADGE_CATEGORIES = {
    "current_streak": "streak",
    "total_entries": "consistency",
    "goals_completed": "achievement",
}


# =============================================================================
# ===================== RECÁLCULO =============================================
# =============================================================================

def get_or_create_profile(db: Session, profile_id: int = None) -> UserProfile:
    """
    Con profile_id → ese perfil (o None si no existe).
    Sin profile_id → el perfil por defecto (el de menor id); se crea si no hay.
    """
    if profile_id is not None:
        return db.query(UserProfile).filter(UserProfile.id == profile_id).first()

    profile = db.query(UserProfile).order_by(UserProfile.id).first()
    if not profile:
        profile = UserProfile()
        db.add(profile)
        db.commit()
        db.refresh(profile)
        logger.info(f"👤 Perfil por defecto creado (id={profile.id})")
    return profile


def compute_stats(entries, goals, today=None) -> dict:
    """
    Función pura: a partir de entradas y objetivos calcula puntos, racha y
    todos los contadores que usan los logros.
    """
    total_points = 0
    positive_count = 0
    negative_count = 0
    mood_entries = 0
    morning_entries = 0
    evening_entries = 0
    activities = set()
    categories = set()

    for entry in entries:
        entry_type = entry.type or ""
        if "positive" in entry_type:
            total_points += POINTS["positive"]
            positive_count += 1
        elif "negative" in entry_type:
            total_points += POINTS["negative"]
            negative_count += 1
        else:
            total_points += POINTS["other"]

        if entry.activity:
            activities.add(entry.activity)
        if entry.category:
            categories.add(entry.category)
        if entry.mood:
            mood_entries += 1

        hour = entry.date.hour
        if hour < 8:
            morning_entries += 1
        if hour >= 21:
            evening_entries += 1

    goals_completed = sum(1 for g in goals if (g.current_value or 0) >= g.target_value)
    total_points += goals_completed * POINTS["goal_complete"]

    streak = current_streak(distinct_days(entries), today or today_local())
    total_points += streak * POINTS["streak_day"]

    return {
        "total_points": total_points,
        "current_streak": streak,
        "total_entries": len(entries),
        "positive_count": positive_count,
        "negative_count": negative_count,
        "unique_activities": len(activities),
        "categories": len(categories),
        "mood_entries": mood_entries,
        "morning_entries": morning_entries,
        "evening_entries": evening_entries,
        "goals_completed": goals_completed,
    }


def recalculate_profile(db: Session, profile: UserProfile) -> dict:
    """Recalcula y guarda los campos del perfil. Devuelve perfil + contadores"""
    entries = db.query(HabitEntry).order_by(HabitEntry.date.asc()).all()
    goals = db.query(Goal).all()

    stats = compute_stats(entries, goals)

    profile.total_points = stats["total_points"]
    profile.current_streak = stats["current_streak"]
    profile.longest_streak = max(stats["current_streak"], profile.longest_streak or 0)
    profile.last_activity_date = entries[-1].date if entries else None
    db.commit()
    db.refresh(profile)

    return {
        "id": profile.id,
        "longest_streak": profile.longest_streak,
        "last_activity_date": profile.last_activity_date,
        **stats,
    }


def badge_earned(badge: dict, stats: dict) -> bool:
    return stats.get(badge["metric"], 0) >= badge["threshold"]


def check_and_award_badges(db: Session, profile: UserProfile, stats: dict) -> tuple[list[Badge], list[Badge]]:
    """
    Otorga los logros nuevos. Los ya conseguidos no se vuelven a comprobar
    (son permanentes). Devuelve (todos los del perfil, los recién ganados).
    """
    existing = db.query(Badge).filter(Badge.user_id == profile.id).order_by(Badge.id).all()
    earned_names = {b.name for b in existing}

    new_badges = []
    for badge in BADGES:
        if badge["name"] in earned_names or not badge_earned(badge, stats):
            continue

        record = Badge(
            user_id=profile.id,
            name=badge["name"],
            description=badge["description"],
            icon=badge["icon"],
            category=BADGE_CATEGORIES.get(badge["metric"], "special"),
            requirement={badge["metric"]: badge["threshold"]},
        )
        db.add(record)
        new_badges.append(record)
        logger.info(f"🏆 Perfil {profile.id} desbloqueó: {badge['name']}")

    if new_badges:
        db.commit()
        for record in new_badges:
            db.refresh(record)

    return existing + new_badges, new_badges


def get_gamification_snapshot(db: Session, profile: UserProfile) -> dict:
    """Lo que devuelve GET /gamification: perfil, logros y nivel"""
    stats = recalculate_profile(db, profile)
    all_badges, new_badges = check_and_award_badges(db, profile, stats)

    return {
        "profile": stats,
        "badges": all_badges,
        "new_badges": new_badges,
        "level": calculate_level(stats["total_points"]),
        "next_level": next_level_progress(stats["total_points"]),
    }
