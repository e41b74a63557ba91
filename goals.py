"""
=============================================================================
GOALS.PY — Progreso de objetivos
=============================================================================
current_value NO es un contador que se va sumando: es una caché que se
recalcula entera cada vez que llega una entrada con cantidad.

  current_value = suma de quantity de todas las entradas cuya actividad
                  contiene goal.activity (sin mayúsculas) y cuya fecha cae
                  en la ventana del periodo actual (día / semana / mes).

No hay bloqueo: dos entradas simultáneas pueden pisarse el resultado. Se
arregla sola con la siguiente entrada, porque se recalcula desde cero.
"""

import logging
from sqlalchemy import func
from sqlalchemy.orm import Session

from models import HabitEntry, Goal
from clock import now_local, period_window

logger = logging.getLogger("habitlog.goals")


def goal_matches(goal: Goal, activity: str) -> bool:
    """¿La actividad de la entrada contiene la del objetivo?"""
    return bool(activity) and goal.activity.lower() in activity.lower()


def compute_goal_progress(db: Session, goal: Goal, now=None) -> float:
    start, end = period_window(goal.period, now)
    total = db.query(func.coalesce(func.sum(HabitEntry.quantity), 0.0)).filter(
        HabitEntry.activity.icontains(goal.activity, autoescape=True),
        HabitEntry.date >= start,
        HabitEntry.date <= end,
    ).scalar()
    return float(total or 0)


def update_goal_progress(db: Session, activity: str, now=None) -> list[Goal]:
    """
    Se llama justo después de guardar una entrada con cantidad.
    Nunca lanza: si algo falla se registra en el log y la entrada
    (ya guardada) sigue siendo válida.
    """
    now = now or now_local()
    updated = []
    try:
        goals = db.query(Goal).filter(Goal.is_active == True).all()  # noqa: E712
        for goal in goals:
            if not goal_matches(goal, activity):
                continue
            goal.current_value = compute_goal_progress(db, goal, now)
            updated.append(goal)

        if updated:
            db.commit()
            logger.info(f"🎯 Progreso actualizado en {len(updated)} objetivo(s) para '{activity}'")
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error actualizando progreso de objetivos: {e}")
        return []

    return updated
