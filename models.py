"""
=============================================================================
MODELS.PY — Modelos (Tablas) de HabitLog
=============================================================================
Cada clase = una tabla. Cada atributo = una columna.

  habit_entries   → cada cosa que el usuario escribe ("ran 5km today")
  goals           → objetivos de cantidad (correr 30 km este mes)
  user_profiles   → estado de gamificación (puntos, rachas)
  badges          → logros desbloqueados por un perfil
  habit_stacks    → parejas "después de X, hago Y" aceptadas por el usuario

Nada de lo que se calcula (rachas, puntos, progreso) es la fuente de verdad:
se recalcula siempre a partir de habit_entries.
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, Float, Text, DateTime, ForeignKey, JSON,
    UniqueConstraint
)
from sqlalchemy.orm import relationship
from database import Base
from clock import now_local
import enum


# =============================================================================
# ===================== ENUMS =================================================
# =============================================================================

class EntryType(str, enum.Enum):
    """Qué tipo de comportamiento describe una entrada"""
    positive = "positive habit"
    negative = "negative behavior"
    neutral = "neutral activity"
    emotional = "emotional event"

class Sentiment(str, enum.Enum):
    positive = "positive"
    neutral = "neutral"
    negative = "negative"

class GoalPeriod(str, enum.Enum):
    """Ventana sobre la que se mide un objetivo"""
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


# =============================================================================
# ===================== TABLA 1: HABIT ENTRIES ================================
# =============================================================================

class HabitEntry(Base):
    __tablename__ = "habit_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # ── Texto original (nunca se modifica) ──
    raw_text = Column(Text, nullable=False)

    # ── Campos extraídos por el clasificador ──
    activity = Column(String(100), nullable=False, index=True)
    type = Column(String(30), nullable=True)
    # type → uno de EntryType
    category = Column(String(50), nullable=True)
    quantity = Column(Float, nullable=True)
    unit = Column(String(30), nullable=True)
    # quantity + unit van juntos ("5" + "km"), aunque no se obliga
    mood = Column(String(30), nullable=True)
    sentiment = Column(String(10), nullable=True)
    trigger = Column(String(100), nullable=True)
    # trigger → qué lo provocó ("mom upset", "deadline pressure")
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)
    # tags → ej: ["morning", "gym"]. El orden no importa a nadie.

    date = Column(DateTime, default=now_local, index=True)
    # date → por defecto, el momento del envío (hora local configurada)


# =============================================================================
# ===================== TABLA 2: GOALS ========================================
# =============================================================================

class Goal(Base):
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String(200), nullable=False)
    activity = Column(String(100), nullable=False)
    # activity → se compara sin mayúsculas y como subcadena con las entradas
    target_value = Column(Float, nullable=False)
    current_value = Column(Float, default=0)
    # current_value → caché derivada: suma de quantity en la ventana actual
    unit = Column(String(30), nullable=True)
    period = Column(String(10), nullable=False, default=GoalPeriod.monthly)
    is_active = Column(Boolean, default=True)
    end_date = Column(DateTime, nullable=True)
    # end_date → se guarda pero no se consulta (no caduca el objetivo)

    created_at = Column(DateTime, default=now_local)


# =============================================================================
# ===================== TABLA 3: USER PROFILES ================================
# =============================================================================

class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)

    total_points = Column(Integer, default=0)
    current_streak = Column(Integer, default=0)
    longest_streak = Column(Integer, default=0)
    # longest_streak → lo único que no se recalcula de cero: max(actual, guardado)
    last_activity_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=now_local)

    badges = relationship("Badge", back_populates="profile", cascade="all, delete-orphan")


# =============================================================================
# ===================== TABLA 4: BADGES =======================================
# =============================================================================

class Badge(Base):
    __tablename__ = "badges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user_profiles.id"), nullable=False)

    name = Column(String(100), nullable=False)
    # name → clave en el catálogo BADGES de gamification.py
    description = Column(String(300), nullable=False)
    icon = Column(String(10), default="🏆")
    category = Column(String(20), default="special")
    requirement = Column(JSON, nullable=True)
    # requirement → copia de la regla que lo otorgó, ej: {"streak": 7}

    earned_at = Column(DateTime, default=now_local)

    __table_args__ = (
        UniqueConstraint('user_id', 'name', name='uq_profile_badge'),
    )

    profile = relationship("UserProfile", back_populates="badges")


# =============================================================================
# ===================== TABLA 5: HABIT STACKS =================================
# =============================================================================

class HabitStack(Base):
    """'Después de <trigger_habit>, hago <linked_habit>'"""
    __tablename__ = "habit_stacks"

    id = Column(Integer, primary_key=True, autoincrement=True)

    trigger_habit = Column(String(100), nullable=False)
    linked_habit = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True)
    # is_active=False → "borrado" (nunca se reactiva)

    created_at = Column(DateTime, default=now_local)
