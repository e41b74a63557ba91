"""
=============================================================================
SCHEMAS.PY — Esquemas de Validación (Pydantic)
=============================================================================
  - Models (SQLAlchemy) → definen las TABLAS
  - Schemas (Pydantic)  → definen qué DATOS acepta/devuelve la API

Convención de nombres:
  XxxCreate   → para crear (POST)
  XxxUpdate   → para actualizar (PATCH), todo opcional
  XxxResponse → lo que devuelve la API (GET)

Si falta un campo obligatorio, FastAPI responde 422 con el detalle.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Literal, Any


EntryTypeValue = Literal["positive habit", "negative behavior", "neutral activity", "emotional event"]
SentimentValue = Literal["positive", "neutral", "negative"]
PeriodValue = Literal["daily", "weekly", "monthly"]


# =============================================================================
# ===================== CLASIFICACIÓN =========================================
# =============================================================================

class ParseRequest(BaseModel):
    text: str = Field(min_length=1, description="Texto libre: 'ran 5km this morning'")

class ParsedHabit(BaseModel):
    """Resultado del clasificador + el texto original"""
    raw_text: str
    activity: str
    type: str
    category: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    mood: Optional[str] = None
    sentiment: str
    trigger: Optional[str] = None
    notes: Optional[str] = None
    tags: list[str] = []


# =============================================================================
# ===================== ENTRADAS ==============================================
# =============================================================================

class HabitEntryCreate(BaseModel):
    raw_text: str = Field(min_length=1)
    activity: str = Field(min_length=1, max_length=100)
    type: Optional[EntryTypeValue] = None
    category: Optional[str] = None
    quantity: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = None
    mood: Optional[str] = None
    sentiment: Optional[SentimentValue] = None
    trigger: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    date: Optional[datetime] = None
    # date → si no viene, la hora actual

class HabitEntryResponse(BaseModel):
    id: int
    raw_text: str
    activity: str
    type: Optional[str]
    category: Optional[str]
    quantity: Optional[float]
    unit: Optional[str]
    mood: Optional[str]
    sentiment: Optional[str]
    trigger: Optional[str]
    notes: Optional[str]
    tags: Optional[list[str]]
    date: datetime
    model_config = {"from_attributes": True}

class HabitEntryPage(BaseModel):
    items: list[HabitEntryResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


# =============================================================================
# ===================== OBJETIVOS =============================================
# =============================================================================

class GoalCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    activity: str = Field(min_length=1, max_length=100)
    target_value: float = Field(gt=0)
    unit: Optional[str] = None
    period: PeriodValue
    end_date: Optional[datetime] = None

class GoalUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    activity: Optional[str] = Field(default=None, min_length=1, max_length=100)
    target_value: Optional[float] = Field(default=None, gt=0)
    current_value: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = None
    period: Optional[PeriodValue] = None
    is_active: Optional[bool] = None
    end_date: Optional[datetime] = None

class GoalResponse(BaseModel):
    id: int
    title: str
    activity: str
    target_value: float
    current_value: float
    unit: Optional[str]
    period: str
    is_active: bool
    end_date: Optional[datetime]
    created_at: datetime
    model_config = {"from_attributes": True}


# =============================================================================
# ===================== HABIT STACKS ==========================================
# =============================================================================

class HabitStackCreate(BaseModel):
    trigger_habit: str = Field(min_length=1, max_length=100)
    linked_habit: str = Field(min_length=1, max_length=100)

class HabitStackResponse(BaseModel):
    id: int
    trigger_habit: str
    linked_habit: str
    is_active: bool
    created_at: datetime
    model_config = {"from_attributes": True}

class ActiveStack(HabitStackResponse):
    success_rate: int = 0
    # success_rate → % de días con el disparador en los que también se hizo el enlazado

class StackSuggestion(BaseModel):
    trigger_habit: str
    linked_habit: str
    strength: int
    tip: str

class HabitStacksOverview(BaseModel):
    stacks: list[ActiveStack]
    suggestions: list[StackSuggestion]


# =============================================================================
# ===================== GAMIFICACIÓN ==========================================
# =============================================================================

class BadgeResponse(BaseModel):
    id: int
    name: str
    description: str
    icon: str
    category: str
    requirement: Optional[dict[str, Any]]
    earned_at: datetime
    model_config = {"from_attributes": True}

class LevelInfo(BaseModel):
    level: int
    title: str
    icon: str
    min: int

class NextLevelInfo(BaseModel):
    current: int
    needed: int
    progress: int

class GamificationResponse(BaseModel):
    profile: dict[str, Any]
    badges: list[BadgeResponse]
    new_badges: list[BadgeResponse]
    level: LevelInfo
    next_level: NextLevelInfo


# =============================================================================
# ===================== INSIGHTS ==============================================
# =============================================================================

class Insight(BaseModel):
    type: str
    title: str
    content: str
    confidence: float
    category: str
    icon: str
