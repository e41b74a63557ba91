"""
=============================================================================
MAIN.PY — La API de HabitLog
=============================================================================
Diario de hábitos en texto libre: el usuario escribe lo que ha hecho
("ran 5km this morning, felt energized") y la API lo convierte en datos,
lo guarda y calcula estadísticas, rachas, logros y sugerencias.

Organización por secciones:
  1. ENTRIES       → Clasificar texto, guardar y listar entradas
  2. STATS         → Resumen, tendencias, rachas y exportación CSV
  3. HEATMAP       → Mapas de calor de mood / actividad / sentimiento
  4. HABIT STACKS  → Sugerencias y parejas de hábitos aceptadas
  5. GAMIFICATION  → Puntos, logros y nivel
  6. GOALS         → CRUD de objetivos
  7. INSIGHTS      → Recomendaciones (reglas + LLM opcional)

No hay autenticación: un único usuario implícito.
"""

import os
import io
import csv
import json
import logging
import traceback
from datetime import datetime, date, timedelta
from contextlib import asynccontextmanager
from typing import Optional, Literal

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from database import get_db, init_db
from models import HabitEntry, Goal, HabitStack
from schemas import (
    ParseRequest, ParsedHabit, HabitEntryCreate, HabitEntryResponse, HabitEntryPage,
    GoalCreate, GoalUpdate, GoalResponse, HabitStackCreate, HabitStackResponse,
    ActiveStack, HabitStacksOverview, GamificationResponse, Insight
)
from oracle import get_oracle
from classifier import classify
from clock import now_local, today_local, to_naive_local
from stats import build_stats
from heatmap import build_heatmap
from habit_stacks import generate_suggestions, stack_success_rate, window_start
from gamification import get_or_create_profile, get_gamification_snapshot
from goals import update_goal_progress
from insights import generate_insights

# ─────────────────────────────────────────────────────────────────────────────
# LOGGING
# ─────────────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s"
)
logger = logging.getLogger("habitlog.api")

APP_VERSION = "1.0.0"
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")


# ─────────────────────────────────────────────────────────────────────────────
# LIFESPAN (Arranque y apagado)
# ─────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Al arrancar crea las tablas si no existen"""
    logger.info("🚀 Arrancando HabitLog...")
    init_db()
    logger.info("✅ Base de datos inicializada")
    yield
    logger.info("👋 Apagado completo")


# ─────────────────────────────────────────────────────────────────────────────
# APLICACIÓN FASTAPI
# ─────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="HabitLog API",
    description="Diario de hábitos en texto libre con estadísticas y gamificación",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Cualquier error no controlado → log con traza + JSON 500"""
    logger.error(f"❌ Error no manejado en {request.url}: {exc}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Error interno del servidor",
            "type": type(exc).__name__,
            "path": str(request.url)
        }
    )


@app.get("/", tags=["Health"])
def health_check():
    """Verifica que la API está viva"""
    return {
        "status": "ok",
        "app": "HabitLog",
        "version": APP_VERSION,
        "timestamp": now_local().isoformat()
    }


# ─────────────────────────────────────────────────────────────────────────────
# FILTROS COMUNES
# ─────────────────────────────────────────────────────────────────────────────

def _filter_entries(
    query,
    activity: Optional[str] = None,
    category: Optional[str] = None,
    mood: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    """
    activity → subcadena sin mayúsculas
    category, mood → exactos
    start_date / end_date → días completos, ambos incluidos
    """
    if activity:
        query = query.filter(HabitEntry.activity.icontains(activity, autoescape=True))
    if category:
        query = query.filter(HabitEntry.category == category)
    if mood:
        query = query.filter(HabitEntry.mood == mood)
    if start_date:
        query = query.filter(HabitEntry.date >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        query = query.filter(HabitEntry.date <= datetime.combine(end_date, datetime.max.time()))
    return query


# =============================================================================
# ===================== SECCIÓN 1: ENTRIES ====================================
# =============================================================================

@app.post("/habits/parse", response_model=ParsedHabit, tags=["Entries"])
def parse_habit(data: ParseRequest, oracle=Depends(get_oracle)):
    """
    Convierte texto libre en campos estructurados (no guarda nada).
    Nunca falla por culpa del LLM: si no responde, se usan las reglas.
    """
    record = classify(data.text, oracle)
    return ParsedHabit(raw_text=data.text, **record)


@app.post("/habits", response_model=HabitEntryResponse, tags=["Entries"])
def create_entry(data: HabitEntryCreate, db: Session = Depends(get_db)):
    """
    Guarda una entrada ya clasificada.
    Si trae cantidad, recalcula el progreso de los objetivos que encajen
    (si eso falla, la entrada se guarda igualmente).
    """
    entry = HabitEntry(
        raw_text=data.raw_text,
        activity=data.activity,
        type=data.type,
        category=data.category,
        quantity=data.quantity,
        unit=data.unit,
        mood=data.mood,
        sentiment=data.sentiment,
        trigger=data.trigger,
        notes=data.notes,
        tags=data.tags,
        date=to_naive_local(data.date) if data.date else now_local(),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)

    logger.info(f"➕ Entrada guardada: {entry.activity} (id={entry.id})")

    if entry.quantity is not None:
        update_goal_progress(db, entry.activity)

    return entry


@app.get("/habits", response_model=HabitEntryPage, tags=["Entries"])
def list_entries(
    activity: Optional[str] = None,
    category: Optional[str] = None,
    mood: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db)
):
    """Lista entradas (más recientes primero) con filtros y paginación"""
    query = _filter_entries(db.query(HabitEntry), activity, category, mood, start_date, end_date)

    total = query.count()
    items = query.order_by(HabitEntry.date.desc(), HabitEntry.id.desc()).offset(offset).limit(limit).all()

    return HabitEntryPage(
        items=[HabitEntryResponse.model_validate(e) for e in items],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(items) < total,
    )


# =============================================================================
# ===================== SECCIÓN 2: STATS ======================================
# =============================================================================

@app.get("/habits/stats", tags=["Stats"])
def get_stats(
    activity: Optional[str] = None,
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    group_by: Literal["day", "week", "month"] = "day",
    db: Session = Depends(get_db)
):
    """Resumen + tendencias agrupadas + rachas de las entradas filtradas"""
    entries = _filter_entries(
        db.query(HabitEntry), activity, category, None, start_date, end_date
    ).order_by(HabitEntry.date.asc()).all()

    return build_stats(entries, group_by)


CSV_HEADERS = [
    "ID", "Date", "Raw Text", "Activity", "Type", "Category", "Quantity",
    "Unit", "Mood", "Sentiment", "Trigger", "Notes", "Tags",
]


@app.get("/habits/export", tags=["Stats"])
def export_entries(
    activity: Optional[str] = None,
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db)
):
    """Descarga las entradas filtradas como CSV"""
    entries = _filter_entries(
        db.query(HabitEntry), activity, category, None, start_date, end_date
    ).order_by(HabitEntry.date.desc()).all()

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for e in entries:
        writer.writerow([
            e.id,
            e.date.isoformat(),
            e.raw_text,
            e.activity,
            e.type or "",
            e.category or "",
            "" if e.quantity is None else e.quantity,
            e.unit or "",
            e.mood or "",
            e.sentiment or "",
            e.trigger or "",
            e.notes or "",
            json.dumps(e.tags) if e.tags else "",
        ])

    filename = f"habits-{today_local().isoformat()}.csv"
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# =============================================================================
# ===================== SECCIÓN 3: HEATMAP ====================================
# =============================================================================

@app.get("/heatmap", tags=["Heatmap"])
def get_heatmap(
    view: Literal["mood", "activity", "sentiment"] = Query(default="mood", alias="type"),
    days: int = Query(default=30, ge=1, le=365, alias="range"),
    db: Session = Depends(get_db)
):
    """Mapa de calor de los últimos N días (?type=mood|activity|sentiment&range=30)"""
    today = today_local()
    start = datetime.combine(today - timedelta(days=days), datetime.min.time())
    entries = db.query(HabitEntry).filter(
        HabitEntry.date >= start
    ).order_by(HabitEntry.date.asc()).all()

    return build_heatmap(entries, view, days, today)


# =============================================================================
# ===================== SECCIÓN 4: HABIT STACKS ===============================
# =============================================================================

def _recent_positive_entries(db: Session) -> list[HabitEntry]:
    start = datetime.combine(window_start(), datetime.min.time())
    return db.query(HabitEntry).filter(
        HabitEntry.date >= start,
        HabitEntry.type.contains("positive"),
    ).order_by(HabitEntry.date.asc()).all()


@app.get("/habit-stacks", response_model=HabitStacksOverview, tags=["Habit Stacks"])
def get_habit_stacks(db: Session = Depends(get_db)):
    """Parejas activas (con su tasa de éxito) + sugerencias nuevas"""
    entries = _recent_positive_entries(db)
    stacks = db.query(HabitStack).filter(HabitStack.is_active == True).all()  # noqa: E712

    active = [
        ActiveStack(
            **HabitStackResponse.model_validate(s).model_dump(),
            success_rate=stack_success_rate(s, entries),
        )
        for s in stacks
    ]
    active.sort(key=lambda s: s.success_rate, reverse=True)

    return HabitStacksOverview(stacks=active, suggestions=generate_suggestions(entries))


@app.post("/habit-stacks", response_model=HabitStackResponse, tags=["Habit Stacks"])
def create_habit_stack(data: HabitStackCreate, db: Session = Depends(get_db)):
    """Acepta una sugerencia o crea una pareja a mano"""
    stack = HabitStack(trigger_habit=data.trigger_habit, linked_habit=data.linked_habit, is_active=True)
    db.add(stack)
    db.commit()
    db.refresh(stack)
    logger.info(f"🔗 Stack creado: {stack.trigger_habit} → {stack.linked_habit}")
    return stack


@app.delete("/habit-stacks/{stack_id}", tags=["Habit Stacks"])
def delete_habit_stack(stack_id: int, db: Session = Depends(get_db)):
    """Desactiva una pareja (no se borra de la BD)"""
    stack = db.query(HabitStack).filter(HabitStack.id == stack_id).first()
    if not stack:
        raise HTTPException(status_code=404, detail="Habit stack no encontrado")

    stack.is_active = False
    db.commit()
    return {"message": "Habit stack desactivado"}


# =============================================================================
# ===================== SECCIÓN 5: GAMIFICATION ===============================
# =============================================================================

@app.get("/gamification", response_model=GamificationResponse, tags=["Gamification"])
def get_gamification(profile_id: Optional[int] = None, db: Session = Depends(get_db)):
    """
    Recalcula puntos, rachas y logros del perfil y los devuelve.
    Efecto secundario: guarda los logros nuevos y los campos del perfil.
    """
    profile = get_or_create_profile(db, profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Perfil no encontrado")

    return get_gamification_snapshot(db, profile)


# =============================================================================
# ===================== SECCIÓN 6: GOALS ======================================
# =============================================================================

@app.post("/goals", response_model=GoalResponse, tags=["Goals"])
def create_goal(data: GoalCreate, db: Session = Depends(get_db)):
    """Crea un objetivo de cantidad (ej: correr 30 km al mes)"""
    goal = Goal(
        title=data.title,
        activity=data.activity,
        target_value=data.target_value,
        unit=data.unit,
        period=data.period,
        end_date=data.end_date,
    )
    db.add(goal)
    db.commit()
    db.refresh(goal)
    logger.info(f"🎯 Objetivo creado: {goal.title}")
    return goal


@app.get("/goals", response_model=list[GoalResponse], tags=["Goals"])
def list_goals(active_only: bool = False, db: Session = Depends(get_db)):
    """Lista objetivos, los más recientes primero"""
    query = db.query(Goal)
    if active_only:
        query = query.filter(Goal.is_active == True)  # noqa: E712
    return query.order_by(Goal.created_at.desc(), Goal.id.desc()).all()


@app.patch("/goals/{goal_id}", response_model=GoalResponse, tags=["Goals"])
def update_goal(goal_id: int, data: GoalUpdate, db: Session = Depends(get_db)):
    """Actualiza solo los campos enviados"""
    goal = db.query(Goal).filter(Goal.id == goal_id).first()
    if not goal:
        raise HTTPException(status_code=404, detail="Objetivo no encontrado")

    update_data = data.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(goal, key, value)

    db.commit()
    db.refresh(goal)
    return goal


@app.delete("/goals/{goal_id}", tags=["Goals"])
def delete_goal(goal_id: int, db: Session = Depends(get_db)):
    """Elimina un objetivo"""
    goal = db.query(Goal).filter(Goal.id == goal_id).first()
    if not goal:
        raise HTTPException(status_code=404, detail="Objetivo no encontrado")

    db.delete(goal)
    db.commit()
    return {"message": f"Objetivo '{goal.title}' eliminado"}


# =============================================================================
# ===================== SECCIÓN 7: INSIGHTS ===================================
# =============================================================================

@app.get("/insights", response_model=list[Insight], tags=["Insights"])
def get_insights(db: Session = Depends(get_db), oracle=Depends(get_oracle)):
    """Hasta 10 recomendaciones sobre los últimos 30 días"""
    start = now_local() - timedelta(days=30)
    entries = db.query(HabitEntry).filter(
        HabitEntry.date >= start
    ).order_by(HabitEntry.date.desc()).limit(100).all()
    goals = db.query(Goal).filter(Goal.is_active == True).all()  # noqa: E712

    return generate_insights(entries, goals, oracle)
