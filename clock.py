"""
=============================================================================
CLOCK.PY — Hora local y ventanas de fechas
=============================================================================
Todas las fechas se guardan como datetime "naive" en la hora local de la
aplicación (APP_TIMEZONE). Así "hoy", "esta semana" o "este mes" significan
lo mismo para el usuario que para las rachas y los objetivos.

La semana empieza en DOMINGO (igual que en las tendencias y el heatmap).
"""

import os
from datetime import datetime, date, timedelta

import pytz

# ─────────────────────────────────────────────────────────────────────────────
# CONFIGURACIÓN
# ─────────────────────────────────────────────────────────────────────────────

APP_TIMEZONE = os.getenv("APP_TIMEZONE", "UTC")


def get_timezone():
    try:
        return pytz.timezone(APP_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        return pytz.utc


def now_local() -> datetime:
    """Ahora mismo en la zona configurada, sin tzinfo (como se guarda en BD)"""
    return datetime.now(get_timezone()).replace(tzinfo=None)


def to_naive_local(value: datetime) -> datetime:
    """
    Fecha recibida del cliente → hora local sin tzinfo.
    Con zona horaria ("...+02:00") se convierte a APP_TIMEZONE; sin ella
    se asume que ya es hora local.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(get_timezone()).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()


def to_local_date(value) -> date:
    """Trunca un timestamp a su día natural"""
    if isinstance(value, datetime):
        return value.date()
    return value


def week_start(day: date) -> date:
    """Domingo de la semana a la que pertenece 'day'"""
    # weekday(): lunes=0 ... domingo=6  →  días desde el domingo = (weekday+1) % 7
    return day - timedelta(days=(day.weekday() + 1) % 7)


def sunday_index(day: date) -> int:
    """0=domingo ... 6=sábado"""
    return (day.weekday() + 1) % 7


def period_window(period: str, now: datetime = None) -> tuple[datetime, datetime]:
    """
    Ventana [inicio, fin] (ambos incluidos) del periodo actual de un objetivo.

      daily   → hoy 00:00 → hoy 23:59:59.999999
      weekly  → domingo 00:00 → sábado 23:59:59.999999
      monthly → día 1 00:00 → último día del mes 23:59:59.999999
    """
    now = now or now_local()
    today = now.date()

    if period == "daily":
        start = today
        end = today
    elif period == "weekly":
        start = week_start(today)
        end = start + timedelta(days=6)
    elif period == "monthly":
        start = today.replace(day=1)
        next_month = (start + timedelta(days=32)).replace(day=1)
        end = next_month - timedelta(days=1)
    else:
        raise ValueError(f"Periodo desconocido: {period}")

    return (
        datetime.combine(start, datetime.min.time()),
        datetime.combine(end, datetime.max.time()),
    )
