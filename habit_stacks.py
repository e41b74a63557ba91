"""
=============================================================================
HABIT_STACKS.PY — Sugerencias de "apilar" hábitos
=============================================================================
Idea (de "Atomic Habits"): si dos hábitos positivos suelen ocurrir el mismo
día, encadenarlos ("después de correr, medito") ayuda a mantener ambos.

Cómo se detecta:
  1. Entradas positivas de los últimos 30 días, agrupadas por día.
  2. En cada día, actividades sin repetir.
  3. Para cada pareja (A, B) del mismo día → co_ocurrencias[A][B] += 1
     y cada actividad suma 1 a su número de días.
  4. fuerza(A, B) = co_ocurrencias / min(días de A, días de B)
  5. Se sugiere si fuerza >= 0.5 Y co_ocurrencias >= 2.
"""

from datetime import date, timedelta

from clock import today_local, to_local_date

WINDOW_DAYS = 30
MIN_ENTRIES = 3
MIN_STRENGTH = 0.5
MIN_CO_OCCURRENCES = 2
MAX_SUGGESTIONS = 5


def _day_groups(entries) -> dict:
    """{día: [actividades sin repetir, en orden de aparición]}"""
    groups = {}
    for entry in sorted(entries, key=lambda e: e.date):
        if not entry.activity:
            continue
        activities = groups.setdefault(to_local_date(entry.date), [])
        if entry.activity not in activities:
            activities.append(entry.activity)
    return groups


def generate_suggestions(entries) -> list[dict]:
    """
    'entries' ya debe venir filtrado: positivas y dentro de la ventana.
    Con menos de 3 entradas no hay suficiente señal → lista vacía.
    """
    if len(entries) < MIN_ENTRIES:
        return []

    co_occurrences = {}
    day_counts = {}

    for activities in _day_groups(entries).values():
        for activity in activities:
            day_counts[activity] = day_counts.get(activity, 0) + 1

        for i, first in enumerate(activities):
            for second in activities[i + 1:]:
                co_occurrences.setdefault(first, {})
                co_occurrences.setdefault(second, {})
                co_occurrences[first][second] = co_occurrences[first].get(second, 0) + 1
                co_occurrences[second][first] = co_occurrences[second].get(first, 0) + 1

    candidates = []
    for trigger, linked in co_occurrences.items():
        for other, count in linked.items():
            strength = count / min(day_counts[trigger], day_counts[other])
            if strength >= MIN_STRENGTH and count >= MIN_CO_OCCURRENCES:
                candidates.append({
                    "trigger_habit": trigger,
                    "linked_habit": other,
                    "strength": round(strength * 100),
                    "tip": f'After you "{trigger}", you often do "{other}". Stack these for better consistency!',
                })

    # Orden estable: ante igual fuerza se queda la primera dirección encontrada
    candidates.sort(key=lambda s: s["strength"], reverse=True)

    seen = set()
    suggestions = []
    for suggestion in candidates:
        pair = frozenset((suggestion["trigger_habit"], suggestion["linked_habit"]))
        if pair in seen:
            continue
        seen.add(pair)
        suggestions.append(suggestion)

    return suggestions[:MAX_SUGGESTIONS]


def window_start(today: date = None):
    today = today or today_local()
    return today - timedelta(days=WINDOW_DAYS)


def stack_success_rate(stack, entries) -> int:
    """
    De los días (en la ventana) en que se hizo el hábito disparador,
    qué porcentaje incluyó también el hábito enlazado. 0 si nunca se hizo.
    """
    groups = _day_groups(entries)
    trigger_days = [acts for acts in groups.values() if stack.trigger_habit in acts]
    if not trigger_days:
        return 0
    hits = sum(1 for acts in trigger_days if stack.linked_habit in acts)
    return round(hits / len(trigger_days) * 100)
