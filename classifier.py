"""
=============================================================================
CLASSIFIER.PY — De texto libre a una entrada estructurada
=============================================================================
El usuario escribe cosas como:
    "ran 5km this morning, felt energized"
    "procrastinated all day, feel like a failure"

y nosotros sacamos:
    activity, type, category, quantity, unit, mood, sentiment,
    trigger, notes, tags

Dos niveles:
  1. ORÁCULO (opcional): se le pide al LLM un JSON con esos campos.
  2. REGLAS (siempre disponible): tablas de frases ordenadas. La PRIMERA
     regla que coincide gana y no se mira ninguna más.

classify() NUNCA lanza excepciones: como mínimo devuelve
"unspecified activity" / "neutral activity" / "habits".

Todas las comparaciones son por SUBCADENA sin mayúsculas
("ran" también coincide dentro de "grand"; es el comportamiento esperado).
"""

import re
import math
import logging

from oracle import OracleError, extract_json_object

logger = logging.getLogger("habitlog.classifier")


DEFAULT_ACTIVITY = "unspecified activity"
DEFAULT_TYPE = "neutral activity"
DEFAULT_CATEGORY = "habits"
MAX_ACTIVITY_LENGTH = 100

ENTRY_TYPES = ("positive habit", "negative behavior", "neutral activity", "emotional event")
SENTIMENTS = ("positive", "neutral", "negative")


# =============================================================================
# ===================== REGLAS DE COMPORTAMIENTO ==============================
# =============================================================================
# Orden = prioridad. Primero lo negativo (para que "didn't eat" no acabe
# como "eat"), luego emociones, conflictos familiares y al final lo positivo.
# "mood" es una pista: si la regla no la trae, se infiere del texto.

BEHAVIOR_RULES = [
    # ── Evitar colegio / trabajo ──
    {"patterns": ["skip school", "skipped school", "don't go to school", "miss school", "missed school"],
     "activity": "skip school", "type": "negative behavior", "category": "education", "mood": "guilty", "sentiment": "negative"},
    {"patterns": ["skip work", "skipped work", "miss work", "missed work", "didn't go to work"],
     "activity": "skip work", "type": "negative behavior", "category": "work", "mood": "guilty", "sentiment": "negative"},
    {"patterns": ["skip class", "skipped class", "miss class"],
     "activity": "skip class", "type": "negative behavior", "category": "education", "mood": "guilty", "sentiment": "negative"},

    # ── Procrastinación ──
    {"patterns": ["procrastinate", "procrastinated", "putting off", "avoiding work", "didn't do"],
     "activity": "procrastinate", "type": "negative behavior", "category": "productivity", "mood": "frustrated", "sentiment": "negative"},

    # ── Sueño ──
    {"patterns": ["stayed up", "stay up", "up all night", "couldn't sleep", "insomnia"],
     "activity": "sleep late", "type": "negative behavior", "category": "sleep", "mood": "tired", "sentiment": "negative"},
    {"patterns": ["oversleep", "overslept", "slept in", "slept through"],
     "activity": "oversleep", "type": "negative behavior", "category": "sleep", "mood": "groggy", "sentiment": "negative"},
    {"patterns": ["doom scroll", "doom scrolling", "scrolling all night"],
     "activity": "doom scroll", "type": "negative behavior", "category": "habits", "mood": "regretful", "sentiment": "negative"},

    # ── Comida ──
    {"patterns": ["binge eat", "binge eating", "overeat", "ate too much", "stuff myself"],
     "activity": "binge eat", "type": "negative behavior", "category": "nutrition", "mood": "disgusted", "sentiment": "negative"},
    {"patterns": ["skip meal", "skipped meal", "didn't eat", "forgot to eat"],
     "activity": "skip meal", "type": "negative behavior", "category": "nutrition", "mood": "tired", "sentiment": "negative"},

    # ── Relaciones ──
    {"patterns": ["argue", "argument", "argued with", "fight with", "fought with"],
     "activity": "argue", "type": "negative behavior", "category": "relationships", "mood": "angry", "sentiment": "negative"},
    {"patterns": ["ghost", "ghosted", "ignore", "ignored"],
     "activity": "ignore someone", "type": "negative behavior", "category": "relationships", "mood": "guilty", "sentiment": "negative"},
    {"patterns": ["yell", "yelled", "shout", "shouted", "scream", "screamed"],
     "activity": "yell", "type": "negative behavior", "category": "relationships", "mood": "angry", "sentiment": "negative"},

    # ── Sustancias ──
    {"patterns": ["smoke", "smoked", "had a cigarette", "vape"],
     "activity": "smoke", "type": "negative behavior", "category": "health", "mood": "guilty", "sentiment": "negative"},
    {"patterns": ["drink too much", "got drunk", "binge drink", "hungover"],
     "activity": "drink alcohol", "type": "negative behavior", "category": "health", "mood": "regretful", "sentiment": "negative"},

    # ── Eventos emocionales ──
    {"patterns": ["panic attack", "anxiety attack", "panic"],
     "activity": "panic attack", "type": "emotional event", "category": "mental health", "mood": "anxious", "sentiment": "negative"},
    {"patterns": ["cry", "cried", "crying", "breakdown"],
     "activity": "cry", "type": "emotional event", "category": "mental health", "mood": "sad", "sentiment": "negative"},
    {"patterns": ["depressed", "depression", "hopeless"],
     "activity": "feel depressed", "type": "emotional event", "category": "mental health", "mood": "sad", "sentiment": "negative"},

    # ── Conflictos familiares ──
    {"patterns": ["mom mad", "mom angry", "mom yelled", "mother angry", "mastiffs on me", "parent angry", "parents mad"],
     "activity": "family conflict", "type": "negative behavior", "category": "family", "mood": "stressed", "sentiment": "negative"},
    {"patterns": ["dad mad", "dad angry", "father angry", "father mad"],
     "activity": "family conflict", "type": "negative behavior", "category": "family", "mood": "stressed", "sentiment": "negative"},
    {"patterns": ["grounded", "in trouble", "got in trouble"],
     "activity": "get in trouble", "type": "emotional event", "category": "family", "mood": "stressed", "sentiment": "negative"},

    # ── Ejercicio ──
    {"patterns": ["ran", "run", "running", "jog", "jogging"],
     "activity": "run", "type": "positive habit", "category": "exercise", "sentiment": "positive"},
    {"patterns": ["walk", "walking", "walked"],
     "activity": "walk", "type": "positive habit", "category": "exercise", "sentiment": "positive"},
    {"patterns": ["swim", "swam", "swimming"],
     "activity": "swim", "type": "positive habit", "category": "exercise", "sentiment": "positive"},
    {"patterns": ["gym", "workout", "work out", "exercised", "lift weights"],
     "activity": "workout", "type": "positive habit", "category": "exercise", "sentiment": "positive"},
    {"patterns": ["yoga", "stretching", "stretched"],
     "activity": "yoga", "type": "positive habit", "category": "mindfulness", "sentiment": "positive"},

    # ── Mindfulness ──
    {"patterns": ["meditat", "mindful", "meditation"],
     "activity": "meditate", "type": "positive habit", "category": "mindfulness", "sentiment": "positive"},
    {"patterns": ["journal", "wrote in journal", "journaling"],
     "activity": "journal", "type": "positive habit", "category": "self care", "sentiment": "positive"},

    # ── Productividad ──
    {"patterns": ["read", "reading", "studied", "study"],
     "activity": "read", "type": "positive habit", "category": "productivity", "sentiment": "positive"},
    {"patterns": ["finish", "finished", "completed", "complete"],
     "activity": "complete task", "type": "positive habit", "category": "productivity", "sentiment": "positive"},
    {"patterns": ["clean", "cleaned", "tidy", "organized"],
     "activity": "clean", "type": "positive habit", "category": "personal growth", "sentiment": "positive"},

    # ── Salud: descanso, agua, comida ──
    {"patterns": ["sleep", "slept", "nap", "napped"],
     "activity": "sleep", "type": "positive habit", "category": "sleep", "sentiment": "neutral"},
    {"patterns": ["water", "drank water", "hydration", "hydrated"],
     "activity": "drink water", "type": "positive habit", "category": "hydration", "sentiment": "positive"},
    {"patterns": ["eat", "ate", "food", "meal", "salad", "lunch", "dinner", "breakfast"],
     "activity": "eat", "type": "positive habit", "category": "nutrition", "sentiment": "neutral"},
]


# ─────────────────────────────────────────────────────────────────────────────
# DESENCADENANTES (solo en el camino de reglas)
# ─────────────────────────────────────────────────────────────────────────────

TRIGGER_RULES = [
    (["mom", "mother", "mom angry", "mom mad", "mastiffs on me"], "mom upset"),
    (["dad", "father"], "dad upset"),
    (["because", "cause", "since"], "stated reason"),
    (["deadline", "due"], "deadline pressure"),
    (["tired", "exhausted", "no energy"], "fatigue"),
    (["stressed", "anxious", "worried"], "stress"),
    (["bored", "boring"], "boredom"),
]


# ─────────────────────────────────────────────────────────────────────────────
# ESTADO DE ÁNIMO (mood canónico → frases)
# ─────────────────────────────────────────────────────────────────────────────

MOOD_RULES = [
    ("happy", ["happy", "great", "amazing", "wonderful", "fantastic", "awesome", "excited", "joy"]),
    ("proud", ["proud", "accomplished", "achieved", "success", "finally", "finished"]),
    ("calm", ["calm", "relaxed", "peaceful", "serene", "chill", "zen"]),
    ("energized", ["energized", "energetic", "motivated", "pumped", "ready"]),
    ("guilty", ["guilty", "ashamed", "shouldn't", "bad about", "regret", "mastiffs on me", "mad at me", "angry at me"]),
    ("stressed", ["stressed", "anxious", "worried", "overwhelmed", "nervous", "pressure"]),
    ("sad", ["sad", "depressed", "down", "hopeless", "crying", "cry", "tears"]),
    ("angry", ["angry", "frustrated", "mad", "furious", "annoyed", "irritated"]),
    ("tired", ["tired", "exhausted", "drained", "sleepy", "fatigue"]),
    ("disgusted", ["disgusting", "disgusted", "disappointed", "failure", "gross"]),
]

DEFAULT_MOOD = "neutral"


# ─────────────────────────────────────────────────────────────────────────────
# SENTIMIENTO (se cuentan coincidencias, las listas pueden solaparse)
# ─────────────────────────────────────────────────────────────────────────────

POSITIVE_WORDS = [
    "happy", "great", "good", "amazing", "wonderful", "proud", "accomplished", "excited",
    "love", "enjoy", "finally", "success", "achieved", "feel good", "feels good",
]
NEGATIVE_WORDS = [
    "bad", "sad", "angry", "mad", "stressed", "anxious", "worried", "guilty", "ashamed",
    "fail", "failure", "disgusting", "hate", "terrible", "awful", "horrible",
    "mastiffs on me", "conflict", "argue", "skip", "procrastinate", "panic", "cry",
]


# ─────────────────────────────────────────────────────────────────────────────
# ETIQUETAS (comprobaciones independientes, pueden salir varias)
# ─────────────────────────────────────────────────────────────────────────────

TAG_RULES = [
    # momento del día
    ("morning", ["morning"]),
    ("afternoon", ["afternoon"]),
    ("evening", ["evening", "night"]),
    ("today", ["today"]),
    ("yesterday", ["yesterday"]),
    ("weekend", ["weekend"]),
    # lugar
    ("home", ["home"]),
    ("school", ["school"]),
    ("work", ["work"]),
    ("gym", ["gym"]),
    ("outdoor", ["outdoor", "outside"]),
    # contexto social
    ("alone", ["alone", "by myself"]),
    ("family", ["family", "mom", "dad"]),
    ("friends", ["friend"]),
    ("group", ["group"]),
    # recurrencia
    ("recurring", ["recurring", "again", "still"]),
    ("milestone", ["first time", "finally"]),
]


# ─────────────────────────────────────────────────────────────────────────────
# CATEGORÍA A PARTIR DE LA ACTIVIDAD
# ─────────────────────────────────────────────────────────────────────────────

CATEGORY_RULES = [
    (["run", "gym", "workout", "swim"], "exercise"),
    (["eat", "food"], "nutrition"),
    (["sleep", "nap"], "sleep"),
    (["meditat", "yoga"], "mindfulness"),
    (["read", "study"], "education"),
    (["argue", "conflict"], "relationships"),
    (["skip", "procrastinate"], "productivity"),
    (["school", "class"], "education"),
    (["work"], "work"),
    (["cry", "panic", "anxiety"], "mental health"),
]


# ─────────────────────────────────────────────────────────────────────────────
# CANTIDAD + UNIDAD
# ─────────────────────────────────────────────────────────────────────────────
# Alternativas largas primero: si no, "30 minutes" casaría "mi" (millas).

QUANTITY_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*"
    r"(km|miles|mi|minutes|minute|mins|min|hours|hour|hrs|hr|pages|page|glasses|glass"
    r"|times|time|reps|rep|sets|set|cups|cup|days|day|weeks|week)\b",
    re.IGNORECASE,
)

UNIT_ALIASES = {
    "mi": "miles",
    "min": "minutes", "mins": "minutes", "minute": "minutes",
    "hr": "hours", "hrs": "hours", "hour": "hours",
}


# =============================================================================
# ===================== FUNCIONES DE INFERENCIA ===============================
# =============================================================================

def _matches_any(text: str, patterns) -> bool:
    return any(p in text for p in patterns)


def infer_mood(text: str) -> str:
    """Primer mood cuyas frases aparecen en el texto; 'neutral' si ninguno"""
    lower = (text or "").lower()
    for mood, patterns in MOOD_RULES:
        if _matches_any(lower, patterns):
            return mood
    return DEFAULT_MOOD


def infer_sentiment(text: str) -> str:
    """
    Cuenta cuántas palabras positivas y negativas aparecen.
    Gana la mayoría; empate (también 0-0) → 'neutral'.
    """
    lower = (text or "").lower()
    positive = sum(1 for w in POSITIVE_WORDS if w in lower)
    negative = sum(1 for w in NEGATIVE_WORDS if w in lower)

    if negative > positive:
        return "negative"
    if positive > negative:
        return "positive"
    return "neutral"


def extract_tags(text: str) -> list[str]:
    """Cada grupo que coincide aporta su etiqueta, en el orden de TAG_RULES"""
    lower = (text or "").lower()
    return [tag for tag, patterns in TAG_RULES if _matches_any(lower, patterns)]


def infer_category(activity: str) -> str:
    """Solo mira la actividad ya resuelta, no el texto original"""
    lower = (activity or "").lower()
    for patterns, category in CATEGORY_RULES:
        if _matches_any(lower, patterns):
            return category
    return DEFAULT_CATEGORY


def detect_trigger(text: str):
    lower = (text or "").lower()
    for patterns, trigger in TRIGGER_RULES:
        if _matches_any(lower, patterns):
            return trigger
    return None


def extract_quantity(text: str) -> tuple:
    """(cantidad, unidad) del primer número con unidad conocida, o (None, None)"""
    match = QUANTITY_RE.search(text or "")
    if not match:
        return None, None
    unit = match.group(2).lower()
    return float(match.group(1)), UNIT_ALIASES.get(unit, unit)


def normalize_type(value) -> str:
    """Lleva cualquier etiqueta de tipo a una de las cuatro válidas"""
    if not isinstance(value, str):
        return DEFAULT_TYPE
    lower = value.lower()
    if "positive" in lower:
        return "positive habit"
    if "negative" in lower:
        return "negative behavior"
    if "emotion" in lower:
        return "emotional event"
    return DEFAULT_TYPE


# =============================================================================
# ===================== NIVEL 2: REGLAS =======================================
# =============================================================================

def fallback_classify(text: str) -> dict:
    """
    Clasificador determinista: mismo texto → mismo resultado, siempre.
    No depende de la hora ni de nada aleatorio.
    """
    lower = (text or "").lower()

    activity = DEFAULT_ACTIVITY
    entry_type = DEFAULT_TYPE
    category = DEFAULT_CATEGORY
    mood = None
    sentiment = "neutral"

    for rule in BEHAVIOR_RULES:
        if _matches_any(lower, rule["patterns"]):
            activity = rule["activity"]
            entry_type = rule["type"]
            category = rule["category"]
            mood = rule.get("mood")
            sentiment = rule["sentiment"]
            break

    trigger = detect_trigger(text)
    quantity, unit = extract_quantity(text)

    if not mood:
        mood = infer_mood(text)
    if sentiment == "neutral":
        sentiment = infer_sentiment(text)

    return {
        "activity": activity,
        "type": entry_type,
        "category": category,
        "quantity": quantity,
        "unit": unit,
        "mood": mood,
        "sentiment": sentiment,
        "trigger": trigger,
        "notes": f"Trigger: {trigger}" if trigger else None,
        "tags": extract_tags(text),
    }


# =============================================================================
# ===================== NIVEL 1: ORÁCULO ======================================
# =============================================================================

SYSTEM_PROMPT = """You are an expert assistant for habit tracking and behavioral analysis.
Extract structured data from a casual free-text journal entry.

Handle every kind of entry: positive habits (exercise, reading, meditation, healthy eating),
negative behaviors (procrastination, skipping school or work, bad habits, conflicts),
neutral observations, and emotional events.

Fields:
- activity (required): what actually happened, 2-3 words ("skip school", "procrastinate", "run", "eat salad").
- type: one of "positive habit", "negative behavior", "neutral activity", "emotional event".
- category: exercise, nutrition, sleep, mindfulness, productivity, education, relationships,
  family, work, health, finance, personal growth, social, entertainment, self care, mental health,
  or habits for general behaviors.
- mood: happy, proud, accomplished, energized, calm, grateful, stressed, guilty, anxious, sad,
  angry, frustrated, ashamed, neutral, indifferent, tired. Use the full context, not only keywords.
- sentiment: "positive", "negative" or "neutral".
- trigger: what caused or influenced it (external: "mom angry", "work deadline";
  internal: "felt lazy", "tired"; situational: "missed alarm", "sick"), or null.
- quantity and unit: only when a measurable amount is stated or strongly implied.
- notes: one short sentence of context, or null.
- tags: time (morning, evening, today, weekend), location (home, school, work, gym, outdoor),
  social (alone, family, friends, group), status (planned, recurring).

Example
Input: "procrastinated all day, feel like a failure"
Output: {"activity": "procrastinate", "type": "negative behavior", "category": "productivity",
"mood": "ashamed", "sentiment": "negative", "trigger": "lack of motivation",
"notes": "Procrastinated throughout the day, feeling self-critical", "tags": ["today"]}

Respond with ONLY one valid JSON object. No markdown, no explanation."""


def _text_or_none(value):
    """Solo vale un texto no vacío; números, listas u objetos cuentan como 'no dado'"""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _valid_quantity(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def _merge_oracle_record(parsed: dict, text: str) -> dict:
    """
    Completa lo que el oráculo no haya devuelto con las inferencias locales.
    Un campo con un tipo inesperado se trata igual que un campo ausente.
    """
    activity = _text_or_none(parsed.get("activity")) or DEFAULT_ACTIVITY
    activity = activity[:MAX_ACTIVITY_LENGTH]

    quantity = parsed.get("quantity")
    unit = _text_or_none(parsed.get("unit"))
    if not _valid_quantity(quantity):
        # El oráculo no dio cantidad válida: respaldo con la expresión regular
        quantity, unit = extract_quantity(text)
    else:
        quantity = float(quantity)
        if unit is None:
            unit = extract_quantity(text)[1]

    sentiment = parsed.get("sentiment")
    if sentiment not in SENTIMENTS:
        sentiment = infer_sentiment(text)

    tags = parsed.get("tags")
    if not isinstance(tags, list):
        tags = extract_tags(text)

    return {
        "activity": activity,
        "type": normalize_type(parsed.get("type")),
        "category": _text_or_none(parsed.get("category")) or infer_category(activity),
        "quantity": quantity,
        "unit": unit,
        "mood": _text_or_none(parsed.get("mood")) or infer_mood(text),
        "sentiment": sentiment,
        "trigger": _text_or_none(parsed.get("trigger")),
        "notes": _text_or_none(parsed.get("notes")),
        "tags": [str(t) for t in tags],
    }


def classify(text: str, oracle=None) -> dict:
    """
    Texto libre → registro estructurado.

    Si hay oráculo se intenta primero; cualquier fallo (excepción, respuesta
    sin JSON, JSON roto) hace caer en las reglas sin que el llamante se entere.
    """
    if oracle is not None:
        try:
            response = oracle.complete(SYSTEM_PROMPT, f'Analyze this habit/behavior entry: "{text}"')
            parsed = extract_json_object(response)
            if parsed is not None:
                return _merge_oracle_record(parsed, text)
            logger.warning("⚠️ El oráculo no devolvió JSON válido, usando reglas")
        except OracleError as e:
            logger.warning(f"⚠️ Oráculo no disponible: {e}")
        except Exception as e:
            logger.warning(f"⚠️ Error inesperado del oráculo ({type(e).__name__}): {e}")

    return fallback_classify(text)
