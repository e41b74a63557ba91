"""
=============================================================================
ORACLE.PY — Cliente del modelo de lenguaje (opcional)
=============================================================================
El "oráculo" es un servicio externo de LLM que puede mejorar la extracción
de datos y las recomendaciones. Es OPCIONAL:

  - Si LLM_API_URL no está configurada → get_oracle() devuelve None.
  - Si la llamada falla (red, timeout, respuesta rara) → OracleError.

Quien lo use SIEMPRE tiene un camino alternativo determinista. Nunca se
reintenta: un único intento, y si falla, se sigue sin él.

Habla el formato "chat completions" compatible con OpenAI:
  POST {LLM_API_URL}  {"model": ..., "messages": [...]}
  → {"choices": [{"message": {"content": "..."}}]}
"""

import os
import json
import logging
import re

import requests

logger = logging.getLogger("habitlog.oracle")

# ─────────────────────────────────────────────────────────────────────────────
# CONFIGURACIÓN
# ─────────────────────────────────────────────────────────────────────────────

LLM_API_URL = os.getenv("LLM_API_URL", "")
LLM_API_KEY = os.getenv("LLM_API_KEY", "")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "30"))


class OracleError(Exception):
    """El oráculo no respondió o respondió algo inservible"""


class ChatOracle:
    """Cliente HTTP mínimo para un endpoint de chat completions"""

    def __init__(self, url: str, api_key: str = "", model: str = LLM_MODEL, timeout: float = LLM_TIMEOUT):
        self.url = url
        self.model = model
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Devuelve el texto de la respuesta o lanza OracleError"""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        try:
            response = requests.post(self.url, headers=self.headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            result = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise OracleError(f"Llamada al LLM fallida: {e}") from e

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise OracleError(f"Formato de respuesta inesperado: {result!r}") from e

        if not content:
            raise OracleError("Respuesta vacía del LLM")
        return content


def get_oracle():
    """
    Dependencia de FastAPI. None si no hay LLM configurado.
    Los tests la sustituyen por un oráculo falso con dependency_overrides.
    """
    if not LLM_API_URL:
        return None
    return ChatOracle(LLM_API_URL, LLM_API_KEY)


# ─────────────────────────────────────────────────────────────────────────────
# EXTRACCIÓN DE JSON DE LA RESPUESTA
# ─────────────────────────────────────────────────────────────────────────────
# Los LLM a veces envuelven el JSON en texto o en ```json ... ```.
# Buscamos el primer bloque {...} o [...] que sea JSON válido.

_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def extract_json_object(text: str):
    """Primer objeto JSON del texto, o None si no hay ninguno válido"""
    match = _OBJECT_RE.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json_array(text: str):
    """Primer array JSON del texto, o None si no hay ninguno válido"""
    match = _ARRAY_RE.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, list) else None
