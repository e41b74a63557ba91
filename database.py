"""
=============================================================================
DATABASE.PY — Conexión a la Base de Datos de HabitLog
=============================================================================
Configura el engine de SQLAlchemy, la fábrica de sesiones y la clase Base
de la que heredan todos los modelos.

¿Qué base de datos se usa?
→ Si existe la variable de entorno DATABASE_URL, se usa esa (PostgreSQL
  en producción).
→ Si no existe, se usa un archivo SQLite local (habitlog.db).
→ Con "sqlite://" (memoria) todas las sesiones comparten UNA conexión,
  si no cada sesión vería una base de datos vacía distinta (lo usan los tests).
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# ─────────────────────────────────────────────────────────────────────────────
# CONEXIÓN
# ─────────────────────────────────────────────────────────────────────────────

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./habitlog.db")

# SQLAlchemy necesita "postgresql+psycopg://" para usar el driver psycopg (v3)
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg://", 1)
elif DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg://", 1)

# ─────────────────────────────────────────────────────────────────────────────
# ENGINE
# ─────────────────────────────────────────────────────────────────────────────

engine_args = {}
if DATABASE_URL.startswith("sqlite"):
    engine_args["connect_args"] = {"check_same_thread": False}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        engine_args["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, echo=False, **engine_args)

# ─────────────────────────────────────────────────────────────────────────────
# SESSION y BASE
# ─────────────────────────────────────────────────────────────────────────────

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Dependencia de FastAPI: abre una sesión por petición y la cierra al terminar.

      @app.get("/algo")
      def mi_endpoint(db: Session = Depends(get_db)):
          ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Crea todas las tablas si no existen (se llama al arrancar)."""
    import models  # noqa: F401  registra las tablas en Base.metadata
    Base.metadata.create_all(bind=engine)
