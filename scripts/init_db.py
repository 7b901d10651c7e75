# scripts/init_db.py
from sqlalchemy import inspect
from sqlalchemy.engine import make_url

from incidenthook.config import get_settings
from incidenthook.database import make_engine, init_db


# ---------------------------------------------------------------------------
# Utilidades
# ---------------------------------------------------------------------------
def masked_url(url: str) -> str:
    try:
        return make_url(url).render_as_string(hide_password=True)
    except Exception:
        return url.split("@")[-1]


# ---------------------------------------------------------------------------
# Creación de tablas (idempotente)
# ---------------------------------------------------------------------------
def main():
    settings = get_settings()
    engine = make_engine(settings.DATABASE_URL)
    print("[init_db] DATABASE_URL =", masked_url(settings.DATABASE_URL))
    init_db(engine)
    tables = sorted(inspect(engine).get_table_names())
    print("[init_db] create_all OK:", ", ".join(tables))
    engine.dispose()


if __name__ == "__main__":
    main()
