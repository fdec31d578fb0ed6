# payroll_api/extensions.py
from contextlib import contextmanager

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

def normalize_db_url(url: str) -> str:
    if not url:
        return url
    # Render / Heroku style → SQLAlchemy psycopg3 driver
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url

def init_db(app):
    url = app.config.get("SQLALCHEMY_DATABASE_URI", "") or ""
    app.config["SQLALCHEMY_DATABASE_URI"] = normalize_db_url(url)

    # pool/ssl health; sqlite (tests) keeps its own pool
    if not app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {
            "pool_pre_ping": True,
            "pool_recycle": 270,
            "pool_size": 5,
            "max_overflow": 2,
            "pool_timeout": 30,
        })

    db.init_app(app)

@contextmanager
def unit_of_work():
    """
    Commit everything done inside the block, or roll all of it back.

        with unit_of_work() as s:
            s.add(row)
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
