# backend/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from dotenv import load_dotenv

load_dotenv()

from config import settings

# 1. Database URL from the environment / .env, SQLite file for local development
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL
DB_TIMEOUT_SECONDS = settings.DB_TIMEOUT_SECONDS

# 2. Hosted Postgres hands out postgres:// URLs, SQLAlchemy needs postgresql://
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)

# 3. Driver specific connection options, all calls bounded by DB_TIMEOUT_SECONDS
if "sqlite" in SQLALCHEMY_DATABASE_URL:
    connect_args = {"check_same_thread": False, "timeout": DB_TIMEOUT_SECONDS}
    engine_kwargs = {}
else:
    connect_args = {"connect_timeout": DB_TIMEOUT_SECONDS}
    engine_kwargs = {"pool_timeout": DB_TIMEOUT_SECONDS, "pool_pre_ping": True}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=connect_args, **engine_kwargs
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Register every model on Base.metadata before creating tables
    import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
