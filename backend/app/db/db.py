import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# SQLAlchemy Database URL (SQLite unless DATABASE_URL says otherwise)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///../app.db")

# SQLite connections are shared across FastAPI's worker threads
if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for cardpilot ORM models
Base = declarative_base()
