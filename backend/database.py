# backend/database.py
from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

from config import settings

load_dotenv()

# 1. Local cache lives in a SQLite file next to the process unless DATABASE_URL says otherwise
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# 2. SQLite connections are shared between the event loop and threadpool workers
if "sqlite" in SQLALCHEMY_DATABASE_URL:
    connect_args = {"check_same_thread": False}
else:
    connect_args = {}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=connect_args
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
    # Register models on Base.metadata before creating tables
    import models.cache_entry  # noqa: F401
    import models.log  # noqa: F401

    Base.metadata.create_all(bind=engine)
