from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()
engine = None
SessionLocal = None

def make_engine(database_url: str):
    # sqlite is only used for local runs and tests; keep one shared connection for :memory:
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(database_url)

def init_db(database_url: str):
    global engine, SessionLocal
    if engine is None:
        engine = make_engine(database_url)
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        # create tables
        from painel import models
        Base.metadata.create_all(bind=engine)
    return SessionLocal
