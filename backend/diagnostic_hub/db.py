from __future__ import annotations
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./diagnostic_hub.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def enable_sqlite_foreign_keys(target_engine) -> None:
	# SQLite ignores REFERENCES clauses unless asked on every connection
	if target_engine.dialect.name != "sqlite":
		return

	@event.listens_for(target_engine, "connect")
	def _set_pragma(dbapi_connection, connection_record):
		cursor = dbapi_connection.cursor()
		cursor.execute("PRAGMA foreign_keys=ON")
		cursor.close()


enable_sqlite_foreign_keys(engine)


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()
