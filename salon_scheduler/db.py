# salon_scheduler/db.py

from sqlmodel import SQLModel, create_engine, Session

from salon_scheduler.config import settings

DATABASE_URL = settings.database_url

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False  # required for SQLite + FastAPI

engine = create_engine(
    DATABASE_URL,
    echo=False,
    connect_args=connect_args,
)


def init_db():
    # importing models registers the tables on SQLModel.metadata
    from salon_scheduler import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
