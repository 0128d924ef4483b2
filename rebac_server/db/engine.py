# (c) Copyright Datacraft, 2026
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker


def make_engine(db_url: str) -> Engine:
    connect_args = {}
    if db_url.startswith("sqlite"):
        # sessions are handed to worker threads
        connect_args["check_same_thread"] = False
    return create_engine(db_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(engine, expire_on_commit=False)
