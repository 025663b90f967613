from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from catalog_sync.config.database_settings import DatabaseSettings


class DatabaseManager:
    """
    Owns the process-wide engine and its bounded connection pool.

    The admin API keeps one instance on app state; the CLI builds one per run.
    """

    def __init__(self, config: DatabaseSettings):

        url = config.url
        kwargs = {"pool_pre_ping": True}
        if make_url(url).get_backend_name() != "sqlite":
            kwargs.update(
                pool_size=config.pool_size,
                max_overflow=0,
                pool_timeout=config.pool_timeout,
            )

        self.engine = create_engine(url, **kwargs)
        self.session_factory = sessionmaker(bind=self.engine)

    @contextmanager
    def get_session(self):

        session = self.session_factory()
        try:
            yield session
        except Exception as e:
            session.rollback()
            raise e
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
