"""Database configuration and initialization."""
from flask import current_app
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()


def build_engine(database_uri, echo=False, pool_size=10, max_overflow=20, connect_timeout=10):
    """Create an engine for ``database_uri``.

    SQLite (used by the test suite) gets a single shared connection so an
    in-memory database survives across sessions.
    """
    url = make_url(database_uri)

    if url.get_backend_name() == 'sqlite':
        return create_engine(
            url,
            echo=echo,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
        )

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,  # Enable connection health checks
        pool_size=pool_size,
        max_overflow=max_overflow,
        connect_args={'connect_timeout': connect_timeout},
    )


def init_db(app):
    """Initialize database connection for ``app``.

    The engine and the request-scoped session registry are owned by the
    application (``app.extensions``) rather than module globals.
    """
    engine = build_engine(
        app.config['SQLALCHEMY_DATABASE_URI'],
        echo=app.config.get('SQLALCHEMY_ECHO', False),
        pool_size=app.config.get('DB_POOL_SIZE', 10),
        max_overflow=app.config.get('DB_MAX_OVERFLOW', 20),
        connect_timeout=app.config.get('DB_CONNECT_TIMEOUT', 10),
    )

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    app.extensions['db_engine'] = engine
    app.extensions['db_session'] = db_session

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_tables(app):
    """Create all tables for the registered models."""
    import storefront.models  # noqa: F401  (register mappers)
    Base.metadata.create_all(bind=app.extensions['db_engine'])


def drop_tables(app):
    import storefront.models  # noqa: F401
    Base.metadata.drop_all(bind=app.extensions['db_engine'])


def get_session():
    """Get the database session of the current application."""
    return current_app.extensions['db_session']
