from flask import Flask
from werkzeug.exceptions import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

db_engine = None
SessionLocal = None
document_store = None


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal, document_store
    app = Flask(__name__)

    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['DOCUMENT_STORE'] = os.getenv('DOCUMENT_STORE', 'sql')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    logging.basicConfig(level=app.config['LOG_LEVEL'])
    logging.getLogger('marketplace').setLevel(app.config['LOG_LEVEL'])

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    from .services.document_store import InMemoryDocumentStore, SqlDocumentStore
    store_kind = app.config['DOCUMENT_STORE']
    if store_kind == 'memory':
        document_store = InMemoryDocumentStore()
    elif store_kind == 'sql':
        document_store = SqlDocumentStore(get_db)
    else:
        raise ValueError(f'Unknown DOCUMENT_STORE {store_kind!r}')
    app.logger.info('document store: %s', store_kind)

    from .routes.orders import orders_bp
    app.register_blueprint(orders_bp)

    @app.teardown_appcontext
    def remove_session(exc=None):
        SessionLocal.remove()

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    from .utils.exceptions import ServiceError

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            return payload, e.code
        if isinstance(e, ServiceError):
            if e.status >= 500:
                app.logger.error('%s: %s', e.code, e.message)
            return {
                'error': {
                    'status': e.status,
                    'title': e.title,
                    'code': e.code,
                    'detail': e.message,
                }
            }, e.status
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    return app


def get_db():
    return SessionLocal()


def get_store():
    return document_store
