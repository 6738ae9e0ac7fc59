import os, sys, pytest
# Ensure backend directory is on path so 'marketplace' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from marketplace import create_app, get_db
from marketplace.models.document import Base
from marketplace.services.document_store import InMemoryDocumentStore
from marketplace.services.order_service import OrderService


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app({'DATABASE_URL': 'sqlite+pysqlite:///:memory:', 'DOCUMENT_STORE': 'sql', 'LOG_LEVEL': 'DEBUG'})
    # After app and blueprints are registered, ensure the documents table exists
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture()
def order_service(memory_store):
    return OrderService(memory_store)
