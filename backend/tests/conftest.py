import os, sys, pytest
# Ensure the backend directory is on path so 'shopadmin' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from shopadmin import create_app, get_db
from shopadmin.models.authz import Base

TEST_CONFIG = {
    'TESTING': True,
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'JWT_SECRET_KEY': 'test-secret-key-long-enough-for-hs256-signing',
    'LOW_STOCK_THRESHOLD': 10,
}


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app(TEST_CONFIG)
    # create_app registers every model module, so create_all sees all tables
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def headers_for(app_instance):
    """Factory: headers_for('ADMIN') -> Authorization header for a seeded user of that role."""
    from tests.test_lifecycle_helpers import jwt_headers
    from tests.test_utils_seed import ensure_user

    def make(role: str, email: str = None):
        user = ensure_user(email or f"{role.lower()}@example.com", role=role)
        return jwt_headers(app_instance, user)
    return make
