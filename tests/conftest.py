import os

import pytest

os.environ.setdefault('TROOPPORTAL_DATABASE_URI', 'sqlite://')

from app import app as flask_app  # noqa: E402
from database import db  # noqa: E402
from helpers import today  # noqa: E402
from records import Event, PortalState, User  # noqa: E402
from store import Store  # noqa: E402


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True)
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return Store()


@pytest.fixture
def seeded(store):
    state = PortalState()
    store.ensure_seed(state)
    return state


@pytest.fixture
def state():
    """An in-memory portal with one scout, one ASM and no events."""
    scout = User(name='Alex Scout', email='alex@troop.org', role='scout')
    leader = User(name='Casey ASM', email='casey@troop.org', role='asm',
                  details={'patrols': ['Bears']})
    return PortalState(users=[scout, leader], current_user_id=scout.id)


@pytest.fixture
def make_event():
    def make(**overrides):
        fields = dict(name='Campout', from_date=today(10), to_date=today(12),
                      close_date=today(8), approved=True)
        fields.update(overrides)
        return Event(**fields)
    return make
