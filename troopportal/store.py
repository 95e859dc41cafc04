"""Single-document persistence for the portal.

The entire application state is serialized to one JSON document and kept in
one `storage_entries` row. Loading never fails: anything unreadable is treated
as an empty portal. Saving is optimistic: a state can only be written back
over the version it was loaded from.
"""
import logging

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from database import db
from helpers import today
from models import StorageEntry
from portal import PortalError
from records import AsmDetails, CommitteeDetails, Event, MbcDetails, PortalState, User

logger = logging.getLogger(__name__)

STORAGE_KEY = 'scout-portal-data-v1'


class StaleStateError(PortalError):
    """The stored document changed after this state was loaded."""

    def __init__(self, message='The portal was changed by someone else. Please try again.'):
        super().__init__(message)


class Store:
    def __init__(self, key=STORAGE_KEY):
        self.key = key

    def load(self):
        try:
            entry = db.session.get(StorageEntry, self.key, populate_existing=True)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning('Could not read stored state %r: %s', self.key, e)
            return PortalState()
        if entry is None:
            return PortalState()
        try:
            state = PortalState.from_json(entry.value)
        except ValidationError as e:
            logger.warning('Stored state %r is unreadable, starting empty: %s',
                           self.key, e.error_count())
            # keep the version so the empty state may replace the bad document
            state = PortalState()
        state._version = entry.version
        return state

    def save(self, state):
        """Write state back. Raises StaleStateError if another writer got there first."""
        entry = db.session.get(StorageEntry, self.key, populate_existing=True)
        if entry is None:
            entry = StorageEntry(key=self.key, value=state.to_json())
            db.session.add(entry)
        elif entry.version != state.version:
            db.session.rollback()
            logger.info('Refused to save %r: loaded v%s, stored v%s',
                        self.key, state.version, entry.version)
            raise StaleStateError()
        else:
            entry.value = state.to_json()
        try:
            db.session.flush()
            version = entry.version
            db.session.commit()
        except (StaleDataError, IntegrityError) as e:
            # another writer committed between our read and our write
            db.session.rollback()
            logger.info('Concurrent write to %r: %s', self.key, e)
            raise StaleStateError() from e
        except SQLAlchemyError:
            db.session.rollback()
            raise
        state._version = version

    def ensure_seed(self, state):
        """Fill an empty portal with the default troop. Returns True if seeded."""
        seeded = False
        if not state.users:
            users, events = seed_records()
            state.users = users
            state.events = events
            state.current_user_id = users[0].id
            seeded = True
            logger.info('Seeded portal with %d users and %d events', len(users), len(events))
        known = {u.id for u in state.users}
        if state.current_user_id not in known:
            state.current_user_id = state.users[0].id
        self.save(state)
        return seeded


def seed_records():
    users = [
        User(name='Alex Scout', email='alex@troop.org', role='scout',
             medical_valid_until=today(365)),
        User(name='Jamie Scout', email='jamie@troop.org', role='scout',
             medical_valid_until=today(200)),
        User(name='Casey ASM', email='casey@troop.org', role='asm',
             details=AsmDetails(patrols=['Bears', 'Wolves']),
             medical_valid_until=today(400), training={'YPT': 'Complete'}),
        User(name='Riley Committee', email='riley@troop.org', role='committee',
             details=CommitteeDetails(position='Treasurer'),
             medical_valid_until=today(500), training={'YPT': 'Complete'}),
        User(name='Morgan MBC', email='morgan@troop.org', role='mbc',
             details=MbcDetails(merit_badges=['Camping', 'First Aid']),
             medical_valid_until=today(500), training={'YPT': 'Complete'}),
    ]
    events = [
        Event(name='Fall Campout', from_date=today(30), to_date=today(32),
              close_date=today(25), location='Camp Pine', scout_in_charge='Alex Scout',
              logistics='Bring tents, water, mess kit', signup_limit=40,
              approved=True, created_by=users[2].id),
        Event(name='Service Project', from_date=today(10), to_date=today(10),
              close_date=today(8), location='City Park', scout_in_charge='Jamie Scout',
              logistics='Work gloves, water bottle', signup_limit=25,
              approved=True, created_by=users[3].id),
        Event(name='PLC Meeting', from_date=today(5), to_date=today(5),
              close_date=today(4), location='Scout Hut', scout_in_charge='SPL',
              logistics='Notebook and pen', signup_limit=20,
              approved=False, created_by=users[2].id),
    ]
    return users, events
