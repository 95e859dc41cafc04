"""Domain operations over a PortalState.

Every function receives the state it works on; persisting the result is the
caller's job. Business-rule violations raise a PortalError and leave the state
untouched.
"""
import logging
from datetime import datetime, timezone

from helpers import is_past, overlaps, parse_date, today
from records import (
    APPROVER_ROLES, SMC_BOR_TYPES, AdultSignup, Event, Registration, SmcBorRequest,
)

logger = logging.getLogger(__name__)

UNKNOWN_NAME = 'Unknown'
NOT_REGISTERED = 'not-registered'
REGISTERED = 'registered'


class PortalError(Exception):
    """A user action that the portal refuses."""


class SignupLimitReached(PortalError):
    pass


class RegistrationClosed(PortalError):
    pass


class UnknownRecord(PortalError):
    pass


class NotPermitted(PortalError):
    pass


class InvalidInput(PortalError):
    pass


def _now():
    return datetime.now(timezone.utc)


# --- Lookups ---

def find_user(state, user_id):
    return next((u for u in state.users if u.id == user_id), None)


def find_event(state, event_id):
    return next((e for e in state.events if e.id == event_id), None)


def current_user(state):
    user = find_user(state, state.current_user_id)
    if user is None and state.users:
        user = state.users[0]
    return user


def set_current_user(state, user_id):
    user = find_user(state, user_id)
    if user is None:
        raise UnknownRecord('Unknown user.')
    state.current_user_id = user.id
    return user


def user_name(state, user_id):
    user = find_user(state, user_id)
    return user.name if user else UNKNOWN_NAME


# --- Registration engine ---

def registration_status(state, event_id, user_id):
    """Return (status, record). Only the newest record for the pair counts."""
    last = None
    for reg in state.registrations:
        if reg.event_id == event_id and reg.user_id == user_id:
            last = reg
    if last is None or last.cancelled:
        return NOT_REGISTERED, None
    return REGISTERED, last


def active_count(state, event_id):
    return sum(1 for r in state.registrations if r.event_id == event_id and not r.cancelled)


def can_modify(event):
    return not is_past(event.close_date)


def register(state, event, user_id):
    if not can_modify(event):
        raise RegistrationClosed('Registration for this event is closed.')
    if event.signup_limit and active_count(state, event.id) >= event.signup_limit:
        raise SignupLimitReached('Signup limit reached for this event.')
    # A repeat registration appends another record; status still follows the newest one.
    reg = Registration(event_id=event.id, user_id=user_id, date=_now())
    state.registrations.append(reg)
    logger.info('User %s registered for event %s', user_id, event.id)
    return reg


def unregister(state, event, user_id):
    if not can_modify(event):
        raise RegistrationClosed('Registration for this event is closed.')
    status, record = registration_status(state, event.id, user_id)
    if status != REGISTERED:
        return None
    record.cancelled = True
    record.cancelled_date = _now()
    logger.info('User %s unregistered from event %s', user_id, event.id)
    return record


# --- Events ---

def parse_signup_limit(value):
    try:
        limit = int(str(value or '').strip())
    except ValueError:
        return None
    return limit if limit > 0 else None


def conflicting_events(state, from_date, to_date):
    return [e for e in state.events if overlaps(e.from_date, e.to_date, from_date, to_date)]


def submit_event(state, creator_id, name='', from_date=None, to_date=None, close_date=None,
                 location='', scout_in_charge='', logistics='', signup_limit=None):
    """Create an unapproved event. Returns (event, conflicts); conflicts never block."""
    from_date = parse_date(from_date) if isinstance(from_date, str) else from_date
    to_date = parse_date(to_date) if isinstance(to_date, str) else to_date
    close_date = parse_date(close_date) if isinstance(close_date, str) else close_date
    if from_date is None:
        raise InvalidInput('A from date is required.')
    event = Event(
        name=(name or '').strip() or 'Untitled',
        from_date=from_date,
        to_date=to_date or from_date,
        close_date=close_date or from_date,
        location=(location or '').strip(),
        scout_in_charge=(scout_in_charge or '').strip(),
        logistics=(logistics or '').strip(),
        signup_limit=parse_signup_limit(signup_limit),
        approved=False,
        created_by=creator_id,
    )
    conflicts = conflicting_events(state, event.from_date, event.to_date)
    state.events.append(event)
    logger.info('Event %s submitted by %s (%d conflicts)', event.id, creator_id, len(conflicts))
    return event, conflicts


def can_approve(user):
    return user is not None and user.role in APPROVER_ROLES


def set_approval(state, event, approved, user=None):
    if user is not None and not can_approve(user):
        raise NotPermitted('Only adult leaders can approve events.')
    event.approved = bool(approved)
    logger.info('Event %s approved=%s', event.id, event.approved)
    return event


def upcoming_events(state):
    return sorted((e for e in state.events if not is_past(e.to_date)), key=lambda e: e.from_date)


def historical_events(state):
    return sorted((e for e in state.events if is_past(e.to_date)),
                  key=lambda e: e.to_date, reverse=True)


def dashboard_events(state):
    return [e for e in upcoming_events(state) if e.approved]


def pending_events(state):
    return [e for e in state.events if not e.approved]


# --- SMC/BOR and adult signups ---

def submit_smc_bor(state, user_id, request_type, date):
    if request_type not in SMC_BOR_TYPES:
        raise InvalidInput('Request type must be SMC or BOR.')
    when = parse_date(date) if isinstance(date, str) else date
    if when is None:
        raise InvalidInput('A preferred date is required.')
    request = SmcBorRequest(user_id=user_id, type=request_type, date=when, created_at=_now())
    state.smcbor.append(request)
    logger.info('%s request %s submitted by %s', request_type, request.id, user_id)
    return request


def add_adult_signup(state, user_id, role='', date=None):
    when = parse_date(date) if isinstance(date, str) else date
    signup = AdultSignup(user_id=user_id, role=(role or '').strip() or 'Volunteer',
                         date=when or today())
    state.adult_leader_signups.append(signup)
    logger.info('Adult signup %s added for %s', signup.id, user_id)
    return signup


def smc_bor_entries(state, user_id=None, upcoming_only=False):
    entries = [s for s in state.smcbor if user_id is None or s.user_id == user_id]
    if upcoming_only:
        entries = [s for s in entries if not is_past(s.date)]
    return sorted(entries, key=lambda s: s.date)


def adult_signups(state, upcoming_only=False):
    entries = state.adult_leader_signups
    if upcoming_only:
        entries = [s for s in entries if not is_past(s.date)]
    return sorted(entries, key=lambda s: s.date)


# --- Admin record maintenance ---

def set_medical_valid_until(state, user_id, valid_until):
    user = find_user(state, user_id)
    if user is None:
        raise UnknownRecord('Unknown user.')
    user.medical_valid_until = parse_date(valid_until) if isinstance(valid_until, str) else valid_until
    logger.info('Medical record for %s set to %s', user_id, user.medical_valid_until)
    return user


def upsert_training(state, user_id, course, status=''):
    user = find_user(state, user_id)
    if user is None:
        raise UnknownRecord('Unknown user.')
    course = (course or '').strip()
    if course:
        user.training[course] = (status or '').strip() or 'Complete'
        logger.info('Training %r for %s set to %r', course, user_id, user.training[course])
    return user


def medical_status(user):
    """Return (is_valid, display). Valid through the stored date inclusive."""
    if user is None or user.medical_valid_until is None:
        return False, 'Not set'
    return not is_past(user.medical_valid_until), user.medical_valid_until.isoformat()
