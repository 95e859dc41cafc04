"""Read-only projections of the portal state, one per screen.

Each function returns a plain dict for its template and never mutates state.
"""
from helpers import fmt_date, today
from portal import (
    REGISTERED, adult_signups, can_approve, can_modify, current_user, dashboard_events,
    historical_events, medical_status, pending_events, registration_status, smc_bor_entries,
    upcoming_events, user_name,
)

HISTORY_KEYS = ('smcbor', 'adultLeaderSignups')


def sidebar_view(state):
    user = current_user(state)
    valid, shown = medical_status(user)
    return {
        'user': user,
        'users': state.users,
        'current_user_id': user.id if user else None,
        'medical_ok': valid,
        'medical_text': f'Valid up to {shown}' if valid else f'Invalid (was {shown})',
        'training': list((user.training if user else {}).items()),
    }


def _event_dates(event):
    return {
        'event': event,
        'from_date': fmt_date(event.from_date),
        'to_date': fmt_date(event.to_date),
        'close_date': fmt_date(event.close_date),
    }


def _event_row(state, event, user_id):
    status, _ = registration_status(state, event.id, user_id)
    row = _event_dates(event)
    row.update(registered=status == REGISTERED, can_modify=can_modify(event))
    return row


def _smc_bor_line(state, entry, with_user=False):
    when = fmt_date(entry.date)
    if with_user:
        return f'{entry.type} on {when} - {user_name(state, entry.user_id)} ({entry.status or "pending"})'
    return f'{entry.type} on {when} - {entry.status or "pending"}'


def _adult_signup_line(state, signup):
    return f'{fmt_date(signup.date)} - {user_name(state, signup.user_id)} ({signup.role})'


def _adult_signup_history_line(state, signup):
    return f'{user_name(state, signup.user_id)} - {signup.role or "Volunteer"} ({fmt_date(signup.date)})'


def dashboard_view(state):
    user = current_user(state)
    user_id = user.id if user else None
    return {
        'events': [_event_row(state, e, user_id) for e in dashboard_events(state)],
        'smcbor': [_smc_bor_line(state, s)
                   for s in smc_bor_entries(state, user_id, upcoming_only=True)],
        'adult_signups': [_adult_signup_line(state, s)
                          for s in adult_signups(state, upcoming_only=True)],
        'signup_date': fmt_date(today()),
    }


def events_view(state):
    user = current_user(state)
    return {
        'upcoming': [_event_dates(e) for e in upcoming_events(state)],
        'historical': [_event_dates(e) for e in historical_events(state)],
        'defaults': {
            'from_date': fmt_date(today(14)),
            'to_date': fmt_date(today(16)),
            'close_date': fmt_date(today(10)),
        },
        'can_approve': can_approve(user),
        'pending': pending_events(state),
    }


def smc_bor_view(state):
    user = current_user(state)
    return {
        'types': ('SMC', 'BOR'),
        'default_date': fmt_date(today(7)),
        'upcoming': [_smc_bor_line(state, s)
                     for s in smc_bor_entries(state, user.id if user else None, upcoming_only=True)],
    }


def adult_details(user):
    details = user.details
    if user.role == 'committee':
        return f'Position: {details.position}' if details.position else ''
    if user.role == 'asm':
        return f'Patrols: {", ".join(details.patrols)}' if details.patrols else ''
    if user.role == 'mbc':
        return f'Merit Badges: {", ".join(details.merit_badges)}' if details.merit_badges else ''
    return ''


def adults_view(state):
    return {
        'adults': [
            {'name': u.name, 'email': u.email, 'role': u.role.upper(), 'details': adult_details(u)}
            for u in state.users if u.is_adult
        ],
    }


def admin_view(state):
    user = current_user(state)
    return {
        'users': state.users,
        'can_approve': can_approve(user),
        'pending': pending_events(state),
    }


def resources_view(state):
    return {}


def history_view(state, key):
    if key == 'smcbor':
        lines = [_smc_bor_line(state, s, with_user=True) for s in smc_bor_entries(state)]
    elif key == 'adultLeaderSignups':
        lines = [_adult_signup_history_line(state, s) for s in adult_signups(state)]
    else:
        raise KeyError(key)
    return {'key': key, 'lines': lines}
