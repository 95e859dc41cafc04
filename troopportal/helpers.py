"""Identifier and calendar-date helpers shared by the store and the portal."""
import random
import string
import time
from datetime import date, datetime, timedelta

_ALPHABET = string.digits + string.ascii_lowercase


def _base36(n):
    if n == 0:
        return '0'
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_ALPHABET[rem])
    return ''.join(reversed(out))


def new_id():
    """Opaque unique id: a random part followed by the current time in ms."""
    return _base36(random.getrandbits(52)) + _base36(int(time.time() * 1000))


def today(offset_days=0):
    return date.today() + timedelta(days=offset_days)


def as_date(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def is_past(value):
    """True if the date is strictly before today. Time of day is ignored."""
    d = as_date(value)
    if d is None:
        return False
    return d < date.today()


def overlaps(a_from, a_to, b_from, b_to):
    a1, a2 = as_date(a_from), as_date(a_to or a_from)
    b1, b2 = as_date(b_from), as_date(b_to or b_from)
    return a1 <= b2 and b1 <= a2


def fmt_date(value):
    d = as_date(value)
    if d is None:
        return ''
    return d.isoformat()


def parse_date(text):
    """Parse a YYYY-MM-DD form value. Blank or malformed input gives None."""
    text = (text or '').strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None
