"""Pomodoro phase bookkeeping.

The countdown itself runs on the client; the server only records which phase
a session is in and how many work cycles have been completed.
"""

PHASE_WORK = 'work'
PHASE_SHORT_BREAK = 'short_break'
PHASE_LONG_BREAK = 'long_break'
PHASES = (PHASE_WORK, PHASE_SHORT_BREAK, PHASE_LONG_BREAK)

STATUS_ACTIVE = 'active'
STATUS_PAUSED = 'paused'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'
OPEN_STATUSES = (STATUS_ACTIVE, STATUS_PAUSED)

DEFAULT_SETTINGS = {
    'duration': 25,
    'break_duration': 5,
    'long_break_duration': 15,
    'cycles_for_long_break': 4,
}
SETTING_BOUNDS = {
    'duration': (1, 180),
    'break_duration': (1, 60),
    'long_break_duration': (1, 120),
    'cycles_for_long_break': (1, 12),
}


def normalize_settings(raw):
    """Merge user-provided minutes into the defaults; raises ValueError on bad input."""
    raw = raw if isinstance(raw, dict) else {}
    settings = dict(DEFAULT_SETTINGS)
    for key, (minimum, maximum) in SETTING_BOUNDS.items():
        if raw.get(key) is None:
            continue
        value = raw.get(key)
        if isinstance(value, bool):
            raise ValueError(f'{key} must be a number')
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValueError(f'{key} must be a number')
        if number < minimum or number > maximum:
            raise ValueError(f'{key} must be between {minimum} and {maximum}')
        settings[key] = number
    return settings


def next_phase(phase, completed_cycles, cycles_for_long_break):
    """Return (next_phase, completed_cycles) after the current phase ends."""
    if phase == PHASE_WORK:
        completed_cycles = int(completed_cycles) + 1
        every = max(1, int(cycles_for_long_break))
        if completed_cycles % every == 0:
            return PHASE_LONG_BREAK, completed_cycles
        return PHASE_SHORT_BREAK, completed_cycles
    return PHASE_WORK, int(completed_cycles)


def phase_duration_seconds(settings, phase):
    if phase == PHASE_SHORT_BREAK:
        minutes = settings.get('break_duration', DEFAULT_SETTINGS['break_duration'])
    elif phase == PHASE_LONG_BREAK:
        minutes = settings.get('long_break_duration', DEFAULT_SETTINGS['long_break_duration'])
    else:
        minutes = settings.get('duration', DEFAULT_SETTINGS['duration'])
    return int(minutes) * 60


def build_pomodoro_doc(uid, settings, now_ts):
    doc = {
        'user_id': uid,
        'completed_cycles': 0,
        'phase': PHASE_WORK,
        'phase_started_at': now_ts,
        'started_at': now_ts,
        'ended_at': None,
        'status': STATUS_ACTIVE,
        'remaining_seconds': None,
    }
    doc.update(settings)
    return doc


def public_pomodoro(pomodoro_id, data):
    payload = dict(data)
    payload['id'] = pomodoro_id
    payload['phase_duration_seconds'] = phase_duration_seconds(data, data.get('phase', PHASE_WORK))
    return payload
