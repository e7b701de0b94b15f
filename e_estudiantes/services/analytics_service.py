"""Analytics event sanitization, persistence and per-user study statistics."""

import math
from datetime import datetime, timedelta, timezone

from e_estudiantes.repositories import analytics_repo


WEEKLY_SESSION_GOAL = 5
NO_SUBJECT_DATA = 'Sin datos'
UNCATEGORIZED_SUBJECT = 'Sin categoría'


def sanitize_event_name(raw_name, *, name_re, allowed_events):
    name = str(raw_name or '').strip().lower()
    if not name_re.match(name):
        return ''
    return name if name in allowed_events else ''


def sanitize_session_id(raw_session_id, *, session_id_re):
    session_id = str(raw_session_id or '').strip()
    return session_id if session_id_re.match(session_id) else ''


def sanitize_properties(raw_props, *, name_re):
    if not isinstance(raw_props, dict):
        return {}
    cleaned = {}
    for raw_key, raw_value in raw_props.items():
        key = str(raw_key or '').strip().lower().replace('-', '_').replace(' ', '_')
        if not key or not name_re.match(key):
            continue
        if isinstance(raw_value, bool):
            cleaned[key] = raw_value
        elif isinstance(raw_value, (int, float)):
            cleaned[key] = round(float(raw_value), 4)
        elif isinstance(raw_value, str):
            cleaned[key] = raw_value.strip()[:200]
    return cleaned


def log_analytics_event(
    event_name,
    source='frontend',
    uid='',
    session_id='',
    properties=None,
    created_at=None,
    *,
    db,
    name_re,
    session_id_re,
    allowed_events,
    logger,
    time_module,
):
    """Store one analytics event. Returns False instead of raising on any failure."""
    safe_name = sanitize_event_name(event_name, name_re=name_re, allowed_events=allowed_events)
    if not safe_name or db is None:
        return False
    safe_source = str(source or 'frontend').strip().lower()[:16]
    payload = {
        'event': safe_name,
        'source': safe_source if safe_source in {'frontend', 'backend'} else 'frontend',
        'uid': str(uid or '')[:128],
        'session_id': sanitize_session_id(session_id, session_id_re=session_id_re),
        'properties': sanitize_properties(properties or {}, name_re=name_re),
        'created_at': created_at if isinstance(created_at, (int, float)) else time_module.time(),
    }
    try:
        analytics_repo.add_event(db, payload)
        return True
    except Exception as exc:
        if logger is not None:
            logger.info(f"Could not store analytics event {safe_name}: {exc}")
        return False


def week_start_ts(now_ts):
    """Sunday 00:00 UTC of the week containing ``now_ts``."""
    now = datetime.fromtimestamp(now_ts, tz=timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    days_since_sunday = (midnight.weekday() + 1) % 7
    return (midnight - timedelta(days=days_since_sunday)).timestamp()


def _as_float(value):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def favorite_subject(notes):
    counts = {}
    for note in notes:
        subject = note.get('subject') or UNCATEGORIZED_SUBJECT
        counts[subject] = counts.get(subject, 0) + 1
    best, best_count = NO_SUBJECT_DATA, -1
    for subject, count in counts.items():
        # ties go to the subject seen last
        if count >= best_count:
            best, best_count = subject, count
    return best


def compute_user_stats(notes, completed_sessions, user_data, download_events, now_ts):
    start_of_week = week_start_ts(now_ts)
    total_ms = 0.0
    sessions_this_week = 0
    for session in completed_sessions:
        start = _as_float(session.get('start_time'))
        end = _as_float(session.get('end_time'))
        if start is not None and end is not None:
            total_ms += (end - start) * 1000
        created_at = _as_float(session.get('created_at'))
        if created_at is None or created_at >= start_of_week:
            sessions_this_week += 1

    rated = [note for note in notes if int(note.get('rating_count', 0) or 0) > 0]
    average_rating = (
        round(sum(float(note.get('rating', 0) or 0) for note in rated) / len(rated), 2) if rated else 0
    )
    stats = (user_data or {}).get('stats') or {}
    return {
        'total_study_time': int(total_ms // (1000 * 60)),
        'sessions_this_week': sessions_this_week,
        'notes_uploaded': len(notes),
        'notes_downloaded': len(download_events),
        'average_rating': average_rating,
        'study_streak': int(stats.get('study_streak', 0) or 0),
        'total_sessions': len(completed_sessions),
        'favorite_subject': favorite_subject(notes),
        'weekly_goal_progress': min(sessions_this_week / WEEKLY_SESSION_GOAL * 100, 100),
    }
