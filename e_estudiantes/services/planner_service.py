"""Validation for calendar study sessions and subjects."""

from e_estudiantes.services.search_service import parse_date_bound

SESSION_TYPES = {'study', 'exam', 'assignment', 'reminder'}
SESSION_STATUSES = {'pending', 'completed', 'cancelled'}
MAX_SESSION_TITLE_LEN = 200
MAX_SESSION_DESCRIPTION_LEN = 2000
MAX_SUBJECT_NAME_LEN = 120
MAX_PINNED_FILES = 50


def parse_timestamp(raw_value, field_name):
    if isinstance(raw_value, bool):
        raise ValueError(f'{field_name} must be an ISO-8601 date or epoch seconds')
    value = parse_date_bound(raw_value)
    if value is None:
        raise ValueError(f'{field_name} must be an ISO-8601 date or epoch seconds')
    return value


def clean_session_fields(payload, existing=None):
    """Validate a create (``existing`` is None) or patch payload.

    Returns the fields to write; raises ValueError with a client-facing message.
    """
    partial = existing is not None
    fields = {}
    if not partial or 'title' in payload:
        title = str(payload.get('title', '') or '').strip()[:MAX_SESSION_TITLE_LEN]
        if not title:
            raise ValueError('Title is required')
        fields['title'] = title
    if not partial or 'description' in payload:
        fields['description'] = str(payload.get('description', '') or '').strip()[:MAX_SESSION_DESCRIPTION_LEN]
    if not partial or 'start_time' in payload:
        fields['start_time'] = parse_timestamp(payload.get('start_time'), 'start_time')
    if not partial or 'end_time' in payload:
        fields['end_time'] = parse_timestamp(payload.get('end_time'), 'end_time')
    if not partial or 'type' in payload:
        session_type = str(payload.get('type', 'study') or 'study').strip().lower()
        if session_type not in SESSION_TYPES:
            raise ValueError('Invalid session type')
        fields['type'] = session_type
    if not partial or 'status' in payload:
        status = str(payload.get('status', 'pending') or 'pending').strip().lower()
        if status not in SESSION_STATUSES:
            raise ValueError('Invalid session status')
        fields['status'] = status
    if not partial or 'tags' in payload:
        tags = payload.get('tags') or []
        if isinstance(tags, str):
            tags = tags.split(',')
        if not isinstance(tags, list):
            raise ValueError('tags must be a list')
        fields['tags'] = [str(tag).strip()[:40] for tag in tags if str(tag).strip()][:20]

    start_time = fields.get('start_time', (existing or {}).get('start_time'))
    end_time = fields.get('end_time', (existing or {}).get('end_time'))
    if start_time is not None and end_time is not None and end_time <= start_time:
        raise ValueError('end_time must be after start_time')
    return fields


def clean_subject_name(raw_name):
    name = str(raw_name or '').strip()
    if not name:
        raise ValueError('Subject name is required')
    if len(name) > MAX_SUBJECT_NAME_LEN:
        raise ValueError(f'Subject name must be at most {MAX_SUBJECT_NAME_LEN} characters')
    return name


def in_window(session, start, end):
    start_time = session.get('start_time')
    if not isinstance(start_time, (int, float)):
        return start is None and end is None
    if start is not None and start_time < start:
        return False
    if end is not None and start_time > end:
        return False
    return True
