"""Validation and shaping helpers for notes, reviews and reports."""

MAX_TITLE_LEN = 200
MAX_DESCRIPTION_LEN = 2000
MAX_FIELD_LEN = 120
MAX_TAGS = 20
MAX_TAG_LEN = 40
MAX_COMMENT_LEN = 1000
MAX_REPORT_DESCRIPTION_LEN = 1000

EDITABLE_NOTE_FIELDS = ('title', 'description', 'subject', 'university', 'career', 'year', 'tags', 'is_public')

REPORT_ITEM_TYPES = {'note', 'review', 'user'}
REPORT_REASONS = {'inappropriate', 'spam', 'copyright', 'fake', 'other'}
REPORT_STATUSES = ('pending', 'reviewed', 'resolved', 'dismissed')
CLOSING_REPORT_STATUSES = {'resolved', 'dismissed'}


def parse_bool(value, default=False):
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    text = str(value).strip().lower()
    if text in {'1', 'true', 'yes', 'on'}:
        return True
    if text in {'0', 'false', 'no', 'off', ''}:
        return False
    return default


def parse_tags(raw_tags):
    """Accept a list or a comma separated string; trims, dedupes and caps."""
    if isinstance(raw_tags, str):
        raw_tags = raw_tags.split(',')
    if not isinstance(raw_tags, (list, tuple)):
        return []
    tags = []
    for raw in raw_tags:
        tag = str(raw or '').strip()[:MAX_TAG_LEN]
        if tag and tag not in tags:
            tags.append(tag)
        if len(tags) >= MAX_TAGS:
            break
    return tags


def parse_year(raw_year):
    if raw_year in (None, ''):
        return None
    if isinstance(raw_year, bool):
        raise ValueError('year must be a whole number')
    try:
        year = int(str(raw_year).strip())
    except (TypeError, ValueError):
        raise ValueError('year must be a whole number')
    if year < 1 or year > 12:
        raise ValueError('year must be between 1 and 12')
    return year


def category_for(is_public):
    return 'shared' if is_public else 'personal'


def clean_note_fields(payload, partial=False):
    """Return the sanitized editable fields of ``payload``; raises ValueError."""
    fields = {}
    if not partial or 'title' in payload:
        title = str(payload.get('title', '') or '').strip()[:MAX_TITLE_LEN]
        if not title:
            raise ValueError('Title is required')
        fields['title'] = title
    if not partial or 'description' in payload:
        fields['description'] = str(payload.get('description', '') or '').strip()[:MAX_DESCRIPTION_LEN]
    for key in ('subject', 'university', 'career'):
        if not partial or key in payload:
            fields[key] = str(payload.get(key, '') or '').strip()[:MAX_FIELD_LEN]
    if not partial or 'year' in payload:
        fields['year'] = parse_year(payload.get('year'))
    if not partial or 'tags' in payload:
        fields['tags'] = parse_tags(payload.get('tags'))
    if not partial or 'is_public' in payload:
        fields['is_public'] = parse_bool(payload.get('is_public'), default=False)
        fields['category'] = category_for(fields['is_public'])
    return fields


def build_note_doc(uid, fields, file_info, now_ts):
    doc = {
        'uploaded_by': uid,
        'uploaded_at': now_ts,
        'downloads': 0,
        'rating': 0,
        'rating_count': 0,
        'report_count': 0,
        'is_reported': False,
    }
    doc.update(fields)
    doc.update(file_info)
    return doc


def public_note(note_id, data):
    payload = dict(data)
    payload['id'] = note_id
    payload.pop('storage_path', None)
    return payload


def can_view_note(data, uid):
    return bool(data.get('is_public')) or data.get('uploaded_by') == uid


def next_rating(current_rating, rating_count, new_rating):
    """Running mean after one more review, rounded to two decimals."""
    count = max(0, int(rating_count or 0))
    total = float(current_rating or 0) * count + float(new_rating)
    return round(total / (count + 1), 2), count + 1


def parse_rating(raw_rating):
    if isinstance(raw_rating, bool):
        raise ValueError('Rating must be an integer between 1 and 5')
    try:
        rating = int(raw_rating)
    except (TypeError, ValueError):
        raise ValueError('Rating must be an integer between 1 and 5')
    if isinstance(raw_rating, float) and raw_rating != rating:
        raise ValueError('Rating must be an integer between 1 and 5')
    if rating < 1 or rating > 5:
        raise ValueError('Rating must be an integer between 1 and 5')
    return rating


def public_review(review_id, data):
    payload = dict(data)
    payload['id'] = review_id
    return payload
