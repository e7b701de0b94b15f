"""Advanced search over already-fetched note records.

Notes are plain dicts as stored in Firestore. Every function here is pure:
callers fetch the candidate notes, these helpers filter, sort and summarize.
"""

import math
import unicodedata
from datetime import datetime, timezone

SORT_OPTIONS = ('recent', 'popular', 'rating', 'title')


def _lower(value):
    return str(value or '').lower()


def _number(value, default=0):
    return value if isinstance(value, (int, float)) and not isinstance(value, bool) else default


def _title_key(value):
    folded = unicodedata.normalize('NFKD', str(value or ''))
    return ''.join(char for char in folded if not unicodedata.combining(char)).casefold()


def note_matches_term(note, search_term):
    term = _lower(search_term).strip()
    if not term:
        return True
    if term in _lower(note.get('title')):
        return True
    if term in _lower(note.get('description')):
        return True
    if any(term in _lower(tag) for tag in note.get('tags') or []):
        return True
    return any(term in _lower(note.get(field)) for field in ('subject', 'career', 'university'))


def filter_notes(notes, search_term='', filters=None):
    filters = filters or {}
    filtered = [note for note in notes if note_matches_term(note, search_term)]

    for field in ('subject', 'university', 'career'):
        wanted = _lower(filters.get(field)).strip()
        if wanted:
            filtered = [note for note in filtered if wanted in _lower(note.get(field))]

    year = filters.get('year')
    if year:
        filtered = [note for note in filtered if note.get('year') == year]

    file_type = _lower(filters.get('file_type')).strip()
    if file_type:
        filtered = [note for note in filtered if _lower(note.get('file_type')) == file_type]

    min_rating = filters.get('rating')
    if min_rating:
        filtered = [note for note in filtered if _number(note.get('rating')) >= min_rating]

    uploaded_by = str(filters.get('uploaded_by') or '').strip()
    if uploaded_by:
        filtered = [note for note in filtered if note.get('uploaded_by') == uploaded_by]

    date_range = filters.get('date_range') or {}
    start = date_range.get('start')
    end = date_range.get('end')
    if start is not None or end is not None:
        kept = []
        for note in filtered:
            uploaded_at = _number(note.get('uploaded_at'))
            if start is not None and uploaded_at < start:
                continue
            if end is not None and uploaded_at > end:
                continue
            kept.append(note)
        filtered = kept

    return filtered


def sort_notes(notes, sort_by='recent'):
    if sort_by == 'title':
        return sorted(notes, key=lambda note: _title_key(note.get('title')))
    if sort_by == 'popular':
        return sorted(notes, key=lambda note: _number(note.get('downloads')), reverse=True)
    if sort_by == 'rating':
        return sorted(
            notes,
            key=lambda note: (_number(note.get('rating')), _number(note.get('rating_count'))),
            reverse=True,
        )
    return sorted(notes, key=lambda note: _number(note.get('uploaded_at')), reverse=True)


def search_notes(notes, search_term='', filters=None, sort_by='recent'):
    return sort_notes(filter_notes(notes, search_term, filters), sort_by)


def search_stats(filtered_notes, all_notes):
    total = len(filtered_notes)
    ratings = [_number(note.get('rating')) for note in filtered_notes]
    file_types = []
    for note in filtered_notes:
        file_type = note.get('file_type', '')
        if file_type not in file_types:
            file_types.append(file_type)
    return {
        'total_results': total,
        'total_notes': len(all_notes),
        'average_rating': (sum(ratings) / total) if total else 0,
        'total_downloads': sum(_number(note.get('downloads')) for note in filtered_notes),
        'unique_subjects': len({note.get('subject', '') for note in filtered_notes}),
        'file_types': file_types,
    }


def suggestions(notes, search_term, limit=5):
    term = _lower(search_term).strip()
    if len(term) < 2:
        return []
    found = []

    def _add(value):
        if value and value not in found:
            found.append(value)

    for note in notes:
        subject = note.get('subject', '')
        if term in _lower(subject):
            _add(subject)
        for tag in note.get('tags') or []:
            if term in _lower(tag):
                _add(tag)
        university = note.get('university', '')
        if term in _lower(university):
            _add(university)
    return found[:limit]


def filter_options(notes):
    return {
        'subjects': sorted({note.get('subject') for note in notes if note.get('subject')}),
        'universities': sorted({note.get('university') for note in notes if note.get('university')}),
    }


def _parse_positive_int(raw_value):
    try:
        value = int(str(raw_value).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _parse_float(raw_value):
    try:
        value = float(str(raw_value).strip())
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def parse_date_bound(raw_value):
    raw = str(raw_value or '').strip()
    if not raw:
        return None
    number = _parse_float(raw)
    if number is not None:
        return number
    try:
        parsed = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def parse_search_args(args):
    """Turn request query args into (search_term, filters, sort_by).

    Unparseable numbers are dropped instead of rejected.
    """
    search_term = str(args.get('q', '') or '').strip()[:200]
    filters = {}
    for field in ('subject', 'university', 'career', 'file_type', 'uploaded_by'):
        value = str(args.get(field, '') or '').strip()[:120]
        if value:
            filters[field] = value
    year = _parse_positive_int(args.get('year'))
    if year:
        filters['year'] = year
    rating = _parse_float(args.get('rating'))
    if rating is not None and rating > 0:
        filters['rating'] = rating
    start = parse_date_bound(args.get('start'))
    end = parse_date_bound(args.get('end'))
    if start is not None or end is not None:
        filters['date_range'] = {'start': start, 'end': end}
    sort_by = str(args.get('sort', 'recent') or 'recent').strip().lower()
    if sort_by not in SORT_OPTIONS:
        sort_by = 'recent'
    return search_term, filters, sort_by
