"""Usage statistics and alerts for the admin monitoring views."""

import json
from collections import Counter

from e_estudiantes.repositories import admin_repo
from e_estudiantes.services.storage_service import format_file_size


RECENT_WINDOW_SECONDS = 7 * 24 * 60 * 60
MONITORED_COLLECTIONS = (
    'users',
    'notes',
    'study_sessions',
    'schemes',
    'reviews',
    'favorites',
    'analytics_events',
    'subjects',
)


def format_bytes(num_bytes):
    return format_file_size(num_bytes)


def _is_recent(value, cutoff):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > cutoff


def _top_counts(values, key_name, limit=10):
    counts = Counter(value for value in values if value)
    return [{key_name: value, 'count': count} for value, count in counts.most_common(limit)]


def compute_usage_stats(docs_by_collection, now_ts):
    """Aggregate collection snapshots (lists of dicts keyed by collection name)."""
    cutoff = now_ts - RECENT_WINDOW_SECONDS
    users = docs_by_collection.get('users', [])
    notes = docs_by_collection.get('notes', [])
    sessions = docs_by_collection.get('study_sessions', [])
    reviews = docs_by_collection.get('reviews', [])
    public_notes = sum(1 for note in notes if note.get('is_public') is True)
    average_rating = (sum(float(note.get('rating', 0) or 0) for note in notes) / len(notes)) if notes else 0
    return {
        'total_users': len(users),
        'total_notes': len(notes),
        'total_sessions': len(sessions),
        'total_schemes': len(docs_by_collection.get('schemes', [])),
        'total_reviews': len(reviews),
        'total_favorites': len(docs_by_collection.get('favorites', [])),
        'total_analytics': len(docs_by_collection.get('analytics_events', [])),
        'public_notes': public_notes,
        'private_notes': len(notes) - public_notes,
        'total_downloads': sum(int(note.get('downloads', 0) or 0) for note in notes),
        'total_ratings': sum(int(note.get('rating_count', 0) or 0) for note in notes),
        'average_rating': round(average_rating, 1),
        'storage_usage': {'personal': 0, 'shared': 0, 'total': 0},
        'recent_activity': {
            'new_users': sum(1 for doc in users if _is_recent(doc.get('created_at'), cutoff)),
            'new_notes': sum(1 for doc in notes if _is_recent(doc.get('uploaded_at'), cutoff)),
            'new_sessions': sum(1 for doc in sessions if _is_recent(doc.get('created_at'), cutoff)),
            'new_reviews': sum(1 for doc in reviews if _is_recent(doc.get('created_at'), cutoff)),
        },
        'top_subjects': _top_counts([note.get('subject') for note in notes], 'subject'),
        'top_universities': _top_counts([note.get('university') for note in notes], 'university'),
    }


def estimate_doc_size(data):
    return len(json.dumps(data, ensure_ascii=False, default=str, separators=(',', ':')).encode('utf-8'))


def compute_collection_stats(collection_name, docs, now_ts):
    cutoff = now_ts - RECENT_WINDOW_SECONDS
    created = [doc.get('created_at') for doc in docs if _is_recent(doc.get('created_at'), float('-inf'))]
    recent = [value for value in created if value > cutoff]
    return {
        'collection': collection_name,
        'total_documents': len(docs),
        'size_in_bytes': sum(estimate_doc_size(doc) for doc in docs),
        'last_updated': max(created) if created else None,
        'growth_rate': round(len(recent) / 7, 2),
    }


def empty_collection_stats(collection_name):
    return {
        'collection': collection_name,
        'total_documents': 0,
        'size_in_bytes': 0,
        'last_updated': None,
        'growth_rate': 0,
    }


def snapshot_collections(db, collection_names, *, logger):
    """Read every document of each collection; unreadable collections come back empty."""
    snapshot = {}
    failed = set()
    for name in collection_names:
        try:
            snapshot[name] = [doc.to_dict() or {} for doc in admin_repo.stream_collection(db, name)]
        except Exception as exc:
            logger.error(f"Could not read collection {name}: {exc}")
            snapshot[name] = []
            failed.add(name)
    return snapshot, failed


def collect_collection_stats(db, now_ts, *, logger, collection_names=MONITORED_COLLECTIONS):
    snapshot, failed = snapshot_collections(db, collection_names, logger=logger)
    stats = []
    for name in collection_names:
        if name in failed:
            stats.append(empty_collection_stats(name))
        else:
            stats.append(compute_collection_stats(name, snapshot[name], now_ts))
    return stats


def get_usage_alerts(stats):
    alerts = []
    if stats.get('total_notes', 0) > 10000:
        alerts.append({'type': 'warning', 'message': 'Gran cantidad de notas. Considera implementar paginación.'})
    if stats.get('total_users', 0) > 1000:
        alerts.append({'type': 'info', 'message': 'Excelente crecimiento de usuarios. Considera optimizar consultas.'})
    if stats.get('average_rating', 0) < 3.0 and stats.get('total_ratings', 0) > 100:
        alerts.append({'type': 'warning', 'message': 'Rating promedio bajo. Revisa la calidad del contenido.'})
    if (stats.get('recent_activity') or {}).get('new_users', 0) == 0:
        alerts.append({'type': 'error', 'message': 'No hay nuevos usuarios registrados en los últimos 7 días.'})
    return alerts
