"""Firestore accessors for analytics events and rate-limit logs."""

from .query_utils import apply_limit, apply_where


def add_event(db, payload):
    return db.collection('analytics_events').add(payload)


def add_rate_limit_log(db, payload):
    return db.collection('rate_limit_logs').add(payload)


def list_events_by_uid(db, uid, event_name, limit):
    query = apply_where(apply_where(db.collection('analytics_events'), 'uid', '==', uid), 'event', '==', event_name)
    return list(apply_limit(query, limit).stream())
