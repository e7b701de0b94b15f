"""Firestore query helpers used by the admin monitoring views."""

from .query_utils import apply_limit


def stream_collection(db, collection_name, limit=None):
    return list(apply_limit(db.collection(collection_name), limit).stream())
