"""Firestore accessors for favorites collection."""

from .query_utils import apply_limit, apply_where


def favorite_id_for(uid, note_id):
    return f"{uid}_{note_id}"


def doc_ref(db, uid, note_id):
    return db.collection('favorites').document(favorite_id_for(uid, note_id))


def list_by_uid(db, uid, limit):
    return list(apply_limit(apply_where(db.collection('favorites'), 'user_id', '==', uid), limit).stream())


def list_by_note(db, note_id, limit):
    return list(apply_limit(apply_where(db.collection('favorites'), 'note_id', '==', note_id), limit).stream())
