"""Firestore accessors for reviews collection."""

from .query_utils import apply_limit, apply_where


def review_id_for(uid, note_id):
    return f"{uid}__{note_id}"


def doc_ref(db, review_id):
    return db.collection('reviews').document(review_id)


def get_doc(db, review_id):
    return doc_ref(db, review_id).get()


def list_by_note(db, note_id, limit):
    return list(apply_limit(apply_where(db.collection('reviews'), 'note_id', '==', note_id), limit).stream())
