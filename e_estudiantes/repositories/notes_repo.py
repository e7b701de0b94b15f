"""Firestore accessors for notes collection."""

from .query_utils import apply_limit, apply_where


def doc_ref(db, note_id):
    return db.collection('notes').document(note_id)


def create_doc_ref(db):
    return db.collection('notes').document()


def get_doc(db, note_id):
    return doc_ref(db, note_id).get()


def update_doc(db, note_id, updates):
    return doc_ref(db, note_id).update(updates)


def delete_doc(db, note_id):
    return doc_ref(db, note_id).delete()


def list_by_uploader(db, uid, limit):
    return list(apply_limit(apply_where(db.collection('notes'), 'uploaded_by', '==', uid), limit).stream())


def list_public(db, limit):
    return list(apply_limit(apply_where(db.collection('notes'), 'is_public', '==', True), limit).stream())
