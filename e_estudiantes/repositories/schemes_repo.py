"""Firestore accessors for schemes collection."""

from .query_utils import apply_limit, apply_where


def doc_ref(db, scheme_id):
    return db.collection('schemes').document(scheme_id)


def create_doc_ref(db):
    return db.collection('schemes').document()


def get_doc(db, scheme_id):
    return doc_ref(db, scheme_id).get()


def list_by_uid(db, uid, limit):
    return list(apply_limit(apply_where(db.collection('schemes'), 'user_id', '==', uid), limit).stream())


def list_public(db, limit):
    return list(apply_limit(apply_where(db.collection('schemes'), 'is_public', '==', True), limit).stream())
