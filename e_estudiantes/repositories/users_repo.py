"""Firestore accessors for users collection."""

from .query_utils import apply_limit, apply_where


def doc_ref(db, uid):
    return db.collection('users').document(uid)


def get_doc(db, uid):
    return doc_ref(db, uid).get()


def set_doc(db, uid, data, merge=False):
    return doc_ref(db, uid).set(data, merge=merge)


def update_doc(db, uid, updates):
    return doc_ref(db, uid).update(updates)


def find_by_email(db, email, limit=1):
    query = apply_where(db.collection('users'), 'email', '==', str(email or '').strip().lower())
    return list(apply_limit(query, limit).stream())


def list_users(db, limit):
    return list(apply_limit(db.collection('users'), limit).stream())
