"""Firestore accessors for moderation reports."""

from .query_utils import apply_limit, apply_where


def doc_ref(db, report_id):
    return db.collection('reports').document(report_id)


def create_doc_ref(db):
    return db.collection('reports').document()


def get_doc(db, report_id):
    return doc_ref(db, report_id).get()


def list_reports(db, status, limit):
    query = db.collection('reports')
    if status:
        query = apply_where(query, 'status', '==', status)
    return list(apply_limit(query, limit).stream())
