"""Firestore accessors for planner collections (sessions, pomodoro, subjects)."""

from .query_utils import apply_limit, apply_where


def session_doc_ref(db, session_id):
    return db.collection('study_sessions').document(session_id)


def create_session_doc_ref(db):
    return db.collection('study_sessions').document()


def list_sessions_by_uid(db, uid, limit):
    return list(apply_limit(apply_where(db.collection('study_sessions'), 'user_id', '==', uid), limit).stream())


def list_completed_sessions_by_uid(db, uid, limit):
    query = apply_where(apply_where(db.collection('study_sessions'), 'user_id', '==', uid), 'status', '==', 'completed')
    return list(apply_limit(query, limit).stream())


def pomodoro_doc_ref(db, pomodoro_id):
    return db.collection('pomodoro_sessions').document(pomodoro_id)


def create_pomodoro_doc_ref(db):
    return db.collection('pomodoro_sessions').document()


def list_pomodoros_by_uid_and_status(db, uid, statuses, limit):
    query = apply_where(apply_where(db.collection('pomodoro_sessions'), 'user_id', '==', uid), 'status', 'in', list(statuses))
    return list(apply_limit(query, limit).stream())


def subject_doc_ref(db, subject_id):
    return db.collection('subjects').document(subject_id)


def create_subject_doc_ref(db):
    return db.collection('subjects').document()


def list_subjects_by_uid(db, uid, limit):
    return list(apply_limit(apply_where(db.collection('subjects'), 'user_id', '==', uid), limit).stream())
