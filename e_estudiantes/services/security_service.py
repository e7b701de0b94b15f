"""Permission checks, recommended security rules and index checks for admins."""

from google.api_core import exceptions as google_exceptions

from e_estudiantes.repositories import notes_repo, study_repo, users_repo
from e_estudiantes.repositories.query_utils import apply_limit, apply_where


INDEX_CONSOLE_URL = 'https://console.firebase.google.com/v1/r/project/{project_id}/firestore/indexes'


def _passed(test, details):
    return {'test': test, 'passed': True, 'details': details}


def _failed(test, exc):
    return {'test': test, 'passed': False, 'error': str(exc)}


def run_security_checks(db, uid, now_ts, *, logger):
    """Exercise the reads and writes a regular user relies on, cleaning up the documents it writes."""
    results = []

    test = 'Usuario puede leer su propio perfil'
    try:
        snapshot = users_repo.get_doc(db, uid)
        results.append({
            'test': test,
            'passed': bool(snapshot.exists),
            'details': 'Perfil encontrado' if snapshot.exists else 'Perfil no encontrado',
        })
    except Exception as exc:
        results.append(_failed(test, exc))

    test = 'Usuario puede crear una nota'
    try:
        check_ref = notes_repo.create_doc_ref(db)
        check_ref.set({
            'title': 'Test Note',
            'description': 'Test description',
            'file_name': 'test.pdf',
            'file_type': 'pdf',
            'file_size': 1024,
            'file_url': '',
            'uploaded_by': uid,
            'uploaded_at': now_ts,
            'tags': ['test'],
            'subject': 'Test Subject',
            'downloads': 0,
            'rating': 0,
            'rating_count': 0,
            'is_public': False,
            'category': 'personal',
        })
        check_ref.delete()
        results.append(_passed(test, 'Nota de prueba creada exitosamente'))
    except Exception as exc:
        results.append(_failed(test, exc))

    test = 'Usuario puede leer sus propias notas'
    try:
        own = notes_repo.list_by_uploader(db, uid, 500)
        results.append(_passed(test, f'Encontradas {len(own)} notas propias'))
    except Exception as exc:
        results.append(_failed(test, exc))

    test = 'Usuario puede leer notas públicas'
    try:
        public = notes_repo.list_public(db, 500)
        results.append(_passed(test, f'Encontradas {len(public)} notas públicas'))
    except Exception as exc:
        results.append(_failed(test, exc))

    test = 'Usuario puede crear una sesión de estudio'
    try:
        check_ref = study_repo.create_session_doc_ref(db)
        check_ref.set({
            'user_id': uid,
            'title': 'Test Session',
            'description': 'Test session description',
            'start_time': now_ts,
            'end_time': now_ts + 3600,
            'type': 'study',
            'status': 'pending',
            'tags': ['test'],
            'created_at': now_ts,
        })
        check_ref.delete()
        results.append(_passed(test, 'Sesión de prueba creada exitosamente'))
    except Exception as exc:
        results.append(_failed(test, exc))

    failures = [result['test'] for result in results if not result['passed']]
    if failures:
        logger.warning(f"Security checks failed for {uid}: {', '.join(failures)}")
    return results


REQUIRED_INDEXES = [
    {
        'collection': 'analytics_events',
        'fields': ['uid', 'event'],
        'description': 'Eventos de analítica por usuario y tipo',
        'filters': [('uid', '==', '__index_check__'), ('event', '==', 'download')],
    },
    {
        'collection': 'study_sessions',
        'fields': ['user_id', 'status'],
        'description': 'Sesiones de estudio completadas por usuario',
        'filters': [('user_id', '==', '__index_check__'), ('status', '==', 'completed')],
    },
    {
        'collection': 'pomodoro_sessions',
        'fields': ['user_id', 'status'],
        'description': 'Pomodoros abiertos por usuario',
        'filters': [('user_id', '==', '__index_check__'), ('status', 'in', ['active', 'paused'])],
    },
    {
        'collection': 'notes',
        'fields': ['uploaded_by'],
        'description': 'Notas por usuario',
        'filters': [('uploaded_by', '==', '__index_check__')],
    },
    {
        'collection': 'notes',
        'fields': ['is_public'],
        'description': 'Notas públicas',
        'filters': [('is_public', '==', True)],
    },
]


def check_required_indexes(db, project_id, *, logger):
    """Run each query shape the app issues once, with a limit of one.

    The result is advisory: a ``missing`` status means Firestore refused the
    query for lack of an index, not that every production query would fail.
    """
    console_url = INDEX_CONSOLE_URL.format(project_id=project_id or '-')
    results = []
    for required in REQUIRED_INDEXES:
        query = db.collection(required['collection'])
        for field_path, op_string, value in required['filters']:
            query = apply_where(query, field_path, op_string, value)
        entry = {
            'collection': required['collection'],
            'fields': list(required['fields']),
            'description': required['description'],
        }
        try:
            list(apply_limit(query, 1).stream())
            entry['status'] = 'ok'
        except google_exceptions.FailedPrecondition as exc:
            logger.warning(f"Missing Firestore index for {required['collection']} ({', '.join(required['fields'])}): {exc}")
            entry['status'] = 'missing'
            entry['console_url'] = console_url
        except Exception as exc:
            logger.error(f"Index check failed for {required['collection']}: {exc}")
            entry['status'] = 'error'
            entry['error'] = str(exc)
        results.append(entry)
    return results


RECOMMENDED_RULES = """// Firestore
rules_version = '2';
service cloud.firestore {
  match /databases/{database}/documents {
    match /users/{userId} {
      allow read, write: if request.auth != null && request.auth.uid == userId;
    }
    match /notes/{noteId} {
      allow read: if request.auth != null &&
        (resource.data.is_public == true || resource.data.uploaded_by == request.auth.uid);
      allow create: if request.auth != null &&
        request.auth.uid == request.resource.data.uploaded_by;
      allow update, delete: if request.auth != null &&
        request.auth.uid == resource.data.uploaded_by;
    }
    match /study_sessions/{sessionId} {
      allow read, write: if request.auth != null && request.auth.uid == resource.data.user_id;
    }
    match /pomodoro_sessions/{pomodoroId} {
      allow read, write: if request.auth != null && request.auth.uid == resource.data.user_id;
    }
    match /schemes/{schemeId} {
      allow read: if request.auth != null &&
        (resource.data.is_public == true || resource.data.user_id == request.auth.uid);
      allow write: if request.auth != null && request.auth.uid == resource.data.user_id;
    }
    match /reviews/{reviewId} {
      allow read: if request.auth != null;
      allow create: if request.auth != null && request.auth.uid == request.resource.data.user_id;
    }
    match /favorites/{favoriteId} {
      allow read, write: if request.auth != null && request.auth.uid == resource.data.user_id;
    }
    match /subjects/{subjectId} {
      allow read, write: if request.auth != null && request.auth.uid == resource.data.user_id;
    }
    match /analytics_events/{eventId} {
      allow create: if request.auth != null;
    }
    match /reports/{reportId} {
      allow create: if request.auth != null;
    }
  }
}

// Storage
rules_version = '2';
service firebase.storage {
  match /b/{bucket}/o {
    match /personal/{userId}/{allPaths=**} {
      allow read, write: if request.auth != null && request.auth.uid == userId;
    }
    match /shared/{userId}/{allPaths=**} {
      allow read: if request.auth != null;
      allow write: if request.auth != null && request.auth.uid == userId;
    }
  }
}"""


def recommended_rules():
    return RECOMMENDED_RULES
