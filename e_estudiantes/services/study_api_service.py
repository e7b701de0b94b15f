"""Business logic handlers for the planner: study sessions, pomodoro timers and subjects."""


def _owned_doc(app_ctx, doc_ref, uid, not_found_message):
    """Return (data, error_response) for a document that must belong to ``uid``."""
    snapshot = doc_ref.get()
    if not snapshot.exists:
        return None, (app_ctx.jsonify({'error': not_found_message}), 404)
    data = snapshot.to_dict() or {}
    if data.get('user_id') != uid:
        return None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    return data, None


def _with_id(doc_id, data):
    payload = dict(data)
    payload['id'] = doc_id
    return payload


def list_study_sessions(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    start = app_ctx.search_service.parse_date_bound(request.args.get('start'))
    end = app_ctx.search_service.parse_date_bound(request.args.get('end'))
    status = str(request.args.get('status', '') or '').strip().lower()
    if status and status not in app_ctx.planner_service.SESSION_STATUSES:
        return app_ctx.jsonify({'error': 'Invalid status filter'}), 400
    try:
        sessions = []
        for doc in app_ctx.study_repo.list_sessions_by_uid(app_ctx.db, uid, app_ctx.SESSIONS_LIST_LIMIT):
            data = doc.to_dict() or {}
            if status and data.get('status') != status:
                continue
            if (start is not None or end is not None) and not app_ctx.planner_service.in_window(data, start, end):
                continue
            sessions.append(_with_id(doc.id, data))
        sessions.sort(key=lambda session: session.get('start_time') or 0)
        return app_ctx.jsonify({'sessions': sessions})
    except Exception as e:
        app_ctx.logger.error(f"Error listing study sessions for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load study sessions'}), 500


def create_study_session(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    try:
        fields = app_ctx.planner_service.clean_session_fields(payload)
    except ValueError as e:
        return app_ctx.jsonify({'error': str(e)}), 400
    try:
        session = dict(fields, user_id=uid, created_at=app_ctx.time.time())
        session_ref = app_ctx.study_repo.create_session_doc_ref(app_ctx.db)
        session_ref.set(session)
        return app_ctx.jsonify(_with_id(session_ref.id, session)), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating study session for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not create study session'}), 500


def update_study_session(app_ctx, request, session_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict) or not payload:
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    try:
        session_ref = app_ctx.study_repo.session_doc_ref(app_ctx.db, session_id)
        existing, error_response = _owned_doc(app_ctx, session_ref, uid, 'Study session not found')
        if error_response:
            return error_response
        try:
            updates = app_ctx.planner_service.clean_session_fields(payload, existing=existing)
        except ValueError as e:
            return app_ctx.jsonify({'error': str(e)}), 400
        if not updates:
            return app_ctx.jsonify({'error': 'Nothing to update'}), 400
        session_ref.update(updates)
        existing.update(updates)
        return app_ctx.jsonify(_with_id(session_id, existing))
    except Exception as e:
        app_ctx.logger.error(f"Error updating study session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update study session'}), 500


def complete_study_session(app_ctx, request, session_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        session_ref = app_ctx.study_repo.session_doc_ref(app_ctx.db, session_id)
        existing, error_response = _owned_doc(app_ctx, session_ref, uid, 'Study session not found')
        if error_response:
            return error_response
        session_ref.update({'status': 'completed'})
        existing['status'] = 'completed'
        return app_ctx.jsonify(_with_id(session_id, existing))
    except Exception as e:
        app_ctx.logger.error(f"Error completing study session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update study session'}), 500


def delete_study_session(app_ctx, request, session_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        session_ref = app_ctx.study_repo.session_doc_ref(app_ctx.db, session_id)
        _existing, error_response = _owned_doc(app_ctx, session_ref, uid, 'Study session not found')
        if error_response:
            return error_response
        session_ref.delete()
        return app_ctx.jsonify({'ok': True})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting study session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not delete study session'}), 500


def start_pomodoro(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    try:
        settings = app_ctx.pomodoro_service.normalize_settings(payload)
    except ValueError as e:
        return app_ctx.jsonify({'error': str(e)}), 400
    try:
        now_ts = app_ctx.time.time()
        # Only one open timer per user; starting a new one cancels the previous.
        for doc in app_ctx.study_repo.list_pomodoros_by_uid_and_status(
            app_ctx.db, uid, app_ctx.pomodoro_service.OPEN_STATUSES, 20
        ):
            doc.reference.update({'status': app_ctx.pomodoro_service.STATUS_CANCELLED, 'ended_at': now_ts})
        pomodoro = app_ctx.pomodoro_service.build_pomodoro_doc(uid, settings, now_ts)
        pomodoro_ref = app_ctx.study_repo.create_pomodoro_doc_ref(app_ctx.db)
        pomodoro_ref.set(pomodoro)
        return app_ctx.jsonify(app_ctx.pomodoro_service.public_pomodoro(pomodoro_ref.id, pomodoro)), 201
    except Exception as e:
        app_ctx.logger.error(f"Error starting pomodoro for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not start pomodoro'}), 500


def get_active_pomodoro(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        docs = app_ctx.study_repo.list_pomodoros_by_uid_and_status(
            app_ctx.db, uid, app_ctx.pomodoro_service.OPEN_STATUSES, 20
        )
        if not docs:
            return app_ctx.jsonify({'pomodoro': None})
        latest = max(docs, key=lambda doc: (doc.to_dict() or {}).get('started_at') or 0)
        return app_ctx.jsonify({'pomodoro': app_ctx.pomodoro_service.public_pomodoro(latest.id, latest.to_dict() or {})})
    except Exception as e:
        app_ctx.logger.error(f"Error loading active pomodoro for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load pomodoro'}), 500


def _transition_pomodoro(app_ctx, request, pomodoro_id, action):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    pomodoro_service = app_ctx.pomodoro_service
    try:
        pomodoro_ref = app_ctx.study_repo.pomodoro_doc_ref(app_ctx.db, pomodoro_id)
        data, error_response = _owned_doc(app_ctx, pomodoro_ref, uid, 'Pomodoro not found')
        if error_response:
            return error_response
        status = data.get('status')
        if status not in pomodoro_service.OPEN_STATUSES:
            return app_ctx.jsonify({'error': 'Pomodoro is already finished'}), 400

        now_ts = app_ctx.time.time()
        if action == 'advance':
            if status != pomodoro_service.STATUS_ACTIVE:
                return app_ctx.jsonify({'error': 'Resume the pomodoro before advancing it'}), 400
            phase, cycles = pomodoro_service.next_phase(
                data.get('phase', pomodoro_service.PHASE_WORK),
                data.get('completed_cycles', 0),
                data.get('cycles_for_long_break', pomodoro_service.DEFAULT_SETTINGS['cycles_for_long_break']),
            )
            updates = {'phase': phase, 'completed_cycles': cycles, 'phase_started_at': now_ts, 'remaining_seconds': None}
        elif action == 'pause':
            if status != pomodoro_service.STATUS_ACTIVE:
                return app_ctx.jsonify({'error': 'Pomodoro is not running'}), 400
            elapsed = max(0, now_ts - float(data.get('phase_started_at') or now_ts))
            total = pomodoro_service.phase_duration_seconds(data, data.get('phase', pomodoro_service.PHASE_WORK))
            updates = {'status': pomodoro_service.STATUS_PAUSED, 'remaining_seconds': max(0, int(total - elapsed))}
        elif action == 'resume':
            if status != pomodoro_service.STATUS_PAUSED:
                return app_ctx.jsonify({'error': 'Pomodoro is not paused'}), 400
            total = pomodoro_service.phase_duration_seconds(data, data.get('phase', pomodoro_service.PHASE_WORK))
            remaining = data.get('remaining_seconds')
            remaining = total if remaining is None else int(remaining)
            # Shift the phase start so remaining time is preserved across the pause.
            updates = {'status': pomodoro_service.STATUS_ACTIVE, 'phase_started_at': now_ts - (total - remaining)}
        else:
            updates = {'status': pomodoro_service.STATUS_COMPLETED, 'ended_at': now_ts}
        pomodoro_ref.update(updates)
        data.update(updates)
        return app_ctx.jsonify(pomodoro_service.public_pomodoro(pomodoro_id, data))
    except Exception as e:
        app_ctx.logger.error(f"Error applying {action} to pomodoro {pomodoro_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update pomodoro'}), 500


def advance_pomodoro(app_ctx, request, pomodoro_id):
    return _transition_pomodoro(app_ctx, request, pomodoro_id, 'advance')


def pause_pomodoro(app_ctx, request, pomodoro_id):
    return _transition_pomodoro(app_ctx, request, pomodoro_id, 'pause')


def resume_pomodoro(app_ctx, request, pomodoro_id):
    return _transition_pomodoro(app_ctx, request, pomodoro_id, 'resume')


def stop_pomodoro(app_ctx, request, pomodoro_id):
    return _transition_pomodoro(app_ctx, request, pomodoro_id, 'stop')


def list_subjects(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        subjects = [
            _with_id(doc.id, doc.to_dict() or {})
            for doc in app_ctx.study_repo.list_subjects_by_uid(app_ctx.db, uid, app_ctx.SUBJECTS_LIST_LIMIT)
        ]
        subjects.sort(key=lambda subject: subject.get('created_at') or 0, reverse=True)
        return app_ctx.jsonify({'subjects': subjects})
    except Exception as e:
        app_ctx.logger.error(f"Error listing subjects for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load subjects'}), 500


def create_subject(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    try:
        name = app_ctx.planner_service.clean_subject_name((payload if isinstance(payload, dict) else {}).get('name'))
    except ValueError as e:
        return app_ctx.jsonify({'error': str(e)}), 400
    try:
        subject = {'user_id': uid, 'name': name, 'pinned_files': [], 'created_at': app_ctx.time.time()}
        subject_ref = app_ctx.study_repo.create_subject_doc_ref(app_ctx.db)
        subject_ref.set(subject)
        return app_ctx.jsonify(_with_id(subject_ref.id, subject)), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating subject for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not create subject'}), 500


def delete_subject(app_ctx, request, subject_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        subject_ref = app_ctx.study_repo.subject_doc_ref(app_ctx.db, subject_id)
        _existing, error_response = _owned_doc(app_ctx, subject_ref, uid, 'Subject not found')
        if error_response:
            return error_response
        subject_ref.delete()
        return app_ctx.jsonify({'ok': True})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting subject {subject_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not delete subject'}), 500


def _set_pinned(app_ctx, request, subject_id, pin):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    note_id = str((payload if isinstance(payload, dict) else {}).get('note_id', '') or '').strip()[:200]
    if not note_id:
        return app_ctx.jsonify({'error': 'note_id is required'}), 400
    try:
        subject_ref = app_ctx.study_repo.subject_doc_ref(app_ctx.db, subject_id)
        existing, error_response = _owned_doc(app_ctx, subject_ref, uid, 'Subject not found')
        if error_response:
            return error_response
        pinned = existing.get('pinned_files') or []
        if pin:
            if note_id not in pinned and len(pinned) >= app_ctx.planner_service.MAX_PINNED_FILES:
                return app_ctx.jsonify({'error': 'Too many pinned files for this subject'}), 400
            change = app_ctx.firestore.ArrayUnion([note_id])
        else:
            change = app_ctx.firestore.ArrayRemove([note_id])
        subject_ref.update({'pinned_files': change})
        updated = subject_ref.get().to_dict() or {}
        return app_ctx.jsonify(_with_id(subject_id, updated))
    except Exception as e:
        app_ctx.logger.error(f"Error updating pinned files for subject {subject_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update subject'}), 500


def pin_subject_file(app_ctx, request, subject_id):
    return _set_pinned(app_ctx, request, subject_id, True)


def unpin_subject_file(app_ctx, request, subject_id):
    return _set_pinned(app_ctx, request, subject_id, False)
