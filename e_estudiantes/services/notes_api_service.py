"""Business logic handlers for note APIs."""


def _load_note(app_ctx, note_id):
    snapshot = app_ctx.notes_repo.get_doc(app_ctx.db, note_id)
    if not snapshot.exists:
        return None
    return snapshot.to_dict() or {}


def _uploaded_file_info(app_ctx, uid, uploaded_file, is_public):
    """Validate and store a multipart upload. Returns (file_info, error_response)."""
    file_name = str(uploaded_file.filename or '').strip()
    if not file_name:
        return None, (app_ctx.jsonify({'error': 'No file selected'}), 400)
    if not app_ctx.storage_service.is_valid_file_type(file_name, app_ctx.ALLOWED_NOTE_EXTENSIONS):
        return None, (app_ctx.jsonify({'error': 'Unsupported file type'}), 400)
    stream = uploaded_file.stream
    stream.seek(0, 2)
    file_size = stream.tell()
    stream.seek(0)
    if file_size <= 0:
        return None, (app_ctx.jsonify({'error': 'Uploaded file is empty'}), 400)
    if file_size > app_ctx.MAX_UPLOAD_BYTES:
        limit_text = app_ctx.storage_service.format_file_size(app_ctx.MAX_UPLOAD_BYTES)
        return None, (app_ctx.jsonify({'error': f'File too large. Maximum size is {limit_text}.'}), 413)
    if app_ctx.bucket is None:
        return None, (app_ctx.jsonify({'error': 'File storage is not configured'}), 503)

    category = app_ctx.notes_service.category_for(is_public)
    storage_path = app_ctx.storage_service.generate_file_path(uid, category, file_name, app_ctx.time.time() * 1000)
    blob = app_ctx.storage_service.upload_file(app_ctx.bucket, storage_path, stream, uploaded_file.mimetype)
    return {
        'file_name': file_name,
        'file_type': app_ctx.storage_service.get_file_extension(file_name),
        'file_size': file_size,
        'file_url': getattr(blob, 'public_url', '') or '',
        'storage_path': storage_path,
    }, None


def _linked_file_info(app_ctx, payload):
    file_url = str(payload.get('file_url', '') or '').strip()
    if not file_url.startswith('https://'):
        return None, (app_ctx.jsonify({'error': 'file_url must be an https URL'}), 400)
    file_name = str(payload.get('file_name', '') or '').strip()[:255] or file_url.rsplit('/', 1)[-1].split('?', 1)[0]
    file_type = str(payload.get('file_type', '') or '').strip().lower() or app_ctx.storage_service.get_file_extension(file_name)
    if file_type not in app_ctx.ALLOWED_NOTE_EXTENSIONS:
        return None, (app_ctx.jsonify({'error': 'Unsupported file type'}), 400)
    try:
        file_size = max(0, int(payload.get('file_size', 0) or 0))
    except (TypeError, ValueError):
        return None, (app_ctx.jsonify({'error': 'file_size must be a number'}), 400)
    if file_size > app_ctx.MAX_UPLOAD_BYTES:
        return None, (app_ctx.jsonify({'error': 'File too large'}), 413)
    return {
        'file_name': file_name,
        'file_type': file_type,
        'file_size': file_size,
        'file_url': file_url[:2000],
        'storage_path': '',
    }, None


def create_note(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']

    allowed, retry_after = app_ctx.check_rate_limit(
        key=f"upload:{app_ctx.normalize_rate_limit_key_part(uid)}",
        limit=app_ctx.UPLOAD_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.UPLOAD_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        app_ctx.log_rate_limit_hit('upload', retry_after)
        return app_ctx.build_rate_limited_response('Too many uploads. Please wait before uploading again.', retry_after)

    uploaded_file = request.files.get('file')
    payload = request.form.to_dict() if uploaded_file is not None else (request.get_json(silent=True) or {})
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    try:
        fields = app_ctx.notes_service.clean_note_fields(payload)
    except ValueError as e:
        return app_ctx.jsonify({'error': str(e)}), 400

    try:
        if uploaded_file is not None:
            file_info, error_response = _uploaded_file_info(app_ctx, uid, uploaded_file, fields['is_public'])
        else:
            file_info, error_response = _linked_file_info(app_ctx, payload)
        if error_response:
            return error_response

        now_ts = app_ctx.time.time()
        note_doc = app_ctx.notes_service.build_note_doc(uid, fields, file_info, now_ts)
        note_ref = app_ctx.notes_repo.create_doc_ref(app_ctx.db)
        note_ref.set(note_doc)
        app_ctx.users_repo.set_doc(
            app_ctx.db,
            uid,
            {'stats': {'total_uploads': app_ctx.firestore.Increment(1)}},
            merge=True,
        )
        app_ctx.log_event('info', 'note_created', note_id=note_ref.id, uid=uid, file_type=file_info['file_type'])
        return app_ctx.jsonify(app_ctx.notes_service.public_note(note_ref.id, note_doc)), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating note for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not create note'}), 500


def _sorted_notes(docs):
    notes = []
    for doc in docs:
        data = doc.to_dict() or {}
        data['id'] = doc.id
        notes.append(data)
    notes.sort(key=lambda note: note.get('uploaded_at') or 0, reverse=True)
    return notes


def list_my_notes(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        notes = _sorted_notes(app_ctx.notes_repo.list_by_uploader(app_ctx.db, uid, app_ctx.NOTES_LIST_LIMIT))
        return app_ctx.jsonify({'notes': [app_ctx.notes_service.public_note(note['id'], note) for note in notes]})
    except Exception as e:
        app_ctx.logger.error(f"Error listing notes for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load notes'}), 500


def list_public_notes(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    try:
        notes = _sorted_notes(app_ctx.notes_repo.list_public(app_ctx.db, app_ctx.NOTES_LIST_LIMIT))
        return app_ctx.jsonify({'notes': [app_ctx.notes_service.public_note(note['id'], note) for note in notes]})
    except Exception as e:
        app_ctx.logger.error(f"Error listing public notes: {e}")
        return app_ctx.jsonify({'error': 'Could not load notes'}), 500


def search_notes(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    search_term, filters, sort_by = app_ctx.search_service.parse_search_args(request.args)
    try:
        all_notes = _sorted_notes(app_ctx.notes_repo.list_public(app_ctx.db, app_ctx.SEARCH_SCAN_LIMIT))
        results = app_ctx.search_service.search_notes(all_notes, search_term, filters, sort_by)
        return app_ctx.jsonify({
            'notes': [app_ctx.notes_service.public_note(note['id'], note) for note in results[:app_ctx.NOTES_LIST_LIMIT]],
            'stats': app_ctx.search_service.search_stats(results, all_notes),
            'suggestions': app_ctx.search_service.suggestions(all_notes, search_term),
            'filter_options': app_ctx.search_service.filter_options(all_notes),
            'sort_by': sort_by,
        })
    except Exception as e:
        app_ctx.logger.error(f"Error searching notes: {e}")
        return app_ctx.jsonify({'error': 'Could not search notes'}), 500


def get_note(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        note = _load_note(app_ctx, note_id)
        if note is None:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        if not app_ctx.notes_service.can_view_note(note, uid):
            return app_ctx.jsonify({'error': 'Forbidden'}), 403
        payload = app_ctx.notes_service.public_note(note_id, note)
        payload['file_size_label'] = app_ctx.storage_service.format_file_size(note.get('file_size', 0))
        return app_ctx.jsonify(payload)
    except Exception as e:
        app_ctx.logger.error(f"Error loading note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load note'}), 500


def update_note(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    editable = {key: payload[key] for key in app_ctx.notes_service.EDITABLE_NOTE_FIELDS if key in payload}
    if not editable:
        return app_ctx.jsonify({'error': 'Nothing to update'}), 400
    try:
        updates = app_ctx.notes_service.clean_note_fields(editable, partial=True)
    except ValueError as e:
        return app_ctx.jsonify({'error': str(e)}), 400

    try:
        note = _load_note(app_ctx, note_id)
        if note is None:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        if note.get('uploaded_by') != uid:
            return app_ctx.jsonify({'error': 'Forbidden'}), 403
        updates['updated_at'] = app_ctx.time.time()
        app_ctx.notes_repo.update_doc(app_ctx.db, note_id, updates)
        note.update(updates)
        return app_ctx.jsonify(app_ctx.notes_service.public_note(note_id, note))
    except Exception as e:
        app_ctx.logger.error(f"Error updating note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update note'}), 500


def delete_note(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        note = _load_note(app_ctx, note_id)
        if note is None:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        if note.get('uploaded_by') != uid:
            return app_ctx.jsonify({'error': 'Forbidden'}), 403
        app_ctx.notes_repo.delete_doc(app_ctx.db, note_id)
    except Exception as e:
        app_ctx.logger.error(f"Error deleting note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not delete note'}), 500

    file_deleted = app_ctx.storage_service.delete_file(app_ctx.bucket, note.get('storage_path', ''), app_ctx.logger)
    removed_reviews = 0
    removed_favorites = 0
    try:
        for doc in app_ctx.reviews_repo.list_by_note(app_ctx.db, note_id, app_ctx.CLEANUP_BATCH_LIMIT):
            doc.reference.delete()
            removed_reviews += 1
        for doc in app_ctx.favorites_repo.list_by_note(app_ctx.db, note_id, app_ctx.CLEANUP_BATCH_LIMIT):
            doc.reference.delete()
            removed_favorites += 1
    except Exception as e:
        app_ctx.logger.warning(f"Warning: cleanup after deleting note {note_id} was incomplete: {e}")
    return app_ctx.jsonify({
        'ok': True,
        'file_deleted': file_deleted,
        'removed_reviews': removed_reviews,
        'removed_favorites': removed_favorites,
    })


def download_note(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        note = _load_note(app_ctx, note_id)
        if note is None:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        if not app_ctx.notes_service.can_view_note(note, uid):
            return app_ctx.jsonify({'error': 'Forbidden'}), 403

        storage_path = note.get('storage_path', '')
        if storage_path:
            if app_ctx.bucket is None:
                return app_ctx.jsonify({'error': 'File storage is not configured'}), 503
            download_url = app_ctx.storage_service.generate_download_url(
                app_ctx.bucket, storage_path, app_ctx.DOWNLOAD_URL_TTL_SECONDS
            )
        else:
            download_url = note.get('file_url', '')

        app_ctx.notes_repo.update_doc(app_ctx.db, note_id, {'downloads': app_ctx.firestore.Increment(1)})
        uploader_uid = note.get('uploaded_by', '')
        if uploader_uid:
            app_ctx.users_repo.set_doc(
                app_ctx.db,
                uploader_uid,
                {'stats': {'total_downloads': app_ctx.firestore.Increment(1)}},
                merge=True,
            )
        app_ctx.log_analytics_event(
            'download',
            source='backend',
            uid=uid,
            properties={'note_id': note_id, 'file_type': note.get('file_type', '')},
        )
        return app_ctx.jsonify({
            'download_url': download_url,
            'file_name': note.get('file_name', ''),
            'expires_in': app_ctx.DOWNLOAD_URL_TTL_SECONDS if storage_path else None,
        })
    except Exception as e:
        app_ctx.logger.error(f"Error preparing download for note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not prepare download'}), 500


def toggle_favorite(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        note = _load_note(app_ctx, note_id)
        if note is None:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        if not app_ctx.notes_service.can_view_note(note, uid):
            return app_ctx.jsonify({'error': 'Forbidden'}), 403
        favorite_ref = app_ctx.favorites_repo.doc_ref(app_ctx.db, uid, note_id)
        if favorite_ref.get().exists:
            favorite_ref.delete()
            return app_ctx.jsonify({'note_id': note_id, 'favorited': False})
        favorite_ref.set({'user_id': uid, 'note_id': note_id, 'created_at': app_ctx.time.time()})
        return app_ctx.jsonify({'note_id': note_id, 'favorited': True})
    except Exception as e:
        app_ctx.logger.error(f"Error toggling favorite {uid}/{note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update favorite'}), 500


def list_favorites(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        favorites = [doc.to_dict() or {} for doc in app_ctx.favorites_repo.list_by_uid(app_ctx.db, uid, app_ctx.NOTES_LIST_LIMIT)]
        favorites.sort(key=lambda fav: fav.get('created_at') or 0, reverse=True)
        return app_ctx.jsonify({'note_ids': [fav.get('note_id', '') for fav in favorites if fav.get('note_id')]})
    except Exception as e:
        app_ctx.logger.error(f"Error listing favorites for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load favorites'}), 500
