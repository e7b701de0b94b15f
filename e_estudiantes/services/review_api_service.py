"""Business logic handlers for reviews, helpful votes and moderation reports."""


def list_reviews(app_ctx, request, note_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        note_doc = app_ctx.notes_repo.get_doc(app_ctx.db, note_id)
        if not note_doc.exists:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        note = note_doc.to_dict() or {}
        if not app_ctx.notes_service.can_view_note(note, uid):
            return app_ctx.jsonify({'error': 'Forbidden'}), 403
        reviews = [
            app_ctx.notes_service.public_review(doc.id, doc.to_dict() or {})
            for doc in app_ctx.reviews_repo.list_by_note(app_ctx.db, note_id, app_ctx.REVIEWS_LIST_LIMIT)
        ]
        reviews.sort(key=lambda review: review.get('created_at') or 0, reverse=True)
        return app_ctx.jsonify({
            'reviews': reviews,
            'rating': note.get('rating', 0),
            'rating_count': note.get('rating_count', 0),
            'user_has_reviewed': any(review.get('user_id') == uid for review in reviews),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error listing reviews for note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load reviews'}), 500


def create_review(app_ctx, request, note_id):
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
        rating = app_ctx.notes_service.parse_rating(payload.get('rating'))
    except ValueError as e:
        return app_ctx.jsonify({'error': str(e)}), 400
    comment = str(payload.get('comment', '') or '').strip()
    if len(comment) > app_ctx.notes_service.MAX_COMMENT_LEN:
        return app_ctx.jsonify({'error': 'Comment must be at most 1000 characters'}), 400

    try:
        note_doc = app_ctx.notes_repo.get_doc(app_ctx.db, note_id)
        if not note_doc.exists:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        note = note_doc.to_dict() or {}
        if not app_ctx.notes_service.can_view_note(note, uid):
            return app_ctx.jsonify({'error': 'Forbidden'}), 403

        review_id = app_ctx.reviews_repo.review_id_for(uid, note_id)
        review_ref = app_ctx.reviews_repo.doc_ref(app_ctx.db, review_id)
        note_ref = app_ctx.notes_repo.doc_ref(app_ctx.db, note_id)
        user_data = app_ctx.get_user_data(uid)
        review = {
            'note_id': note_id,
            'user_id': uid,
            'user_display_name': user_data.get('display_name') or decoded_token.get('name') or 'Usuario',
            'rating': rating,
            'comment': comment,
            'created_at': app_ctx.time.time(),
            'is_helpful': 0,
            'report_count': 0,
        }

        @app_ctx.firestore.transactional
        def _record_in_transaction(transaction, note_ref, review_ref):
            note_snapshot = note_ref.get(transaction=transaction)
            if not note_snapshot.exists:
                return 'not_found', None, None
            if review_ref.get(transaction=transaction).exists:
                return 'duplicate', None, None
            current = note_snapshot.to_dict() or {}
            new_rating, new_count = app_ctx.notes_service.next_rating(
                current.get('rating', 0), current.get('rating_count', 0), rating
            )
            transaction.set(review_ref, review)
            transaction.update(note_ref, {'rating': new_rating, 'rating_count': new_count})
            return 'created', new_rating, new_count

        transaction = app_ctx.db.transaction()
        outcome, new_rating, new_count = _record_in_transaction(transaction, note_ref, review_ref)
        if outcome == 'not_found':
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        if outcome == 'duplicate':
            return app_ctx.jsonify({'error': 'You have already reviewed this note'}), 409

        app_ctx.users_repo.set_doc(
            app_ctx.db,
            uid,
            {'stats': {'total_ratings': app_ctx.firestore.Increment(1)}},
            merge=True,
        )
        return app_ctx.jsonify({
            'review': app_ctx.notes_service.public_review(review_id, review),
            'rating': new_rating,
            'rating_count': new_count,
        }), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating review for note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not save review'}), 500


def mark_review_helpful(app_ctx, request, review_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    try:
        review_ref = app_ctx.reviews_repo.doc_ref(app_ctx.db, review_id)
        if not review_ref.get().exists:
            return app_ctx.jsonify({'error': 'Review not found'}), 404
        review_ref.update({'is_helpful': app_ctx.firestore.Increment(1)})
        return app_ctx.jsonify({'ok': True})
    except Exception as e:
        app_ctx.logger.error(f"Error marking review {review_id} helpful: {e}")
        return app_ctx.jsonify({'error': 'Could not update review'}), 500


def _report_target_ref(app_ctx, item_type, item_id):
    if item_type == 'note':
        return app_ctx.notes_repo.doc_ref(app_ctx.db, item_id)
    if item_type == 'review':
        return app_ctx.reviews_repo.doc_ref(app_ctx.db, item_id)
    return app_ctx.users_repo.doc_ref(app_ctx.db, item_id)


def create_report(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    item_type = str(payload.get('item_type', '') or '').strip().lower()
    item_id = str(payload.get('item_id', '') or '').strip()[:200]
    if item_type not in app_ctx.notes_service.REPORT_ITEM_TYPES or not item_id:
        return app_ctx.jsonify({'error': 'item_type and item_id are required'}), 400
    reason = str(payload.get('reason', 'other') or 'other').strip().lower()
    if reason not in app_ctx.notes_service.REPORT_REASONS:
        reason = 'other'
    description = str(payload.get('description', '') or '').strip()[:app_ctx.notes_service.MAX_REPORT_DESCRIPTION_LEN]

    allowed, retry_after = app_ctx.check_rate_limit(
        key=f"report:{app_ctx.normalize_rate_limit_key_part(uid)}",
        limit=app_ctx.REPORT_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.REPORT_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        app_ctx.log_rate_limit_hit('report', retry_after)
        return app_ctx.build_rate_limited_response('Too many reports. Please wait before reporting again.', retry_after)

    try:
        target_ref = _report_target_ref(app_ctx, item_type, item_id)
        if not target_ref.get().exists:
            return app_ctx.jsonify({'error': 'Reported item not found'}), 404
        report = {
            'item_id': item_id,
            'item_type': item_type,
            'reported_by': uid,
            'reason': reason,
            'description': description,
            'created_at': app_ctx.time.time(),
            'status': 'pending',
            'resolved_by': '',
            'resolved_at': None,
        }
        report_ref = app_ctx.reports_repo.create_doc_ref(app_ctx.db)
        report_ref.set(report)
        target_updates = {'report_count': app_ctx.firestore.Increment(1)}
        if item_type == 'note':
            target_updates['is_reported'] = True
        target_ref.update(target_updates)
        app_ctx.log_event('info', 'item_reported', report_id=report_ref.id, item_type=item_type, reason=reason)
        return app_ctx.jsonify({'ok': True, 'report_id': report_ref.id}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating report for {item_type}/{item_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not submit report'}), 500


def _require_moderator(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return None, (app_ctx.jsonify({'error': 'Unauthorized'}), 401)
    if not app_ctx.is_moderator_user(decoded_token, app_ctx.get_user_data(decoded_token['uid'])):
        return None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    if app_ctx.db is None:
        return None, app_ctx.database_unavailable_response()
    return decoded_token, None


def list_reports(app_ctx, request):
    decoded_token, error_response = _require_moderator(app_ctx, request)
    if error_response:
        return error_response
    status = str(request.args.get('status', '') or '').strip().lower()
    if status and status not in app_ctx.notes_service.REPORT_STATUSES:
        return app_ctx.jsonify({'error': 'Invalid status filter'}), 400
    try:
        reports = []
        for doc in app_ctx.reports_repo.list_reports(app_ctx.db, None, app_ctx.ADMIN_LIST_LIMIT):
            data = doc.to_dict() or {}
            data['id'] = doc.id
            reports.append(data)
        counts = {name: 0 for name in app_ctx.notes_service.REPORT_STATUSES}
        for report in reports:
            counts[report.get('status', 'pending')] = counts.get(report.get('status', 'pending'), 0) + 1
        if status:
            reports = [report for report in reports if report.get('status') == status]
        reports.sort(key=lambda report: report.get('created_at') or 0, reverse=True)
        return app_ctx.jsonify({'reports': reports, 'counts': counts})
    except Exception as e:
        app_ctx.logger.error(f"Error listing reports: {e}")
        return app_ctx.jsonify({'error': 'Could not load reports'}), 500


def update_report(app_ctx, request, report_id):
    decoded_token, error_response = _require_moderator(app_ctx, request)
    if error_response:
        return error_response
    payload = request.get_json(silent=True) or {}
    status = str((payload if isinstance(payload, dict) else {}).get('status', '') or '').strip().lower()
    if status not in {'reviewed', 'resolved', 'dismissed'}:
        return app_ctx.jsonify({'error': 'Status must be reviewed, resolved or dismissed'}), 400
    try:
        report_doc = app_ctx.reports_repo.get_doc(app_ctx.db, report_id)
        if not report_doc.exists:
            return app_ctx.jsonify({'error': 'Report not found'}), 404
        updates = {'status': status}
        if status in app_ctx.notes_service.CLOSING_REPORT_STATUSES:
            updates['resolved_by'] = decoded_token['uid']
            updates['resolved_at'] = app_ctx.time.time()
        app_ctx.reports_repo.doc_ref(app_ctx.db, report_id).update(updates)
        report = report_doc.to_dict() or {}
        report.update(updates)
        report['id'] = report_id
        return app_ctx.jsonify(report)
    except Exception as e:
        app_ctx.logger.error(f"Error updating report {report_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update report'}), 500
