"""Business logic handlers for analytics ingestion and personal study stats."""


def ingest_analytics_event(app_ctx, request):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    decoded_token = app_ctx.verify_firebase_token(request)
    uid = decoded_token.get('uid', '') if decoded_token else ''
    session_id = app_ctx.sanitize_analytics_session_id(data.get('session_id', ''))
    if not session_id and uid:
        session_id = uid[:80]

    actor_token = uid or session_id or request.headers.get('X-Forwarded-For', request.remote_addr or '')
    actor_key = app_ctx.normalize_rate_limit_key_part(actor_token, fallback='anon')
    allowed, retry_after = app_ctx.check_rate_limit(
        key=f"analytics:{actor_key}",
        limit=app_ctx.ANALYTICS_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.ANALYTICS_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        app_ctx.log_rate_limit_hit('analytics', retry_after)
        return app_ctx.build_rate_limited_response(
            'Too many analytics events from this client. Please retry shortly.',
            retry_after,
        )

    event_name = app_ctx.sanitize_analytics_event_name(data.get('event', ''))
    if not event_name:
        return app_ctx.jsonify({'error': 'Invalid event name'}), 400

    properties = app_ctx.sanitize_analytics_properties(data.get('properties', {}))
    page = str(data.get('page', '') or '').strip()[:80]
    if page:
        properties['page'] = page

    ok = app_ctx.log_analytics_event(
        event_name,
        source='frontend',
        uid=uid,
        session_id=session_id,
        properties=properties,
    )
    # Storage failures are logged by the analytics service and never surface as errors.
    return app_ctx.jsonify({'ok': True, 'stored': bool(ok)})


def get_my_stats(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        notes = [doc.to_dict() or {} for doc in app_ctx.notes_repo.list_by_uploader(app_ctx.db, uid, app_ctx.STATS_SCAN_LIMIT)]
        sessions = [
            doc.to_dict() or {}
            for doc in app_ctx.study_repo.list_completed_sessions_by_uid(app_ctx.db, uid, app_ctx.STATS_SCAN_LIMIT)
        ]
        downloads = app_ctx.analytics_repo.list_events_by_uid(app_ctx.db, uid, 'download', app_ctx.STATS_SCAN_LIMIT)
        stats = app_ctx.analytics_service.compute_user_stats(
            notes,
            sessions,
            app_ctx.get_user_data(uid),
            downloads,
            app_ctx.time.time(),
        )
        return app_ctx.jsonify(stats)
    except Exception as e:
        app_ctx.logger.error(f"Error computing stats for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load statistics'}), 500
