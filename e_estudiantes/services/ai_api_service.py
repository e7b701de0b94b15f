"""Business logic handlers for AI study-aid APIs."""

MAX_CONTENT_CHARS = 50000
MAX_PLAN_SUBJECTS = 12


def _authorize_ai_request(app_ctx, request):
    """Return (uid, payload, error_response) after auth and per-user throttling."""
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return None, None, (app_ctx.jsonify({'error': 'Unauthorized'}), 401)
    uid = decoded_token['uid']
    allowed, retry_after = app_ctx.check_rate_limit(
        key=f"ai:{app_ctx.normalize_rate_limit_key_part(uid)}",
        limit=app_ctx.AI_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.AI_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        app_ctx.log_rate_limit_hit('ai', retry_after)
        return None, None, app_ctx.build_rate_limited_response(
            'Too many AI requests. Please wait before trying again.', retry_after
        )
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return None, None, (app_ctx.jsonify({'error': 'Invalid payload'}), 400)
    return uid, payload, None


def _ai_kwargs(app_ctx):
    return {
        'client': app_ctx.client,
        'types_module': app_ctx.types,
        'model': app_ctx.GEMINI_MODEL,
        'output_language': app_ctx.AI_OUTPUT_LANGUAGE,
        'logger': app_ctx.logger,
    }


def generate_summary(app_ctx, request):
    uid, payload, error_response = _authorize_ai_request(app_ctx, request)
    if error_response:
        return error_response
    content = str(payload.get('content', '') or '').strip()[:MAX_CONTENT_CHARS]
    if not content:
        return app_ctx.jsonify({'error': 'content is required'}), 400
    summary_type = str(payload.get('type', 'summary') or 'summary').strip().lower()
    if summary_type not in app_ctx.ai_service.SUMMARY_TYPES:
        return app_ctx.jsonify({'error': 'Invalid summary type'}), 400
    subject = str(payload.get('subject', '') or '').strip()[:120]
    title = str(payload.get('title', '') or '').strip()[:200]
    result = app_ctx.ai_service.generate_summary(content, subject, title, summary_type, **_ai_kwargs(app_ctx))
    app_ctx.log_event('info', 'ai_summary_generated', uid=uid, summary_type=summary_type, source=result['source'])
    return app_ctx.jsonify(result)


def generate_flashcards(app_ctx, request):
    uid, payload, error_response = _authorize_ai_request(app_ctx, request)
    if error_response:
        return error_response
    content = str(payload.get('content', '') or '').strip()[:MAX_CONTENT_CHARS]
    if not content:
        return app_ctx.jsonify({'error': 'content is required'}), 400
    raw_amount = payload.get('amount', app_ctx.ai_service.DEFAULT_FLASHCARD_AMOUNT)
    try:
        amount = int(raw_amount)
    except (TypeError, ValueError):
        return app_ctx.jsonify({'error': 'amount must be a number'}), 400
    if amount < 1 or amount > app_ctx.ai_service.MAX_FLASHCARD_AMOUNT:
        return app_ctx.jsonify({'error': f'amount must be between 1 and {app_ctx.ai_service.MAX_FLASHCARD_AMOUNT}'}), 400
    subject = str(payload.get('subject', '') or '').strip()[:120]
    result = app_ctx.ai_service.generate_flashcards(content, subject, amount, **_ai_kwargs(app_ctx))
    app_ctx.log_event('info', 'ai_flashcards_generated', uid=uid, count=len(result['flashcards']), source=result['source'])
    return app_ctx.jsonify(result)


def generate_study_plan(app_ctx, request):
    uid, payload, error_response = _authorize_ai_request(app_ctx, request)
    if error_response:
        return error_response
    raw_subjects = payload.get('subjects')
    if isinstance(raw_subjects, str):
        raw_subjects = raw_subjects.split(',')
    if not isinstance(raw_subjects, list):
        return app_ctx.jsonify({'error': 'subjects must be a list'}), 400
    subjects = []
    for raw in raw_subjects:
        subject = str(raw or '').strip()[:120]
        if subject and subject not in subjects:
            subjects.append(subject)
    if not subjects or len(subjects) > MAX_PLAN_SUBJECTS:
        return app_ctx.jsonify({'error': f'Provide between 1 and {MAX_PLAN_SUBJECTS} subjects'}), 400
    try:
        available_time = int(payload.get('available_time', 0))
    except (TypeError, ValueError):
        return app_ctx.jsonify({'error': 'available_time must be a number of minutes'}), 400
    if available_time < 1 or available_time > 1440:
        return app_ctx.jsonify({'error': 'available_time must be between 1 and 1440 minutes'}), 400
    result = app_ctx.ai_service.generate_study_plan(subjects, available_time, **_ai_kwargs(app_ctx))
    app_ctx.log_event('info', 'ai_plan_generated', uid=uid, subjects=len(subjects), source=result['source'])
    return app_ctx.jsonify(result)


def chat(app_ctx, request):
    uid, payload, error_response = _authorize_ai_request(app_ctx, request)
    if error_response:
        return error_response
    message = str(payload.get('message', '') or '').strip()
    if not message:
        return app_ctx.jsonify({'error': 'message is required'}), 400
    result = app_ctx.ai_service.chat_reply(payload.get('history') or [], message, **_ai_kwargs(app_ctx))
    return app_ctx.jsonify(result)


def export_summary_docx(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    summary = app_ctx.ai_service.sanitize_summary(payload.get('summary') if isinstance(payload.get('summary'), dict) else payload)
    if summary is None:
        return app_ctx.jsonify({'error': 'Nothing to export'}), 400
    title = str(payload.get('title', '') or '').strip()[:200]
    try:
        buffer = app_ctx.export_service.summary_to_docx_bytes(summary, title)
        filename = f"{app_ctx.export_service.safe_download_name(title)}.docx"
        return app_ctx.send_file(
            buffer,
            as_attachment=True,
            download_name=filename,
            mimetype='application/vnd.openxmlformats-officedocument.wordprocessingml.document',
        )
    except Exception as e:
        app_ctx.logger.error(f"Error exporting summary DOCX for user {decoded_token['uid']}: {e}")
        return app_ctx.jsonify({'error': 'Could not export summary'}), 500


def export_flashcards_csv(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    cards = app_ctx.ai_service.sanitize_flashcards(payload.get('flashcards'), app_ctx.MAX_EXPORT_FLASHCARDS)
    if not cards:
        return app_ctx.jsonify({'error': 'Nothing to export'}), 400
    filename = f"{app_ctx.export_service.safe_download_name(payload.get('title'), default='flashcards')}.csv"
    return app_ctx.Response(
        app_ctx.export_service.flashcards_to_csv(cards),
        mimetype='text/csv; charset=utf-8',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )
