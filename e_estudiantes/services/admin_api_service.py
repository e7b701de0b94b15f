"""Business logic handlers for admin monitoring APIs."""


def _require_admin(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return None, (app_ctx.jsonify({'error': 'Unauthorized'}), 401)
    if not app_ctx.is_admin_user(decoded_token, app_ctx.get_user_data(decoded_token['uid'])):
        return None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    if app_ctx.db is None:
        return None, app_ctx.database_unavailable_response()
    return decoded_token, None


def get_admin_overview(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    try:
        snapshot, failed = app_ctx.monitor_service.snapshot_collections(
            app_ctx.db,
            app_ctx.monitor_service.MONITORED_COLLECTIONS,
            logger=app_ctx.logger,
        )
        stats = app_ctx.monitor_service.compute_usage_stats(snapshot, app_ctx.time.time())
        return app_ctx.jsonify({
            'stats': stats,
            'alerts': app_ctx.monitor_service.get_usage_alerts(stats),
            'unavailable_collections': sorted(failed),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error computing admin overview: {e}")
        return app_ctx.jsonify({'error': 'Could not load overview'}), 500


def get_collection_stats(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    try:
        stats = app_ctx.monitor_service.collect_collection_stats(app_ctx.db, app_ctx.time.time(), logger=app_ctx.logger)
        for entry in stats:
            entry['size_label'] = app_ctx.monitor_service.format_bytes(entry['size_in_bytes'])
        return app_ctx.jsonify({'collections': stats})
    except Exception as e:
        app_ctx.logger.error(f"Error computing collection stats: {e}")
        return app_ctx.jsonify({'error': 'Could not load collection stats'}), 500


def run_security_checks(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    results = app_ctx.security_service.run_security_checks(
        app_ctx.db,
        decoded_token['uid'],
        app_ctx.time.time(),
        logger=app_ctx.logger,
    )
    passed = sum(1 for result in results if result['passed'])
    return app_ctx.jsonify({'results': results, 'passed': passed, 'total': len(results)})


def get_recommended_rules(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    return app_ctx.jsonify({'rules': app_ctx.security_service.recommended_rules()})


def check_indexes(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    results = app_ctx.security_service.check_required_indexes(
        app_ctx.db,
        app_ctx.FIREBASE_PROJECT_ID,
        logger=app_ctx.logger,
    )
    missing = [entry for entry in results if entry['status'] == 'missing']
    return app_ctx.jsonify({'indexes': results, 'missing': len(missing)})
