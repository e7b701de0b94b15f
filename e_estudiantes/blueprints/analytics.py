from flask import Blueprint

analytics_bp = Blueprint('analytics_api', __name__)


@analytics_bp.route('/api/analytics/event', methods=['POST'])
def ingest_analytics_event():
    from e_estudiantes import runtime

    return runtime.ingest_analytics_event_impl()


@analytics_bp.route('/api/analytics/me', methods=['GET'])
def get_my_stats():
    from e_estudiantes import runtime

    return runtime.get_my_stats_impl()
