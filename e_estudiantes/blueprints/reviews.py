from flask import Blueprint

reviews_bp = Blueprint('reviews_api', __name__)


@reviews_bp.route('/api/notes/<note_id>/reviews', methods=['GET'])
def list_reviews(note_id):
    from e_estudiantes import runtime

    return runtime.list_reviews_impl(note_id)


@reviews_bp.route('/api/notes/<note_id>/reviews', methods=['POST'])
def create_review(note_id):
    from e_estudiantes import runtime

    return runtime.create_review_impl(note_id)


@reviews_bp.route('/api/reviews/<review_id>/helpful', methods=['POST'])
def mark_review_helpful(review_id):
    from e_estudiantes import runtime

    return runtime.mark_review_helpful_impl(review_id)


@reviews_bp.route('/api/reports', methods=['POST'])
def create_report():
    from e_estudiantes import runtime

    return runtime.create_report_impl()


@reviews_bp.route('/api/admin/reports', methods=['GET'])
def list_reports():
    from e_estudiantes import runtime

    return runtime.list_reports_impl()


@reviews_bp.route('/api/admin/reports/<report_id>', methods=['PATCH'])
def update_report(report_id):
    from e_estudiantes import runtime

    return runtime.update_report_impl(report_id)
