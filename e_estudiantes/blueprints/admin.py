from flask import Blueprint

admin_bp = Blueprint('admin_api', __name__)


@admin_bp.route('/api/admin/overview', methods=['GET'])
def admin_overview():
    from e_estudiantes import runtime

    return runtime.get_admin_overview_impl()


@admin_bp.route('/api/admin/collections', methods=['GET'])
def admin_collections():
    from e_estudiantes import runtime

    return runtime.get_collection_stats_impl()


@admin_bp.route('/api/admin/security', methods=['GET'])
def admin_security_checks():
    from e_estudiantes import runtime

    return runtime.run_security_checks_impl()


@admin_bp.route('/api/admin/security/rules', methods=['GET'])
def admin_security_rules():
    from e_estudiantes import runtime

    return runtime.get_recommended_rules_impl()


@admin_bp.route('/api/admin/indexes', methods=['GET'])
def admin_indexes():
    from e_estudiantes import runtime

    return runtime.check_indexes_impl()
