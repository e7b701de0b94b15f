from flask import Blueprint

schemes_bp = Blueprint('schemes_api', __name__)


@schemes_bp.route('/api/schemes/templates', methods=['GET'])
def list_scheme_templates():
    from e_estudiantes import runtime

    return runtime.list_scheme_templates_impl()


@schemes_bp.route('/api/schemes', methods=['GET'])
def list_my_schemes():
    from e_estudiantes import runtime

    return runtime.list_my_schemes_impl()


@schemes_bp.route('/api/schemes/public', methods=['GET'])
def list_public_schemes():
    from e_estudiantes import runtime

    return runtime.list_public_schemes_impl()


@schemes_bp.route('/api/schemes/<scheme_id>', methods=['GET'])
def get_scheme(scheme_id):
    from e_estudiantes import runtime

    return runtime.get_scheme_impl(scheme_id)


@schemes_bp.route('/api/schemes', methods=['POST'])
def create_scheme():
    from e_estudiantes import runtime

    return runtime.create_scheme_impl()


@schemes_bp.route('/api/schemes/<scheme_id>', methods=['PATCH'])
def update_scheme(scheme_id):
    from e_estudiantes import runtime

    return runtime.update_scheme_impl(scheme_id)


@schemes_bp.route('/api/schemes/<scheme_id>', methods=['DELETE'])
def delete_scheme(scheme_id):
    from e_estudiantes import runtime

    return runtime.delete_scheme_impl(scheme_id)
