from flask import Blueprint

auth_bp = Blueprint('auth_api', __name__)


@auth_bp.route('/api/auth/user', methods=['GET'])
def get_current_user():
    from e_estudiantes import runtime

    return runtime.get_current_user_impl()


@auth_bp.route('/api/auth/user', methods=['PATCH'])
def update_current_user():
    from e_estudiantes import runtime

    return runtime.update_current_user_impl()


@auth_bp.route('/api/admin/users', methods=['GET'])
def list_users():
    from e_estudiantes import runtime

    return runtime.list_users_impl()


@auth_bp.route('/api/admin/users/lookup', methods=['GET'])
def lookup_user():
    from e_estudiantes import runtime

    return runtime.lookup_user_impl()


@auth_bp.route('/api/admin/users/promote', methods=['POST'])
def promote_user():
    from e_estudiantes import runtime

    return runtime.promote_user_impl()
