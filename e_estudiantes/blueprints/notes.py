from flask import Blueprint

notes_bp = Blueprint('notes_api', __name__)


@notes_bp.route('/api/notes', methods=['POST'])
def create_note():
    from e_estudiantes import runtime

    return runtime.create_note_impl()


@notes_bp.route('/api/notes/mine', methods=['GET'])
def list_my_notes():
    from e_estudiantes import runtime

    return runtime.list_my_notes_impl()


@notes_bp.route('/api/notes/public', methods=['GET'])
def list_public_notes():
    from e_estudiantes import runtime

    return runtime.list_public_notes_impl()


@notes_bp.route('/api/notes/search', methods=['GET'])
def search_notes():
    from e_estudiantes import runtime

    return runtime.search_notes_impl()


@notes_bp.route('/api/notes/<note_id>', methods=['GET'])
def get_note(note_id):
    from e_estudiantes import runtime

    return runtime.get_note_impl(note_id)


@notes_bp.route('/api/notes/<note_id>', methods=['PATCH'])
def update_note(note_id):
    from e_estudiantes import runtime

    return runtime.update_note_impl(note_id)


@notes_bp.route('/api/notes/<note_id>', methods=['DELETE'])
def delete_note(note_id):
    from e_estudiantes import runtime

    return runtime.delete_note_impl(note_id)


@notes_bp.route('/api/notes/<note_id>/download', methods=['POST'])
def download_note(note_id):
    from e_estudiantes import runtime

    return runtime.download_note_impl(note_id)


@notes_bp.route('/api/notes/<note_id>/favorite', methods=['POST'])
def toggle_favorite(note_id):
    from e_estudiantes import runtime

    return runtime.toggle_favorite_impl(note_id)


@notes_bp.route('/api/favorites', methods=['GET'])
def list_favorites():
    from e_estudiantes import runtime

    return runtime.list_favorites_impl()
