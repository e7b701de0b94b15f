from flask import Blueprint

planner_bp = Blueprint('planner_api', __name__)


@planner_bp.route('/api/study-sessions', methods=['GET'])
def list_study_sessions():
    from e_estudiantes import runtime

    return runtime.list_study_sessions_impl()


@planner_bp.route('/api/study-sessions', methods=['POST'])
def create_study_session():
    from e_estudiantes import runtime

    return runtime.create_study_session_impl()


@planner_bp.route('/api/study-sessions/<session_id>', methods=['PATCH'])
def update_study_session(session_id):
    from e_estudiantes import runtime

    return runtime.update_study_session_impl(session_id)


@planner_bp.route('/api/study-sessions/<session_id>', methods=['DELETE'])
def delete_study_session(session_id):
    from e_estudiantes import runtime

    return runtime.delete_study_session_impl(session_id)


@planner_bp.route('/api/study-sessions/<session_id>/complete', methods=['POST'])
def complete_study_session(session_id):
    from e_estudiantes import runtime

    return runtime.complete_study_session_impl(session_id)


@planner_bp.route('/api/pomodoro', methods=['POST'])
def start_pomodoro():
    from e_estudiantes import runtime

    return runtime.start_pomodoro_impl()


@planner_bp.route('/api/pomodoro/active', methods=['GET'])
def get_active_pomodoro():
    from e_estudiantes import runtime

    return runtime.get_active_pomodoro_impl()


@planner_bp.route('/api/pomodoro/<pomodoro_id>/advance', methods=['POST'])
def advance_pomodoro(pomodoro_id):
    from e_estudiantes import runtime

    return runtime.advance_pomodoro_impl(pomodoro_id)


@planner_bp.route('/api/pomodoro/<pomodoro_id>/pause', methods=['POST'])
def pause_pomodoro(pomodoro_id):
    from e_estudiantes import runtime

    return runtime.pause_pomodoro_impl(pomodoro_id)


@planner_bp.route('/api/pomodoro/<pomodoro_id>/resume', methods=['POST'])
def resume_pomodoro(pomodoro_id):
    from e_estudiantes import runtime

    return runtime.resume_pomodoro_impl(pomodoro_id)


@planner_bp.route('/api/pomodoro/<pomodoro_id>/stop', methods=['POST'])
def stop_pomodoro(pomodoro_id):
    from e_estudiantes import runtime

    return runtime.stop_pomodoro_impl(pomodoro_id)


@planner_bp.route('/api/subjects', methods=['GET'])
def list_subjects():
    from e_estudiantes import runtime

    return runtime.list_subjects_impl()


@planner_bp.route('/api/subjects', methods=['POST'])
def create_subject():
    from e_estudiantes import runtime

    return runtime.create_subject_impl()


@planner_bp.route('/api/subjects/<subject_id>', methods=['DELETE'])
def delete_subject(subject_id):
    from e_estudiantes import runtime

    return runtime.delete_subject_impl(subject_id)


@planner_bp.route('/api/subjects/<subject_id>/pin', methods=['POST'])
def pin_subject_file(subject_id):
    from e_estudiantes import runtime

    return runtime.pin_subject_file_impl(subject_id)


@planner_bp.route('/api/subjects/<subject_id>/unpin', methods=['POST'])
def unpin_subject_file(subject_id):
    from e_estudiantes import runtime

    return runtime.unpin_subject_file_impl(subject_id)
