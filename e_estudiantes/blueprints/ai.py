from flask import Blueprint

ai_bp = Blueprint('ai_api', __name__)


@ai_bp.route('/api/ai/summary', methods=['POST'])
def ai_summary():
    from e_estudiantes import runtime

    return runtime.ai_summary_impl()


@ai_bp.route('/api/ai/flashcards', methods=['POST'])
def ai_flashcards():
    from e_estudiantes import runtime

    return runtime.ai_flashcards_impl()


@ai_bp.route('/api/ai/plan', methods=['POST'])
def ai_plan():
    from e_estudiantes import runtime

    return runtime.ai_plan_impl()


@ai_bp.route('/api/ai/chat', methods=['POST'])
def ai_chat():
    from e_estudiantes import runtime

    return runtime.ai_chat_impl()


@ai_bp.route('/api/ai/summary/export-docx', methods=['POST'])
def export_summary_docx():
    from e_estudiantes import runtime

    return runtime.export_summary_docx_impl()


@ai_bp.route('/api/ai/flashcards/export-csv', methods=['POST'])
def export_flashcards_csv():
    from e_estudiantes import runtime

    return runtime.export_flashcards_csv_impl()
