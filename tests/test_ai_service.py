import logging
from types import SimpleNamespace

from google.genai import types

from e_estudiantes.services import ai_service

LOGGER = logging.getLogger("tests.ai_service")


class _FakeModels:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


def _client(text="", error=None):
    return SimpleNamespace(models=_FakeModels(text, error))


def _ai_kwargs(client):
    return {
        "client": client,
        "types_module": types,
        "model": "gemini-test",
        "output_language": "Spanish",
        "logger": LOGGER,
    }


def _prompt_text(client):
    return client.models.calls[0]["contents"][0].parts[0].text


def test_extract_json_payload_tolerates_prose_and_fences():
    assert ai_service.extract_json_payload('Aquí tienes: {"a": 1} gracias') == {"a": 1}
    assert ai_service.extract_json_payload('```json\n[1, 2]\n```', "[") == [1, 2]
    assert ai_service.extract_json_payload("sin json") is None
    assert ai_service.extract_json_payload("") is None


def test_sanitize_summary_normalizes_values():
    result = ai_service.sanitize_summary({
        "summary": " Resumen ",
        "keyPoints": ["a", "", 3, None, {"x": 1}],
        "questions": ["q"],
        "difficulty": "EXPERT",
        "estimatedTime": 9000,
        "tags": ["t"],
    })

    assert result["summary"] == "Resumen"
    assert result["key_points"] == ["a", "3"]
    assert result["difficulty"] == "intermediate"
    assert result["estimated_time"] == 600
    assert ai_service.sanitize_summary({"summary": "", "keyPoints": []}) is None
    assert ai_service.sanitize_summary(["not", "a", "dict"]) is None


def test_clamp_estimated_time_bounds():
    assert ai_service.clamp_estimated_time(1) == 5
    assert ai_service.clamp_estimated_time("45") == 45
    assert ai_service.clamp_estimated_time("nope") == 30


def test_basic_summary_heuristics():
    content = (
        "La fotosíntesis convierte la energía luminosa en energía química. "
        "Las plantas utilizan clorofila para capturar la luz solar. "
        "Este proceso produce oxígeno y glucosa como productos. Fin."
    )

    result = ai_service.basic_summary(content, "Biología", "Plantas")

    assert result["summary"] == (
        "La fotosíntesis convierte la energía luminosa en energía química. "
        "Las plantas utilizan clorofila para capturar la luz solar. "
        "Este proceso produce oxígeno y glucosa como productos."
    )
    assert result["key_points"][0] == 'Concepto importante relacionado con "energía"'
    assert len(result["key_points"]) == 5
    assert result["tags"] == ["Biología", "energía", "fotosíntesis", "convierte"]
    assert result["estimated_time"] == 15
    assert result["questions"][0] == "¿Cuáles son los conceptos principales de Plantas?"


def test_basic_summary_difficulty_follows_word_length():
    assert ai_service.basic_summary("el gato come pan", "", "t")["difficulty"] == "beginner"
    long_words = "electroencefalografista otorrinolaringología esternocleidomastoideo"
    assert ai_service.basic_summary(long_words, "", "t")["difficulty"] == "advanced"


def test_basic_flashcards_use_long_sentences():
    content = "Corta. La mitocondria es la central energética de la célula. Otra frase breve."

    cards = ai_service.basic_flashcards(content, 8)

    assert cards == [{
        "question": "¿Cuál es el concepto principal en la oración 1?",
        "answer": "La mitocondria es la central energética de la célula",
    }]


def test_basic_study_plan_splits_time_evenly():
    plan = ai_service.basic_study_plan(["Matemáticas", "Física"], 120)

    assert [entry["time"] for entry in plan["daily_plan"]] == [60, 60]
    assert plan["daily_plan"][0]["tasks"] == ai_service.BASIC_PLAN_TASKS
    assert len(plan["weekly_goals"]) == 4
    assert len(plan["tips"]) == 4


def test_generate_summary_without_client_uses_fallback():
    result = ai_service.generate_summary("Texto corto de prueba para el resumen.", "Historia", "Tema", "summary", **_ai_kwargs(None))

    assert result["source"] == "fallback"
    assert result["tags"][0] == "Historia"


def test_generate_summary_parses_model_json_and_truncates_content():
    client = _client(
        '```json\n{"summary": "Resumen", "keyPoints": ["a"], "questions": [], '
        '"difficulty": "advanced", "estimatedTime": 40, "tags": ["t"]}\n```'
    )

    result = ai_service.generate_summary("x" * 5000, "Física", "Ondas", "mind-map", **_ai_kwargs(client))

    assert result["source"] == "ai"
    assert result["summary"] == "Resumen"
    assert result["difficulty"] == "advanced"
    assert result["estimated_time"] == 40
    prompt = _prompt_text(client)
    assert "x" * ai_service.SUMMARY_CONTENT_LIMIT in prompt
    assert "x" * (ai_service.SUMMARY_CONTENT_LIMIT + 1) not in prompt
    assert "mind-map" in prompt
    assert client.models.calls[0]["model"] == "gemini-test"


def test_generate_summary_falls_back_when_model_fails():
    client = _client(error=RuntimeError("quota"))

    result = ai_service.generate_summary("Contenido de estudio suficientemente largo.", "Química", "Ácidos", "summary", **_ai_kwargs(client))

    assert result["source"] == "fallback"


def test_generate_summary_falls_back_on_unparseable_output():
    client = _client("lo siento, no puedo")

    result = ai_service.generate_summary("Contenido de estudio suficientemente largo.", "Química", "Ácidos", "bogus", **_ai_kwargs(client))

    assert result["source"] == "fallback"


def test_generate_flashcards_sanitizes_model_cards():
    client = _client(
        'Claro: [{"question": "Q1", "answer": "A1"}, {"front": "Q2", "back": "A2"}, '
        '{"question": "Q1", "answer": "A1"}, {"question": "", "answer": "x"}]'
    )

    result = ai_service.generate_flashcards("texto", "Historia", 5, **_ai_kwargs(client))

    assert result["source"] == "ai"
    assert result["flashcards"] == [
        {"question": "Q1", "answer": "A1"},
        {"question": "Q2", "answer": "A2"},
    ]


def test_generate_flashcards_caps_amount():
    client = _client('[{"question": "Q", "answer": "A"}]')

    ai_service.generate_flashcards("texto", "Historia", 500, **_ai_kwargs(client))

    assert f"Generate {ai_service.MAX_FLASHCARD_AMOUNT} study flashcards" in _prompt_text(client)


def test_generate_study_plan_parses_model_plan():
    client = _client(
        '{"dailyPlan": [{"subject": "Mate", "time": "45", "tasks": ["Ejercicios"]}, {"subject": ""}], '
        '"weeklyGoals": ["Meta"], "tips": ["Consejo"]}'
    )

    plan = ai_service.generate_study_plan(["Mate"], 45, **_ai_kwargs(client))

    assert plan["source"] == "ai"
    assert plan["daily_plan"] == [{"subject": "Mate", "time": 45, "tasks": ["Ejercicios"]}]
    assert plan["weekly_goals"] == ["Meta"]


def test_chat_history_keeps_recent_turns():
    history = [{"role": "user" if i % 2 else "assistant", "content": f"m{i}"} for i in range(20)]

    turns = ai_service.sanitize_chat_history(history)

    assert len(turns) == ai_service.CHAT_HISTORY_TURNS
    assert turns[-1]["content"] == "m19"


def test_chat_reply_fallback_and_model_paths():
    fallback = ai_service.chat_reply([], "hola", **_ai_kwargs(None))
    assert fallback == {"reply": ai_service.FALLBACK_CHAT_REPLIES[4], "source": "fallback"}

    client = _client("  Claro, la derivada mide el cambio.  ")
    reply = ai_service.chat_reply([{"role": "assistant", "content": "Hola"}], "¿Qué es una derivada?", **_ai_kwargs(client))

    assert reply == {"reply": "Claro, la derivada mide el cambio.", "source": "ai"}
    prompt = _prompt_text(client)
    assert "Assistant: Hola" in prompt
    assert "Student: ¿Qué es una derivada?" in prompt
