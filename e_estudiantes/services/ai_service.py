"""AI study aids: summaries, flashcards, study plans and chat.

Every generator degrades to a local heuristic when the Gemini client is not
configured, the call fails, or the model returns something unparseable. The
returned payloads carry ``source`` so callers can tell the two apart.
"""

import json
import re
from collections import Counter

from e_estudiantes.services import prompt_registry


SUMMARY_TYPES = ('summary', 'key-points', 'questions', 'mind-map')
DIFFICULTY_LEVELS = ('beginner', 'intermediate', 'advanced')
SUMMARY_CONTENT_LIMIT = 3500
FLASHCARD_CONTENT_LIMIT = 3000
DEFAULT_FLASHCARD_AMOUNT = 8
MAX_FLASHCARD_AMOUNT = 30
MIN_ESTIMATED_TIME = 5
MAX_ESTIMATED_TIME = 600
MAX_LIST_ITEMS = 20
MAX_ITEM_LEN = 500
MAX_TEXT_LEN = 2000
CHAT_HISTORY_TURNS = 12

_SENTENCE_SPLIT_RE = re.compile(r'[.!?]+')
_NON_WORD_RE = re.compile(r'[^\w\s]')

BASIC_PLAN_TASKS = [
    'Revisar apuntes anteriores',
    'Leer nuevo material',
    'Hacer ejercicios prácticos',
    'Crear resumen personal',
]
BASIC_PLAN_GOALS = [
    'Completar al menos 3 sesiones de estudio por materia',
    'Crear resúmenes de los temas principales',
    'Resolver ejercicios de práctica',
    'Repasar material de la semana anterior',
]
BASIC_PLAN_TIPS = [
    'Estudia en sesiones de 25 minutos con descansos de 5 minutos',
    'Usa técnicas de repaso espaciado',
    'Crea mapas mentales para visualizar conceptos',
    'Practica explicando los conceptos a otros',
]
FALLBACK_CHAT_REPLIES = [
    'Entiendo tu pregunta. Te ayudo a resolverla paso a paso...',
    'Excelente pregunta. Aquí tienes una explicación detallada...',
    'Basándome en el contenido que has estudiado, te recomiendo...',
    'Para mejorar tu comprensión, te sugiero revisar estos conceptos...',
    '¡Buena observación! Vamos a analizar esto juntos...',
]


def extract_json_payload(raw_text, opener='{'):
    """Return the first JSON object (or array, with ``opener='['``) in model output."""
    if not raw_text:
        return None
    closer = '}' if opener == '{' else ']'
    text = str(raw_text).strip()
    if text.startswith('```'):
        lines = text.splitlines()
        if len(lines) >= 3 and lines[-1].strip() == '```':
            text = '\n'.join(lines[1:-1]).strip()
    start = text.find(opener)
    if start == -1:
        return None
    decoder = json.JSONDecoder()
    try:
        parsed, _ = decoder.raw_decode(text[start:])
        return parsed
    except json.JSONDecodeError:
        end = text.rfind(closer)
        if end <= start:
            return None
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None


def sanitize_string_list(items, max_items=MAX_LIST_ITEMS, max_len=MAX_ITEM_LEN):
    if not isinstance(items, list):
        return []
    cleaned = []
    for item in items:
        if not isinstance(item, (str, int, float)) or isinstance(item, bool):
            continue
        text = str(item).strip()[:max_len]
        if text:
            cleaned.append(text)
        if len(cleaned) >= max_items:
            break
    return cleaned


def clamp_estimated_time(value, default=30):
    try:
        minutes = int(float(value))
    except (TypeError, ValueError):
        minutes = default
    return max(MIN_ESTIMATED_TIME, min(MAX_ESTIMATED_TIME, minutes))


def normalize_difficulty(value):
    difficulty = str(value or '').strip().lower()
    return difficulty if difficulty in DIFFICULTY_LEVELS else 'intermediate'


def normalize_summary_type(value):
    summary_type = str(value or '').strip().lower()
    return summary_type if summary_type in SUMMARY_TYPES else 'summary'


def sanitize_summary(parsed):
    if not isinstance(parsed, dict):
        return None
    summary = str(parsed.get('summary', '') or '').strip()[:MAX_TEXT_LEN * 4]
    key_points = sanitize_string_list(parsed.get('keyPoints', parsed.get('key_points')))
    questions = sanitize_string_list(parsed.get('questions'))
    if not summary and not key_points and not questions:
        return None
    return {
        'summary': summary,
        'key_points': key_points,
        'questions': questions,
        'difficulty': normalize_difficulty(parsed.get('difficulty')),
        'estimated_time': clamp_estimated_time(parsed.get('estimatedTime', parsed.get('estimated_time'))),
        'tags': sanitize_string_list(parsed.get('tags'), max_items=10, max_len=60),
    }


def sanitize_flashcards(items, max_items):
    if not isinstance(items, list):
        return []
    cleaned = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        question = str(item.get('question', item.get('front', '')) or '').strip()[:MAX_TEXT_LEN]
        answer = str(item.get('answer', item.get('back', '')) or '').strip()[:MAX_TEXT_LEN]
        if not question or not answer:
            continue
        key = (question.lower(), answer.lower())
        if key in seen:
            continue
        seen.add(key)
        cleaned.append({'question': question, 'answer': answer})
        if len(cleaned) >= max_items:
            break
    return cleaned


def sanitize_study_plan(parsed):
    if not isinstance(parsed, dict):
        return None
    daily_plan = []
    for entry in parsed.get('dailyPlan', parsed.get('daily_plan')) or []:
        if not isinstance(entry, dict):
            continue
        subject = str(entry.get('subject', '') or '').strip()[:120]
        if not subject:
            continue
        try:
            minutes = max(0, int(float(entry.get('time', 0) or 0)))
        except (TypeError, ValueError):
            minutes = 0
        daily_plan.append({
            'subject': subject,
            'time': minutes,
            'tasks': sanitize_string_list(entry.get('tasks'), max_items=10),
        })
    if not daily_plan:
        return None
    return {
        'daily_plan': daily_plan,
        'weekly_goals': sanitize_string_list(parsed.get('weeklyGoals', parsed.get('weekly_goals'))),
        'tips': sanitize_string_list(parsed.get('tips')),
    }


def _split_sentences(content):
    return [part.strip() for part in _SENTENCE_SPLIT_RE.split(content or '')]


def _keywords(content):
    words = [word for word in _NON_WORD_RE.sub('', (content or '').lower()).split() if len(word) > 3]
    # most_common keeps first-seen order among equal counts
    return words, [word for word, _count in Counter(words).most_common(10)]


def basic_summary(content, subject, title):
    content = content or ''
    words, keywords = _keywords(content)
    sentences = [sentence for sentence in _split_sentences(content) if len(sentence) > 20]
    summary = '. '.join(sentences[:3]) + '.'
    avg_word_length = (sum(len(word) for word in words) / len(words)) if words else 0
    if avg_word_length > 8:
        difficulty = 'advanced'
    elif avg_word_length > 6:
        difficulty = 'intermediate'
    else:
        difficulty = 'beginner'
    return {
        'summary': summary,
        'key_points': [f'Concepto importante relacionado con "{word}"' for word in keywords[:5]],
        'questions': [
            f'¿Cuáles son los conceptos principales de {title}?',
            f'¿Cómo se relaciona este contenido con {subject}?',
            '¿Qué aplicaciones prácticas tiene este conocimiento?',
        ],
        'difficulty': difficulty,
        'estimated_time': max(15, min(120, len(content) // 100)),
        'tags': [tag for tag in [subject] + keywords[:3] if tag],
    }


def basic_flashcards(content, amount=DEFAULT_FLASHCARD_AMOUNT):
    sentences = [sentence for sentence in _split_sentences(content) if len(sentence) > 30]
    return [
        {
            'question': f'¿Cuál es el concepto principal en la oración {index + 1}?',
            'answer': sentence,
        }
        for index, sentence in enumerate(sentences[:amount])
    ]


def basic_study_plan(subjects, available_time):
    per_subject = int(available_time // len(subjects)) if subjects else 0
    return {
        'daily_plan': [
            {'subject': subject, 'time': per_subject, 'tasks': list(BASIC_PLAN_TASKS)}
            for subject in subjects
        ],
        'weekly_goals': list(BASIC_PLAN_GOALS),
        'tips': list(BASIC_PLAN_TIPS),
    }


def basic_chat_reply(message):
    return FALLBACK_CHAT_REPLIES[len(str(message or '')) % len(FALLBACK_CHAT_REPLIES)]


def generate_text(prompt_text, *, client, types_module, model, output_language, max_output_tokens=4096):
    system_instruction = prompt_registry.get_prompt_template('system_tutor').format(output_language=output_language)
    response = client.models.generate_content(
        model=model,
        contents=[types_module.Content(role='user', parts=[types_module.Part.from_text(text=prompt_text)])],
        config=types_module.GenerateContentConfig(
            system_instruction=system_instruction,
            max_output_tokens=max_output_tokens,
            temperature=0.7,
        ),
    )
    return getattr(response, 'text', '') or ''


def generate_summary(content, subject, title, summary_type, *, client, types_module, model, output_language, logger):
    summary_type = normalize_summary_type(summary_type)
    if client is not None:
        prompt_text = prompt_registry.get_prompt_template('summary').format(
            title=title,
            subject=subject,
            summary_type=summary_type,
            type_instructions=prompt_registry.SUMMARY_TYPE_INSTRUCTIONS[summary_type],
            content=(content or '')[:SUMMARY_CONTENT_LIMIT],
            output_language=output_language,
        )
        try:
            raw_text = generate_text(
                prompt_text,
                client=client,
                types_module=types_module,
                model=model,
                output_language=output_language,
            )
            result = sanitize_summary(extract_json_payload(raw_text, '{'))
            if result is not None:
                result['source'] = 'ai'
                return result
            logger.warning('AI summary response could not be parsed; using fallback')
        except Exception as exc:
            logger.error(f"AI summary generation failed: {exc}")
    result = basic_summary(content, subject, title)
    result['source'] = 'fallback'
    return result


def generate_flashcards(content, subject, amount=DEFAULT_FLASHCARD_AMOUNT, *, client, types_module, model, output_language, logger):
    amount = max(1, min(MAX_FLASHCARD_AMOUNT, int(amount)))
    if client is not None:
        prompt_text = prompt_registry.get_prompt_template('flashcards').format(
            amount=amount,
            subject=subject,
            content=(content or '')[:FLASHCARD_CONTENT_LIMIT],
            output_language=output_language,
        )
        try:
            raw_text = generate_text(
                prompt_text,
                client=client,
                types_module=types_module,
                model=model,
                output_language=output_language,
            )
            cards = sanitize_flashcards(extract_json_payload(raw_text, '['), amount)
            if cards:
                return {'flashcards': cards, 'source': 'ai'}
            logger.warning('AI flashcards response could not be parsed; using fallback')
        except Exception as exc:
            logger.error(f"AI flashcard generation failed: {exc}")
    return {'flashcards': basic_flashcards(content, amount), 'source': 'fallback'}


def generate_study_plan(subjects, available_time, *, client, types_module, model, output_language, logger):
    if client is not None:
        prompt_text = prompt_registry.get_prompt_template('study_plan').format(
            subjects=', '.join(subjects),
            available_time=available_time,
            output_language=output_language,
        )
        try:
            raw_text = generate_text(
                prompt_text,
                client=client,
                types_module=types_module,
                model=model,
                output_language=output_language,
            )
            plan = sanitize_study_plan(extract_json_payload(raw_text, '{'))
            if plan is not None:
                plan['source'] = 'ai'
                return plan
            logger.warning('AI study plan response could not be parsed; using fallback')
        except Exception as exc:
            logger.error(f"AI study plan generation failed: {exc}")
    plan = basic_study_plan(subjects, available_time)
    plan['source'] = 'fallback'
    return plan


def sanitize_chat_history(history):
    if not isinstance(history, list):
        return []
    turns = []
    for item in history:
        if not isinstance(item, dict):
            continue
        role = 'assistant' if str(item.get('role', '')).strip().lower() in {'assistant', 'ai', 'model'} else 'user'
        text = str(item.get('content', item.get('text', '')) or '').strip()[:MAX_TEXT_LEN]
        if text:
            turns.append({'role': role, 'content': text})
    return turns[-CHAT_HISTORY_TURNS:]


def chat_reply(history, message, *, client, types_module, model, output_language, logger):
    turns = sanitize_chat_history(history)
    message = str(message or '').strip()[:MAX_TEXT_LEN]
    if client is not None:
        transcript = '\n'.join(
            f"{'Assistant' if turn['role'] == 'assistant' else 'Student'}: {turn['content']}" for turn in turns
        )
        prompt_text = prompt_registry.get_prompt_template('chat').format(
            history=transcript or '(empty)',
            message=message,
        )
        try:
            reply = generate_text(
                prompt_text,
                client=client,
                types_module=types_module,
                model=model,
                output_language=output_language,
                max_output_tokens=2048,
            ).strip()
            if reply:
                return {'reply': reply, 'source': 'ai'}
        except Exception as exc:
            logger.error(f"AI chat reply failed: {exc}")
    return {'reply': basic_chat_reply(message), 'source': 'fallback'}
