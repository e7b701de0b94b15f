"""Document exports for generated study material (DOCX summaries, CSV flashcards)."""

import csv
import io
import re

from docx import Document
from docx.shared import Pt


_INLINE_MARKDOWN_RE = re.compile(r'(\*\*.+?\*\*|__.+?__|\*.+?\*|_.+?_)')
_NUMBERED_RE = re.compile(r'^\d+\.\s+(.*)$')

DIFFICULTY_LABELS = {
    'beginner': 'Principiante',
    'intermediate': 'Intermedio',
    'advanced': 'Avanzado',
}


def summary_to_markdown(result, title=''):
    lines = []
    if title:
        lines.append(f"# {title}")
    summary = str(result.get('summary', '') or '').strip()
    if summary:
        lines.extend(['## Resumen', summary])
    key_points = result.get('key_points') or []
    if key_points:
        lines.append('## Puntos clave')
        lines.extend(f"{index}. {point}" for index, point in enumerate(key_points, start=1))
    questions = result.get('questions') or []
    if questions:
        lines.append('## Preguntas de estudio')
        lines.extend(f"- {question}" for question in questions)
    difficulty = DIFFICULTY_LABELS.get(result.get('difficulty'), '')
    if difficulty:
        lines.append(f"**Dificultad:** {difficulty}")
    if result.get('estimated_time'):
        lines.append(f"**Tiempo estimado:** {int(result['estimated_time'])} min")
    tags = result.get('tags') or []
    if tags:
        lines.append(f"**Etiquetas:** {', '.join(tags)}")
    return '\n'.join(lines)


def _add_inline_runs(paragraph, text):
    for part in _INLINE_MARKDOWN_RE.split(str(text or '')):
        if not part:
            continue
        if (part.startswith('**') and part.endswith('**') and len(part) >= 4) or (part.startswith('__') and part.endswith('__') and len(part) >= 4):
            paragraph.add_run(part[2:-2]).bold = True
            continue
        if (part.startswith('*') and part.endswith('*') and len(part) >= 3) or (part.startswith('_') and part.endswith('_') and len(part) >= 3):
            paragraph.add_run(part[1:-1]).italic = True
            continue
        paragraph.add_run(part.replace('**', '').replace('__', ''))


def markdown_to_docx(markdown_text):
    doc = Document()
    style = doc.styles['Normal']
    style.font.name = 'Calibri'
    style.font.size = Pt(11)
    for raw_line in str(markdown_text or '').split('\n'):
        line = raw_line.strip()
        if not line:
            continue
        numbered = _NUMBERED_RE.match(line)
        if line.startswith('### '):
            doc.add_heading(line[4:], level=3)
        elif line.startswith('## '):
            doc.add_heading(line[3:], level=2)
        elif line.startswith('# '):
            doc.add_heading(line[2:], level=1)
        elif line.startswith('- ') or line.startswith('* '):
            _add_inline_runs(doc.add_paragraph(style='List Bullet'), line[2:])
        elif numbered:
            _add_inline_runs(doc.add_paragraph(style='List Number'), numbered.group(1))
        else:
            _add_inline_runs(doc.add_paragraph(), line)
    return doc


def summary_to_docx_bytes(result, title=''):
    buffer = io.BytesIO()
    markdown_to_docx(summary_to_markdown(result, title)).save(buffer)
    buffer.seek(0)
    return buffer


def flashcards_to_csv(cards):
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(['question', 'answer'])
    for card in cards:
        writer.writerow([card.get('question', ''), card.get('answer', '')])
    return output.getvalue()


def safe_download_name(raw_name, default='resumen'):
    cleaned = re.sub(r'[^A-Za-z0-9._-]+', '_', str(raw_name or '').strip()).strip('._')
    return (cleaned or default)[:80]
