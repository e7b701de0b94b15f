"""Scheme (node/edge diagram) templates and payload validation."""

import copy
import math

TEMPLATE_CATEGORIES = ('mindmap', 'flowchart', 'comparison', 'timeline')
NODE_TYPES = {'input', 'default', 'output'}
MAX_NODES = 500
MAX_EDGES = 1000
MAX_LABEL_LEN = 200
MAX_ID_LEN = 64


def _node(node_id, node_type, x, y, label, background_color, color='white', **extra):
    data = {'label': label, 'background_color': background_color, 'color': color}
    data.update(extra)
    return {'id': node_id, 'type': node_type, 'position': {'x': x, 'y': y}, 'data': data}


def _edge(source, target):
    return {'id': f'e{source}-{target}', 'source': source, 'target': target, 'type': 'smoothstep'}


PREDEFINED_TEMPLATES = [
    {
        'id': 'mindmap-basic',
        'name': 'Mapa Mental Básico',
        'description': 'Estructura simple para organizar ideas principales y secundarias',
        'category': 'mindmap',
        'nodes': [
            _node('1', 'input', 250, 100, 'Tema Central', '#2563eb', font_size=16, font_weight='bold'),
            _node('2', 'default', 100, 200, 'Subtema 1', '#3b82f6'),
            _node('3', 'default', 400, 200, 'Subtema 2', '#3b82f6'),
        ],
        'edges': [_edge('1', '2'), _edge('1', '3')],
    },
    {
        'id': 'flowchart-basic',
        'name': 'Diagrama de Flujo',
        'description': 'Para procesos y decisiones secuenciales',
        'category': 'flowchart',
        'nodes': [
            _node('1', 'input', 250, 50, 'Inicio', '#10b981'),
            _node('2', 'default', 250, 150, 'Proceso', '#3b82f6'),
            _node('3', 'default', 250, 250, '¿Decisión?', '#f59e0b'),
            _node('4', 'output', 250, 350, 'Fin', '#ef4444'),
        ],
        'edges': [_edge('1', '2'), _edge('2', '3'), _edge('3', '4')],
    },
    {
        'id': 'comparison-table',
        'name': 'Tabla de Comparación',
        'description': 'Para comparar diferentes conceptos o elementos',
        'category': 'comparison',
        'nodes': [
            _node('1', 'input', 200, 100, 'Concepto A', '#8b5cf6'),
            _node('2', 'input', 400, 100, 'Concepto B', '#ec4899'),
            _node('3', 'default', 200, 200, 'Característica 1', '#f3f4f6', color='#374151'),
            _node('4', 'default', 400, 200, 'Característica 1', '#f3f4f6', color='#374151'),
        ],
        'edges': [_edge('1', '3'), _edge('2', '4')],
    },
    {
        'id': 'timeline-basic',
        'name': 'Línea de Tiempo',
        'description': 'Para eventos cronológicos',
        'category': 'timeline',
        'nodes': [
            _node('1', 'input', 100, 200, 'Evento 1', '#2563eb'),
            _node('2', 'default', 300, 200, 'Evento 2', '#3b82f6'),
            _node('3', 'default', 500, 200, 'Evento 3', '#60a5fa'),
        ],
        'edges': [_edge('1', '2'), _edge('2', '3')],
    },
]


def list_templates():
    return copy.deepcopy(PREDEFINED_TEMPLATES)


def get_templates_by_category(category):
    return [copy.deepcopy(template) for template in PREDEFINED_TEMPLATES if template['category'] == category]


def get_template_by_id(template_id):
    for template in PREDEFINED_TEMPLATES:
        if template['id'] == template_id:
            return copy.deepcopy(template)
    return None


def _coerce_number(value):
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _clean_id(value):
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return ''
    return str(value).strip()[:MAX_ID_LEN]


def sanitize_node_data(raw_data):
    raw_data = raw_data if isinstance(raw_data, dict) else {}
    data = {'label': str(raw_data.get('label', '') or '')[:MAX_LABEL_LEN]}
    for key, source_keys in (
        ('color', ('color',)),
        ('background_color', ('background_color', 'backgroundColor')),
        ('font_weight', ('font_weight', 'fontWeight')),
    ):
        for source_key in source_keys:
            value = raw_data.get(source_key)
            if isinstance(value, str) and value.strip():
                data[key] = value.strip()[:32]
                break
    font_size = raw_data.get('font_size', raw_data.get('fontSize'))
    if font_size is not None and not isinstance(font_size, bool):
        size = _coerce_number(font_size)
        if size > 0:
            data['font_size'] = min(size, 96)
    return data


def sanitize_nodes(raw_nodes):
    if not isinstance(raw_nodes, list):
        return []
    nodes = []
    seen = set()
    for raw in raw_nodes:
        if not isinstance(raw, dict):
            continue
        node_id = _clean_id(raw.get('id'))
        if not node_id or node_id in seen:
            continue
        seen.add(node_id)
        node_type = raw.get('type') if raw.get('type') in NODE_TYPES else 'default'
        position = raw.get('position') if isinstance(raw.get('position'), dict) else {}
        nodes.append({
            'id': node_id,
            'type': node_type,
            'position': {'x': _coerce_number(position.get('x')), 'y': _coerce_number(position.get('y'))},
            'data': sanitize_node_data(raw.get('data')),
        })
        if len(nodes) >= MAX_NODES:
            break
    return nodes


def sanitize_edges(raw_edges, nodes):
    if not isinstance(raw_edges, list):
        return []
    node_ids = {node['id'] for node in nodes}
    edges = []
    seen = set()
    for raw in raw_edges:
        if not isinstance(raw, dict):
            continue
        source = _clean_id(raw.get('source'))
        target = _clean_id(raw.get('target'))
        if source not in node_ids or target not in node_ids:
            continue
        edge_id = _clean_id(raw.get('id')) or f'e{source}-{target}'
        if edge_id in seen:
            continue
        seen.add(edge_id)
        edge = {'id': edge_id, 'source': source, 'target': target, 'type': str(raw.get('type') or 'smoothstep')[:32]}
        label = raw.get('label')
        if isinstance(label, str) and label.strip():
            edge['label'] = label.strip()[:MAX_LABEL_LEN]
        edges.append(edge)
        if len(edges) >= MAX_EDGES:
            break
    return edges


def sanitize_tags(raw_tags):
    if isinstance(raw_tags, str):
        raw_tags = raw_tags.split(',')
    if not isinstance(raw_tags, list):
        return []
    tags = []
    for tag in raw_tags:
        text = str(tag or '').strip()[:40]
        if text and text not in tags:
            tags.append(text)
    return tags[:20]
