"""Shared Firestore query helpers.

Filters are passed as ``FieldFilter`` keywords, which newer Firestore SDKs
expect. Simple test doubles that only take positional filters still work.
"""

from google.cloud.firestore_v1.base_query import FieldFilter


def apply_where(query, field_path, op_string, value):
    try:
        return query.where(filter=FieldFilter(field_path, op_string, value))
    except TypeError:
        return query.where(field_path, op_string, value)


def apply_limit(query, limit):
    if isinstance(limit, int) and limit > 0:
        return query.limit(limit)
    return query
