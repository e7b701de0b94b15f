"""Firebase Storage helpers for uploaded note files."""

import math
import re
from datetime import timedelta

ALLOWED_NOTE_EXTENSIONS = {'pdf', 'doc', 'docx', 'ppt', 'pptx', 'txt', 'md', 'png', 'jpg', 'jpeg'}
NOTE_CATEGORIES = {'personal', 'shared'}
_UNSAFE_NAME_CHARS_RE = re.compile(r'[^a-zA-Z0-9.-]')


def generate_file_path(user_id, category, file_name, now_ms):
    safe_category = category if category in NOTE_CATEGORIES else 'personal'
    clean_file_name = _UNSAFE_NAME_CHARS_RE.sub('_', str(file_name or ''))
    return f"{safe_category}/{user_id}/{int(now_ms)}_{clean_file_name}"


def get_file_extension(file_name):
    name = str(file_name or '')
    if '.' not in name:
        return name.lower()
    return name.rsplit('.', 1)[1].lower()


def is_valid_file_type(file_name, allowed_types):
    return get_file_extension(file_name) in allowed_types


def format_file_size(num_bytes):
    if not num_bytes:
        return '0 Bytes'
    sizes = ['Bytes', 'KB', 'MB', 'GB']
    index = max(0, min(int(math.floor(math.log(num_bytes) / math.log(1024))), len(sizes) - 1))
    value = round(num_bytes / math.pow(1024, index), 2)
    text = f"{value:.2f}".rstrip('0').rstrip('.')
    return f"{text} {sizes[index]}"


def upload_file(bucket, path, file_obj, content_type=None):
    blob = bucket.blob(path)
    blob.upload_from_file(file_obj, content_type=content_type)
    return blob


def delete_file(bucket, path, logger=None):
    if bucket is None or not path:
        return False
    try:
        bucket.blob(path).delete()
        return True
    except Exception as exc:
        if logger is not None:
            logger.warning(f"Could not delete stored file {path}: {exc}")
        return False


def get_file_metadata(bucket, path):
    blob = bucket.get_blob(path)
    if blob is None:
        return None
    return {
        'name': blob.name,
        'size': blob.size,
        'content_type': blob.content_type,
        'updated': blob.updated.isoformat() if blob.updated else None,
    }


def generate_download_url(bucket, path, ttl_seconds):
    blob = bucket.blob(path)
    return blob.generate_signed_url(expiration=timedelta(seconds=ttl_seconds), version='v4')
