"""Per-actor request throttling.

Counters live in Firestore as fixed windows so every worker shares them. When
Firestore is not reachable the check degrades to a sliding window kept in the
worker's memory.
"""

import hashlib

from e_estudiantes.repositories import analytics_repo, rate_limit_repo


LIMIT_NAMES = {'ai', 'analytics', 'upload', 'report'}


def window_bounds(now_ts, window_seconds):
    window_seconds = max(1, int(window_seconds))
    window_start = int(now_ts // window_seconds) * window_seconds
    retry_after = max(1, int((window_start + window_seconds) - now_ts))
    return window_start, retry_after


def counter_id_for(key, window_seconds, window_start):
    raw = f"{key}|{int(window_seconds)}|{int(window_start)}".encode('utf-8')
    return hashlib.sha256(raw).hexdigest()


def consume_firestore_window(key, limit, window_seconds, now_ts, *, db, firestore_module, counter_collection):
    """Return (allowed, retry_after), or None when the counter store failed."""
    if db is None or firestore_module is None:
        return None
    window_start, retry_after = window_bounds(now_ts, window_seconds)
    counter_ref = rate_limit_repo.counter_doc_ref(
        db, counter_collection, counter_id_for(key, window_seconds, window_start)
    )
    try:
        transaction = db.transaction()

        @firestore_module.transactional
        def _consume(txn):
            snapshot = counter_ref.get(transaction=txn)
            used = int((snapshot.to_dict() or {}).get('count', 0) or 0) if snapshot.exists else 0
            if used >= limit:
                return False, retry_after
            txn.set(counter_ref, {
                'key': key,
                'count': used + 1,
                'window_start': window_start,
                'window_seconds': int(window_seconds),
                'updated_at': now_ts,
                'expires_at': window_start + int(window_seconds) * 3,
            }, merge=True)
            return True, 0

        return _consume(transaction)
    except Exception:
        return None


def consume_memory_window(key, limit, window_seconds, now_ts, *, events, lock):
    with lock:
        cutoff = now_ts - window_seconds
        recent = [ts for ts in events.get(key, []) if ts >= cutoff]
        if len(recent) >= limit:
            events[key] = recent
            return False, max(1, int((recent[0] + window_seconds) - now_ts))
        recent.append(now_ts)
        events[key] = recent
    return True, 0


def check_rate_limit(
    key,
    limit,
    window_seconds,
    *,
    firestore_enabled,
    db,
    firestore_module,
    counter_collection,
    in_memory_events,
    in_memory_lock,
    time_module,
):
    now_ts = time_module.time()
    if firestore_enabled:
        result = consume_firestore_window(
            key,
            limit,
            window_seconds,
            now_ts,
            db=db,
            firestore_module=firestore_module,
            counter_collection=counter_collection,
        )
        if result is not None:
            return result
    return consume_memory_window(
        key,
        limit,
        window_seconds,
        now_ts,
        events=in_memory_events,
        lock=in_memory_lock,
    )


def log_rate_limit_hit(limit_name, retry_after=0, *, db, logger, time_module):
    safe_name = str(limit_name or '').strip().lower()
    if safe_name not in LIMIT_NAMES or db is None:
        return False
    try:
        retry_after_seconds = max(1, int(float(retry_after)))
    except (TypeError, ValueError):
        retry_after_seconds = 1
    try:
        analytics_repo.add_rate_limit_log(db, {
            'limit_name': safe_name,
            'retry_after_seconds': retry_after_seconds,
            'created_at': time_module.time(),
        })
        return True
    except Exception as exc:
        if logger is not None:
            logger.info(f"Could not store rate limit log ({safe_name}): {exc}")
        return False
