# envsync/routes/comparisons.py
import threading

from flask import Blueprint, abort, current_app, jsonify, request

from ..errors import ConfigurationError, FetchError, SyncBatchError
from ..models import EntityType, Environment
from ..utils.logger import error, info

bp = Blueprint("comparisons", __name__)

# Last reported progress per entity type (best-effort, in-process)
_PROGRESS: dict[str, dict] = {}
_PROGRESS_LOCK = threading.Lock()


def _service():
    return current_app.extensions["envsync"]

def _entity_type(name: str) -> EntityType:
    try:
        return EntityType(name)
    except ValueError:
        abort(400, description=f"Unknown entity type {name!r}")

def _environment(name) -> Environment:
    try:
        return Environment(name)
    except ValueError:
        abort(400, description=f"Unknown environment {name!r}")

def _set_progress(entity_type: EntityType, **fields):
    with _PROGRESS_LOCK:
        _PROGRESS.setdefault(entity_type.value, {}).update(fields)

def _tracker(entity_type: EntityType):
    def on_progress(p):
        _set_progress(entity_type, current=p.current, total=p.total)
    return on_progress

def _release(entity_type: EntityType):
    # a run that ended without reporting still frees the entity type
    with _PROGRESS_LOCK:
        state = _PROGRESS.get(entity_type.value)
        if state and state.get("state") == "running":
            state["state"] = "failed"

def _run(entity_type: EntityType, operation: str, fn, background: bool):
    """Run ``fn`` inline, or on a daemon thread when ``background`` is set.

    One compare or sync per entity type at a time; a second request while
    one is running gets 409.
    """
    with _PROGRESS_LOCK:
        current = _PROGRESS.get(entity_type.value) or {}
        if current.get("state") == "running":
            abort(409, description=f"A {current['operation']} of {entity_type.value} is already running")
        _PROGRESS[entity_type.value] = {"operation": operation, "state": "running",
                                        "current": 0, "total": 0, "error": None, "result": None}
    if not background:
        try:
            result = fn()
            _set_progress(entity_type, state="done", result=result.to_dict())
        except SyncBatchError as e:
            _set_progress(entity_type, state="failed", error=str(e), result=e.result.to_dict())
            raise
        except Exception as e:
            _set_progress(entity_type, state="failed", error=str(e))
            raise
        finally:
            _release(entity_type)
        return result.to_dict(), 200

    def worker():
        try:
            result = fn()
            _set_progress(entity_type, state="done", result=result.to_dict())
        except SyncBatchError as e:
            _set_progress(entity_type, state="failed", error=str(e), result=e.result.to_dict())
        except Exception as e:
            error(f"[{entity_type.value}] background {operation}: {e}")
            _set_progress(entity_type, state="failed", error=str(e))
        finally:
            _release(entity_type)

    threading.Thread(target=worker, daemon=True).start()
    return {"accepted": True, "operation": operation}, 202


# =========================================================
# Error mapping
# =========================================================

@bp.errorhandler(SyncBatchError)
def _partial_failure(e):
    return jsonify(e.result.to_dict()), 207

@bp.errorhandler(FetchError)
def _fetch_failed(e):
    return jsonify({"error": str(e)}), 502

@bp.errorhandler(ConfigurationError)
def _misconfigured(e):
    return jsonify({"error": str(e)}), 500

@bp.errorhandler(400)
@bp.errorhandler(404)
@bp.errorhandler(409)
def _http_error(e):
    return jsonify({"error": e.description}), e.code


# =========================================================
# Records
# =========================================================

@bp.get("/<entity>")
def list_records(entity):
    entity_type = _entity_type(entity)
    return jsonify([r.to_dict() for r in _service().get_all(entity_type)])

@bp.get("/<entity>/records/<path:key>")
def get_record(entity, key):
    record = _service().get_by_key(_entity_type(entity), key)
    if record is None:
        abort(404, description=f"No comparison for {key!r}")
    return jsonify(record.to_dict())

@bp.delete("/<entity>")
def clear_records(entity):
    entity_type = _entity_type(entity)
    _service().clear(entity_type)
    info(f"[{entity_type.value}] comparison records cleared")
    return {"ok": True}, 200

@bp.get("/<entity>/details/<environment>/<path:entity_id>")
def details(entity, environment, entity_id):
    detail = _service().fetch_details(_entity_type(entity), _environment(environment), entity_id)
    if detail is None:
        abort(404, description=f"{entity_id} not found in {environment}")
    return jsonify(detail)

@bp.get("/<entity>/progress")
def progress(entity):
    entity_type = _entity_type(entity)
    with _PROGRESS_LOCK:
        state = dict(_PROGRESS.get(entity_type.value) or {"state": "idle"})
    return jsonify(state)


# =========================================================
# Compare & sync
# =========================================================

@bp.post("/<entity>/compare")
def compare(entity):
    entity_type = _entity_type(entity)
    body = request.get_json(silent=True) or {}
    info(f"[{entity_type.value}] compare requested")
    service = _service()
    return _run(entity_type, "compare",
                lambda: service.compare(entity_type, on_progress=_tracker(entity_type)),
                bool(body.get("background")))

@bp.post("/<entity>/sync")
def sync(entity):
    entity_type = _entity_type(entity)
    body = request.get_json(silent=True) or {}
    keys = body.get("keys")
    if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
        abort(400, description="'keys' must be a list of strings")
    target = _environment(body.get("target"))
    info(f"[{entity_type.value}] sync of {len(keys)} key(s) to {target.value} requested")
    service = _service()
    return _run(entity_type, "sync",
                lambda: service.sync(entity_type, keys, target, on_progress=_tracker(entity_type)),
                bool(body.get("background")))
