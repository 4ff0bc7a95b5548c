import uuid
from flask import g, request

_MAX_LEN = 64

def _incoming_request_id() -> str | None:
    rid = (request.headers.get("X-Request-Id") or "").strip()
    if rid and len(rid) <= _MAX_LEN and rid.isprintable():
        return rid
    return None

def init_request_id(app):
    @app.before_request
    def _assign_request_id():
        g.request_id = _incoming_request_id() or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):
        if hasattr(g, "request_id"):
            response.headers["X-Request-Id"] = g.request_id
            app.logger.debug(
                "%s %s -> %s request_id=%s", request.method, request.path, response.status_code, g.request_id
            )
        return response
