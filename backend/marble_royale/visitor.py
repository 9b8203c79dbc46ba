from flask import current_app, request
from typing import Optional


def current_visitor_id(data: Optional[dict] = None) -> Optional[str]:
    """Resolve the caller's visitor identity.

    Looks at the visitor cookie first, then the ``X-Visitor-Id`` header, then a
    ``visitor_id`` field in ``data`` (JSON body or Socket.IO auth payload), then
    the query string. Cookie issuance is handled by the frontend host.
    """
    cookie_name = current_app.config.get('VISITOR_COOKIE', 'visitorId')
    candidates = (
        request.cookies.get(cookie_name),
        request.headers.get('X-Visitor-Id'),
        (data or {}).get('visitor_id') if isinstance(data, dict) else None,
        request.args.get('visitor_id'),
    )
    for value in candidates:
        value = str(value).strip() if value is not None else ''
        if value:
            return value
    return None
