"""JSON error envelope shared by every blueprint.

    from fieldprogress.utils.errors import api_error, E

    return api_error(E.VALIDATION_REQUIRED, "qty_today is required")
    return api_error(E.BUSINESS_RULE, exc.message, status=exc.status_code)

Body shape: ``{"error": <message>, "code": <E.*>, "details"?: {...}}``.
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Machine-readable error codes."""

    # 400: malformed or missing request input
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # 422: well-formed input the domain rejects (import batch, capture qty)
    BUSINESS_RULE = "ERR_BUSINESS_RULE"

    # 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # 409: duplicate project / activity code
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # 500
    DATABASE = "ERR_DATABASE"


_STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.BUSINESS_RULE: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
}


def code_for_status(status: int) -> str:
    """Best-fit error code for an exception that only carries a status."""
    for code, mapped in _STATUS_BY_CODE.items():
        if mapped == status:
            return code
    return E.BUSINESS_RULE


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return ``(jsonify(body), status)``; status defaults from ``code``."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _STATUS_BY_CODE.get(code, 400)
