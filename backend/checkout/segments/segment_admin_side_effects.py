from __future__ import annotations

import hmac

from flask import Blueprint, jsonify, request

from checkout.services import get_services
from checkout.utils.side_effects import list_side_effects

admin_bp = Blueprint("admin_bp", __name__, url_prefix="/api/admin")


def _bearer():
    h = request.headers.get("Authorization", "")
    if not h.startswith("Bearer "):
        return None
    return h.replace("Bearer ", "", 1).strip()


def _is_admin() -> bool:
    expected = get_services().config.ADMIN_TOKEN
    tok = _bearer()
    if not expected or not tok:
        return False
    return hmac.compare_digest(tok, expected)


@admin_bp.get("/side-effects")
def side_effects_list():
    if not _is_admin():
        return jsonify({"success": False, "message": "Admin required"}), 403
    status = (request.args.get("status") or "").strip() or None
    try:
        limit = min(500, max(1, int(request.args.get("limit") or 100)))
    except ValueError:
        limit = 100
    rows = list_side_effects(status=status, limit=limit)
    return jsonify({"success": True, "items": rows, "count": len(rows)}), 200
