from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify

from models.account_store import AccountStore
from models.results import Failed, Found
from models.schemas.account import AccountOutSchema
from utils.decorators import jwt_required
from utils.exceptions import InternalError, NotFoundError

bp = Blueprint("users", __name__)

account_out_schema = AccountOutSchema()


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current account info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: Account no longer exists
    """
    accounts: AccountStore = current_app.extensions["accounts"]
    result = accounts.find_by_id(g.current_account_id)
    if isinstance(result, Failed):
        raise InternalError(f"account lookup failed: {result.detail}")
    if not isinstance(result, Found):
        raise NotFoundError("account not found")
    return jsonify(
        {
            "data": account_out_schema.dump(result.record)
        }
    ), 200
