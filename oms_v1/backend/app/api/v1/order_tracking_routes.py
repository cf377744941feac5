from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, current_app, request
from flask_jwt_extended import get_jwt_identity

from app.extensions import db
from app.middleware.cache import cache_response, invalidate_patterns
from app.security.decorators import current_user_id, require_permissions
from app.services.order_tracking_service import (
    OrderItemNotFoundError,
    StatusUpdateError,
    export_tracking_items,
    get_order_by_id,
    get_order_tracking,
    get_order_tracking_summary,
    render_csv,
    render_text_report,
    update_order_status,
)
from app.validators.order_tracking import parse_status_update, parse_tracking_query

logger = logging.getLogger(__name__)

order_tracking_bp = Blueprint("order_tracking", __name__)

LIST_KEY_PREFIX = "order-tracking:list"
SUMMARY_KEY_PREFIX = "order-tracking:summary"
DETAIL_KEY_PREFIX = "order-tracking:detail"


def list_cache_key(**_kwargs: object) -> str:
    query, errors = parse_tracking_query(request.args)
    fragment = request.query_string.decode() if errors else query.cache_fragment()
    digest = hashlib.md5(fragment.encode()).hexdigest()
    return f"{LIST_KEY_PREFIX}:{get_jwt_identity()}:{digest}"


def summary_cache_key(**_kwargs: object) -> str:
    return f"{SUMMARY_KEY_PREFIX}:{get_jwt_identity()}"


def detail_cache_key(order_item_id: int, **_kwargs: object) -> str:
    return f"{DETAIL_KEY_PREFIX}:{order_item_id}:{get_jwt_identity()}"


def status_update_patterns(order_item_id: int, **_kwargs: object) -> list[str]:
    # every user's cached boards embed this item's status
    return [
        f"{LIST_KEY_PREFIX}:*",
        f"{SUMMARY_KEY_PREFIX}:*",
        f"{DETAIL_KEY_PREFIX}:{order_item_id}:*",
    ]


@order_tracking_bp.get("")
@require_permissions("order.tracking.read")
@cache_response(list_cache_key, ttl=lambda: current_app.config["ORDER_TRACKING_LIST_TTL"])
def list_order_tracking() -> tuple[dict[str, object], int]:
    query, errors = parse_tracking_query(request.args)
    if errors:
        logger.warning(f"Rejected order tracking query from user {get_jwt_identity()}: {errors}")
        return {"message": "invalid query parameters", "errors": errors}, 400

    logger.info(f"Order tracking list requested by user {get_jwt_identity()} (page {query.page})")
    result = get_order_tracking(query)
    logger.info(f"Order tracking list returned {len(result['items'])} of {result['pagination']['total']} items")
    return result, 200


@order_tracking_bp.get("/summary")
@require_permissions("order.tracking.read")
@cache_response(summary_cache_key, ttl=lambda: current_app.config["ORDER_TRACKING_SUMMARY_TTL"])
def order_tracking_summary() -> tuple[dict[str, object], int]:
    summary = get_order_tracking_summary()
    logger.info(f"Order tracking summary served to user {get_jwt_identity()}: {summary['total_orders']} orders")
    return summary, 200


@order_tracking_bp.get("/<int:order_item_id>")
@require_permissions("order.tracking.read")
@cache_response(detail_cache_key, ttl=lambda: current_app.config["ORDER_TRACKING_DETAIL_TTL"])
def get_order_tracking_item(order_item_id: int) -> tuple[dict[str, object], int]:
    item = get_order_by_id(order_item_id)
    if item is None:
        return {"message": "order item not found"}, 404
    return item, 200


@order_tracking_bp.route("/<int:order_item_id>/status", methods=["PUT", "PATCH"])
@require_permissions("order.tracking.update")
@invalidate_patterns(status_update_patterns)
def update_tracking_status(order_item_id: int) -> tuple[dict[str, object], int]:
    actor_id = current_user_id()
    if actor_id is None:
        return {"message": "invalid token identity"}, 401

    update, errors = parse_status_update(request.get_json(silent=True), order_item_id)
    if errors:
        logger.warning(f"Rejected status update for order item {order_item_id}: {errors}")
        return {"message": "invalid request body", "errors": errors}, 400

    try:
        item = update_order_status(
            order_item_id,
            update.status,
            actor_user_id=actor_id,
            remarks=update.remarks,
            ip_address=request.remote_addr,
        )
    except OrderItemNotFoundError:
        db.session.rollback()
        return {"message": "order item not found"}, 404
    except StatusUpdateError as exc:
        db.session.rollback()
        return {"message": str(exc)}, 409

    return item, 200


def _export_filename(extension: str) -> str:
    return f"order-tracking-{datetime.now(timezone.utc).date().isoformat()}.{extension}"


@order_tracking_bp.get("/export/csv")
@require_permissions("order.tracking.export")
def export_order_tracking_csv():
    query, errors = parse_tracking_query(request.args)
    if errors:
        return {"message": "invalid query parameters", "errors": errors}, 400

    items, total = export_tracking_items(query)
    filename = _export_filename("csv")
    logger.info(f"User {get_jwt_identity()} exported {len(items)} of {total} order items to {filename}")
    return Response(
        render_csv(items),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@order_tracking_bp.get("/export/report")
@order_tracking_bp.get("/export/pdf", endpoint="export_order_tracking_pdf")
@require_permissions("order.tracking.export")
def export_order_tracking_report():
    query, errors = parse_tracking_query(request.args)
    if errors:
        return {"message": "invalid query parameters", "errors": errors}, 400

    items, total = export_tracking_items(query)
    filename = _export_filename("txt")
    logger.info(f"User {get_jwt_identity()} exported a {total}-item tracking report to {filename}")
    return Response(
        render_text_report(items, total, datetime.now(timezone.utc)),
        mimetype="text/plain",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
