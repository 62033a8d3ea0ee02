"""HTTP API for crossbook bookings."""

import logging
from functools import wraps

import requests
from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from crossbook.config import BASE_URL
from crossbook.schemas import EstimateRequest, format_errors
from crossbook.services.auth_service import AuthService, AuthError, RoleForbiddenError
from crossbook.services.booking_service import (
    BookingService, BookingServiceError, BookingValidationError, BookingNotFoundError,
)
from crossbook.services.pricing_service import PricingService, PricingError
from crossbook.timeutil import utc_now

logger = logging.getLogger(__name__)


def get_request_token():
    """Bearer token from the Authorization header, else the auth_token cookie."""
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip()
    return request.cookies.get("auth_token")


def handle_service_errors(f):
    """Translate service exceptions into JSON error responses."""
    @wraps(f)
    def wrapped(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except RoleForbiddenError as e:
            return jsonify({"error": str(e)}), 403
        except AuthError as e:
            logger.info(f"Rejected unauthenticated request: {str(e)}")
            return jsonify({"error": "Unauthorized"}), 401
        except BookingValidationError as e:
            return jsonify({"error": "Validation failed", "details": e.details}), 400
        except BookingNotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except BookingServiceError:
            logger.exception("Booking request failed")
            return jsonify({"error": "Internal server error"}), 500
    return wrapped


def create_app() -> Flask:
    app = Flask(__name__)
    CORS(app)

    @app.errorhandler(Exception)
    def unexpected_error(error):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500

    @app.route('/bookings', methods=['POST'])
    @handle_service_errors
    def create_booking():
        result = BookingService.create_booking(
            get_request_token(),
            request.get_json(silent=True),
            idempotency_key=request.headers.get("Idempotency-Key"),
        )
        message = "Booking created successfully" if result["created"] else "Booking already exists"
        return jsonify({"message": message, "booking": result["booking"]}), 200

    @app.route('/bookings', methods=['GET'])
    @handle_service_errors
    def list_bookings():
        return jsonify(BookingService.list_bookings(get_request_token(), request.args.to_dict()))

    @app.route('/bookings/<booking_id>', methods=['GET'])
    @handle_service_errors
    def get_booking(booking_id):
        return jsonify({"booking": BookingService.get_booking(get_request_token(), booking_id)})

    @app.route('/bookings/estimate', methods=['POST'])
    def estimate_price():
        try:
            body = EstimateRequest.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return jsonify({"error": "Validation failed", "details": format_errors(e)}), 400

        try:
            estimate = PricingService.estimate_range(
                body.pickup.to_location(),
                body.dropoff.to_location(),
                body.vehicle_type,
                body.scheduled_date or utc_now(),
            )
        except PricingError as e:
            return jsonify({"error": "Validation failed",
                            "details": [{"field": "route", "message": str(e), "type": e.code}]}), 400

        estimate["currency"] = "HKD"
        return jsonify({"estimate": estimate})

    @app.route('/auth/login', methods=['POST'])
    @handle_service_errors
    def login():
        body = request.get_json(silent=True) or {}
        if not body.get("email") or not body.get("password"):
            return jsonify({"error": "Validation failed",
                            "details": [{"field": "email/password", "message": "Both are required",
                                         "type": "missing"}]}), 400
        return jsonify(AuthService.login(body["email"], body["password"]))

    @app.route('/auth/register', methods=['POST'])
    def register():
        body = request.get_json(silent=True) or {}
        missing = [name for name in ("email", "password", "name") if not body.get(name)]
        if missing:
            return jsonify({"error": "Validation failed",
                            "details": [{"field": name, "message": "Field required", "type": "missing"}
                                        for name in missing]}), 400
        try:
            result = AuthService.register_client(body["email"], body["password"], body["name"],
                                                 body.get("phone"))
        except AuthError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify(result), 201

    @app.route('/health', methods=['GET'])
    def health():
        try:
            store_ok = requests.get(f"{BASE_URL}/", timeout=2).status_code == 200
        except requests.RequestException:
            store_ok = False
        status = "healthy" if store_ok else "unhealthy"
        return jsonify({
            "status": status,
            "services": {"store": "connected" if store_ok else "disconnected"},
            "timestamp": utc_now().isoformat(),
        }), 200 if store_ok else 503

    return app


if __name__ == '__main__':
    create_app().run(debug=True, host='0.0.0.0', port=8000)
