"""JSON document store for crossbook, served over HTTP."""

import json
import logging
import os
import threading

from flask import Flask, jsonify, request
from flask_cors import CORS

from crossbook.config import DB_FILE
from crossbook.timeutil import parse_iso

logger = logging.getLogger(__name__)

COLLECTIONS = ["users", "driver_profiles", "vehicles", "bookings", "notifications"]


def _empty_db():
    return {name: [] for name in COLLECTIONS}


def _overlaps(item, driver_id, window_start, window_end, active_statuses):
    if item.get("driver_id") != driver_id or item.get("status") not in active_statuses:
        return False
    try:
        scheduled = parse_iso(item["scheduled_date"])
    except (KeyError, TypeError, ValueError):
        return True
    return window_start <= scheduled <= window_end


def create_app(db_file: str = None) -> Flask:
    """
    Build the store app around one JSON file.

    Every read-modify-write of the file happens under a single lock, so
    the claim endpoint's check and insert are atomic.
    """
    db_file = db_file or DB_FILE
    lock = threading.RLock()

    app = Flask(__name__)
    CORS(app)

    def read_db():
        """Read the database from the JSON file."""
        with open(db_file, 'r') as f:
            return json.load(f)

    def write_db(data):
        """Write data to the JSON file, replacing it only once fully written."""
        tmp_file = f"{db_file}.tmp"
        with open(tmp_file, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_file, db_file)

    with lock:
        if os.path.dirname(db_file):
            os.makedirs(os.path.dirname(db_file), exist_ok=True)
        if not os.path.exists(db_file):
            write_db(_empty_db())

    @app.route('/')
    def get_root():
        """Get the entire database."""
        with lock:
            return jsonify(read_db())

    @app.route('/<collection>', methods=['GET', 'POST'])
    def manage_collection(collection):
        """Get all items or add a new item to a collection."""
        with lock:
            db = read_db()

            if collection not in db:
                return jsonify({"error": f"Collection '{collection}' not found"}), 404

            if request.method == 'GET':
                return jsonify(db[collection])

            new_item = request.get_json(silent=True)
            if not isinstance(new_item, dict) or not new_item.get('id'):
                return jsonify({"error": "Item must be a JSON object with an 'id'"}), 400

            if any(str(item.get('id')) == str(new_item['id']) for item in db[collection]):
                return jsonify({"error": f"Item with ID '{new_item['id']}' already exists"}), 409

            db[collection].append(new_item)
            write_db(db)
            return jsonify(new_item), 201

    @app.route('/<collection>/<item_id>', methods=['GET', 'PUT', 'DELETE'])
    def manage_item(collection, item_id):
        """Get, update or delete a specific item."""
        with lock:
            db = read_db()

            if collection not in db:
                return jsonify({"error": f"Collection '{collection}' not found"}), 404

            item_index = None
            for i, item in enumerate(db[collection]):
                if str(item.get('id')) == str(item_id):
                    item_index = i
                    break

            if item_index is None:
                return jsonify({"error": f"Item with ID '{item_id}' not found in '{collection}'"}), 404

            if request.method == 'GET':
                return jsonify(db[collection][item_index])

            if request.method == 'PUT':
                updated_item = request.get_json(silent=True)
                if not isinstance(updated_item, dict):
                    return jsonify({"error": "Item must be a JSON object"}), 400
                db[collection][item_index] = updated_item
                write_db(db)
                return jsonify(updated_item)

            deleted_item = db[collection].pop(item_index)
            write_db(db)
            return jsonify(deleted_item)

    @app.route('/<collection>/query', methods=['GET'])
    def query_collection(collection):
        """Query items in a collection by exact field values."""
        with lock:
            db = read_db()

        if collection not in db:
            return jsonify({"error": f"Collection '{collection}' not found"}), 404

        params = request.args
        filtered_items = []
        for item in db[collection]:
            match = True
            for key, value in params.items():
                # Stored nulls never match, not even the string "None"
                if item.get(key) is None or str(item[key]) != value:
                    match = False
                    break
            if match:
                filtered_items.append(item)

        return jsonify(filtered_items)

    @app.route('/bookings/claim', methods=['POST'])
    def claim_booking():
        """
        Insert a booking only if its driver is still free.

        Body: ``{"booking": {...}, "conflict_window": {"start", "end"},
        "active_statuses": [...]}``. Responds 200 with the existing
        booking when the client already used the idempotency key, 409 when
        the driver has an active booking in the window, 201 otherwise.
        """
        body = request.get_json(silent=True) or {}
        booking = body.get("booking")
        if not isinstance(booking, dict) or not booking.get("id"):
            return jsonify({"error": "'booking' must be an object with an 'id'"}), 400

        with lock:
            db = read_db()
            bookings = db.setdefault("bookings", [])

            key = booking.get("idempotency_key")
            if key:
                for item in bookings:
                    if item.get("client_id") == booking.get("client_id") and item.get("idempotency_key") == key:
                        return jsonify(item), 200

            driver_id = booking.get("driver_id")
            if driver_id:
                window = body.get("conflict_window") or {}
                try:
                    window_start = parse_iso(window["start"])
                    window_end = parse_iso(window["end"])
                except (KeyError, TypeError, ValueError):
                    return jsonify({"error": "'conflict_window' needs ISO 'start' and 'end'"}), 400

                active_statuses = set(body.get("active_statuses") or [])
                for item in bookings:
                    if _overlaps(item, driver_id, window_start, window_end, active_statuses):
                        logger.info(f"Claim rejected: driver {driver_id} busy with booking {item.get('id')}")
                        return jsonify({"error": "Driver already booked in this time window",
                                        "conflicting_booking_id": item.get("id")}), 409

            bookings.append(booking)
            write_db(db)

        return jsonify(booking), 201

    return app


if __name__ == '__main__':
    create_app().run(debug=True, host='0.0.0.0', port=3000)
