"""
Flask JSON API for Farm Monitor.

API endpoints:
  GET   /api/sensors                      — Latest classified reading per sensor
  POST  /api/readings                     — Ingest one reading or a list of readings
  GET   /api/alerts                       — Alert events (?search=&severity=&status=)
  GET   /api/alerts/summary               — Counts per status
  POST  /api/alerts/<id>/acknowledge      — {"actor": "..."}
  POST  /api/alerts/<id>/resolve
  GET   /api/rules                        — Alert rules
  POST  /api/rules/<id>/toggle            — Enable/disable a rule
  GET   /api/thresholds                   — Sensor target bands
  PATCH /api/thresholds/<id>              — Operator edit of a band

Started via: python main.py web [--port 5000] [--host 127.0.0.1]
"""
import logging
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from models.alerts import Reading, parse_timestamp
from models.errors import ConfigurationError, InvalidTransition, NotFound as AlertNotFound

logger = logging.getLogger("farmmonitor.web.app")


def create_app(config: dict, engines: dict) -> Flask:
    """
    Factory function. Receives initialized components from main.py CLI.

    Args:
        config: Application config dict
        engines: dict of initialized components (thresholds, rules, lifecycle,
                 alert_engine, monitor)
    """
    app = Flask(__name__)

    # ─── Error mapping ───────────────────────────────────

    @app.errorhandler(AlertNotFound)
    def handle_not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(InvalidTransition)
    def handle_invalid_transition(e):
        return jsonify({"error": str(e), "status": e.current.value}), 409

    @app.errorhandler(ConfigurationError)
    def handle_config_error(e):
        return jsonify({"error": str(e)}), 400

    # ─── Sensors & readings ──────────────────────────────

    @app.route("/api/sensors")
    def api_sensors():
        sensors = [s.to_dict() for s in engines["monitor"].latest()]
        return jsonify({"sensors": sensors, "count": len(sensors)})

    @app.route("/api/readings", methods=["POST"])
    def api_readings():
        payload = request.get_json(silent=True)
        raw_readings = payload if isinstance(payload, list) else [payload]
        try:
            readings = [Reading.from_dict(r) for r in raw_readings]
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        results = engines["monitor"].ingest_many(readings)
        return jsonify({
            "statuses": [r.status.to_dict() for r in results if r.status is not None],
            "alerts": [e.to_dict() for r in results for e in r.events],
        }), 201

    # ─── Alerts ──────────────────────────────────────────

    @app.route("/api/alerts")
    def api_alerts():
        events = engines["lifecycle"].list(
            search=request.args.get("search") or None,
            severity=request.args.get("severity") or None,
            status=request.args.get("status") or None,
        )
        return jsonify({"alerts": [e.to_dict() for e in events], "count": len(events)})

    @app.route("/api/alerts/summary")
    def api_alerts_summary():
        return jsonify(engines["lifecycle"].summary())

    @app.route("/api/alerts/<event_id>/acknowledge", methods=["POST"])
    def api_acknowledge(event_id):
        body = request.get_json(silent=True)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            return jsonify({"error": "Expected a JSON object"}), 400
        event = engines["lifecycle"].acknowledge(event_id, body.get("actor"))
        return jsonify(event.to_dict())

    @app.route("/api/alerts/<event_id>/resolve", methods=["POST"])
    def api_resolve(event_id):
        body = request.get_json(silent=True)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            return jsonify({"error": "Expected a JSON object"}), 400
        try:
            at = parse_timestamp(body["at"]) if body.get("at") else datetime.now(timezone.utc)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        event = engines["lifecycle"].resolve(event_id, at)
        return jsonify(event.to_dict())

    # ─── Configuration ───────────────────────────────────

    @app.route("/api/rules")
    def api_rules():
        rules = [r.to_dict() for r in engines["rules"].get_all_rules()]
        return jsonify({"rules": rules, "count": len(rules)})

    @app.route("/api/rules/<rule_id>/toggle", methods=["POST"])
    def api_toggle_rule(rule_id):
        if engines["rules"].get_rule(rule_id) is None:
            return jsonify({"error": f"Unknown rule: {rule_id}"}), 404
        return jsonify(engines["rules"].toggle(rule_id).to_dict())

    @app.route("/api/thresholds")
    def api_thresholds():
        thresholds = engines["thresholds"]
        return jsonify({
            "thresholds": [t.to_dict() for t in thresholds.get_all()],
            "tolerance_policy": thresholds.policy.value,
        })

    @app.route("/api/thresholds/<sensor_id>", methods=["PATCH"])
    def api_update_threshold(sensor_id):
        if engines["thresholds"].get(sensor_id) is None:
            return jsonify({"error": f"Unknown sensor: {sensor_id}"}), 404
        changes = request.get_json(silent=True)
        if not isinstance(changes, dict) or not changes:
            return jsonify({"error": "Expected a JSON object of fields to change"}), 400
        updated = engines["thresholds"].update(sensor_id, **changes)
        logger.info(f"Threshold {sensor_id} edited via API")
        return jsonify(updated.to_dict())

    return app
