# app.py
import os
import io
import math
import logging
from datetime import datetime
from flask import Flask, request, jsonify, send_file

from models import db, Site, SiteComponent, Projection
from reserve_math import COMPONENT_TYPES, calculate_reserve_study
from reports import ledger_csv, ledger_filename, summary_display
import storage

# years; keeps lives inside a database integer
MAX_LIFE = 1000


def _payload() -> dict:
    """JSON body or form fields, whichever the client sent."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _text(data: dict, key: str, default=None):
    value = data.get(key, default)
    if value is None:
        return None
    return str(value).strip() or None


def _float(data: dict, key: str, default: float, minimum=None) -> float:
    raw = data.get(key)
    if raw is None or raw == "":
        return float(default)
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"{key} must be a number")
    if not math.isfinite(value):
        raise ValueError(f"{key} must be a finite number")
    if minimum is not None and value < minimum:
        raise ValueError(f"{key} must be at least {minimum}")
    return value


def _int(data: dict, key: str, default: int, minimum=None, maximum=None) -> int:
    raw = data.get(key)
    if raw is None or raw == "":
        return int(default)
    try:
        value = int(raw)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"{key} must be a whole number")
    if minimum is not None and value < minimum:
        raise ValueError(f"{key} must be at least {minimum}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{key} must be at most {maximum}")
    return value


def _site_fields(data: dict, current: dict) -> dict:
    name = _text(data, "name", current.get("name"))
    if not name:
        raise ValueError("Site name is required.")

    return {
        "name": name,
        "address": _text(data, "address", current.get("address")),
        "city": _text(data, "city", current.get("city")),
        "state": _text(data, "state", current.get("state")),
        "beginning_year": _int(
            data, "beginning_year", current.get("beginning_year") or datetime.now().year, minimum=1, maximum=9999
        ),
        "beginning_reserve_balance": _float(
            data, "beginning_reserve_balance", current.get("beginning_reserve_balance") or 0.0, minimum=0
        ),
        "current_annual_contribution": _float(
            data, "current_annual_contribution", current.get("current_annual_contribution") or 0.0
        ),
        "inflation_rate": _float(data, "inflation_rate", current.get("inflation_rate", 0.03)),
        "interest_rate": _float(data, "interest_rate", current.get("interest_rate", 0.01)),
    }


def _component_fields(data: dict, current: dict) -> dict:
    item_name = _text(data, "item_name", current.get("item_name"))
    if not item_name:
        raise ValueError("Component name is required.")

    component_type = _text(data, "component_type", current.get("component_type"))
    if component_type not in COMPONENT_TYPES:
        raise ValueError(f"component_type must be one of: {', '.join(COMPONENT_TYPES)}")

    return {
        "item_name": item_name,
        "component_type": component_type,
        "quantity": _float(data, "quantity", current.get("quantity", 1.0), minimum=0),
        "measurement": _text(data, "measurement", current.get("measurement")),
        "cost_per_unit": _float(data, "cost_per_unit", current.get("cost_per_unit", 0.0), minimum=0),
        "typical_useful_life": _int(
            data, "typical_useful_life", current.get("typical_useful_life", 0), minimum=0, maximum=MAX_LIFE
        ),
        "estimated_remaining_life": _int(
            data, "estimated_remaining_life", current.get("estimated_remaining_life", 0), minimum=0, maximum=MAX_LIFE
        ),
    }


def _error(message: str, status: int = 400):
    return jsonify(error=message), status


def create_app(test_config=None):
    app = Flask(__name__)

    # Render: set DATABASE_URL in dashboard (Render Postgres)
    # Local dev fallback: SQLite
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///app.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO").upper()
    app.config["R2_URL_EXPIRES"] = int(os.getenv("R2_URL_EXPIRES", "900"))
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(level=app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # keep category / fiscal-year order as calculated
    app.json.sort_keys = False

    db.init_app(app)

    @app.errorhandler(404)
    def not_found(e):
        return _error("Not found.", 404)

    # --------------------
    # Sites
    # --------------------

    @app.get("/")
    def home():
        sites = Site.query.order_by(Site.created_at.desc()).all()
        return jsonify(sites=[s.to_dict() for s in sites])

    @app.post("/sites/create")
    def create_site():
        try:
            site = Site(**_site_fields(_payload(), {}))
            db.session.add(site)
            db.session.commit()
        except ValueError as e:
            db.session.rollback()
            return _error(f"Error creating site: {e}")
        return jsonify(site=site.to_dict()), 201

    @app.get("/sites/<int:site_id>")
    def site_detail(site_id: int):
        site = db.get_or_404(Site, site_id)
        latest = site.latest_projection()
        return jsonify(
            site=site.to_dict(),
            components=[c.to_dict() for c in site.components],
            latest_projection_id=latest.id if latest else None,
        )

    @app.post("/sites/<int:site_id>/update")
    def update_site(site_id: int):
        site = db.get_or_404(Site, site_id)
        try:
            for key, value in _site_fields(_payload(), site.to_dict()).items():
                setattr(site, key, value)
            db.session.commit()
        except ValueError as e:
            db.session.rollback()
            return _error(f"Error updating site: {e}")
        return jsonify(site=site.to_dict())

    @app.post("/sites/<int:site_id>/delete")
    def delete_site(site_id: int):
        site = db.get_or_404(Site, site_id)
        archived = [p.archive_key for p in site.projections if p.archive_key]
        try:
            storage.discard_reports(archived)
        except RuntimeError as e:
            return _error(f"Error removing archived reports: {e}", 503)

        db.session.delete(site)
        db.session.commit()
        app.logger.info("Deleted site %s", site_id)
        return jsonify(deleted=site_id)

    # --------------------
    # Components
    # --------------------

    @app.post("/sites/<int:site_id>/components/create")
    def create_component(site_id: int):
        site = db.get_or_404(Site, site_id)
        try:
            component = SiteComponent(site_id=site.id, **_component_fields(_payload(), {}))
            db.session.add(component)
            db.session.commit()
        except ValueError as e:
            db.session.rollback()
            return _error(f"Error adding component: {e}")
        return jsonify(component=component.to_dict()), 201

    @app.post("/sites/<int:site_id>/components/<int:component_id>/update")
    def update_component(site_id: int, component_id: int):
        component = SiteComponent.query.filter_by(id=component_id, site_id=site_id).first_or_404()
        try:
            for key, value in _component_fields(_payload(), component.to_dict()).items():
                setattr(component, key, value)
            db.session.commit()
        except ValueError as e:
            db.session.rollback()
            return _error(f"Error updating component: {e}")
        return jsonify(component=component.to_dict())

    @app.post("/sites/<int:site_id>/components/<int:component_id>/delete")
    def delete_component(site_id: int, component_id: int):
        component = SiteComponent.query.filter_by(id=component_id, site_id=site_id).first_or_404()
        db.session.delete(component)
        db.session.commit()
        return jsonify(deleted=component_id)

    # --------------------
    # Calculation + results
    # --------------------

    @app.post("/sites/<int:site_id>/calculate")
    def calculate(site_id: int):
        site = db.get_or_404(Site, site_id)
        if not site.components:
            return _error("Please add at least one component.")

        result = calculate_reserve_study(
            site.project_parameters(),
            [c.to_engine() for c in site.components],
        )
        projection = Projection(site_id=site.id, payload=result.to_dict())
        db.session.add(projection)
        db.session.commit()

        app.logger.info("Calculated reserve study for site %s (%d components)", site.id, len(site.components))
        return jsonify(
            projection_id=projection.id,
            summary=summary_display(projection.payload["summary"], projection.created_at),
        ), 201

    @app.get("/sites/<int:site_id>/results")
    def results(site_id: int):
        site = db.get_or_404(Site, site_id)
        latest = site.latest_projection()
        if latest is None:
            return _error("Run the calculation first.", 404)

        return jsonify(
            site=site.to_dict(),
            projection_id=latest.id,
            calculated_at=latest.created_at.isoformat(),
            display=summary_display(latest.payload["summary"], latest.created_at),
            results=latest.payload,
        )

    @app.get("/sites/<int:site_id>/download.csv")
    def download_csv(site_id: int):
        site = db.get_or_404(Site, site_id)
        latest = site.latest_projection()
        if latest is None:
            return _error("Run the calculation first.", 404)

        mem = io.BytesIO(ledger_csv(site.to_dict(), latest.payload))
        return send_file(mem, mimetype="text/csv", as_attachment=True, download_name=ledger_filename(site.to_dict()))

    @app.post("/sites/<int:site_id>/archive")
    def archive(site_id: int):
        site = db.get_or_404(Site, site_id)
        latest = site.latest_projection()
        if latest is None:
            return _error("Run the calculation first.", 404)

        data = ledger_csv(site.to_dict(), latest.payload)
        try:
            key = storage.upload_report(site.id, ledger_filename(site.to_dict()), data)
            url = storage.report_url(key, app.config["R2_URL_EXPIRES"])
        except RuntimeError as e:
            return _error(f"Report archive unavailable: {e}", 503)

        latest.archive_key = key
        db.session.commit()
        return jsonify(key=key, url=url)

    return app


app = create_app()

if __name__ == "__main__":
    with app.app_context():
        db.create_all()
    app.run(host="127.0.0.1", port=5050, debug=True)
