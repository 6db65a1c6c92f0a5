# models.py
from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

from reserve_math import Component, ProjectParameters

db = SQLAlchemy()


def _utcnow():
    return datetime.now(timezone.utc)


class Site(db.Model):
    __tablename__ = "sites"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(220), nullable=False)
    address = db.Column(db.String(320), nullable=True)
    city = db.Column(db.String(120), nullable=True)
    state = db.Column(db.String(30), nullable=True)

    beginning_year = db.Column(db.Integer, nullable=False)
    beginning_reserve_balance = db.Column(db.Float, nullable=False, default=0.0)
    current_annual_contribution = db.Column(db.Float, nullable=False, default=0.0)
    inflation_rate = db.Column(db.Float, nullable=False, default=0.03)
    interest_rate = db.Column(db.Float, nullable=False, default=0.01)

    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    components = db.relationship(
        "SiteComponent", backref="site", lazy=True, cascade="all, delete-orphan", order_by="SiteComponent.id"
    )
    projections = db.relationship(
        "Projection", backref="site", lazy=True, cascade="all, delete-orphan", order_by="Projection.id"
    )

    def project_parameters(self) -> ProjectParameters:
        return ProjectParameters(
            beginning_year=self.beginning_year,
            beginning_reserve_balance=self.beginning_reserve_balance or 0.0,
            current_annual_contribution=self.current_annual_contribution or 0.0,
            inflation_rate=self.inflation_rate or 0.0,
            interest_rate=self.interest_rate or 0.0,
        )

    def latest_projection(self):
        return self.projections[-1] if self.projections else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "beginning_year": self.beginning_year,
            "beginning_reserve_balance": self.beginning_reserve_balance,
            "current_annual_contribution": self.current_annual_contribution,
            "inflation_rate": self.inflation_rate,
            "interest_rate": self.interest_rate,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class SiteComponent(db.Model):
    __tablename__ = "site_components"
    id = db.Column(db.Integer, primary_key=True)
    site_id = db.Column(db.Integer, db.ForeignKey("sites.id"), nullable=False)

    item_name = db.Column(db.String(220), nullable=False)
    component_type = db.Column(db.String(40), nullable=False)
    quantity = db.Column(db.Float, nullable=False, default=1.0)
    measurement = db.Column(db.String(40), nullable=True)
    cost_per_unit = db.Column(db.Float, nullable=False, default=0.0)
    typical_useful_life = db.Column(db.Integer, nullable=False, default=0)
    estimated_remaining_life = db.Column(db.Integer, nullable=False, default=0)

    def to_engine(self) -> Component:
        return Component(
            id=str(self.id),
            item_name=self.item_name,
            component_type=self.component_type,
            quantity=self.quantity or 0.0,
            measurement=self.measurement or "",
            cost_per_unit=self.cost_per_unit or 0.0,
            typical_useful_life=self.typical_useful_life or 0,
            estimated_remaining_life=self.estimated_remaining_life or 0,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "site_id": self.site_id,
            "item_name": self.item_name,
            "component_type": self.component_type,
            "quantity": self.quantity,
            "measurement": self.measurement,
            "cost_per_unit": self.cost_per_unit,
            "typical_useful_life": self.typical_useful_life,
            "estimated_remaining_life": self.estimated_remaining_life,
        }


class Projection(db.Model):
    """A stored calculation run; the newest one per site is what reports read."""

    __tablename__ = "projections"
    id = db.Column(db.Integer, primary_key=True)
    site_id = db.Column(db.Integer, db.ForeignKey("sites.id"), nullable=False)

    payload = db.Column(db.JSON, nullable=False)
    archive_key = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
