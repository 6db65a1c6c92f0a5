"""Shared fixtures: an app on in-memory SQLite and a small reference site."""

import pytest

from app import create_app
from models import db
from reserve_math import Component, ProjectParameters


@pytest.fixture
def app():
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite://"})
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def params() -> ProjectParameters:
    return ProjectParameters(
        beginning_year=2024,
        beginning_reserve_balance=50_000.0,
        current_annual_contribution=25_000.0,
        inflation_rate=0.03,
        interest_rate=0.01,
    )


@pytest.fixture
def components() -> list:
    return [
        Component(
            id="roof",
            item_name="Roof",
            component_type="Building",
            quantity=1,
            measurement="LS",
            cost_per_unit=180_000,
            typical_useful_life=25,
            estimated_remaining_life=8,
        ),
        Component(
            id="paint",
            item_name="Exterior Paint",
            component_type="Exterior",
            quantity=15_000,
            measurement="SF",
            cost_per_unit=3,
            typical_useful_life=10,
            estimated_remaining_life=3,
        ),
        Component(
            id="paving",
            item_name="Paving",
            component_type="Sitework",
            quantity=30_000,
            measurement="SF",
            cost_per_unit=3,
            typical_useful_life=20,
            estimated_remaining_life=12,
        ),
        Component(
            id="gutters",
            item_name="Gutter Cleaning",
            component_type="Preventive Maintenance",
            quantity=1,
            measurement="LS",
            cost_per_unit=1_800,
            typical_useful_life=1,
            estimated_remaining_life=0,
        ),
    ]


@pytest.fixture
def site_payload() -> dict:
    return {
        "name": "Maple Court Condominiums",
        "city": "Springfield",
        "state": "IL",
        "beginning_year": 2024,
        "beginning_reserve_balance": 50000,
        "current_annual_contribution": 25000,
        "inflation_rate": 0.03,
        "interest_rate": 0.01,
    }
