# seed.py
"""
Generates fake sites with a starter component catalog so you can demo the
calculate / results / download flow quickly.

Usage:
  python seed.py
"""
from datetime import datetime
from faker import Faker
from app import create_app
from models import db, Site, SiteComponent

fake = Faker()

# (item, type, measurement, cost per unit, typical useful life)
DEMO_CATALOG = [
    ("Asphalt Paving", "Sitework", "SF", 3.25, 25),
    ("Perimeter Fencing", "Sitework", "LF", 38.0, 20),
    ("Roof Replacement", "Building", "SQ", 650.0, 25),
    ("Exterior Paint", "Exterior", "SF", 2.1, 10),
    ("Windows", "Exterior", "EA", 900.0, 30),
    ("Hallway Carpet", "Interior", "SY", 48.0, 10),
    ("Parking Lot Lighting", "Electrical", "EA", 2400.0, 20),
    ("Boiler", "Mechanical", "EA", 42000.0, 25),
    ("Pool Resurfacing", "Special", "LS", 28000.0, 12),
    ("Gutter Cleaning", "Preventive Maintenance", "LS", 1800.0, 1),
]


def _demo_quantity(measurement: str) -> int:
    if measurement == "LS":
        return 1
    if measurement == "EA":
        return fake.random_int(min=1, max=40)
    return fake.random_int(min=500, max=60000)


def _demo_components(site_id: int):
    for item_name, component_type, measurement, cost, life in DEMO_CATALOG:
        yield SiteComponent(
            site_id=site_id,
            item_name=item_name,
            component_type=component_type,
            measurement=measurement,
            quantity=_demo_quantity(measurement),
            cost_per_unit=cost,
            typical_useful_life=life,
            estimated_remaining_life=fake.random_int(min=0, max=life),
        )


def run():
    app = create_app()
    with app.app_context():
        db.create_all()

        if Site.query.count() > 0:
            print("DB already has sites. Skipping seed.")
            return

        for _ in range(6):
            site = Site(
                name=f"{fake.street_name()} Condominiums",
                address=fake.street_address(),
                city=fake.city(),
                state=fake.state_abbr(),
                beginning_year=datetime.now().year,
                beginning_reserve_balance=fake.random_int(min=25_000, max=400_000),
                current_annual_contribution=fake.random_int(min=10_000, max=90_000),
                inflation_rate=0.03,
                interest_rate=0.01,
            )
            db.session.add(site)
            db.session.flush()
            db.session.add_all(_demo_components(site.id))

        db.session.commit()
        print("Seed complete. Created 6 fake sites with demo components.")


if __name__ == "__main__":
    run()
