import csv
import io
import json

import pytest

from reports import LEDGER_HEADER, SCENARIO_HEADER, ledger_csv, ledger_filename, summary_display
from reserve_math import calculate_reserve_study

SITE = {
    "id": 12,
    "name": "Maple Court",
    "beginning_year": 2024,
    "beginning_reserve_balance": 50000.0,
    "current_annual_contribution": 25000.0,
    "inflation_rate": 0.03,
    "interest_rate": 0.01,
}


@pytest.fixture
def payload(params, components):
    # what the app reads back from the database
    return json.loads(json.dumps(calculate_reserve_study(params, components).to_dict()))


def _rows(data: bytes):
    return list(csv.reader(io.StringIO(data.decode("utf-8"))))


class TestLedgerCsv:
    def test_layout(self, payload):
        rows = _rows(ledger_csv(SITE, payload))

        assert rows[1][:3] == ["Maple Court", "12", "2024"]
        assert rows[1][3] == "50000.00"
        assert rows[2] == []
        assert rows[3] == LEDGER_HEADER
        ledger = rows[4:35]
        assert [r[0] for r in ledger] == [str(n) for n in range(1, 32)]
        assert rows[35] == []
        assert rows[36] == SCENARIO_HEADER
        assert [r[0] for r in rows[37:]] == ["full_funding", "threshold_10", "threshold_5", "baseline"]

    def test_ledger_values(self, payload):
        rows = _rows(ledger_csv(SITE, payload))
        first = dict(zip(LEDGER_HEADER, rows[4]))

        assert first["fiscal_year"] == "2024"
        assert first["beginning_balance"] == "50000.00"
        assert first["contributions"] == "0.00"
        assert first["replaced_components"] == "Gutter Cleaning"

    def test_full_funding_has_no_rate(self, payload):
        rows = _rows(ledger_csv(SITE, payload))
        assert rows[37][1] == ""
        assert rows[38][1] == "0.1"

    def test_filename(self):
        assert ledger_filename(SITE) == "reserve_study_12_Maple_Court.csv"


class TestSummaryDisplay:
    def test_formats_figures(self, payload):
        display = summary_display(payload["summary"], "2024-01-05T10:00:00")

        assert display["calculated_on"] == "January 5, 2024"
        assert display["current_reserve_funds"] == "$50,000"
        assert display["total_components"] == "4"
        assert display["percent_funded"].endswith("%")
        assert [c["category"] for c in display["by_category"]][0] == "Sitework"

    def test_category_percent_scale(self):
        summary = {
            "total_components": 1,
            "total_replacement_cost": 1000,
            "current_reserve_funds": 250,
            "recommended_annual_funding": 75,
            "percent_funded": 0.5,
            "fully_funded_balance": 500,
            "overall_funds_needed": 750,
            "funding_status": "Fair",
            "by_category": [
                {
                    "category": "Building",
                    "count": 1,
                    "total_cost": 1000,
                    "current_reserve_funds": 250,
                    "funds_needed": 750,
                    "annual_funding": 75,
                    "percent_funded": 50.0,
                }
            ],
        }
        display = summary_display(summary)

        assert display["calculated_on"] == "N/A"
        assert display["percent_funded"] == "50.00%"
        assert display["by_category"][0]["percent_funded"] == "50.00%"
        assert display["overall_funds_needed"] == "$750"
