# reports.py
import csv
import io

from formatting import format_currency, format_date, format_percent

LEDGER_HEADER = [
    "year",
    "fiscal_year",
    "beginning_balance",
    "contributions",
    "interest",
    "expenditures",
    "ending_balance",
    "percent_funded",
    "replaced_components",
]

SCENARIO_HEADER = [
    "scenario",
    "threshold_rate",
    "total_contributions",
    "average_annual_contribution",
    "minimum_balance",
    "minimum_balance_year",
]


def _money(value) -> str:
    return f"{float(value or 0):.2f}"


def ledger_csv(site: dict, payload: dict) -> bytes:
    """
    site: the site's to_dict() (name + project parameters)
    payload: a stored ReserveStudyResult.to_dict()
    """
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(
        [
            "site",
            "site_id",
            "beginning_year",
            "beginning_reserve_balance",
            "current_annual_contribution",
            "inflation_rate",
            "interest_rate",
        ]
    )
    writer.writerow(
        [
            site["name"],
            site["id"],
            site["beginning_year"],
            _money(site["beginning_reserve_balance"]),
            _money(site["current_annual_contribution"]),
            site["inflation_rate"],
            site["interest_rate"],
        ]
    )
    writer.writerow([])
    writer.writerow(LEDGER_HEADER)

    for year in payload["years"]:
        ledger = year["reserve_balance"]
        replaced = "; ".join(r["name"] for r in ledger["replaced_components"])
        writer.writerow(
            [
                year["year"],
                year["fiscal_year"],
                _money(ledger["beginning_balance"]),
                _money(ledger["contributions"]),
                _money(ledger["interest"]),
                _money(ledger["expenditures"]),
                _money(ledger["ending_balance"]),
                f"{ledger['percent_funded']:.4f}",
                replaced,
            ]
        )

    writer.writerow([])
    writer.writerow(SCENARIO_HEADER)
    for name, scenario in payload["threshold_scenarios"].items():
        rate = scenario["threshold_rate"]
        writer.writerow(
            [
                name,
                "" if rate is None else rate,
                _money(scenario["total_contributions"]),
                _money(scenario["average_annual_contribution"]),
                _money(scenario["minimum_balance"]),
                scenario["minimum_balance_year"],
            ]
        )

    return output.getvalue().encode("utf-8")


def ledger_filename(site: dict) -> str:
    return f"reserve_study_{site['id']}_{site['name'].replace(' ', '_')}.csv"


def summary_display(summary: dict, calculated_at=None) -> dict:
    """Report-ready strings for the dashboard summary."""
    return {
        "calculated_on": format_date(calculated_at),
        "total_components": str(summary["total_components"]),
        "total_replacement_cost": format_currency(summary["total_replacement_cost"]),
        "current_reserve_funds": format_currency(summary["current_reserve_funds"]),
        "recommended_annual_funding": format_currency(summary["recommended_annual_funding"]),
        "percent_funded": format_percent(summary["percent_funded"]),
        "fully_funded_balance": format_currency(summary["fully_funded_balance"]),
        "overall_funds_needed": format_currency(summary["overall_funds_needed"]),
        "funding_status": summary["funding_status"],
        "by_category": [
            {
                "category": c["category"],
                "count": str(c["count"]),
                "total_cost": format_currency(c["total_cost"]),
                "current_reserve_funds": format_currency(c["current_reserve_funds"]),
                "funds_needed": format_currency(c["funds_needed"]),
                "annual_funding": format_currency(c["annual_funding"]),
                # category figure is already 0-100
                "percent_funded": format_percent(c["percent_funded"] / 100),
            }
            for c in summary["by_category"]
        ],
    }
