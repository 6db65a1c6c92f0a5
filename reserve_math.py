# reserve_math.py
import logging
import math
from dataclasses import dataclass, field, fields, is_dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

log = logging.getLogger(__name__)

COMPONENT_TYPES = (
    "Sitework",
    "Building",
    "Interior",
    "Exterior",
    "Electrical",
    "Special",
    "Mechanical",
    "Preventive Maintenance",
)

PROJECTION_YEARS = 31
CONTRIBUTING_YEARS = 30

# (name, threshold rate); None means the recommended amount as-is
THRESHOLD_SCENARIOS = (
    ("full_funding", None),
    ("threshold_10", 0.10),
    ("threshold_5", 0.05),
    ("baseline", 0.00),
)


def _num(value: Any) -> float:
    """Spreadsheet-style coercion: missing or non-numeric input counts as 0."""
    if value is None or value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def _whole(value: Any) -> int:
    number = _num(value)
    return int(number) if math.isfinite(number) else 0


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _power(base: float, exponent: float) -> float:
    """Math.pow semantics: overflow goes to infinity instead of raising."""
    if base < 0 and math.isfinite(exponent) and not float(exponent).is_integer():
        return math.nan
    try:
        return base ** exponent
    except OverflowError:
        if base < 0 and exponent % 2 == 1:
            return -math.inf
        return math.inf
    except ZeroDivisionError:
        return math.inf


def _plain(value: Any):
    """Dataclasses, read-only mappings and tuples to plain dicts and lists."""
    if is_dataclass(value):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (tuple, list)):
        return [_plain(v) for v in value]
    return value


# --------------------
# Inputs
# --------------------

@dataclass(frozen=True)
class ProjectParameters:
    beginning_year: int
    beginning_reserve_balance: float = 0.0
    current_annual_contribution: float = 0.0
    inflation_rate: float = 0.0
    interest_rate: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectParameters":
        return cls(
            beginning_year=_whole(data.get("beginning_year")),
            beginning_reserve_balance=_num(data.get("beginning_reserve_balance")),
            current_annual_contribution=_num(data.get("current_annual_contribution")),
            inflation_rate=_num(data.get("inflation_rate")),
            interest_rate=_num(data.get("interest_rate")),
        )


@dataclass(frozen=True)
class Component:
    id: str
    item_name: str = ""
    component_type: str = ""
    quantity: float = 0.0
    measurement: str = ""
    cost_per_unit: float = 0.0
    typical_useful_life: float = 0.0
    estimated_remaining_life: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "Component":
        return cls(
            id=_text(data.get("id")),
            item_name=_text(data.get("item_name")),
            component_type=_text(data.get("component_type")),
            quantity=_num(data.get("quantity")),
            measurement=_text(data.get("measurement")),
            cost_per_unit=_num(data.get("cost_per_unit")),
            typical_useful_life=_num(data.get("typical_useful_life")),
            estimated_remaining_life=_num(data.get("estimated_remaining_life")),
        )


# --------------------
# Outputs
# --------------------

@dataclass(frozen=True)
class ComponentYear:
    component_id: str
    component_name: str
    component_type: str
    quantity: float
    measurement: str
    cost_per_unit: float
    total_cost: float
    typical_useful_life: float
    remaining_life: float
    effective_age: float
    full_funding_balance: float
    current_reserve_funds: float
    funds_needed: float
    annual_funding: float
    is_replaced: bool
    expenditure: float


@dataclass(frozen=True)
class CategoryTotals:
    count: int = 0
    total_cost: float = 0.0
    full_funding_balance: float = 0.0
    current_reserve_funds: float = 0.0
    funds_needed: float = 0.0
    annual_funding: float = 0.0
    expenditure: float = 0.0


@dataclass(frozen=True)
class YearTotals:
    # category -> CategoryTotals, in COMPONENT_TYPES order
    categories: Mapping
    overall: CategoryTotals


@dataclass(frozen=True)
class ReplacedComponent:
    name: str
    cost: float


@dataclass(frozen=True)
class ReserveBalance:
    beginning_balance: float
    contributions: float
    interest: float
    expenditures: float
    ending_balance: float
    percent_funded: float
    replaced_components: tuple = ()


@dataclass(frozen=True)
class YearProjection:
    year: int
    fiscal_year: int
    component_breakdowns: tuple
    totals: YearTotals
    reserve_balance: ReserveBalance


@dataclass(frozen=True)
class ScenarioResult:
    name: str
    threshold_rate: Optional[float]
    years: tuple
    total_contributions: float
    average_annual_contribution: float
    minimum_balance: float
    minimum_balance_year: int


@dataclass(frozen=True)
class CategorySummary:
    category: str
    count: int
    total_cost: float
    full_funding_balance: float
    current_reserve_funds: float
    funds_needed: float
    annual_funding: float
    expenditure: float
    percent_funded: float


@dataclass(frozen=True)
class StudySummary:
    total_components: int
    total_replacement_cost: float
    current_reserve_funds: float
    recommended_annual_funding: float
    percent_funded: float
    fully_funded_balance: float
    overall_funds_needed: float
    funding_status: str
    by_category: tuple = ()


@dataclass(frozen=True)
class ReplacementEvent:
    fiscal_year: float
    component_id: str
    item_name: str
    component_type: str
    base_cost: float
    adjusted_cost: float
    is_preventive_maintenance: bool = False


@dataclass(frozen=True)
class ReserveStudyResult:
    years: tuple
    # category -> item name -> fiscal year -> expenditure
    expenditure_schedule: Mapping
    # scenario name -> ScenarioResult
    threshold_scenarios: Mapping
    summary: StudySummary
    replacement_schedule: tuple = field(default=())

    def to_dict(self) -> dict:
        return _plain(self)


# --------------------
# Per-component calculation
# --------------------

def inflation_multiplier(inflation_rate: Any, year: int) -> float:
    return _power(1.0 + _num(inflation_rate), year - 1)


def _beginning_year(params: ProjectParameters) -> int:
    return _whole(params.beginning_year)


def _cost_basis(component: Component, year: int, multiplier: float):
    cost_per_unit = _num(component.cost_per_unit) * multiplier
    total_cost = _num(component.quantity) * cost_per_unit
    remaining_life = max(0.0, _num(component.estimated_remaining_life) - (year - 1))
    return cost_per_unit, total_cost, remaining_life


def _full_funding_balance(total_cost: float, useful_life: float, remaining_life: float):
    """Returns (effective_age, full_funding_balance).

    Without a useful life there is nothing to accrue over, so the whole cost
    counts as due.
    """
    if useful_life > 0:
        effective_age = useful_life - remaining_life
        return effective_age, total_cost / useful_life * effective_age
    return 0.0, total_cost


def calculate_component(
    component: Component,
    year: int,
    fiscal_year: int,
    params: ProjectParameters,
    multiplier: float,
    current_reserve_funds: float = 0.0,
) -> ComponentYear:
    """
    One component's numbers for one projection year.

    Replacement happens once, in the fiscal year given by the original
    remaining life; it is not recomputed as the component ages.
    """
    useful_life = _num(component.typical_useful_life)
    cost_per_unit, total_cost, remaining_life = _cost_basis(component, year, multiplier)
    effective_age, full_funding_balance = _full_funding_balance(total_cost, useful_life, remaining_life)

    current_reserve_funds = _num(current_reserve_funds)
    funds_needed = total_cost - current_reserve_funds

    if remaining_life > 0:
        annual_funding = funds_needed / remaining_life
    elif useful_life > 0:
        # due now: fund the next cycle over a full useful life
        annual_funding = funds_needed / useful_life
    else:
        annual_funding = 0.0

    replacement_year = _beginning_year(params) + _num(component.estimated_remaining_life)
    is_replaced = fiscal_year == replacement_year

    return ComponentYear(
        component_id=component.id,
        component_name=component.item_name,
        component_type=component.component_type,
        quantity=_num(component.quantity),
        measurement=component.measurement,
        cost_per_unit=cost_per_unit,
        total_cost=total_cost,
        typical_useful_life=useful_life,
        remaining_life=remaining_life,
        effective_age=effective_age,
        full_funding_balance=full_funding_balance,
        current_reserve_funds=current_reserve_funds,
        funds_needed=funds_needed,
        annual_funding=annual_funding,
        is_replaced=is_replaced,
        expenditure=total_cost if is_replaced else 0.0,
    )


# --------------------
# Year-1 starting balance distribution (two passes)
# --------------------

def compute_full_funding_balances(components, year: int, multiplier: float) -> tuple:
    """Pass 1: each component's full funding balance, before any reserve is attributed."""
    balances = []
    for component in components:
        _, total_cost, remaining_life = _cost_basis(component, year, multiplier)
        _, ffb = _full_funding_balance(total_cost, _num(component.typical_useful_life), remaining_life)
        balances.append(ffb)
    return tuple(balances)


def distribute_reserve_balance(beginning_balance: float, balances) -> tuple:
    """Split the starting reserve across components in proportion to their full funding balance."""
    total = 0.0
    for ffb in balances:
        total += ffb
    if total > 0:
        return tuple(beginning_balance * (ffb / total) for ffb in balances)
    return tuple(0.0 for _ in balances)


# --------------------
# Aggregation
# --------------------

def _sum_field(rows, name: str) -> float:
    total = 0.0
    for row in rows:
        total += getattr(row, name)
    return total


_TOTAL_FIELDS = (
    "total_cost",
    "full_funding_balance",
    "current_reserve_funds",
    "funds_needed",
    "annual_funding",
    "expenditure",
)


def aggregate_by_component_type(breakdowns) -> YearTotals:
    categories = {}
    for component_type in COMPONENT_TYPES:
        members = [b for b in breakdowns if b.component_type == component_type]
        categories[component_type] = CategoryTotals(
            count=len(members),
            **{name: _sum_field(members, name) for name in _TOTAL_FIELDS},
        )

    buckets = list(categories.values())
    overall = CategoryTotals(
        count=sum(b.count for b in buckets),
        **{name: _sum_field(buckets, name) for name in _TOTAL_FIELDS},
    )
    return YearTotals(categories=MappingProxyType(categories), overall=overall)


# --------------------
# Ledger
# --------------------

def calculate_reserve_fund_balance(
    year: int,
    totals: YearTotals,
    params: ProjectParameters,
    breakdowns,
    previous_years,
    contributions: float,
) -> ReserveBalance:
    if year == 1:
        beginning_balance = _num(params.beginning_reserve_balance)
    else:
        beginning_balance = previous_years[year - 2].reserve_balance.ending_balance

    interest = beginning_balance * _num(params.interest_rate)
    expenditures = totals.overall.expenditure
    # balances are allowed to go negative
    ending_balance = beginning_balance + contributions + interest - expenditures

    ffb = totals.overall.full_funding_balance
    percent_funded = beginning_balance / ffb if ffb > 0 else 0.0

    replaced = tuple(
        ReplacedComponent(name=b.component_name, cost=b.total_cost)
        for b in breakdowns
        if b.is_replaced
    )

    return ReserveBalance(
        beginning_balance=beginning_balance,
        contributions=contributions,
        interest=interest,
        expenditures=expenditures,
        ending_balance=ending_balance,
        percent_funded=percent_funded,
        replaced_components=replaced,
    )


def _assemble_year(year, params, components, previous_years, reserves, contribution_for) -> YearProjection:
    fiscal_year = _beginning_year(params) + year - 1
    multiplier = inflation_multiplier(params.inflation_rate, year)

    breakdowns = tuple(
        calculate_component(component, year, fiscal_year, params, multiplier, reserve)
        for component, reserve in zip(components, reserves)
    )
    totals = aggregate_by_component_type(breakdowns)
    contributions = 0.0 if year == 1 else contribution_for(totals)
    reserve_balance = calculate_reserve_fund_balance(
        year, totals, params, breakdowns, previous_years, contributions
    )

    return YearProjection(
        year=year,
        fiscal_year=fiscal_year,
        component_breakdowns=breakdowns,
        totals=totals,
        reserve_balance=reserve_balance,
    )


def calculate_year(year: int, params: ProjectParameters, components, previous_years) -> YearProjection:
    """
    One year of the current-funding ledger.

    Year 1 attributes the beginning reserve balance to components by their
    full funding balance; later years carry only the aggregate balance.
    """
    if year == 1:
        multiplier = inflation_multiplier(params.inflation_rate, year)
        balances = compute_full_funding_balances(components, year, multiplier)
        reserves = distribute_reserve_balance(_num(params.beginning_reserve_balance), balances)
    else:
        reserves = (0.0,) * len(components)

    contribution = _num(params.current_annual_contribution)
    return _assemble_year(year, params, components, previous_years, reserves, lambda totals: contribution)


# --------------------
# Threshold scenarios
# --------------------

def calculate_threshold_scenario(name: str, params: ProjectParameters, components, threshold_rate: Optional[float]) -> ScenarioResult:
    if threshold_rate is None:
        def contribution_for(totals):
            return totals.overall.annual_funding
    else:
        factor = 1.0 + threshold_rate

        def contribution_for(totals):
            return totals.overall.annual_funding * factor

    reserves = (0.0,) * len(components)
    years = []
    for year in range(1, PROJECTION_YEARS + 1):
        years.append(_assemble_year(year, params, components, years, reserves, contribution_for))

    total_contributions = 0.0
    for projection in years:
        total_contributions += projection.reserve_balance.contributions

    lowest = years[0]
    for projection in years[1:]:
        if projection.reserve_balance.ending_balance < lowest.reserve_balance.ending_balance:
            lowest = projection

    return ScenarioResult(
        name=name,
        threshold_rate=threshold_rate,
        years=tuple(years),
        total_contributions=total_contributions,
        average_annual_contribution=total_contributions / CONTRIBUTING_YEARS,
        minimum_balance=lowest.reserve_balance.ending_balance,
        minimum_balance_year=lowest.fiscal_year,
    )


# --------------------
# Schedules
# --------------------

def build_expenditure_schedule(components, years) -> Mapping:
    schedule = {component_type: {} for component_type in COMPONENT_TYPES}

    # first breakdown per component id, per year
    indexes = []
    for projection in years:
        index = {}
        for breakdown in projection.component_breakdowns:
            index.setdefault(breakdown.component_id, breakdown)
        indexes.append(index)

    for component_type in COMPONENT_TYPES:
        for component in components:
            if component.component_type != component_type:
                continue
            row = {}
            for projection, index in zip(years, indexes):
                breakdown = index.get(component.id)
                row[projection.fiscal_year] = breakdown.expenditure if breakdown else 0.0
            schedule[component_type][component.item_name] = MappingProxyType(row)

    return MappingProxyType({k: MappingProxyType(v) for k, v in schedule.items()})


def _fiscal_year(value: float):
    return int(value) if math.isfinite(value) and value.is_integer() else value


def _round_half_up(value: float) -> float:
    """Math.round: ties toward +infinity; inf and NaN pass through."""
    if not math.isfinite(value):
        return value
    whole = math.floor(value)
    return float(whole + 1 if value - whole >= 0.5 else whole)


def build_replacement_schedule(params: ProjectParameters, components) -> tuple:
    """Every component's single replacement, in fiscal-year order, with today's and inflated cost."""
    inflation_rate = _num(params.inflation_rate)
    events = []
    for component in components:
        remaining_life = _num(component.estimated_remaining_life)
        base_cost = _num(component.quantity) * _num(component.cost_per_unit)
        adjusted = base_cost * _power(1.0 + inflation_rate, remaining_life)
        events.append(
            ReplacementEvent(
                fiscal_year=_fiscal_year(_beginning_year(params) + remaining_life),
                component_id=component.id,
                item_name=component.item_name,
                component_type=component.component_type,
                base_cost=base_cost,
                adjusted_cost=_round_half_up(adjusted),
                is_preventive_maintenance=component.component_type == "Preventive Maintenance",
            )
        )
    events.sort(key=lambda e: e.fiscal_year)
    return tuple(events)


# --------------------
# Summary
# --------------------

def funding_status(percent: float) -> str:
    """Health label for a 0-100 percent-funded figure."""
    if percent >= 70:
        return "Good Standing"
    if percent >= 30:
        return "Fair"
    return "Underfunded"


def calculate_summary(year_one: YearProjection) -> StudySummary:
    totals = year_one.totals
    ledger = year_one.reserve_balance

    by_category = []
    for category, data in totals.categories.items():
        if data.full_funding_balance > 0:
            percent = data.current_reserve_funds / data.full_funding_balance * 100
        else:
            percent = 0.0
        by_category.append(
            CategorySummary(
                category=category,
                count=data.count,
                total_cost=data.total_cost,
                full_funding_balance=data.full_funding_balance,
                current_reserve_funds=data.current_reserve_funds,
                funds_needed=data.funds_needed,
                annual_funding=data.annual_funding,
                expenditure=data.expenditure,
                percent_funded=percent,
            )
        )

    return StudySummary(
        total_components=len(year_one.component_breakdowns),
        total_replacement_cost=totals.overall.total_cost,
        current_reserve_funds=ledger.beginning_balance,
        recommended_annual_funding=totals.overall.annual_funding,
        percent_funded=ledger.percent_funded,
        fully_funded_balance=totals.overall.full_funding_balance,
        # raw balance, not the sum of the per-component shares
        overall_funds_needed=totals.overall.total_cost - ledger.beginning_balance,
        funding_status=funding_status(ledger.percent_funded * 100),
        by_category=tuple(by_category),
    )


# --------------------
# Entry point
# --------------------

def calculate_reserve_study(params, components) -> ReserveStudyResult:
    """
    Full projection for one site:
    - 31-year current-funding ledger (year 1 is the starting snapshot)
    - expenditure schedule by category / item / fiscal year
    - four threshold scenarios
    - year-1 summary
    """
    if not isinstance(params, ProjectParameters):
        params = ProjectParameters.from_dict(params)
    components = [c if isinstance(c, Component) else Component.from_dict(c) for c in components]

    log.debug("Calculating reserve study from %s for %d components", params.beginning_year, len(components))

    years = []
    for year in range(1, PROJECTION_YEARS + 1):
        years.append(calculate_year(year, params, components, years))

    scenarios = MappingProxyType({
        name: calculate_threshold_scenario(name, params, components, rate)
        for name, rate in THRESHOLD_SCENARIOS
    })

    result = ReserveStudyResult(
        years=tuple(years),
        expenditure_schedule=build_expenditure_schedule(components, years),
        threshold_scenarios=scenarios,
        summary=calculate_summary(years[0]),
        replacement_schedule=build_replacement_schedule(params, components),
    )
    log.debug("Reserve study done: ending balance %.2f", years[-1].reserve_balance.ending_balance)
    return result
