"""
conftest.py: Shared pytest fixtures for the Washroom Quote test suite.

Supabase is never contacted. Store tests run against FakeSupabaseClient,
an in-memory stand-in for the query-builder chain the stores use
(table().select().eq().order().limit().execute()).
"""

import copy
import itertools

import pytest

from calculator import (
    BrandCatalog,
    BrandEntry,
    CustomerDetails,
    Dimensions,
    FixtureCatalog,
    FixtureCategory,
    FixtureEntry,
    PlumbingRequirement,
    PricingContext,
    PricingDatabase,
    RateConfig,
    SelectionSet,
    Timeline,
)


# ---------------------------------------------------------------------------
# Fake Supabase client
# ---------------------------------------------------------------------------

class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records one builder chain and resolves it against the client's tables."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.operation = "select"
        self.payload = None
        self.filters = []
        self.ordering = None
        self.row_limit = None

    def select(self, *columns):
        self.operation = "select"
        return self

    def insert(self, row):
        self.operation = "insert"
        self.payload = row
        return self

    def update(self, values):
        self.operation = "update"
        self.payload = values
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matches(self, row):
        return all(str(row.get(column)) == str(value) for column, value in self.filters)

    def execute(self):
        self.client.calls.append((self.table, self.operation, list(self.filters)))
        if self.table in self.client.failing_tables:
            raise self.client.failing_tables[self.table]

        rows = self.client.tables.setdefault(self.table, [])

        if self.operation == "insert":
            row = copy.deepcopy(self.payload)
            row.setdefault("id", next(self.client.ids))
            rows.append(row)
            return FakeResult([copy.deepcopy(row)])

        matched = [row for row in rows if self._matches(row)]

        if self.operation == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResult(copy.deepcopy(matched))

        if self.ordering:
            column, desc = self.ordering
            matched = sorted(matched, key=lambda row: row.get(column) or "", reverse=desc)
        if self.row_limit is not None:
            matched = matched[:self.row_limit]
        return FakeResult(copy.deepcopy(matched))


class FakeSupabaseClient:
    def __init__(self, tables=None):
        self.tables = copy.deepcopy(tables or {})
        self.failing_tables = {}
        self.calls = []
        self.ids = itertools.count(1)

    def table(self, name):
        return FakeQuery(self, name)

    def fail(self, table, error=None):
        """Make every query against a table raise."""
        self.failing_tables[table] = error or ConnectionError(f"{table} unavailable")


SEED_TABLES = {
    "settings": [
        {
            "category": "calculator",
            "settings": {
                "plumbingRatePerSqFt": 60,
                "tileCostPerUnit": 90,
                "tilingLaborRate": 100,
                "plumbingRates": {"complete": 2000, "fixtureOnly": 900},
            },
        },
    ],
    "fixtures": [
        {"fixture_id": "waterHeater", "type": "electrical", "name": "Water Heater", "price": 400},
        {"fixture_id": "ledMirror", "type": "electrical", "name": "LED Mirror", "price": 200},
        {"fixture_id": "vanity", "type": "bathroom", "name": "Vanity", "price": 500,
         "description": "Vanity unit with storage"},
    ],
    "brands": [
        {"id": "brand1", "name": "Luxe Bathware", "client_price": 1500},
        {"id": "brand2", "name": "Modern Plumbing", "client_price": 1200},
    ],
}


@pytest.fixture
def fake_supabase():
    """A fake client seeded with settings, fixtures and brands."""
    return FakeSupabaseClient(SEED_TABLES)


# ---------------------------------------------------------------------------
# Pricing fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def default_context():
    """
    The built-in pricing snapshot.

    Rates: tile 80/unit, labor 85/sq ft, coverage 4 sq ft, breakage 10%,
    plumbing 50/sq ft + 1500 complete / 800 fixture-only, discount 5%.
    """
    return PricingDatabase.default_pricing_context()


@pytest.fixture(scope="session")
def scenario_context():
    """
    Default rates with a small catalog chosen for exact arithmetic:
      electrical 'heater' = 3500, additional 'jacuzzi' = 15000,
      brand 'brandX' premium = 1200.
    """
    return PricingContext(
        rates=RateConfig(),
        electrical=FixtureCatalog(FixtureCategory.ELECTRICAL, [FixtureEntry("heater", "Heater", 3500.0)]),
        additional=FixtureCatalog(FixtureCategory.BATHROOM, [FixtureEntry("jacuzzi", "Jacuzzi", 15000.0)]),
        brands=BrandCatalog([BrandEntry("brandX", "Brand X", 1200.0)]),
    )


@pytest.fixture
def base_selections():
    """10 x 8 x 9 ft washroom, complete plumbing, nothing else selected."""
    return SelectionSet(
        dimensions=Dimensions(length=10, width=8, height=9),
        plumbing_requirement=PlumbingRequirement.COMPLETE,
    )


@pytest.fixture
def customer():
    return CustomerDetails(
        name="Asha Rao",
        email="asha@example.com",
        phone="98765 43210",
        location="Pune",
    )


@pytest.fixture
def full_selections(customer):
    """Scenario selections: one of each fixture, a brand and a flexible timeline."""
    return SelectionSet(
        dimensions=Dimensions(length=10, width=8, height=9),
        plumbing_requirement=PlumbingRequirement.COMPLETE,
        electrical_fixture_ids={"heater"},
        additional_fixture_ids={"jacuzzi"},
        brand_id="brandX",
        timeline=Timeline.FLEXIBLE,
        customer=customer,
    )
