"""
Shared pytest fixtures.

FakeSupabase is an in-memory stand-in for the supabase-py client covering the
query-builder calls the app makes: select/eq/order/limit/or_/single, insert,
update, delete, upsert and rpc; `auth` and `storage` are mocks. Tests can
make any table operation fail with an APIError through ``fail_on``.
"""

import copy
import itertools
from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from meditravel import (
    auth,
    bookings,
    destinations,
    medical_history,
    profiles,
    reviews,
    support,
    treatments,
)


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.or_filter = None
        self.order_by = None
        self.row_limit = None
        self.single_row = False
        self.on_conflict = None

    # ---------------- BUILDERS ----------------

    def select(self, *columns):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.action = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def or_(self, filters):
        self.or_filter = filters
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    def single(self):
        self.single_row = True
        return self

    # ---------------- EXECUTION ----------------

    def _matches(self, row):
        if any(row.get(col) != val for col, val in self.filters):
            return False
        if self.or_filter:
            hits = []
            for part in self.or_filter.split(","):
                column, op, pattern = part.split(".", 2)
                assert op == "ilike"
                needle = pattern.strip("%").lower()
                hits.append(needle in str(row.get(column) or "").lower())
            return any(hits)
        return True

    def execute(self):
        self.db.calls.append((self.table, self.action))
        if (self.table, self.action) in self.db.failures:
            raise APIError(
                {"message": f"{self.action} on {self.table} failed", "code": "500", "hint": None, "details": None}
            )

        rows = self.db.tables.setdefault(self.table, [])

        if self.action == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.db.add_row(self.table, p) for p in payloads]
            return FakeResponse(copy.deepcopy(inserted))

        if self.action == "upsert":
            key = self.on_conflict or "id"
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            result = []
            for p in payloads:
                existing = next((r for r in rows if r.get(key) == p.get(key)), None)
                if existing is not None:
                    existing.update(copy.deepcopy(p))
                    result.append(existing)
                else:
                    result.append(self.db.add_row(self.table, p))
            return FakeResponse(copy.deepcopy(result))

        matched = [r for r in rows if self._matches(r)]

        if self.action == "update":
            for r in matched:
                r.update(copy.deepcopy(self.payload))
            return FakeResponse(copy.deepcopy(matched))

        if self.action == "delete":
            self.db.tables[self.table] = [r for r in rows if r not in matched]
            return FakeResponse(copy.deepcopy(matched))

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(
                matched,
                key=lambda r: (r.get(column) is None, r.get(column)),
                reverse=desc,
            )
        if self.row_limit is not None:
            matched = matched[: self.row_limit]

        if self.single_row:
            if len(matched) != 1:
                raise APIError(
                    {
                        "message": "JSON object requested, multiple (or no) rows returned",
                        "code": "PGRST116",
                        "hint": None,
                        "details": f"The result contains {len(matched)} rows",
                    }
                )
            return FakeResponse(copy.deepcopy(matched[0]))

        return FakeResponse(copy.deepcopy(matched))


class FakeRpc:
    def __init__(self, db, name, params):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.calls.append(("rpc", self.name))
        self.db.rpc_calls.append((self.name, self.params))
        if ("rpc", self.name) in self.db.failures:
            raise APIError({"message": f"{self.name} failed", "code": "P0001", "hint": None, "details": None})
        handler = self.db.procedures.get(self.name)
        return FakeResponse(handler(self.db, self.params) if handler else None)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.rpc_calls = []
        self.failures = set()
        self.procedures = {}
        self.auth = MagicMock()
        self.storage = MagicMock()
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)

    def add_row(self, table, payload):
        row = copy.deepcopy(payload)
        row.setdefault("id", next(self._ids))
        row.setdefault("created_at", f"2026-01-01T00:{next(self._clock):05d}")
        self.tables.setdefault(table, []).append(row)
        return row

    def seed(self, table, rows):
        return [self.add_row(table, r) for r in rows]

    def fail_on(self, table, action):
        self.failures.add((table, action))

    def calls_to(self, table):
        return [c for c in self.calls if c[0] == table]


DATA_MODULES = [auth, bookings, destinations, medical_history, profiles, reviews, support, treatments]


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def supabase(fake_db, monkeypatch):
    """Route every data-access module to the in-memory client."""
    for module in DATA_MODULES:
        monkeypatch.setattr(module, "get_supabase_client", lambda: fake_db)
    return fake_db


@pytest.fixture
def sample_destinations(supabase):
    return supabase.seed(
        destinations.DESTINATIONS_TABLE,
        [
            {"name": "Bumrungrad", "city": "Bangkok", "country": "Thailand", "rating": 4.8,
             "savings_percentage": 60, "featured": True, "description": "Top hospital"},
            {"name": "Apollo", "city": "Chennai", "country": "India", "rating": 4.6,
             "savings_percentage": 70, "featured": True, "description": "Cardiac care"},
            {"name": "Acibadem", "city": "Istanbul", "country": "Turkey", "rating": 4.7,
             "savings_percentage": 50, "featured": False, "description": "Hair and dental"},
        ],
    )


@pytest.fixture
def sample_treatments(supabase):
    return supabase.seed(
        treatments.TREATMENTS_TABLE,
        [
            {"name": "Dental Implants", "category": "Dental", "procedure_count": 1200,
             "description": "Titanium implants"},
            {"name": "Hip Replacement", "category": "Orthopedics", "procedure_count": 300,
             "description": "Full hip arthroplasty"},
            {"name": "Veneers", "category": "Dental", "procedure_count": 800,
             "description": "Porcelain veneers for a bright smile"},
        ],
    )
