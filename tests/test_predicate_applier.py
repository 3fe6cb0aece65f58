import os
import sqlite3
import unittest
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from sqlalchemy import Date, create_engine, delete
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gridquery.filters.columns import ColumnDefinition, ColumnRegistry, DataType, pack_multi_option
from gridquery.filters.errors import StoreFatalError, StoreTransientError, UnknownColumnError, ValidationError
from gridquery.filters.model import FilterDetail, FilterModel, FilterSet
from gridquery.filters.operators import Operator, catalog_pairs
from gridquery.filters.pagination import Cursor
from gridquery.models.llm_event import LlmEvent
from gridquery.models.order import Order
from gridquery.services.predicate_applier import PREDICATE_BUILDERS, _as_column_value, _Context, run_table_query
from gridquery.services.table_store import SqlAlchemyTableStore, classify_store_error
from gridquery.tables.orders import ORDER_COLUMNS

BASE_TIME = datetime(2026, 2, 26, 9, 30, tzinfo=timezone.utc)


def _order(**overrides) -> Order:
    values = {
        "id": uuid.uuid4(),
        "external_id": "EXT-1",
        "channel": "tiendanube",
        "status": "pending",
        "customer_name": "Ana Perez",
        "customer_email": None,
        "total_amount": Decimal("20.00"),
        "is_paid": False,
        "tags": None,
        "created_at": BASE_TIME,
    }
    values.update(overrides)
    return Order(**values)


class PredicateApplierBase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        Order.__table__.create(bind=cls.engine)

    @classmethod
    def tearDownClass(cls):
        Order.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            db.execute(delete(Order))
            db.commit()

    def _add(self, *orders):
        with self.SessionLocal() as db:
            db.add_all(orders)
            db.commit()

    def _query(self, *filters, page_index=0, page_size=50, case_sensitive=False):
        model = FilterModel(ORDER_COLUMNS)
        for column_id, operator, values in filters:
            model.set_filter(column_id, operator, values)
        with self.SessionLocal() as db:
            store = SqlAlchemyTableStore(db, Order, list_fields=("tags",))
            return run_table_query(
                store,
                ORDER_COLUMNS,
                model.snapshot(),
                Cursor(page_index=page_index, page_size=page_size),
                case_sensitive=case_sensitive,
            )

    @staticmethod
    def _ids(envelope):
        return sorted(row["externalId"] for row in envelope.data)


class PredicateTranslationTests(PredicateApplierBase):
    def test_builders_cover_catalog(self):
        self.assertEqual(set(PREDICATE_BUILDERS), catalog_pairs())

    def test_text_operators_with_case_policy(self):
        self._add(
            _order(external_id="A", customer_name="Ana Perez", customer_email="ana@example.com"),
            _order(external_id="B", customer_name="ANASTASIA", customer_email=""),
            _order(external_id="C", customer_name="Bob 100% Real", customer_email=None),
        )
        self.assertEqual(self._ids(self._query(("customerName", "contains", ["ana"]))), ["A", "B"])
        self.assertEqual(self._ids(self._query(("customerName", "contains", ["ana"]), case_sensitive=True)), [])
        self.assertEqual(self._ids(self._query(("customerName", "startsWith", ["ana"]))), ["A", "B"])
        self.assertEqual(self._ids(self._query(("customerName", "equals", ["anastasia"]))), ["B"])
        self.assertEqual(self._ids(self._query(("customerName", "contains", ["0% r"]))), ["C"])
        self.assertEqual(self._ids(self._query(("customerName", "contains", ["%"]))), ["C"])
        self.assertEqual(self._ids(self._query(("customerEmail", "isEmpty", []))), ["B", "C"])
        self.assertEqual(self._ids(self._query(("customerEmail", "isNotEmpty", []))), ["A"])

    def test_case_sensitive_text_matching(self):
        self._add(
            _order(external_id="A", customer_name="Ana Perez"),
            _order(external_id="B", customer_name="ANASTASIA"),
            _order(external_id="C", customer_name="Bob 100% Real"),
        )
        self.assertEqual(self._ids(self._query(("customerName", "contains", ["ana"]), case_sensitive=True)), [])
        self.assertEqual(self._ids(self._query(("customerName", "contains", ["Ana"]), case_sensitive=True)), ["A"])
        self.assertEqual(self._ids(self._query(("customerName", "startsWith", ["ANA"]), case_sensitive=True)), ["B"])
        self.assertEqual(self._ids(self._query(("customerName", "startsWith", ["Perez"]), case_sensitive=True)), [])
        self.assertEqual(self._ids(self._query(("customerName", "contains", ["0% R"]), case_sensitive=True)), ["C"])
        self.assertEqual(self._ids(self._query(("customerName", "equals", ["ana perez"]), case_sensitive=True)), [])

    def test_non_ascii_text_matches_itself(self):
        self._add(
            _order(external_id="A", customer_name="ÉLAN"),
            _order(external_id="B", customer_name="Élan Studio"),
        )
        self.assertEqual(self._ids(self._query(("customerName", "equals", ["ÉLAN"]))), ["A"])
        self.assertEqual(self._ids(self._query(("customerName", "equals", ["Élan"]))), ["A"])
        self.assertEqual(self._ids(self._query(("customerName", "contains", ["Élan"]))), ["A", "B"])

    def test_number_operators_and_inclusive_between(self):
        self._add(
            _order(external_id="10", total_amount=Decimal("10.00")),
            _order(external_id="30", total_amount=Decimal("30.50")),
            _order(external_id="50", total_amount=Decimal("50.00")),
            _order(external_id="70", total_amount=Decimal("70.00")),
        )
        self.assertEqual(self._ids(self._query(("price", "between", [10, 50]))), ["10", "30", "50"])
        self.assertEqual(self._ids(self._query(("price", "greaterThan", [50]))), ["70"])
        self.assertEqual(self._ids(self._query(("price", "lessThan", ["30.5"]))), ["10"])
        self.assertEqual(self._ids(self._query(("price", "equals", ["30.50"]))), ["30"])

    def test_date_only_values_cover_whole_day(self):
        self._add(
            _order(external_id="prev", created_at=datetime(2026, 2, 25, 23, 59, 59, tzinfo=timezone.utc)),
            _order(external_id="morning", created_at=datetime(2026, 2, 26, 9, 30, tzinfo=timezone.utc)),
            _order(external_id="evening", created_at=datetime(2026, 2, 26, 23, 59, 59, tzinfo=timezone.utc)),
            _order(external_id="next", created_at=datetime(2026, 2, 27, 0, 0, tzinfo=timezone.utc)),
        )
        self.assertEqual(self._ids(self._query(("createdAt", "equals", ["2026-02-26"]))), ["evening", "morning"])
        self.assertEqual(self._ids(self._query(("createdAt", "before", [date(2026, 2, 26)]))), ["prev"])
        self.assertEqual(self._ids(self._query(("createdAt", "after", ["2026-02-26"]))), ["next"])
        self.assertEqual(
            self._ids(self._query(("createdAt", "between", ["2026-02-25", "2026-02-26"]))),
            ["evening", "morning", "prev"],
        )
        self.assertEqual(
            self._ids(self._query(("createdAt", "equals", ["2026-02-26T09:30:00Z"]))),
            ["morning"],
        )
        # 12:30 at +03:00 is 09:30 UTC.
        self.assertEqual(
            self._ids(self._query(("createdAt", "between", ["2026-02-26T12:30:00+03:00", "2026-02-26T23:00:00"]))),
            ["morning"],
        )

    def test_boolean_operators(self):
        self._add(_order(external_id="paid", is_paid=True), _order(external_id="open", is_paid=False))
        self.assertEqual(self._ids(self._query(("isPaid", "isTrue", []))), ["paid"])
        self.assertEqual(self._ids(self._query(("isPaid", "isFalse", []))), ["open"])

    def test_option_operators(self):
        self._add(
            _order(external_id="p", status="pending"),
            _order(external_id="s", status="shipped"),
            _order(external_id="c", status="cancelled"),
        )
        self.assertEqual(self._ids(self._query(("status", "is", ["shipped"]))), ["s"])
        self.assertEqual(self._ids(self._query(("status", "isNot", ["shipped"]))), ["c", "p"])
        self.assertEqual(self._ids(self._query(("status", "isAnyOf", ["pending", "cancelled"]))), ["c", "p"])

    def test_multi_option_operators(self):
        self._add(
            _order(external_id="gift", tags=pack_multi_option(["gift"])),
            _order(external_id="both", tags=pack_multi_option(["gift", "express"])),
            _order(external_id="express", tags=pack_multi_option(["express"])),
            _order(external_id="none", tags=None),
        )
        self.assertEqual(self._ids(self._query(("tags", "includesAny", ["gift", "fragile"]))), ["both", "gift"])
        self.assertEqual(self._ids(self._query(("tags", "includesAll", ["gift", "express"]))), ["both"])
        self.assertEqual(self._ids(self._query(("tags", "excludes", ["gift"]))), ["express", "none"])
        row = next(r for r in self._query(("tags", "includesAll", ["gift", "express"])).data)
        self.assertEqual(row["tags"], ["gift", "express"])

    def test_filters_are_conjoined(self):
        self._add(
            _order(external_id="match", status="pending", is_paid=True),
            _order(external_id="unpaid", status="pending", is_paid=False),
            _order(external_id="shipped", status="shipped", is_paid=True),
        )
        envelope = self._query(("status", "is", ["pending"]), ("isPaid", "isTrue", []))
        self.assertEqual(self._ids(envelope), ["match"])
        self.assertEqual(envelope.total, 1)

    def test_rows_are_json_safe(self):
        self._add(_order(external_id="x", total_amount=Decimal("12.34")))
        row = self._query().data[0]
        self.assertIsInstance(row["id"], str)
        self.assertIsInstance(row["createdAt"], str)
        self.assertEqual(row["price"], 12.34)

    def test_rows_are_keyed_by_column_id(self):
        self._add(_order(external_id="x", tags=pack_multi_option(["gift"])))
        row = self._query().data[0]
        self.assertEqual(set(row), {"id", *ORDER_COLUMNS.ids()})
        self.assertEqual(row["externalId"], "x")
        self.assertEqual(row["customerName"], "Ana Perez")
        self.assertEqual(row["tags"], ["gift"])
        self.assertNotIn("external_id", row)


class DateColumnValueTests(unittest.TestCase):
    def test_aware_datetime_on_date_column_uses_utc_day(self):
        column = SimpleNamespace(property=SimpleNamespace(columns=[SimpleNamespace(type=Date())]))
        ctx = _Context(column, case_sensitive=False)
        self.assertTrue(ctx.is_date)
        late_evening = datetime(2026, 2, 26, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
        self.assertEqual(_as_column_value(ctx, late_evening), date(2026, 2, 27))
        early_morning = datetime(2026, 2, 27, 1, 0, tzinfo=timezone(timedelta(hours=3)))
        self.assertEqual(_as_column_value(ctx, early_morning), date(2026, 2, 26))
        self.assertEqual(_as_column_value(ctx, date(2026, 2, 26)), date(2026, 2, 26))


class PaginationEnvelopeTests(PredicateApplierBase):
    def test_empty_filter_set_returns_all_rows(self):
        self._add(*[_order(external_id=f"E{i}") for i in range(7)])
        envelope = self._query(page_size=5)
        self.assertEqual(envelope.total, 7)
        self.assertEqual(len(envelope.data), 5)
        self.assertTrue(envelope.pagination.has_more)
        self.assertEqual(envelope.pagination.page_count, 2)

    def test_status_any_of_scenario(self):
        orders = []
        for i in range(25):
            orders.append(_order(external_id=f"O{i}", status="pending" if i % 2 else "shipped", created_at=BASE_TIME + timedelta(minutes=i)))
        orders.extend(_order(external_id=f"C{i}", status="cancelled") for i in range(4))
        self._add(*orders)

        envelope = self._query(("status", "isAnyOf", ["pending", "shipped"]), page_index=0, page_size=20)

        self.assertTrue(envelope.success)
        self.assertEqual(envelope.total, 25)
        self.assertEqual(len(envelope.data), 20)
        self.assertEqual(envelope.pagination.limit, 20)
        self.assertEqual(envelope.pagination.offset, 0)
        self.assertTrue(envelope.pagination.has_more)
        self.assertEqual(envelope.pagination.page_count, 2)

        last = self._query(("status", "isAnyOf", ["pending", "shipped"]), page_index=1, page_size=20)
        self.assertEqual(len(last.data), 5)
        self.assertEqual(last.pagination.offset, 20)
        self.assertFalse(last.pagination.has_more)

    def test_price_between_with_no_matches(self):
        self._add(_order(external_id="cheap", total_amount=Decimal("5.00")))
        envelope = self._query(("price", "between", [10, 50]))
        self.assertEqual(envelope.total, 0)
        self.assertEqual(envelope.data, [])
        self.assertFalse(envelope.pagination.has_more)
        self.assertEqual(envelope.pagination.page_count, 0)

    def test_paging_is_stable_with_equal_timestamps(self):
        self._add(*[_order(external_id=f"T{i}", created_at=BASE_TIME) for i in range(9)])
        self._add(_order(external_id="newest", created_at=BASE_TIME + timedelta(hours=1)))
        seen = []
        for page_index in range(4):
            seen.extend(row["id"] for row in self._query(page_index=page_index, page_size=3).data)
        self.assertEqual(len(seen), 10)
        self.assertEqual(len(set(seen)), 10)
        first = self._query(page_size=3).data[0]
        self.assertEqual(first["externalId"], "newest")
        same_time_ids = seen[1:]
        self.assertEqual(same_time_ids, sorted(same_time_ids, reverse=True))

    def test_page_past_the_end_is_empty(self):
        self._add(_order(external_id="only"))
        envelope = self._query(page_index=5, page_size=10)
        self.assertEqual(envelope.total, 1)
        self.assertEqual(envelope.data, [])
        self.assertEqual(envelope.pagination.offset, 50)
        self.assertFalse(envelope.pagination.has_more)
        self.assertEqual(envelope.pagination.page_count, 1)


class _FailingStore:
    def __init__(self, error):
        self.error = error

    def resolve(self, accessor):
        return getattr(Order, accessor)

    def count(self, predicate):
        raise self.error

    def find(self, predicate, *, offset, limit, order_key):
        raise AssertionError("find must not run after a failed count")


class FailureHandlingTests(PredicateApplierBase):
    def test_unknown_column_in_trusted_filter_set_raises(self):
        filter_set = FilterSet([FilterDetail("ghost", Operator.EQUALS, ("x",))])
        with self.SessionLocal() as db:
            with self.assertRaises(UnknownColumnError):
                run_table_query(SqlAlchemyTableStore(db, Order), ORDER_COLUMNS, filter_set, Cursor())

    def test_wrong_arity_in_trusted_filter_set_raises(self):
        filter_set = FilterSet([FilterDetail("price", Operator.BETWEEN, (1,))])
        with self.SessionLocal() as db:
            with self.assertRaises(ValidationError):
                run_table_query(SqlAlchemyTableStore(db, Order), ORDER_COLUMNS, filter_set, Cursor())

    def test_store_errors_propagate(self):
        for error in (StoreTransientError("timeout"), StoreFatalError("bad query")):
            with self.subTest(type(error).__name__):
                with self.assertRaises(type(error)):
                    run_table_query(_FailingStore(error), ORDER_COLUMNS, FilterSet(), Cursor())

    def test_unmapped_accessor_is_fatal(self):
        registry = ColumnRegistry.from_columns([ColumnDefinition("weight", DataType.NUMBER, "weight_kg")])
        model = FilterModel(registry)
        model.set_filter("weight", "greaterThan", [1])
        with self.SessionLocal() as db:
            with self.assertRaises(StoreFatalError):
                run_table_query(SqlAlchemyTableStore(db, Order), registry, model.snapshot(), Cursor())

    def test_missing_table_is_fatal(self):
        with self.SessionLocal() as db:
            store = SqlAlchemyTableStore(db, LlmEvent)
            with self.assertRaises(StoreFatalError):
                store.count(LlmEvent.provider == "openai")


class StoreErrorClassificationTests(unittest.TestCase):
    def test_locked_database_is_transient(self):
        exc = OperationalError("SELECT 1", {}, sqlite3.OperationalError("database is locked"))
        error = classify_store_error(exc)
        self.assertIsInstance(error, StoreTransientError)
        self.assertTrue(error.retryable)
        self.assertEqual(error.http_status, 503)

    def test_timeouts_are_transient(self):
        self.assertIsInstance(classify_store_error(TimeoutError()), StoreTransientError)

    def test_schema_errors_are_fatal(self):
        self.assertIsInstance(
            classify_store_error(OperationalError("SELECT x", {}, sqlite3.OperationalError("no such column: x"))),
            StoreFatalError,
        )
        fatal = classify_store_error(ProgrammingError("SELECT", {}, Exception("syntax")))
        self.assertIsInstance(fatal, StoreFatalError)
        self.assertFalse(fatal.retryable)
        self.assertEqual(fatal.http_status, 500)


if __name__ == "__main__":
    unittest.main()
