import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from gridquery.filters.columns import ColumnDefinition, ColumnRegistry, DataType
from gridquery.filters.errors import MalformedFilterError
from gridquery.filters.model import FilterModel, FilterSet
from gridquery.filters.pagination import Cursor
from gridquery.filters.serializer import decode, encode


def _registry() -> ColumnRegistry:
    return ColumnRegistry.from_columns(
        [
            ColumnDefinition("name", DataType.TEXT, "customer_name"),
            ColumnDefinition("price", DataType.NUMBER, "total_amount"),
            ColumnDefinition("createdAt", DataType.DATE, "created_at"),
            ColumnDefinition("isPaid", DataType.BOOLEAN, "is_paid"),
            ColumnDefinition("status", DataType.OPTION, "status", options=("pending", "shipped", "cancelled")),
            ColumnDefinition("tags", DataType.MULTI_OPTION, "tags"),
        ]
    )


class QuerySerializerTests(unittest.TestCase):
    def setUp(self):
        self.registry = _registry()

    def test_encode_layout(self):
        model = FilterModel(self.registry)
        model.set_filter("status", "isAnyOf", ["pending", "shipped"])
        model.set_filter("isPaid", "isTrue", [])
        params = encode(model.snapshot(), Cursor(page_index=2, page_size=25))
        self.assertEqual(
            params,
            [
                ("filter[status][op]", "isAnyOf"),
                ("filter[status][v]", "pending"),
                ("filter[status][v]", "shipped"),
                ("filter[isPaid][op]", "isTrue"),
                ("pageIndex", "2"),
                ("pageSize", "25"),
            ],
        )

    def test_round_trip_is_identity(self):
        model = FilterModel(self.registry)
        model.set_filter("tags", "includesAll", ["gift", "50% off", "a&b=c"])
        model.set_filter("price", "between", [Decimal("10.50"), 50])
        model.set_filter("createdAt", "between", [date(2026, 1, 1), datetime(2026, 2, 1, 12, 30, tzinfo=timezone(timedelta(hours=3)))])
        model.set_filter("name", "contains", ["O'Brien [ltd]"])
        model.set_filter("isPaid", "isFalse", [])
        model.set_filter("status", "isNot", ["cancelled"])
        filter_set = model.snapshot()
        cursor = Cursor(page_index=3, page_size=15)

        decoded_set, decoded_cursor = decode(encode(filter_set, cursor), self.registry)

        self.assertEqual(decoded_set, filter_set)
        self.assertEqual(decoded_set.column_ids(), filter_set.column_ids())
        self.assertEqual(decoded_cursor, cursor)

    def test_round_trip_of_empty_set(self):
        decoded_set, decoded_cursor = decode(encode(FilterSet(), Cursor()), self.registry)
        self.assertEqual(decoded_set, FilterSet())
        self.assertEqual(decoded_cursor, Cursor())

    def test_decode_accepts_mapping(self):
        filter_set, cursor = decode(
            {"filter[status][op]": "isAnyOf", "filter[status][v]": ["pending", "shipped"], "pageSize": "5"},
            self.registry,
        )
        self.assertEqual(filter_set.get("status").values, ("pending", "shipped"))
        self.assertEqual(cursor, Cursor(page_index=0, page_size=5))

    def test_unknown_column_rejects_whole_request(self):
        params = [
            ("filter[status][op]", "is"),
            ("filter[status][v]", "pending"),
            ("filter[ghost][op]", "equals"),
            ("filter[ghost][v]", "x"),
        ]
        with self.assertRaises(MalformedFilterError) as ctx:
            decode(params, self.registry)
        self.assertEqual(ctx.exception.details["column_id"], "ghost")

    def test_malformed_inputs(self):
        cases = {
            "missing operator": [("filter[name][v]", "x")],
            "illegal operator": [("filter[price][op]", "contains"), ("filter[price][v]", "1")],
            "unknown operator": [("filter[name][op]", "like"), ("filter[name][v]", "x")],
            "duplicate operator": [("filter[name][op]", "equals"), ("filter[name][op]", "contains"), ("filter[name][v]", "x")],
            "arity": [("filter[price][op]", "between"), ("filter[price][v]", "1")],
            "bad value": [("filter[price][op]", "equals"), ("filter[price][v]", "ten")],
            "bad option": [("filter[status][op]", "is"), ("filter[status][v]", "lost")],
            "delimiter in token": [("filter[tags][op]", "includesAny"), ("filter[tags][v]", "gift|express")],
            "unknown part": [("filter[name][value]", "x")],
            "broken key": [("filter[name", "x")],
            "bad page index": [("pageIndex", "-1")],
            "bad page size": [("pageSize", "abc")],
            "zero page size": [("pageSize", "0")],
            "repeated page size": [("pageSize", "10"), ("pageSize", "20")],
        }
        for name, params in cases.items():
            with self.subTest(name):
                with self.assertRaises(MalformedFilterError):
                    decode(params, self.registry)

    def test_cursor_defaults_and_clamp(self):
        _, cursor = decode([], self.registry, default_page_size=20, max_page_size=100)
        self.assertEqual(cursor, Cursor(page_index=0, page_size=20))
        _, cursor = decode([("pageSize", "5000"), ("pageIndex", "4")], self.registry, max_page_size=100)
        self.assertEqual(cursor, Cursor(page_index=4, page_size=100))

    def test_unrelated_params_are_ignored(self):
        filter_set, _ = decode([("locale", "es"), ("_", "123"), ("filterx", "1")], self.registry)
        self.assertEqual(len(filter_set), 0)


class CursorTests(unittest.TestCase):
    def test_offset(self):
        self.assertEqual(Cursor(page_index=3, page_size=20).offset, 60)

    def test_invalid_cursor(self):
        with self.assertRaises(ValueError):
            Cursor(page_index=-1, page_size=10)
        with self.assertRaises(ValueError):
            Cursor(page_index=0, page_size=0)


if __name__ == "__main__":
    unittest.main()
