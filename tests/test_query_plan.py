import os
import unittest
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from fastapi import HTTPException
from sqlalchemy import create_engine, insert
from sqlalchemy.dialects import sqlite

from tabledata.core.errors import InvalidRecord, MissingPrimaryKey
from tabledata.models.column import MetaColumn
from tabledata.models.table import MetaTable
from tabledata.services.coercion import coerce_for_kind, is_date_only_literal
from tabledata.services.filter_parser import parse_where
from tabledata.services.pagination import PaginationWindow
from tabledata.services.query_plan import QueryPlanBuilder, column_kind, serialize_value
from tabledata.services.sort_parser import parse_sort


def _column(title, column_name, uidt="SingleLineText", position=0, **extra):
    return MetaColumn(
        id=uuid.uuid4(),
        table_id=None,
        title=title,
        column_name=column_name,
        uidt=uidt,
        sort_order=position,
        primary_key=extra.get("primary_key", False),
        auto_increment=extra.get("auto_increment", False),
        nullable=extra.get("nullable", True),
        default_value=extra.get("default_value"),
    )


def _events_builder():
    table = MetaTable(id=uuid.uuid4(), base_id=uuid.uuid4(), title="Events", table_name="events")
    columns = [
        _column("Id", "id", "ID", 0, primary_key=True, auto_increment=True, nullable=False),
        _column("Title", "title", "SingleLineText", 1, nullable=False),
        _column("Happened", "happened_at", "DateTime", 2),
        _column("Score", "score", "Number", 3),
        _column("Done", "done", "Checkbox", 4, default_value="false"),
        _column("Related", None, "Links", 5),
    ]
    return QueryPlanBuilder(table, columns)


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=sqlite.dialect()))


class CoercionTests(unittest.TestCase):
    def test_boolean_accepts_string_values(self):
        self.assertTrue(coerce_for_kind("boolean", bool, "true"))
        self.assertTrue(coerce_for_kind("boolean", bool, "checked"))
        self.assertFalse(coerce_for_kind("boolean", bool, "0"))
        with self.assertRaises(ValueError):
            coerce_for_kind("boolean", bool, "maybe")

    def test_numbers_accept_string_values(self):
        self.assertEqual(coerce_for_kind("number", int, "42"), 42)
        self.assertAlmostEqual(coerce_for_kind("number", float, "3,14"), 3.14)
        self.assertEqual(coerce_for_kind("decimal", Decimal, "99.50"), Decimal("99.50"))
        with self.assertRaises(ValueError):
            coerce_for_kind("number", int, "1.5")
        with self.assertRaises(ValueError):
            coerce_for_kind("number", int, True)

    def test_dates_accept_iso_date_and_datetime(self):
        self.assertEqual(coerce_for_kind("date", None, "2026-02-26"), date(2026, 2, 26))
        self.assertEqual(coerce_for_kind("date", None, "2026-02-26T13:45:00+03:00"), date(2026, 2, 26))

    def test_datetime_accepts_date_only_and_makes_it_timezone_aware(self):
        value = coerce_for_kind("datetime", None, "2026-02-26")
        self.assertEqual(value, datetime(2026, 2, 26, tzinfo=timezone.utc))
        self.assertTrue(is_date_only_literal("2026-02-26"))
        self.assertFalse(is_date_only_literal("2026-02-26T10:15:00"))

    def test_text_and_multiselect(self):
        self.assertEqual(coerce_for_kind("text", str, 12), "12")
        self.assertEqual(coerce_for_kind("multiselect", str, ["a", " b ", ""]), "a,b")
        with self.assertRaises(ValueError):
            coerce_for_kind("text", str, {"a": 1})
        self.assertIsNone(coerce_for_kind("number", int, None))


class QueryPlanStatementTests(unittest.TestCase):
    def setUp(self):
        self.builder = _events_builder()

    def test_virtual_columns_have_no_physical_column(self):
        self.assertEqual([c.name for c in self.builder.sa_table.columns], ["id", "title", "happened_at", "score", "done"])
        self.assertEqual(column_kind(self.builder.resolver.columns[2]), "datetime")

    def test_filter_literals_are_bound_parameters(self):
        clause = self.builder.where_clause(parse_where("(Title,eq,x' OR '1'='1)"))
        compiled = clause.compile(dialect=sqlite.dialect())
        self.assertNotIn("OR '1'='1", str(compiled))
        self.assertIn("x' OR '1'='1", compiled.params.values())

    def test_unresolvable_and_illegal_comparisons_are_dropped(self):
        self.assertIsNone(self.builder.where_clause(parse_where("(Missing,eq,1)")))
        self.assertIsNone(self.builder.where_clause(parse_where("(Related,eq,1)")))
        self.assertIsNone(self.builder.where_clause(parse_where("(Score,like,1)")))
        self.assertIsNone(self.builder.where_clause(parse_where("(Title,eq)")))
        kept = self.builder.where_clause(parse_where("(Missing,eq,1)~and(Score,gt,5)"))
        self.assertIn("score >", _sql(kept))

    def test_bad_filter_value_is_400(self):
        with self.assertRaises(HTTPException) as ctx:
            self.builder.where_clause(parse_where("(Score,gt,lots)"))
        self.assertEqual(ctx.exception.status_code, 400)

    def test_order_by_appends_primary_key_once(self):
        terms = self.builder.order_by(parse_sort("-Score,Score,Missing"))
        self.assertEqual([str(term) for term in terms], ["events.score DESC", "events.id ASC"])
        terms = self.builder.order_by(parse_sort("-Id"))
        self.assertEqual([str(term) for term in terms], ["events.id DESC"])

    def test_list_plan_shares_where_between_page_and_count(self):
        projection = self.builder.resolver.columns[:2]
        plan = self.builder.plan_list(projection, parse_where("(Score,gte,3)"), [])
        page_sql = _sql(plan.page(PaginationWindow(offset=50, limit=25)))
        self.assertIn("WHERE events.score >=", page_sql)
        self.assertIn("LIMIT", page_sql)
        self.assertIn("WHERE events.score >=", _sql(plan.count))
        self.assertNotIn("ORDER BY", _sql(plan.count))
        self.assertEqual(_sql(plan.count), _sql(self.builder.count_statement(parse_where("(Score,gte,3)"))))

    def test_decimals_are_serialized_without_rounding(self):
        self.assertEqual(serialize_value(Decimal("12345678901234567.89")), "12345678901234567.89")
        self.assertEqual(serialize_value(Decimal("0.5000000000")), "0.5")
        self.assertEqual(serialize_value(Decimal("1E+2")), "100")


class QueryPlanExecutionTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.builder = _events_builder()
        cls.engine = create_engine("sqlite+pysqlite:///:memory:")
        cls.builder.sa_table.create(bind=cls.engine)
        with cls.engine.begin() as conn:
            conn.execute(
                insert(cls.builder.sa_table),
                [
                    {"id": 1, "title": "prev-day", "happened_at": datetime(2026, 2, 25, 23, 59, 59), "score": 1},
                    {"id": 2, "title": "same-day-morning", "happened_at": datetime(2026, 2, 26, 9, 30, 0), "score": 2},
                    {"id": 3, "title": "same-day-evening", "happened_at": datetime(2026, 2, 26, 23, 59, 59), "score": None},
                    {"id": 4, "title": "next-day", "happened_at": datetime(2026, 2, 27, 0, 0, 0), "score": 4},
                ],
            )

    @classmethod
    def tearDownClass(cls):
        cls.engine.dispose()

    def _ids(self, where: str) -> list[int]:
        plan = self.builder.plan_list(self.builder.resolver.columns[:1], parse_where(where), [])
        with self.engine.connect() as conn:
            return [row[0] for row in conn.execute(plan.select)]

    def test_datetime_equal_date_uses_day_range(self):
        self.assertEqual(self._ids("(Happened,eq,2026-02-26)"), [2, 3])

    def test_datetime_not_equal_date_excludes_whole_day(self):
        self.assertEqual(self._ids("(Happened,neq,2026-02-26)"), [1, 4])

    def test_datetime_equal_full_timestamp_stays_exact(self):
        self.assertEqual(self._ids("(Happened,eq,2026-02-26T09:30:00)"), [2])

    def test_neq_includes_nulls(self):
        self.assertEqual(self._ids("(Score,neq,2)"), [1, 3, 4])

    def test_like_escapes_wildcards(self):
        self.assertEqual(self._ids("(Title,like,same-day)"), [2, 3])
        self.assertEqual(self._ids("(Title,like,%day)"), [1, 4])
        self.assertEqual(self._ids("(Title,like,_ay)"), [])

    def test_in_and_null_checks(self):
        self.assertEqual(self._ids("(Score,in,1,4)"), [1, 4])
        self.assertEqual(self._ids("(Score,null)"), [3])
        self.assertEqual(self._ids("(Score,isnot,null)"), [1, 2, 4])


class QueryPlanPayloadTests(unittest.TestCase):
    def setUp(self):
        self.builder = _events_builder()

    def test_prepare_insert_fills_defaults_and_coerces(self):
        values = self.builder.prepare_insert({"Title": "Launch", "Score": "7", "Happened": "2026-01-01T10:00:00Z"})
        self.assertEqual(values["title"], "Launch")
        self.assertEqual(values["score"], 7)
        self.assertIs(values["done"], False)
        self.assertEqual(values["happened_at"], datetime(2026, 1, 1, 10, tzinfo=timezone.utc))

    def test_prepare_insert_rejects_generated_key(self):
        with self.assertRaises(InvalidRecord) as ctx:
            self.builder.prepare_insert({"Id": 5, "Title": "x"}, index=2)
        self.assertEqual(ctx.exception.status_code, 422)
        self.assertTrue(ctx.exception.detail.startswith("Record #2"))

    def test_prepare_insert_requires_non_nullable_columns(self):
        with self.assertRaises(InvalidRecord):
            self.builder.prepare_insert({"Score": 1})

    def test_prepare_update_needs_primary_key(self):
        with self.assertRaises(MissingPrimaryKey):
            self.builder.prepare_update({"Title": "x"})
        with self.assertRaises(MissingPrimaryKey):
            self.builder.prepare_update({"Id": "  ", "Title": "x"})

    def test_prepare_update_keeps_supplied_key_as_echo(self):
        mutation = self.builder.prepare_update({"Id": "3", "Score": 9})
        self.assertEqual(mutation.echo, "3")
        self.assertEqual(mutation.pk_value, 3)
        self.assertEqual(mutation.values, {"score": 9})

    def test_prepare_delete_ignores_other_fields(self):
        mutation = self.builder.prepare_delete({"Id": 3, "Title": "ignored"})
        self.assertEqual(mutation.values, {})


if __name__ == "__main__":
    unittest.main()
