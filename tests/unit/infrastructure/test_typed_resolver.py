"""
Unit tests for TypedResolver.

A scripted executor stands in for the SQL client; each test checks which
statements were issued and which identifiers resolved.
"""

import logging
import threading

import pytest

from unity_lens.domain.identifiers import IdentifierKind, TypedIdentifier
from unity_lens.infrastructure.resolution import TypedResolver
from unity_lens.io.connectors.sql_statements import (
    StatementCancelledError,
    StatementError,
    SubmissionError,
)

from conftest import CATALOG_ID, SCHEMA_ID, TABLE_ID, TABLE_ID_2, FakeExecutor


def _table(token):
    return TypedIdentifier.of(token, IdentifierKind.TABLE)


def _schema(token):
    return TypedIdentifier.of(token, IdentifierKind.SCHEMA)


def _catalog(token):
    return TypedIdentifier.of(token, IdentifierKind.CATALOG)


@pytest.mark.unit
class TestTableResolution:
    def test_single_batched_query(self):
        executor = FakeExecutor(
            {
                "storage_sub_directory IN": [
                    ["main", "sales", "orders", f"tables/{TABLE_ID}"],
                    ["main", "sales", "customers", f"tables/{TABLE_ID_2.upper()}"],
                ]
            }
        )
        outcome = TypedResolver(executor).resolve([_table(TABLE_ID), _table(TABLE_ID_2)])

        assert len(executor.statements) == 1
        assert outcome.matches[TABLE_ID].name == "main.sales.orders"
        assert outcome.matches[TABLE_ID_2].name == "main.sales.customers"
        assert outcome.matches[TABLE_ID].kind is IdentifierKind.TABLE
        assert outcome.errors == []

    def test_unrequested_rows_are_ignored(self):
        executor = FakeExecutor(
            {"storage_sub_directory IN": [["main", "sales", "other", f"tables/{TABLE_ID_2}"]]}
        )
        outcome = TypedResolver(executor).resolve([_table(TABLE_ID)])
        assert outcome.matches == {}

    def test_unrequested_row_is_logged_with_its_identifier(self, caplog):
        executor = FakeExecutor(
            {"storage_sub_directory IN": [["main", "sales", "other", f"tables/{TABLE_ID_2}"]]}
        )
        with caplog.at_level(logging.WARNING):
            TypedResolver(executor).resolve([_table(TABLE_ID)])

        assert "resolver.unrequested_table_row" in caplog.text
        assert TABLE_ID_2 in caplog.text
        assert "[REDACTED]" not in caplog.text

    def test_rows_with_null_parts_are_skipped(self):
        executor = FakeExecutor(
            {
                "storage_sub_directory IN": [
                    ["main", None, "orders", f"tables/{TABLE_ID}"],
                    ["main", "sales", "t2", None],
                ]
            }
        )
        outcome = TypedResolver(executor).resolve([_table(TABLE_ID), _table(TABLE_ID_2)])
        assert outcome.matches == {}
        assert outcome.errors == []

    def test_query_failure_leaves_group_unresolved(self):
        executor = FakeExecutor({"storage_sub_directory IN": StatementError("x")})
        outcome = TypedResolver(executor).resolve([_table(TABLE_ID), _table(TABLE_ID_2)])

        assert outcome.matches == {}
        assert outcome.errors == ["table lookup: SQL failed: x"]

    def test_schema_mismatch_is_recorded(self):
        executor = FakeExecutor({"storage_sub_directory IN": [["main", "sales"]]})
        outcome = TypedResolver(executor).resolve([_table(TABLE_ID)])

        assert outcome.matches == {}
        assert len(outcome.errors) == 1
        assert outcome.errors[0].startswith("table lookup: TableRow expects 4 columns")


@pytest.mark.unit
class TestContainerResolution:
    def test_schema_and_catalog_one_query_each(self):
        executor = FakeExecutor(
            {
                f"/schemas/{SCHEMA_ID}/": [["main", "sales"]],
                f"/catalogs/{CATALOG_ID}/": [["main"]],
            }
        )
        outcome = TypedResolver(executor).resolve([_schema(SCHEMA_ID), _catalog(CATALOG_ID)])

        assert len(executor.statements) == 2
        assert outcome.matches[SCHEMA_ID].name == "main.sales"
        assert outcome.matches[CATALOG_ID].name == "main"
        assert outcome.matches[CATALOG_ID].kind is IdentifierKind.CATALOG

    def test_no_rows_means_absent_without_error(self):
        outcome = TypedResolver(FakeExecutor()).resolve([_schema(SCHEMA_ID)])
        assert outcome.matches == {}
        assert outcome.errors == []

    def test_failure_only_affects_that_identifier(self):
        other_schema = "99999999-8888-4777-8666-555555555555"
        executor = FakeExecutor(
            {
                f"/schemas/{SCHEMA_ID}/": SubmissionError(500, "oops"),
                f"/schemas/{other_schema}/": [["main", "ops"]],
                f"/catalogs/{CATALOG_ID}/": [["main"]],
            }
        )
        outcome = TypedResolver(executor).resolve(
            [_schema(SCHEMA_ID), _schema(other_schema), _catalog(CATALOG_ID)]
        )

        assert set(outcome.matches) == {other_schema, CATALOG_ID}
        assert outcome.errors == [f"schema lookup for {SCHEMA_ID}: SQL submit failed (500): oops"]


@pytest.mark.unit
class TestResolveInputs:
    def test_groups_run_tables_then_schemas_then_catalogs(self):
        executor = FakeExecutor()
        TypedResolver(executor).resolve([_catalog(CATALOG_ID), _schema(SCHEMA_ID), _table(TABLE_ID)])

        assert "storage_sub_directory IN" in executor.statements[0]
        assert "/schemas/" in executor.statements[1]
        assert "/catalogs/" in executor.statements[2]

    def test_empty_input_issues_no_queries(self):
        executor = FakeExecutor()
        outcome = TypedResolver(executor).resolve([])
        assert executor.statements == []
        assert outcome.matches == {}

    def test_invalid_payloads_are_dropped(self):
        executor = FakeExecutor({f"/catalogs/{CATALOG_ID}/": [["main"]]})
        outcome = TypedResolver(executor).resolve(
            [
                {"uuid": "not-a-uuid", "type": "table"},
                {"uuid": CATALOG_ID, "type": "catalog"},
                {"uuid": TABLE_ID, "type": "volume"},
                {},
            ]
        )
        assert len(executor.statements) == 1
        assert list(outcome.matches) == [CATALOG_ID]

    def test_unvalidated_instances_never_reach_sql(self):
        sneaky = TypedIdentifier.model_construct(id="x' OR '1'='1", kind=IdentifierKind.TABLE)
        executor = FakeExecutor()
        TypedResolver(executor).resolve([sneaky])
        assert executor.statements == []


@pytest.mark.unit
class TestCancellation:
    def test_cancel_stops_remaining_queries(self):
        executor = FakeExecutor(
            {
                "storage_sub_directory IN": StatementCancelledError("cancelled by caller"),
            }
        )
        outcome = TypedResolver(executor).resolve(
            [_table(TABLE_ID), _schema(SCHEMA_ID), _catalog(CATALOG_ID)],
            cancel_event=threading.Event(),
        )

        assert len(executor.statements) == 1
        assert outcome.matches == {}
        assert outcome.errors == ["table lookup: cancelled by caller"]

    def test_results_before_cancel_are_kept(self):
        executor = FakeExecutor(
            {
                "storage_sub_directory IN": [["main", "sales", "orders", f"tables/{TABLE_ID}"]],
                "/schemas/": StatementCancelledError("cancelled"),
            }
        )
        outcome = TypedResolver(executor).resolve([_table(TABLE_ID), _schema(SCHEMA_ID)])
        assert list(outcome.matches) == [TABLE_ID]
