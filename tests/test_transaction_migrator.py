"""Tests for TransactionMigrator."""

import pytest

from tenant_migrator.migrators.transactions import TransactionMigrator
from tenant_migrator.models.migration import MigrationRun
from tenant_migrator.services.remap import IdentifierRemap

from tests.factories import legacy_transaction


@pytest.fixture
def remap() -> IdentifierRemap:
    return IdentifierRemap({"src-a": "dest-a", "src-b": "dest-b"})


def migrate(source, destination, remap, page_size=500) -> MigrationRun:
    return TransactionMigrator(source, destination, remap, page_size=page_size).migrate(MigrationRun())


class TestTransactionMigrator:
    def test_owner_ids_are_rewritten(self, source_store, destination_store, remap) -> None:
        source_store.insert("transactions", [
            legacy_transaction("t1", "src-a", date="2023-01-01"),
            legacy_transaction("t2", "src-b", date="2023-01-02"),
        ])

        run = migrate(source_store, destination_store, remap)

        assert run.stats.transactions.migrated == 2
        owners = {row["v1_id"]: row["user_id"] for row in destination_store.rows("transactions")}
        assert owners == {"t1": "dest-a", "t2": "dest-b"}

    def test_orphans_are_excluded_from_all_counters(self, source_store, destination_store, remap) -> None:
        source_store.insert("transactions", [
            legacy_transaction("t1", "src-a"),
            legacy_transaction("t2", "ghost"),
            legacy_transaction("t3", None),
        ])

        run = migrate(source_store, destination_store, remap)

        assert run.stats.transactions.migrated == 1
        assert run.stats.transactions.failed == 0
        assert run.errors == []
        assert [row["v1_id"] for row in destination_store.rows("transactions")] == ["t1"]

    @pytest.mark.parametrize("page_size", [1, 2, 3, 500])
    def test_failed_batch_counts_whole_batch(self, source_store, destination_store, remap, page_size) -> None:
        source_store.insert("transactions", [
            legacy_transaction(f"t{i}", "src-a", date=f"2023-01-0{i}") for i in range(1, 6)
        ])
        destination_store.fail_inserts("transactions", "value too long", match={"v1_id": "t3"})

        run = migrate(source_store, destination_store, remap, page_size=page_size)

        stats = run.stats.transactions
        assert stats.migrated + stats.failed == 5
        failed_page = (3 - 1) // page_size
        expected_failed = len(range(5)[failed_page * page_size:(failed_page + 1) * page_size])
        assert stats.failed == expected_failed
        assert run.errors == ["Batch insert error: value too long"]
        assert "t3" not in {row["v1_id"] for row in destination_store.rows("transactions")}

    def test_page_fetch_failure_halts_phase(self, source_store, destination_store, remap) -> None:
        source_store.insert("transactions", [
            legacy_transaction(f"t{i}", "src-a", date=f"2023-01-0{i}") for i in range(1, 6)
        ])
        source_store.fail_selects("transactions", "canceling statement due to statement timeout", after=1)

        run = migrate(source_store, destination_store, remap, page_size=2)

        assert run.stats.transactions.migrated == 2
        assert run.errors == ["Error fetching V1 transactions: canceling statement due to statement timeout"]

    def test_short_page_ends_pagination(self, source_store, destination_store, remap) -> None:
        source_store.insert("transactions", [legacy_transaction(f"t{i}", "src-a") for i in range(3)])

        migrate(source_store, destination_store, remap, page_size=2)

        assert source_store.count_calls("select", "transactions") == 2

    def test_full_last_page_needs_one_more_fetch(self, source_store, destination_store, remap) -> None:
        source_store.insert("transactions", [legacy_transaction(f"t{i}", "src-a") for i in range(4)])

        migrate(source_store, destination_store, remap, page_size=2)

        assert source_store.count_calls("select", "transactions") == 3

    def test_page_of_orphans_skips_insert(self, source_store, destination_store, remap) -> None:
        source_store.insert("transactions", [legacy_transaction("t1", "ghost")])

        migrate(source_store, destination_store, remap)

        assert destination_store.count_calls("insert", "transactions") == 0

    def test_transactions_are_paged_in_date_order(self, source_store, destination_store, remap) -> None:
        source_store.insert("transactions", [
            legacy_transaction("late", "src-a", date="2023-05-01"),
            legacy_transaction("early", "src-a", date="2023-01-01"),
        ])

        migrate(source_store, destination_store, remap, page_size=1)

        assert [row["v1_id"] for row in destination_store.rows("transactions")] == ["early", "late"]

    def test_loosely_typed_rows_are_migrated(self, source_store, destination_store, remap) -> None:
        source_store.insert("transactions", [
            legacy_transaction("t1", "src-a", date="2023-01-01"),
            legacy_transaction("t2", "src-a", date="2023-01-02", metadata=[{"k": 1}]),
            legacy_transaction("t3", "src-b", date="2023-01-03", description=123),
        ])

        run = migrate(source_store, destination_store, remap)

        assert run.stats.transactions.migrated == 3
        assert run.stats.transactions.failed == 0
        rows = {row["v1_id"]: row for row in destination_store.rows("transactions")}
        assert rows["t2"]["metadata"] == [{"k": 1}]
        assert rows["t3"]["description"] == 123

    def test_invalid_row_fails_alone(self, source_store, destination_store, remap) -> None:
        source_store.insert("transactions", [
            legacy_transaction("t1", "src-a", date="2023-01-01"),
            legacy_transaction(None, "src-a", date="2023-01-02"),
            legacy_transaction("t3", "src-b", date="2023-01-03"),
        ])

        run = migrate(source_store, destination_store, remap)

        assert run.stats.transactions.migrated == 2
        assert run.stats.transactions.failed == 1
        assert len(run.errors) == 1
        assert run.errors[0].startswith("Error migrating transaction None:")
        assert destination_store.count_calls("insert", "transactions") == 1
        assert {row["v1_id"] for row in destination_store.rows("transactions")} == {"t1", "t3"}
