"""Unit tests for the Catalog."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

import pytest

from tabstore.adapters.outbound import TsvTableStorage
from tabstore.application import Catalog
from tabstore.domain.errors import (
    AlreadyExists,
    CommandSyntaxError,
    IOFailure,
    NoSuchDatabase,
    NoSuchTable,
    UnknownTable,
)
from tabstore.infrastructure.metrics import MetricsRegistry


@pytest.mark.unit
class TestCatalogCreate:
    """Tests for CREATE DATABASE / CREATE TABLE."""

    def test_bootstrap_creates_root(self, catalog: Catalog, data_dir: Path) -> None:
        assert data_dir.is_dir()
        assert catalog.databases() == []

    def test_create_database(self, catalog: Catalog, data_dir: Path) -> None:
        path = catalog.create_database("shop")

        assert path == data_dir / "shop"
        assert path.is_dir()
        assert catalog.has_database("shop")

    def test_database_names_are_case_sensitive(self, catalog: Catalog) -> None:
        catalog.create_database("Shop")

        assert catalog.has_database("Shop")
        assert not catalog.has_database("shop")

    def test_create_database_twice(self, catalog: Catalog) -> None:
        """The second CREATE fails and leaves the first database intact."""
        catalog.create_database("shop")
        catalog.create_table("shop", "t", ["a"])
        catalog.insert_row("shop", "t", ["x"])

        with pytest.raises(AlreadyExists):
            catalog.create_database("shop")

        assert catalog.tables("shop") == ["t"]
        assert list(catalog.scan("shop", "t")[1]) == [["1", "x"]]

    @pytest.mark.parametrize("name", ["../evil", "a/b", "", "with space"])
    def test_create_database_invalid_name(self, catalog: Catalog, name: str) -> None:
        with pytest.raises(CommandSyntaxError):
            catalog.create_database(name)

    def test_create_table(self, catalog: Catalog, data_dir: Path) -> None:
        catalog.create_database("shop")
        entry = catalog.create_table("shop", "orders", ["item", "qty"])

        assert entry.path == data_dir / "shop" / "orders.tsv"
        assert entry.path.read_text(encoding="utf-8") == "id\titem\tqty\n"
        assert entry.schema.columns == ("id", "item", "qty")
        assert entry.allocator.current() == 1

    def test_create_table_unknown_database(self, catalog: Catalog) -> None:
        with pytest.raises(NoSuchDatabase):
            catalog.create_table("nope", "t", ["a"])

    def test_create_table_twice(self, catalog: Catalog) -> None:
        catalog.create_database("shop")
        catalog.create_table("shop", "t", ["a"])

        with pytest.raises(AlreadyExists):
            catalog.create_table("shop", "t", ["b"])

    def test_same_table_name_in_two_databases(self, catalog: Catalog) -> None:
        catalog.create_database("one")
        catalog.create_database("two")
        catalog.create_table("one", "t", ["a"])
        catalog.create_table("two", "t", ["b"])

        assert catalog.resolve_table("two", "t").schema.columns == ("id", "b")

    @pytest.mark.parametrize(
        "columns",
        [[], ["id"], ["a", "a"], ["bad name"], ["a\tb"]],
    )
    def test_create_table_invalid_columns(self, catalog: Catalog, columns: list[str]) -> None:
        catalog.create_database("shop")

        with pytest.raises(CommandSyntaxError):
            catalog.create_table("shop", "t", columns)
        assert catalog.tables("shop") == []


@pytest.mark.unit
class TestCatalogResolve:
    """Tests for name resolution."""

    def test_resolve_unknown_database(self, catalog: Catalog) -> None:
        with pytest.raises(NoSuchDatabase):
            catalog.resolve_table("nope", "t")

    def test_resolve_unknown_table(self, catalog: Catalog) -> None:
        catalog.create_database("shop")

        with pytest.raises(NoSuchTable):
            catalog.resolve_table("shop", "t")

    def test_tables_of_unknown_database(self, catalog: Catalog) -> None:
        with pytest.raises(NoSuchDatabase):
            catalog.tables("nope")

    def test_next_id_unknown_table(self, catalog: Catalog) -> None:
        """Allocating for an unregistered table is a programming error."""
        catalog.create_database("shop")

        with pytest.raises(UnknownTable):
            catalog.next_id("shop", "t")

    def test_next_id(self, catalog: Catalog) -> None:
        catalog.create_database("shop")
        catalog.create_table("shop", "t", ["a"])

        assert catalog.next_id("shop", "t") == 1
        assert catalog.next_id("shop", "t") == 2


@pytest.mark.unit
class TestCatalogInsert:
    """Tests for row insertion and identity allocation."""

    @pytest.fixture
    def shop(self, catalog: Catalog) -> Catalog:
        catalog.create_database("shop")
        catalog.create_table("shop", "t", ["a", "b"])
        return catalog

    def test_identities_increase(self, shop: Catalog) -> None:
        assert shop.insert_row("shop", "t", ["x", "y"]) == 1
        assert shop.insert_row("shop", "t", ["p", "q"]) == 2

        _, rows = shop.scan("shop", "t")
        assert list(rows) == [["1", "x", "y"], ["2", "p", "q"]]

    def test_failed_append_does_not_consume_identity(
        self, shop: Catalog, storage: TsvTableStorage, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The counter only advances after the row is written."""

        def failing_append(*args, **kwargs):
            raise IOFailure("Error writing to table: disk full")

        with monkeypatch.context() as m:
            m.setattr(storage, "append_row", failing_append)
            with pytest.raises(IOFailure):
                shop.insert_row("shop", "t", ["x", "y"])

        assert shop.insert_row("shop", "t", ["x", "y"]) == 1
        assert not shop.lock_manager.is_locked(shop.resolve_table("shop", "t").ref)

    def test_concurrent_inserts_are_contiguous(self, shop: Catalog) -> None:
        """K concurrent inserts yield K distinct identities with no gaps."""
        results: list[int] = []
        results_lock = threading.Lock()
        start = threading.Barrier(10)

        def worker(n: int) -> None:
            start.wait()
            for i in range(20):
                row_id = shop.insert_row("shop", "t", [f"w{n}", str(i)])
                with results_lock:
                    results.append(row_id)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == list(range(1, 201))
        _, rows = shop.scan("shop", "t")
        stored = [int(cells[0]) for cells in rows]
        assert sorted(stored) == list(range(1, 201))
        assert stored == sorted(stored)

    def test_rows_inserted_metric(self, shop: Catalog, metrics_registry: MetricsRegistry) -> None:
        shop.insert_row("shop", "t", ["x", "y"])

        value = metrics_registry._registry.get_sample_value("tabstore_rows_inserted_total")
        assert value == 1.0


@pytest.mark.unit
class TestCatalogBootstrap:
    """Tests for recovery from the storage tree."""

    def test_restart_continues_identities(self, make_catalog: Callable[[], Catalog]) -> None:
        """Identities continue at max+1 after a restart."""
        first = make_catalog()
        first.create_database("shop")
        first.create_table("shop", "a", ["v"])
        first.create_table("shop", "b", ["v"])
        for _ in range(3):
            first.insert_row("shop", "a", ["x"])
        first.insert_row("shop", "b", ["y"])

        second = make_catalog()

        assert second.databases() == ["shop"]
        assert second.tables("shop") == ["a", "b"]
        assert second.insert_row("shop", "a", ["z"]) == 4
        assert second.insert_row("shop", "b", ["z"]) == 2

    def test_restart_with_empty_table(self, make_catalog: Callable[[], Catalog]) -> None:
        first = make_catalog()
        first.create_database("shop")
        first.create_table("shop", "t", ["v"])

        second = make_catalog()

        assert second.insert_row("shop", "t", ["x"]) == 1

    def test_restart_tolerates_bad_identities(
        self, make_catalog: Callable[[], Catalog], data_dir: Path
    ) -> None:
        db = data_dir / "shop"
        db.mkdir(parents=True)
        (db / "t.tsv").write_text("id\tv\n2\tx\nbogus\ty\n\n5\tz\n", encoding="utf-8")

        catalog = make_catalog()

        assert catalog.insert_row("shop", "t", ["w"]) == 6

    def test_malformed_table_is_skipped(
        self,
        make_catalog: Callable[[], Catalog],
        data_dir: Path,
        metrics_registry: MetricsRegistry,
    ) -> None:
        """One unreadable table does not abort the bootstrap."""
        db = data_dir / "shop"
        db.mkdir(parents=True)
        (db / "broken.tsv").write_text("", encoding="utf-8")
        (db / "good.tsv").write_text("id\tv\n1\tx\n", encoding="utf-8")

        catalog = make_catalog()

        assert catalog.tables("shop") == ["good"]
        with pytest.raises(NoSuchTable):
            catalog.resolve_table("shop", "broken")
        skipped = metrics_registry._registry.get_sample_value("tabstore_tables_skipped_total")
        assert skipped == 1.0

    def test_skipped_table_cannot_be_recreated(
        self, make_catalog: Callable[[], Catalog], data_dir: Path
    ) -> None:
        """The file of a skipped table is never overwritten."""
        db = data_dir / "shop"
        db.mkdir(parents=True)
        (db / "broken.tsv").write_text("", encoding="utf-8")

        catalog = make_catalog()

        with pytest.raises(AlreadyExists):
            catalog.create_table("shop", "broken", ["v"])

    def test_undecodable_table_is_skipped(
        self,
        make_catalog: Callable[[], Catalog],
        data_dir: Path,
        metrics_registry: MetricsRegistry,
    ) -> None:
        """A table file that is not valid UTF-8 is skipped, not fatal."""
        db = data_dir / "shop"
        db.mkdir(parents=True)
        (db / "bad.tsv").write_bytes(b"id\ta\n1\t\xff\xfe\n")
        (db / "good.tsv").write_text("id\tv\n1\tx\n", encoding="utf-8")

        catalog = make_catalog()

        assert catalog.tables("shop") == ["good"]
        assert catalog.insert_row("shop", "good", ["y"]) == 2
        skipped = metrics_registry._registry.get_sample_value("tabstore_tables_skipped_total")
        assert skipped == 1.0
