"""
Tests for the document stores.

The Google Sheets store is exercised against an in-process fake
worksheet; no network access.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from tenacity import wait_none

from finance_tracker.models.transaction import TransactionType
from finance_tracker.orchestrator import create_app_components
from finance_tracker.services.storage import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    DuplicateError,
    FieldFilter,
    FilterOp,
    GoogleSheetsDocumentStore,
    OrderBy,
    StorageError,
)
from finance_tracker.services.storage.google_sheets import (
    SHEET_COLUMNS,
    decode_document,
    encode_document,
)


class FakeWorksheet:
    """Minimal stand-in for gspread.Worksheet."""

    def __init__(self):
        self.rows = [list(SHEET_COLUMNS)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def update_cell(self, row, col, value):
        self.rows[row - 1][col - 1] = value

    def delete_rows(self, index):
        del self.rows[index - 1]


class FlakyWorksheet(FakeWorksheet):
    """Appends the row, then loses the response once."""

    def __init__(self, failures=1):
        super().__init__()
        self.failures = failures

    def append_row(self, values, value_input_option=None):
        super().append_row(values, value_input_option)
        if self.failures:
            self.failures -= 1
            raise ConnectionError("connection reset after write")


class FakeSheetsClient:
    def __init__(self):
        self.sheets = {}

    def get_collection_sheet(self, collection):
        return self.sheets.setdefault(collection, FakeWorksheet())


class TestInMemoryDocumentStore:
    """Tests for the dict-backed store."""

    async def test_create_resolves_server_timestamps(self, store, clock):
        expected = clock.current
        doc_id = await store.create_document("things", {"name": "a", "created_at": SERVER_TIMESTAMP})
        document = await store.get_document("things", doc_id)
        assert document.data == {"name": "a", "created_at": expected}

    async def test_explicit_id_must_be_unique(self, store):
        await store.create_document("things", {"n": 1}, document_id="x")
        with pytest.raises(DuplicateError):
            await store.create_document("things", {"n": 2}, document_id="x")

    async def test_returned_data_is_a_copy(self, store):
        doc_id = await store.create_document("things", {"tags": ["a"]})
        document = await store.get_document("things", doc_id)
        document.data["tags"].append("b")
        assert (await store.get_document("things", doc_id)).data["tags"] == ["a"]

    async def test_update_merges_and_requires_existing(self, store):
        doc_id = await store.create_document("things", {"a": 1, "b": 2})
        await store.update_document("things", doc_id, {"b": 3})
        assert (await store.get_document("things", doc_id)).data == {"a": 1, "b": 3}
        with pytest.raises(DocumentNotFoundError):
            await store.update_document("things", "missing", {"b": 4})

    async def test_delete_reports_whether_anything_was_removed(self, store):
        doc_id = await store.create_document("things", {"a": 1})
        assert await store.delete_document("things", doc_id) is True
        assert await store.delete_document("things", doc_id) is False

    async def test_query_filters_and_orders(self, store):
        for n in (3, 1, 2, 5):
            await store.create_document("nums", {"n": n, "owner_id": "u1"})
        await store.create_document("nums", {"n": 4, "owner_id": "u2"})

        documents = await store.query_documents(
            "nums",
            filters=[
                FieldFilter(field="owner_id", value="u1"),
                FieldFilter(field="n", op=FilterOp.GTE, value=2),
            ],
            order_by=OrderBy(field="n", descending=True),
            limit=2,
        )
        assert [doc.data["n"] for doc in documents] == [5, 3]

    async def test_enum_values_match_plain_strings(self, store):
        await store.create_document("tx", {"type": TransactionType.POSITIVE})
        documents = await store.query_documents("tx", filters=[FieldFilter(field="type", value="POSITIVE")])
        assert len(documents) == 1

    async def test_batch_is_atomic(self, store):
        await store.create_document("things", {"n": 0}, document_id="taken")
        batch = store.batch()
        batch.create("things", {"n": 1}, document_id="fresh")
        batch.create("things", {"n": 2}, document_id="taken")
        with pytest.raises(DuplicateError):
            await batch.commit()
        assert await store.get_document("things", "fresh") is None
        assert store.count("things") == 1

    async def test_batch_commits_everything(self, store):
        batch = store.batch()
        first = batch.create("things", {"n": 1})
        second = batch.create("things", {"n": 2})
        batch.delete("things", first)
        await batch.commit()
        assert await store.get_document("things", first) is None
        assert (await store.get_document("things", second)).data == {"n": 2}


class TestSheetsEncoding:
    """Typed values survive the JSON column."""

    def test_round_trip_keeps_types(self):
        data = {
            "amount": Decimal("50.00"),
            "created_at": datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc),
            "type": TransactionType.NEGATIVE,
            "payback_details": {"due_date": datetime(2024, 4, 1, tzinfo=timezone.utc)},
        }
        decoded = decode_document(encode_document(data))
        assert decoded["amount"] == Decimal("50.00")
        assert decoded["created_at"] == data["created_at"]
        assert decoded["type"] == "NEGATIVE"
        assert decoded["payback_details"]["due_date"].tzinfo is not None

    def test_empty_payload(self):
        assert decode_document("") == {}


class TestGoogleSheetsDocumentStore:
    """Tests for the Sheets store against a fake worksheet."""

    @pytest.fixture
    def sheets_store(self):
        return GoogleSheetsDocumentStore(client=FakeSheetsClient())

    async def test_crud(self, sheets_store):
        doc_id = await sheets_store.create_document(
            "accounts",
            {"name": "Checking", "created_at": SERVER_TIMESTAMP},
        )
        document = await sheets_store.get_document("accounts", doc_id)
        assert document.data["name"] == "Checking"
        assert isinstance(document.data["created_at"], datetime)

        await sheets_store.update_document("accounts", doc_id, {"name": "Main"})
        assert (await sheets_store.get_document("accounts", doc_id)).data["name"] == "Main"

        assert await sheets_store.delete_document("accounts", doc_id) is True
        assert await sheets_store.get_document("accounts", doc_id) is None

    async def test_duplicate_id(self, sheets_store):
        await sheets_store.create_document("accounts", {"name": "a"}, document_id="x")
        with pytest.raises(DuplicateError):
            await sheets_store.create_document("accounts", {"name": "b"}, document_id="x")

    async def test_update_missing(self, sheets_store):
        with pytest.raises(DocumentNotFoundError):
            await sheets_store.update_document("accounts", "missing", {"name": "b"})

    async def test_malformed_rows_are_skipped(self, sheets_store):
        await sheets_store.create_document("accounts", {"name": "ok"})
        sheets_store._client.get_collection_sheet("accounts").rows.append(["bad", "{not json"])
        documents = await sheets_store.query_documents("accounts")
        assert [doc.data["name"] for doc in documents] == ["ok"]

    async def test_batches_are_not_atomic(self, sheets_store):
        assert sheets_store.supports_atomic_batch is False
        batch = sheets_store.batch()
        batch.create("things", {"n": 1}, document_id="a")
        batch.create("things", {"n": 2}, document_id="a")
        with pytest.raises(DuplicateError):
            await batch.commit()
        assert await sheets_store.get_document("things", "a") is not None


class TestSheetsWriteRetries:
    """A retried append must not write the document twice."""

    @pytest.fixture(autouse=True)
    def no_backoff(self, monkeypatch):
        monkeypatch.setattr(GoogleSheetsDocumentStore._append_document.retry, "wait", wait_none())

    @pytest.fixture
    def flaky_client(self):
        client = FakeSheetsClient()
        client.sheets["transactions"] = FlakyWorksheet()
        return client

    async def test_lost_response_is_not_appended_twice(self, flaky_client):
        store = GoogleSheetsDocumentStore(client=flaky_client)

        doc_id = await store.create_document("transactions", {"amount": Decimal("10")})

        rows = flaky_client.sheets["transactions"].rows[1:]
        assert [row[0] for row in rows] == [doc_id]

    async def test_explicit_id_retry_reports_success(self, flaky_client):
        store = GoogleSheetsDocumentStore(client=flaky_client)

        doc_id = await store.create_document("transactions", {"n": 1}, document_id="chain-1")

        assert doc_id == "chain-1"
        assert len(flaky_client.sheets["transactions"].rows) == 2

    async def test_persistent_failure_still_raises(self, flaky_client):
        flaky_client.sheets["transactions"] = FakeWorksheet()
        flaky_client.sheets["transactions"].append_row = _always_fail
        store = GoogleSheetsDocumentStore(client=flaky_client)

        with pytest.raises(StorageError):
            await store.create_document("transactions", {"n": 1})

    async def test_balance_counts_the_transaction_once(self, flaky_client):
        tracker = create_app_components(store=GoogleSheetsDocumentStore(client=flaky_client))
        account = await tracker.accounts.create("user-alice", {"name": "Checking", "color": "#000"})

        await tracker.transactions.create("user-alice", {
            "account_id": account.id,
            "amount": "10",
            "type": "NEGATIVE",
            "category": "Food & Dining",
            "description": "Lunch",
        })

        assert await tracker.accounts.compute_balance(account.id, "user-alice") == Decimal("-10")


def _always_fail(values, value_input_option=None):
    raise ConnectionError("sheet unavailable")
