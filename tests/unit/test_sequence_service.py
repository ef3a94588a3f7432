"""Unit tests for order number allocation."""

import asyncio
from unittest.mock import MagicMock

import pytest

from src.api.middleware.error_handler import TransientError
from src.services.sequence_service import (
    SequenceService,
    format_order_number,
    parse_order_number,
)


class TestFormatOrderNumber:
    """Tests for format_order_number."""

    def test_pads_to_nine_digits(self) -> None:
        assert format_order_number(123) == "POSH000000123"

    def test_first_order(self) -> None:
        assert format_order_number(1) == "POSH000000001"

    def test_largest_value(self) -> None:
        assert format_order_number(999_999_999) == "POSH999999999"

    def test_custom_prefix(self) -> None:
        assert format_order_number(42, prefix="PC") == "PC000000042"

    @pytest.mark.parametrize("value", [-1, 1_000_000_000])
    def test_out_of_range_rejected(self, value: int) -> None:
        with pytest.raises(ValueError):
            format_order_number(value)

    @pytest.mark.parametrize("value", ["12", 1.5, None, True])
    def test_non_integer_rejected(self, value: object) -> None:
        with pytest.raises(ValueError):
            format_order_number(value)  # type: ignore[arg-type]


class TestParseOrderNumber:
    """Tests for parse_order_number."""

    def test_recovers_value(self) -> None:
        assert parse_order_number("POSH000000123") == 123

    def test_prefix_is_case_insensitive(self) -> None:
        assert parse_order_number("posh000000007") == 7

    @pytest.mark.parametrize("value", ["", "ORD000000001", "POSH12", "POSH00000000A", "POSH0000000001"])
    def test_foreign_numbers_ignored(self, value: str) -> None:
        assert parse_order_number(value) is None


class TestSequenceService:
    """Tests for SequenceService against the in-memory database."""

    @pytest.mark.asyncio
    async def test_first_value_is_one(self, fake_db) -> None:
        service = SequenceService(fake_db)

        assert await service.next_value("orderId") == 1
        assert await service.next_value("orderId") == 2

    @pytest.mark.asyncio
    async def test_counters_are_independent(self, fake_db) -> None:
        service = SequenceService(fake_db)

        await service.next_value("orderId")
        await service.next_value("orderId")

        assert await service.next_value("invoiceId") == 1

    @pytest.mark.asyncio
    async def test_next_order_number_uses_order_sequence(self, fake_db) -> None:
        fake_db.counters["orderId"] = 122
        service = SequenceService(fake_db)

        assert await service.next_order_number() == "POSH000000123"

    @pytest.mark.asyncio
    async def test_concurrent_allocations_are_distinct(self, fake_db) -> None:
        service = SequenceService(fake_db)

        numbers = await asyncio.gather(*(service.next_order_number() for _ in range(50)))

        assert len(set(numbers)) == 50
        assert sorted(numbers) == [format_order_number(i) for i in range(1, 51)]

    @pytest.mark.asyncio
    async def test_storage_failure_is_transient(self, fake_db) -> None:
        fake_db.failing_rpcs["next_sequence_value"] = ConnectionError("connection reset")
        service = SequenceService(fake_db)

        with pytest.raises(TransientError) as exc_info:
            await service.next_order_number()

        assert exc_info.value.status_code == 500
        assert "sequence_increment_failed" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_empty_result_is_transient(self) -> None:
        client = MagicMock()
        client.rpc.return_value.execute.return_value.data = []

        with pytest.raises(TransientError) as exc_info:
            await SequenceService(client).next_value("orderId")

        assert exc_info.value.details == "sequence_increment_empty"

    @pytest.mark.asyncio
    async def test_accepts_row_shaped_result(self) -> None:
        client = MagicMock()
        client.rpc.return_value.execute.return_value.data = [{"next_sequence_value": 9}]

        assert await SequenceService(client).next_value("orderId") == 9
        client.rpc.assert_called_once_with("next_sequence_value", {"sequence_name": "orderId"})

    @pytest.mark.asyncio
    async def test_exhausted_sequence_is_transient(self, fake_db) -> None:
        fake_db.counters["orderId"] = 999_999_999
        service = SequenceService(fake_db)

        with pytest.raises(TransientError) as exc_info:
            await service.next_order_number()

        assert "sequence_exhausted" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_ensure_at_least_never_lowers(self, fake_db) -> None:
        fake_db.counters["orderId"] = 50
        service = SequenceService(fake_db)

        assert await service.ensure_at_least("orderId", 10) == 50
        assert await service.ensure_at_least("orderId", 75) == 75
        assert await service.next_value("orderId") == 76
