"""Tests for remote object probe and writer."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from treesync.errors import ErrorCode, FatalError, StoreError, TransientError
from treesync.models import ProbeResult
from treesync.services.probe import RemoteObjectProbe, RemoteObjectWriter, classify_store_error


class TestClassification:
    @pytest.mark.parametrize("code", [
        ErrorCode.TIMEOUT,
        ErrorCode.CONNECTION_RESET,
        ErrorCode.HOST_UNREACHABLE,
        ErrorCode.GENERIC_TRANSPORT,
    ])
    def test_transient_codes(self, code):
        error = classify_store_error(StoreError(code, "net"))
        assert isinstance(error, TransientError)
        assert error.code == code

    @pytest.mark.parametrize("code", [ErrorCode.ACCESS_DENIED, ErrorCode.INVALID_ARGUMENT, "HTTP_500"])
    def test_other_codes_are_fatal(self, code):
        assert isinstance(classify_store_error(StoreError(code, "nope")), FatalError)


class TestRemoteObjectProbe:
    @pytest.fixture
    def mock_store(self):
        store = MagicMock()
        store.head_object = AsyncMock(return_value={"key": "k"})
        return store

    @pytest.mark.asyncio
    async def test_present(self, mock_store):
        result = await RemoteObjectProbe(mock_store).exists("assets/a.txt")
        assert result is ProbeResult.PRESENT
        mock_store.head_object.assert_called_once_with("assets/a.txt")

    @pytest.mark.asyncio
    async def test_not_found_is_absent(self, mock_store):
        mock_store.head_object = AsyncMock(side_effect=StoreError(ErrorCode.NOT_FOUND, "missing", 404))
        assert await RemoteObjectProbe(mock_store).exists("k") is ProbeResult.ABSENT

    @pytest.mark.asyncio
    async def test_transient_raises(self, mock_store):
        mock_store.head_object = AsyncMock(side_effect=StoreError(ErrorCode.TIMEOUT, "timed out"))
        with pytest.raises(TransientError, match="timed out"):
            await RemoteObjectProbe(mock_store).exists("k")

    @pytest.mark.asyncio
    async def test_fatal_raises(self, mock_store):
        mock_store.head_object = AsyncMock(side_effect=StoreError(ErrorCode.ACCESS_DENIED, "denied", 403))
        with pytest.raises(FatalError, match="denied"):
            await RemoteObjectProbe(mock_store).exists("k")


class TestRemoteObjectWriter:
    @pytest.mark.asyncio
    async def test_put_returns_key(self):
        store = MagicMock()
        store.put_object = AsyncMock(return_value={"key": "assets/a.txt", "etag": "x"})
        key = await RemoteObjectWriter(store).put("assets/a.txt", "/tmp/a.txt")
        assert key == "assets/a.txt"
        store.put_object.assert_called_once_with("assets/a.txt", "/tmp/a.txt")

    @pytest.mark.asyncio
    async def test_put_classifies_errors(self):
        store = MagicMock()
        store.put_object = AsyncMock(side_effect=StoreError(ErrorCode.CONNECTION_RESET, "reset"))
        with pytest.raises(TransientError):
            await RemoteObjectWriter(store).put("k", "/tmp/a.txt")

        store.put_object = AsyncMock(side_effect=StoreError(ErrorCode.QUOTA_EXCEEDED, "full"))
        with pytest.raises(FatalError):
            await RemoteObjectWriter(store).put("k", "/tmp/a.txt")
