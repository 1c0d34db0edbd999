"""
Tests for the persistence gateways.

Both backends must behave the same, so every test runs against each.
"""
import builtins
import errno

import pytest
from sqlalchemy import event

import pointbook.adapters.json as json_adapter
from pointbook.adapters import make_gateway
from pointbook.adapters.json import JsonAdapter
from pointbook.adapters.sqlite import SqliteAdapter
from pointbook.core.errors import StorageQuotaError


@pytest.fixture(params=["json", "sqlite"])
def make_adapter(request, tmp_path):
    def _make(quota_bytes=None):
        if request.param == "json":
            return JsonAdapter(data_dir=str(tmp_path / "kv"), quota_bytes=quota_bytes)
        return SqliteAdapter(db_url=f"sqlite:///{tmp_path / 'kv.db'}", quota_bytes=quota_bytes)
    return _make


class TestGateway:
    def test_read_missing(self, make_adapter):
        assert make_adapter().read("nope") is None

    def test_write_read_replace(self, make_adapter):
        gw = make_adapter()
        gw.write("pointbook_rn_RN1", '{"a": 1}')
        gw.write("pointbook_rn_RN1", '{"a": 2}')
        assert gw.read("pointbook_rn_RN1") == '{"a": 2}'

    def test_keys_with_odd_characters(self, make_adapter):
        gw = make_adapter()
        gw.write("pointbook_rn_Block A/2 ü", "1")
        gw.write("pointbook_rn_list", "[]")
        assert gw.keys() == ["pointbook_rn_Block A/2 ü", "pointbook_rn_list"]
        assert gw.read("pointbook_rn_Block A/2 ü") == "1"

    def test_remove(self, make_adapter):
        gw = make_adapter()
        gw.write("k", "v")
        gw.remove("k")
        gw.remove("k")
        assert gw.read("k") is None
        assert gw.keys() == []

    def test_quota_keeps_previous_value(self, make_adapter):
        gw = make_adapter(quota_bytes=20)
        gw.write("a", "x" * 10)
        gw.write("b", "y" * 5)
        with pytest.raises(StorageQuotaError):
            gw.write("b", "y" * 11)
        assert gw.read("b") == "y" * 5

    def test_quota_ignores_value_being_replaced(self, make_adapter):
        gw = make_adapter(quota_bytes=20)
        gw.write("a", "x" * 15)
        gw.write("a", "x" * 20)
        assert len(gw.read("a")) == 20

    def test_quota_counts_utf8_bytes(self, make_adapter):
        gw = make_adapter(quota_bytes=10)
        gw.write("a", "\u00fc" * 4)  # 8 bytes
        gw.write("b", "xx")
        with pytest.raises(StorageQuotaError):
            gw.write("c", "x")
        assert gw.read("c") is None


class TestDiskFull:
    """Running out of disk is reported like the quota."""

    def test_json_no_space(self, tmp_path, monkeypatch):
        gw = JsonAdapter(data_dir=str(tmp_path / "kv"))
        gw.write("k", "old")

        def _full(path, mode="r", *args, **kwargs):
            if "w" in mode:
                raise OSError(errno.ENOSPC, "No space left on device")
            return builtins.open(path, mode, *args, **kwargs)

        monkeypatch.setattr(json_adapter, "open", _full, raising=False)

        with pytest.raises(StorageQuotaError):
            gw.write("k", "new")
        assert gw.read("k") == "old"
        assert list((tmp_path / "kv").glob("*.tmp")) == []

    def test_json_other_os_errors_propagate(self, tmp_path, monkeypatch):
        gw = JsonAdapter(data_dir=str(tmp_path / "kv"))

        def _denied(path, mode="r", *args, **kwargs):
            raise PermissionError(errno.EACCES, "Permission denied")

        monkeypatch.setattr(json_adapter, "open", _denied, raising=False)
        with pytest.raises(PermissionError):
            gw.write("k", "v")

    def test_sqlite_database_full(self, tmp_path):
        gw = SqliteAdapter(db_url=f"sqlite:///{tmp_path / 'full.db'}")
        gw.write("k", "old")

        @event.listens_for(gw.engine, "connect")
        def _cap_size(dbapi_connection, connection_record):
            # Can't go below the current size, so this freezes the file as is
            dbapi_connection.execute("PRAGMA max_page_count = 1")

        gw.engine.dispose()

        with pytest.raises(StorageQuotaError):
            gw.write("big", "x" * 200_000)
        assert gw.read("k") == "old"
        assert gw.read("big") is None


class TestMakeGateway:
    def test_json(self, settings):
        assert isinstance(make_gateway(settings), JsonAdapter)

    def test_sqlite(self, settings):
        settings.storage_backend = "sqlite"
        assert isinstance(make_gateway(settings), SqliteAdapter)

    def test_unknown(self, settings):
        settings.storage_backend = "redis"
        with pytest.raises(ValueError):
            make_gateway(settings)
