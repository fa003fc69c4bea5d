"""Unit tests for envsync.models."""

import pytest

from envsync.models import IN_SYNC, ComparisonRecord, Environment, SyncResult


def _record(**overrides):
    fields = dict(key="shoe", production_id="gid://p/1", staging_id=None, title="Shoe",
                  differences="Missing in staging", updated_at="2026-01-01T00:00:00Z")
    fields.update(overrides)
    return ComparisonRecord(**fields)


class TestEnvironment:
    """Test cases for the Environment enum."""

    def test_opposite(self):
        """Each environment's opposite is the other one."""
        assert Environment.PRODUCTION.opposite is Environment.STAGING
        assert Environment.STAGING.opposite is Environment.PRODUCTION

    def test_id_field(self):
        """id_field names the record attribute holding that environment's id."""
        assert Environment.PRODUCTION.id_field == "production_id"
        assert Environment.STAGING.id_field == "staging_id"


class TestComparisonRecord:
    """Test cases for ComparisonRecord."""

    def test_requires_at_least_one_id(self):
        """A record absent on both sides is rejected."""
        with pytest.raises(ValueError):
            _record(production_id=None, staging_id=None)

    def test_id_for_and_with_id(self):
        """with_id returns a copy with the environment's id set."""
        record = _record()
        updated = record.with_id(Environment.STAGING, "gid://s/9")

        assert record.id_for(Environment.STAGING) is None
        assert updated.id_for(Environment.STAGING) == "gid://s/9"
        assert updated.id_for(Environment.PRODUCTION) == "gid://p/1"

    def test_in_sync_flag(self):
        assert _record(differences=IN_SYNC).in_sync is True
        assert _record().in_sync is False


class TestSyncResult:
    """Test cases for SyncResult."""

    def test_summary_without_failures(self):
        result = SyncResult(total=2, synced=["a", "b"])
        assert result.ok is True
        assert result.summary() == "2 of 2 synced"

    def test_summary_names_failed_keys(self):
        """Summary reads 'N of M synced, K failed: detail'."""
        result = SyncResult(total=3, synced=["a"], failed={"b": "nope", "c": "bad"})

        assert result.ok is False
        assert result.summary() == "1 of 3 synced, 2 failed: b: nope; c: bad"
        assert result.to_dict()["failed"] == {"b": "nope", "c": "bad"}
