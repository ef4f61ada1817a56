"""
Unit Tests for FixAnalytics
"""
import dataclasses

import pytest
from codeheal.services.remediation.analytics import FixAnalytics
from codeheal.services.remediation.models import ErrorCategory, FixStrategy


class TestFixAnalytics:

    def test_record(self, analytics):
        entry = analytics.record("abc", ErrorCategory.IMPORT, FixStrategy.LOCAL_SIMPLE, True, 12.7)

        assert entry.duration_ms == 12
        assert analytics.records() == (entry,)
        assert len(analytics) == 1

    def test_records_are_immutable(self, analytics):
        entry = analytics.record("abc", ErrorCategory.OTHER, None, False, 5)

        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.success = True

    def test_snapshot_order(self, analytics):
        analytics.record("a", ErrorCategory.IMPORT, FixStrategy.LOCAL_SIMPLE, True, 1)
        analytics.record("b", ErrorCategory.SYNTAX, FixStrategy.AI_QUICK, False, 2)

        assert [r.fingerprint for r in analytics.records()] == ["a", "b"]

    def test_bounded(self):
        analytics = FixAnalytics(max_records=2)
        for key in ("a", "b", "c"):
            analytics.record(key, ErrorCategory.OTHER, None, False, 1)

        assert [r.fingerprint for r in analytics.records()] == ["b", "c"]

    def test_clear(self, analytics):
        analytics.record("a", ErrorCategory.OTHER, None, False, 1)
        analytics.clear()

        assert analytics.records() == ()
        assert len(analytics) == 0
