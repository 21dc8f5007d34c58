"""
Tests for demo data seeding
"""
import pytest

from database.seed import seed_sample_calls
from services.service_call_repository import ServiceCallRepository


@pytest.mark.unit
class TestSeed:
    """Tests for the sample service calls"""

    def test_seeds_empty_database(self, db_session, now):
        assert seed_sample_calls(db_session, now=now) == 5

        calls = ServiceCallRepository(db_session).get_all()
        statuses = sorted(c['status'] for c in calls)
        assert len(calls) == 5
        assert 'InProgress' in statuses
        assert 'Completed' in statuses

    def test_skips_when_calls_exist(self, db_session, sample_call_data, now):
        ServiceCallRepository(db_session).create(sample_call_data, now=now)

        assert seed_sample_calls(db_session, now=now) == 0
        assert len(ServiceCallRepository(db_session).get_all()) == 1
