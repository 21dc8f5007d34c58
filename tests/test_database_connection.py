"""
Tests for engine setup and session handling
"""
import pytest
from sqlalchemy.pool import StaticPool

from database import connection
from services.service_call_repository import ServiceCallRepository


@pytest.fixture
def file_database(tmp_path):
    """Engine bound to a SQLite file, restored to in-memory afterwards"""
    connection.configure(f"sqlite:///{tmp_path / 'calls.db'}")
    connection.init_db()
    yield connection
    connection.configure('sqlite://')


@pytest.mark.unit
class TestDatabaseUrls:
    """Tests for URL handling"""

    def test_postgres_scheme_normalized(self):
        assert connection.normalize_database_url('postgres://u:p@host/db') == 'postgresql://u:p@host/db'
        assert connection.normalize_database_url('postgresql://u:p@host/db') == 'postgresql://u:p@host/db'

    def test_memory_sqlite_urls(self):
        assert connection.is_memory_sqlite('sqlite://') is True
        assert connection.is_memory_sqlite('sqlite:///:memory:') is True
        assert connection.is_memory_sqlite('sqlite:///file:calls?mode=memory&uri=true') is True

    def test_other_urls_not_memory(self):
        assert connection.is_memory_sqlite('sqlite:///calls.db') is False
        assert connection.is_memory_sqlite('postgresql://u:p@host/db') is False
        assert connection.is_memory_sqlite(None) is False


@pytest.mark.unit
class TestEngines:
    """Tests for the pool chosen per database"""

    def test_memory_database_shares_one_connection(self, db_session):
        assert isinstance(connection.get_engine().pool, StaticPool)

    def test_file_database_connection_per_session(self, file_database):
        """Test that sessions on a file database don't share a DBAPI connection"""
        engine = file_database.get_engine()
        assert not isinstance(engine.pool, StaticPool)

        with engine.connect() as first, engine.connect() as second:
            assert first.connection.dbapi_connection is not second.connection.dbapi_connection

    def test_file_database_commits_persist(self, file_database, sample_call_data, now):
        with file_database.get_db_session() as session:
            created = ServiceCallRepository(session).create(sample_call_data, now=now)

        with file_database.get_db_session() as session:
            assert ServiceCallRepository(session).get_by_id(created['id'])['customerName'] == 'John Smith'

    def test_session_rolls_back_on_error(self, db_session, sample_call_data, now):
        with pytest.raises(RuntimeError):
            with connection.get_db_session() as session:
                ServiceCallRepository(session).create(sample_call_data, now=now)
                raise RuntimeError('boom')

        with connection.get_db_session() as session:
            assert ServiceCallRepository(session).get_all() == []
