"""Tests for shared.database.config module."""

from shared.database.config import DatabaseConfig, TableNames, BucketNames, StorageConfig


class TestDatabaseConfig:
    """Tests for DatabaseConfig constants."""

    def test_retry_settings(self):
        """Test retry defaults."""
        assert DatabaseConfig.DEFAULT_RETRY_ATTEMPTS == 3
        assert DatabaseConfig.DEFAULT_INITIAL_DELAY == 1.0

    def test_increment_function_name(self):
        """Test counters go through the increment_counters function."""
        assert DatabaseConfig.INCREMENT_FUNCTION == "increment_counters"


class TestTableNames:
    """Tests for TableNames constants."""

    def test_all_tables(self):
        """Test every table is listed."""
        assert set(TableNames.all()) == {"users", "memories", "folders"}

    def test_users_scope_child_collections(self):
        """Test users is the only owner collection."""
        assert TableNames.OWNER_COLUMNS == {"users": "user_id"}


class TestBucketNames:
    """Tests for BucketNames constants."""

    def test_default_bucket(self):
        """Test memories bucket name."""
        assert BucketNames.MEMORIES == "memories"


class TestStorageConfig:
    """Tests for StorageConfig constants."""

    def test_chunk_size_is_six_mib(self):
        """Test chunk size required by the resumable endpoint."""
        assert StorageConfig.CHUNK_SIZE == 6 * 1024 * 1024

    def test_tus_settings(self):
        """Test TUS protocol version and endpoint."""
        assert StorageConfig.TUS_VERSION == "1.0.0"
        assert StorageConfig.RESUMABLE_ENDPOINT == "/storage/v1/upload/resumable"
