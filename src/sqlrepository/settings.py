import os
import threading

class RepositorySettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite://")
        # Pagination and query defaults
        self.REPOSITORY_PER_PAGE = int(os.environ.get("REPOSITORY_PER_PAGE", "15"))
        self.REPOSITORY_PAGE_NAME = os.environ.get("REPOSITORY_PAGE_NAME", "page")
        self.REPOSITORY_RANDOM_LIMIT = int(os.environ.get("REPOSITORY_RANDOM_LIMIT", "15"))
        self.REPOSITORY_RANDOM_FUNCTION = os.environ.get("REPOSITORY_RANDOM_FUNCTION", "random")
        # When disabled, writes are flushed and the caller owns the transaction
        self.REPOSITORY_AUTOCOMMIT = os.environ.get("REPOSITORY_AUTOCOMMIT", "true").lower() in ["true", "1", "yes", "on"]

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(RepositorySettings, cls).__new__(cls)
        return cls._instance

settings = RepositorySettings()
