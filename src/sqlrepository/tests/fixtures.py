"""
Repositories and helpers shared by the test suite.
"""

from sqlrepository.repositories import Repository

from .models import User


class UserRepository(Repository[User]):
    model = User


class ActiveUserRepository(Repository[User]):
    """Only sees active users unless booting is disabled."""
    model = User

    def boot(self):
        self.where({"active": True})


class RecordingRepository(Repository[User]):
    model = User

    def __init__(self, db, calls: list):
        self.calls = calls
        super().__init__(db)

    def boot(self):
        self.calls.append("boot")


def names(entities):
    return sorted(entity.name for entity in entities)
