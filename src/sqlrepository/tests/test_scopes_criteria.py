"""
Test deferred scopes and criteria.
"""

import pytest

from sqlrepository.criteria import OrderByCriteria, WhereCriteria
from sqlrepository.repositories import (
    CriteriaDescriptor,
    NotFoundError,
    ProvisioningError,
    RepositoryError,
    ResolvedHandle,
    ScopeDescriptor,
)
from sqlrepository.tests.criteria import (
    ActiveCriteria,
    MinAgeCriteria,
    NotACriteria,
    RecordingCriteria,
)
from sqlrepository.tests.fixtures import RecordingRepository, names
from sqlrepository.tests.models import User


@pytest.mark.unit
class TestScopeAccumulation:

    def test_scopes_are_deferred(self, repository, users):
        calls = []
        repository.scopes(lambda repo: calls.append("ran"))

        assert calls == []
        assert len(repository.get_scopes()) == 1

        repository.get()
        assert calls == ["ran"]

    def test_scopes_keep_insertion_order(self, repository):
        first = lambda repo: None
        second = lambda repo: None

        repository.scopes(first).scopes([second, "active"], "or")

        assert repository.get_scopes() == (
            ScopeDescriptor(first, "and"),
            ScopeDescriptor(second, "or"),
            ScopeDescriptor("active", "or"),
        )

    def test_get_scopes_is_a_snapshot(self, repository):
        snapshot = repository.get_scopes()
        repository.scopes("active")
        assert snapshot == ()

    def test_add_scope(self, repository, users):
        repository.add_scope(ScopeDescriptor("adults"))
        assert names(repository.get()) == ["alice", "carol", "dave", "erin"]


@pytest.mark.unit
class TestScopeApplication:

    def test_named_scope(self, repository, users):
        assert names(repository.scopes("active").get()) == ["alice", "bob", "dave"]

    def test_named_scopes_combine(self, repository, users):
        assert names(repository.scopes(["active", "adults"]).get()) == ["alice", "dave"]

    def test_unknown_named_scope(self, repository, users):
        with pytest.raises(RepositoryError, match="popular"):
            repository.scopes("popular").get()

        assert repository.get_scopes() == ()

    def test_callable_scope_using_where(self, repository, users):
        result = repository.scopes(lambda repo: repo.where([("age", ">", 30)])).get()
        assert names(result) == ["alice", "dave"]

    def test_scopes_apply_in_order(self, repository, users):
        seen = []

        def count_visible(repo):
            seen.append(repo.handle.build().count())

        repository.scopes(["active", count_visible]).get()

        assert seen == [3]

    def test_scope_sees_earlier_scope_conditions(self, repository, users):
        seen = []

        repository.scopes([
            lambda repo: repo.where({"active": True}),
            lambda repo: seen.append(repo.handle.build().count()),
        ]).get()

        assert seen == [3]

    def test_scope_sees_caller_conditions(self, repository, users):
        seen = []
        repository.where({"active": False}).scopes(lambda repo: seen.append(repo.handle.build().count())).get()
        assert seen == [2]

    def test_scope_sees_boot_conditions(self, active_repository, users):
        result = active_repository.scopes(lambda repo: repo.handle.build().all()).get()
        assert names(result) == ["alice", "bob", "dave"]

    def test_or_scope_sees_earlier_conditions(self, repository, users):
        seen = []

        def admins(repo):
            repo.where({"role": "admin"})
            seen.append(repo.handle.build().count())

        result = repository.where({"name": "bob"}).scopes(admins, "or").get()

        assert seen == [0]
        assert names(result) == ["alice", "bob"]

    def test_named_scope_after_random(self, repository, users):
        assert names(repository.random(10).scopes("active").get()) == ["alice", "bob", "dave"]

    def test_scope_or_mode_groups_conditions(self, repository, users):
        result = (
            repository
            .where({"name": "carol"})
            .scopes(lambda repo: repo.where({"role": "admin"}), "or")
            .get()
        )
        assert names(result) == ["alice", "carol"]

    def test_scope_returning_query_is_adopted(self, repository, users):
        result = repository.scopes(lambda repo: repo.query.filter(User.age < 20)).get()
        assert names(result) == ["bob", "erin"]

    def test_scope_returning_entities_resolves_handle(self, repository, users):
        bob = users["bob"]
        handles = []

        def pick_bob(repo):
            return [bob]

        def record(repo):
            handles.append(repo.handle)

        assert repository.scopes([pick_bob, record]).get() == [bob]
        assert isinstance(handles[0], ResolvedHandle)

    def test_resolved_handle_reads(self, repository, users):
        alice, bob = users["alice"], users["bob"]
        resolve = lambda repo: [alice, bob]

        assert repository.scopes(resolve).first() is alice
        assert repository.scopes(resolve).find(bob.id) is bob
        assert repository.scopes(resolve).exists() is True
        assert repository.scopes(lambda repo: []).exists() is False

        page = repository.scopes(resolve).paginate(1, page=2)
        assert page.items == [bob]
        assert page.total == 2

    def test_resolved_handle_single_entity(self, repository, users):
        carol = users["carol"]
        assert repository.scopes(lambda repo: carol).get() == [carol]

    def test_resolved_handle_missing_find(self, repository, users):
        alice = users["alice"]
        with pytest.raises(NotFoundError):
            repository.scopes(lambda repo: [alice]).find(9999)

    def test_narrowing_resolved_handle_fails(self, repository, users):
        alice = users["alice"]

        with pytest.raises(RepositoryError, match="resolved"):
            repository.scopes([lambda repo: [alice], lambda repo: repo.where({"age": 1})]).get()

    def test_scope_returning_unsupported_value(self, repository, users):
        with pytest.raises(RepositoryError, match="unsupported"):
            repository.scopes(lambda repo: 42).get()


@pytest.mark.unit
class TestCriteria:

    def test_criteria_are_deferred(self, repository):
        calls = []
        repository.criteria(RecordingCriteria, calls)

        assert calls == []
        assert repository.get_criteria() == (CriteriaDescriptor(RecordingCriteria, (calls,), {}),)

    def test_criteria_class_with_arguments(self, repository, users):
        assert names(repository.criteria(MinAgeCriteria, 20).get()) == ["alice", "carol", "dave"]

    def test_criteria_keyword_arguments(self, repository, users):
        assert names(repository.criteria(MinAgeCriteria, age=40).get()) == ["dave"]

    def test_criteria_import_string(self, repository, users):
        result = repository.criteria("sqlrepository.tests.criteria:ActiveCriteria").get()
        assert names(result) == ["alice", "bob", "dave"]

    def test_criteria_instance(self, repository, users):
        assert names(repository.criteria(ActiveCriteria()).get()) == ["alice", "bob", "dave"]

    def test_criteria_combine_with_scopes(self, repository, users):
        result = repository.scopes("adults").criteria(ActiveCriteria).get()
        assert names(result) == ["alice", "dave"]

    def test_criteria_resolution_fails_only_when_applied(self, repository, users):
        repository.criteria("sqlrepository.tests.missing:Nothing")
        assert len(repository.get_criteria()) == 1

        with pytest.raises(ProvisioningError):
            repository.get()

        assert repository.get_criteria() == ()

    def test_criteria_without_capability(self, repository, users):
        with pytest.raises(ProvisioningError):
            repository.criteria(NotACriteria).get()

    def test_where_criteria(self, repository, users):
        result = repository.criteria(WhereCriteria, [("age", "<", 20)]).get()
        assert names(result) == ["bob", "erin"]

    def test_order_by_criteria(self, repository, users):
        result = repository.criteria(OrderByCriteria, "age", "desc").get()
        assert [user.name for user in result] == ["dave", "alice", "carol", "erin", "bob"]

    def test_order_by_criteria_rejects_direction(self, repository, users):
        with pytest.raises(RepositoryError, match="sideways"):
            repository.criteria(OrderByCriteria, "age", "sideways").get()

    def test_criteria_after_random(self, repository, users):
        result = repository.random(10).criteria(MinAgeCriteria, 30).get()
        assert names(result) == ["alice", "dave"]


@pytest.mark.unit
class TestApplicationOrder:

    def test_boot_then_scopes_then_criteria(self, db, users):
        calls = []
        repository = RecordingRepository(db, calls)

        (
            repository
            .criteria(RecordingCriteria, calls, "criteria-1")
            .scopes(lambda repo: calls.append("scope-1"))
            .criteria(RecordingCriteria, calls, "criteria-2")
            .scopes(lambda repo: calls.append("scope-2"))
            .get()
        )

        assert calls == ["boot", "scope-1", "scope-2", "criteria-1", "criteria-2"]
