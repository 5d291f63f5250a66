from concurrent.futures import ThreadPoolExecutor

import pytest

from company_ops import ADMIN, MEMBER, Company, InMemoryCompanies, build_registry
from operationkit import FailureReason, ResultStatus


def test_create_with_empty_params_succeeds_with_new_model():
    repo = InMemoryCompanies()
    registry = build_registry(repo)

    result = registry.run("CompanyCreate", {}, ADMIN)

    assert result.status is ResultStatus.SUCCESS
    assert result.success
    assert dict(result.errors) == {}
    assert isinstance(result.model, Company)
    assert result.model.name is None
    assert result.reason is None
    assert result.model.id is None
    assert repo.saved == []
    assert result.trace == (
        "model.build",
        "policy.company.create",
        "contract.company.create",
        "params.sync",
        "persist",
    )


def test_create_with_name_saves_company():
    repo = InMemoryCompanies()

    result = build_registry(repo).run("CompanyCreate", {"name": "Acme Inc"}, ADMIN)

    assert result.success
    assert result.model.id == 1
    assert repo.saved == [Company(name="Acme Inc", id=1)]


def test_update_with_short_name_fails_with_field_error():
    repo = InMemoryCompanies()
    registry = build_registry(repo)

    result = registry.run("CompanyUpdate", {"name": "ab"}, ADMIN)

    assert result.status is ResultStatus.FAILURE
    assert dict(result.errors) == {"name": ("too short",)}
    assert result.reason is FailureReason.VALIDATION
    assert result.failed_step == "contract.company.update"
    assert repo.saved == []


def test_create_denied_for_non_admin_and_nothing_is_persisted():
    repo = InMemoryCompanies()
    registry = build_registry(repo)

    result = registry.run("CompanyCreate", {"name": "Acme Inc"}, MEMBER)

    assert result.failure
    assert dict(result.errors) == {"base": ("not authorized",)}
    assert result.reason is FailureReason.AUTHORIZATION
    assert "persist" not in result.trace
    assert repo.saved == []
    assert result.error_messages() == ["not authorized"]


def test_create_denied_for_anonymous_actor():
    result = build_registry().run("CompanyCreate", {"name": "Acme Inc"})

    assert result.failure
    assert dict(result.errors) == {"base": ("not authorized",)}


def test_storage_fault_propagates_instead_of_returning_result():
    repo = InMemoryCompanies()
    repo.fault = ConnectionError("database unavailable")
    registry = build_registry(repo)

    with pytest.raises(ConnectionError, match="database unavailable") as excinfo:
        registry.run("CompanyCreate", {"name": "Acme Inc"}, ADMIN)

    assert excinfo.value.operation_name == "CompanyCreate"
    assert excinfo.value.pipeline_step == "persist"
    assert excinfo.value.pipeline_path == "CompanyCreate/persist"


def test_update_renames_existing_company():
    repo = InMemoryCompanies()
    repo.save(Company(name="Old Name Ltd"))
    registry = build_registry(repo)

    result = registry.run("CompanyUpdate", {"id": 1, "name": "New Name Ltd"}, MEMBER)

    assert result.success
    assert result.model.name == "New Name Ltd"
    assert repo.rows[1].name == "New Name Ltd"
    assert result.trace == (
        "contract.company.update",
        "model.find",
        "policy.company.update",
        "params.sync",
        "persist",
    )


def test_update_of_missing_company_reports_not_found():
    registry = build_registry()

    result = registry.run("CompanyUpdate", {"id": 42, "name": "Valid Name"}, ADMIN)

    assert result.failure
    assert dict(result.errors) == {"base": ("not found",)}
    assert result.reason is FailureReason.NOT_FOUND


def test_update_without_name_reports_presence_and_length():
    result = build_registry().run("CompanyUpdate", {}, ADMIN)

    assert dict(result.errors) == {"name": ("can't be blank", "too short")}


def test_repeated_runs_are_deterministic():
    registry = build_registry()

    first = registry.run("CompanyUpdate", {"name": "ab"}, ADMIN)
    second = registry.run("CompanyUpdate", {"name": "ab"}, ADMIN)

    assert first.status == second.status
    assert dict(first.errors) == dict(second.errors)
    assert first.trace == second.trace


def test_concurrent_runs_do_not_share_context():
    registry = build_registry()
    names = [f"Company {idx:04d}" for idx in range(40)]

    def _create(name: str):
        return registry.run("CompanyCreate", {"name": name}, ADMIN)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_create, names))

    assert all(result.success for result in results)
    assert [result.model.name for result in results] == names
    assert len({id(result.model) for result in results}) == len(names)


def test_caller_params_are_not_mutated():
    params = {"name": "Acme Inc"}
    build_registry().run("CompanyCreate", params, ADMIN)

    assert params == {"name": "Acme Inc"}
