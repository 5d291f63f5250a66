import pytest

from operationkit import FailureReason, Result, ResultStatus


def test_succeeded_result_has_no_errors():
    model = object()
    result = Result.succeeded(model, operation="op", trace=["a", "b"])

    assert result.success
    assert not result.failure
    assert result.model is model
    assert dict(result.errors) == {}
    assert result.trace == ("a", "b")


def test_success_with_errors_is_rejected():
    with pytest.raises(ValueError, match="cannot carry errors"):
        Result(status=ResultStatus.SUCCESS, errors={"name": ["too short"]})

    with pytest.raises(ValueError, match="failure reason"):
        Result(status=ResultStatus.SUCCESS, reason=FailureReason.VALIDATION)


def test_failed_result_freezes_errors():
    source = {"name": ["too short"]}
    result = Result.failed(source, reason=FailureReason.VALIDATION)

    source["name"].append("later")

    assert dict(result.errors) == {"name": ("too short",)}
    with pytest.raises(TypeError):
        result.errors["email"] = ("is invalid",)  # type: ignore[index]


def test_failed_without_messages_is_still_a_failure():
    result = Result.failed()

    assert result.failure
    assert result.reason is FailureReason.EXPLICIT
    assert dict(result.errors) == {}


def test_string_status_is_normalized():
    result = Result(status="failure", errors={"base": "nope"})

    assert result.status is ResultStatus.FAILURE
    assert dict(result.errors) == {"base": ("nope",)}


def test_error_messages_flatten_with_field_prefix():
    result = Result.failed(
        {"name": ["can't be blank", "too short"], "base": ["not authorized"]},
        reason=FailureReason.VALIDATION,
    )

    assert result.error_messages() == ["name can't be blank", "name too short", "not authorized"]
    assert result.error_messages(base_key="name") == [
        "can't be blank",
        "too short",
        "base not authorized",
    ]


def test_result_is_immutable():
    result = Result.succeeded()

    with pytest.raises(AttributeError):
        result.status = ResultStatus.FAILURE  # type: ignore[misc]


def test_failure_without_errors_or_reason_is_rejected():
    with pytest.raises(ValueError, match="needs errors or a failure reason"):
        Result(status=ResultStatus.FAILURE)
    with pytest.raises(ValueError, match="needs errors or a failure reason"):
        Result.failed(reason=None)

    assert Result.failed({"base": ["denied"]}, reason=None).failure
    assert Result(status="failure", reason="explicit").reason is FailureReason.EXPLICIT
