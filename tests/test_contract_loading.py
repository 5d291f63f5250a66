import pytest

from operationkit import contracts_from_mapping
from operationkit.config_io import load_yaml_mapping
from operationkit.config_namespace import ConfigNamespace


def _company_section() -> dict:
    return {
        "company": {
            "doc": "Company attributes",
            "rules": [
                {"field": "name", "check": "presence", "scopes": ["update"]},
                {"field": "name", "check": "length", "min": 6, "max": 20, "scopes": ["update"]},
                {"field": "slug", "check": "format", "pattern": "[a-z-]+", "message": "bad slug"},
                {"field": "plan", "check": "inclusion", "in": ["free", "pro"], "scopes": "create"},
                {"field": "seats", "check": "numericality", "greater_than": 0, "scopes": ["create"]},
            ],
        }
    }


def test_contracts_from_mapping_builds_scoped_rules():
    registry = contracts_from_mapping(_company_section())
    schema = registry.get("company")

    assert schema.doc == "Company attributes"
    assert schema.scopes() == ("create", "update")
    assert schema.validate({"name": "ab", "slug": "ok-slug"}, scope="update") == {"name": ["too short"]}
    assert schema.validate({"slug": "Bad Slug", "plan": "gold", "seats": 0}, scope="create") == {
        "slug": ["bad slug"],
        "plan": ["is not included in the list"],
        "seats": ["must be greater than 0"],
    }


def test_length_message_is_shared_unless_overridden():
    registry = contracts_from_mapping(
        {
            "user": {
                "rules": [
                    {"field": "pin", "check": "length", "min": 4, "max": 4, "message": "must be 4 digits"},
                    {"field": "nick", "check": "length", "max": 3, "too_long": "too chatty"},
                ]
            }
        }
    )
    schema = registry.get("user")

    assert schema.validate({"pin": "12", "nick": "abcd"}) == {
        "pin": ["must be 4 digits"],
        "nick": ["too chatty"],
    }


def test_empty_or_missing_section_gives_empty_registry():
    assert contracts_from_mapping(None).available() == ()
    assert contracts_from_mapping({}).available() == ()
    assert contracts_from_mapping({"audit": {}}).get("audit").rules == ()


def test_unknown_rule_key_is_rejected():
    section = _company_section()
    section["company"]["rules"][0]["when"] = "always"

    with pytest.raises(ValueError, match=r"Unknown config keys under contracts\.company\.rules\[0\]: when"):
        contracts_from_mapping(section)


def test_unknown_schema_key_is_rejected():
    with pytest.raises(ValueError, match=r"Unknown config keys under contracts\.company: validators"):
        contracts_from_mapping({"company": {"rules": [], "validators": []}})


def test_unknown_check_is_rejected():
    with pytest.raises(ValueError, match=r"check must be one of"):
        contracts_from_mapping({"company": {"rules": [{"field": "name", "check": "uniqueness"}]}})


def test_length_without_bounds_is_rejected():
    with pytest.raises(ValueError, match="needs min and/or max"):
        contracts_from_mapping({"company": {"rules": [{"field": "name", "check": "length"}]}})


def test_wrong_types_are_rejected():
    with pytest.raises(TypeError, match=r"min must be an int or null"):
        contracts_from_mapping(
            {"company": {"rules": [{"field": "name", "check": "length", "min": "6"}]}}
        )
    with pytest.raises(TypeError, match=r"contracts\.company must be a mapping"):
        contracts_from_mapping({"company": ["presence"]})


def test_accepts_config_namespace_and_marks_it_consumed():
    root = ConfigNamespace({"contracts": _company_section()}, path="")

    registry = contracts_from_mapping(root.namespace("contracts"))
    root.assert_consumed()

    assert registry.available() == ("company",)


def test_scoped_rules_load_from_yaml_text(tmp_path):
    path = tmp_path / "contracts.yaml"
    path.write_text(
        "\n".join(
            [
                "company:",
                "  rules:",
                "    - {field: name, check: presence, scopes: [update]}",
                "    - field: name",
                "      check: length",
                "      min: 6",
                "      max: 20",
                "      scopes: update",
                "",
            ]
        ),
        encoding="utf-8",
    )

    registry = contracts_from_mapping(load_yaml_mapping(path))

    assert registry.get("company").scopes() == ("update",)
    assert registry.validate("company", {}, "update") == {"name": ["can't be blank", "too short"]}
    assert registry.validate("company", {}, "create") == {}


def test_bare_yaml_on_key_is_rejected_not_ignored(tmp_path):
    path = tmp_path / "contracts.yaml"
    path.write_text("company:\n  rules:\n    - {field: name, check: presence, on: [update]}\n", encoding="utf-8")

    with pytest.raises(ValueError, match=r"Unknown config keys under contracts\.company\.rules\[0\]: True"):
        contracts_from_mapping(load_yaml_mapping(path))
