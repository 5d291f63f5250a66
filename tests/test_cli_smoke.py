import io
import logging

import pytest

from operationkit import cli


def test_cli_list_operations_smoke():
    out = io.StringIO()

    rc = cli.main(["list-operations", "company_ops:build_registry"], out=out)

    assert rc == 0
    assert out.getvalue().splitlines() == [
        "CompanyCreate  Create a company",
        "CompanyUpdate  Rename a company",
    ]


def test_cli_describe_smoke():
    out = io.StringIO()

    rc = cli.main(["describe", "company_ops:build_registry", "CompanyUpdate"], out=out)

    assert rc == 0
    lines = out.getvalue().splitlines()
    assert lines[0] == "CompanyUpdate"
    assert lines[1] == "  01. contract.company.update (success)"
    assert lines[-1] == "  05. persist (success)"


def test_cli_describe_unknown_operation_reports_error(capsys):
    rc = cli.main(["describe", "company_ops:build_registry", "CompanyDelete"], out=io.StringIO())

    assert rc == 1
    err = capsys.readouterr().err
    assert err.startswith("error: Unknown operation: CompanyDelete")


def test_cli_bad_target_reports_error(capsys):
    assert cli.main(["list-operations", "company_ops"], out=io.StringIO()) == 1
    assert "module:attribute" in capsys.readouterr().err

    assert cli.main(["list-operations", "company_ops:COMPANY_POLICY"], out=io.StringIO()) == 1
    assert "did not produce an OperationRegistry" in capsys.readouterr().err


def test_cli_check_config_smoke(tmp_path, package_logger):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "\n".join(
            [
                "executor:",
                "  recorder: 'null'",
                "  log_level: WARNING",
                "contracts:",
                "  company:",
                "    rules:",
                "      - {field: name, check: presence}",
                "",
            ]
        ),
        encoding="utf-8",
    )
    out = io.StringIO()

    rc = cli.main(["check-config", "--config", str(config_path)], out=out)

    assert rc == 0
    text = out.getvalue()
    assert text.startswith("Config OK (explicit):")
    assert "  contracts: company" in text
    assert "  log_level: WARNING" in text
    assert package_logger.level == logging.WARNING


def test_cli_check_config_rejects_unknown_keys(tmp_path, capsys, package_logger):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("executor:\n  retries: 3\n", encoding="utf-8")

    rc = cli.main(["check-config", "--config", str(config_path)], out=io.StringIO())

    assert rc == 1
    assert "Unknown config keys under executor: retries" in capsys.readouterr().err


def test_cli_requires_a_command():
    with pytest.raises(SystemExit):
        cli.main([])
