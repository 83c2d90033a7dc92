from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from corehosts.domain.errors import InstallerStepError
from corehosts.domain.installer import InstallReport, StepOutcome
from corehosts.domain.records import Record
from corehosts.ui import cli

if TYPE_CHECKING:
    import asyncio

    from corehosts.config import InstallerConfig, ServerConfig


def test_install_applies_flag_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, InstallerConfig] = {}

    async def fake_install(config: InstallerConfig) -> InstallReport:
        captured["config"] = config
        outcome = StepOutcome(step="workload", identity="Deployment kube-system/dns", written=True)
        return InstallReport(steps=[outcome])

    monkeypatch.setattr(cli, "install", fake_install)

    cli.main(
        [
            "install",
            "--coredns-name",
            "dns",
            "--server-port",
            "9999",
            "--server-kubeconfig",
            "/etc/kube/config",
            "--sort-directives",
        ]
    )

    config = captured["config"]
    assert config.coredns_name == "dns"
    assert config.coredns_namespace == "kube-system"
    assert config.server_port == 9999  # noqa: PLR2004
    assert config.server_kubeconfig == "/etc/kube/config"
    assert config.sort_directives is True


def test_install_defaults_come_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, InstallerConfig] = {}

    async def fake_install(config: InstallerConfig) -> InstallReport:
        captured["config"] = config
        return InstallReport()

    monkeypatch.setattr(cli, "install", fake_install)
    monkeypatch.setenv("COREHOSTS_SERVER_VERSION", "v9.9.9")

    cli.main(["install"])

    assert captured["config"].server_version == "v9.9.9"
    assert captured["config"].sort_directives is False


@pytest.mark.parametrize(
    "argv",
    [
        ["install", "--server-port", "70000"],
        ["serve", "--workers", "0"],
    ],
)
def test_invalid_input_exits_with_usage_code(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2  # noqa: PLR2004


def test_failed_installer_step_exits_with_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_install(config: InstallerConfig) -> InstallReport:
        raise InstallerStepError(step="workload", identity=config.coredns_name, reason="boom")

    monkeypatch.setattr(cli, "install", fake_install)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["install"])

    assert excinfo.value.code == 1


def test_missing_cluster_configuration_exits_with_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["records", "list"])

    assert excinfo.value.code == 1


def test_serve_passes_sync_options(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, ServerConfig] = {}

    async def fake_serve(stop: asyncio.Event, config: ServerConfig) -> None:
        assert not stop.is_set()
        captured["config"] = config

    monkeypatch.setattr(cli, "serve", fake_serve)

    cli.main(
        [
            "serve",
            "--records-name",
            "records",
            "--hosts-path",
            "/tmp/hosts",  # noqa: S108
            "--workers",
            "3",
            "--keep-on-delete",
        ]
    )

    config = captured["config"]
    assert config.records_name == "records"
    assert config.hosts_path == "/tmp/hosts"  # noqa: S108
    assert config.sync.workers == 3  # noqa: PLR2004
    assert config.sync.clear_on_delete is False


def test_records_set_and_list(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    records: dict[str, str] = {}

    async def fake_set(domain: str, ip: str, *, config: ServerConfig) -> Record:
        assert config.records_namespace == "dns-system"
        records[domain] = ip
        return Record(domain=domain, ip=ip)

    async def fake_list(*, config: ServerConfig) -> list[Record]:
        del config
        return [Record(domain=domain, ip=ip) for domain, ip in sorted(records.items())]

    monkeypatch.setattr(cli, "set_record", fake_set)
    monkeypatch.setattr(cli, "list_records", fake_list)

    cli.main(["records", "--records-namespace", "dns-system", "set", "b.io", "10.0.0.2"])
    cli.main(["records", "--records-namespace", "dns-system", "set", "a.io", "10.0.0.1"])
    cli.main(["records", "list"])

    assert capsys.readouterr().out == "10.0.0.1 a.io\n10.0.0.2 b.io\n"


def test_records_get_prints_hosts_line(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    async def fake_get(domain: str, *, config: ServerConfig) -> Record:
        del config
        return Record(domain=domain, ip="fd00::5")

    monkeypatch.setattr(cli, "get_record", fake_get)

    cli.main(["records", "get", "v6.example.com"])

    assert capsys.readouterr().out == "fd00::5 v6.example.com\n"


def test_records_delete(monkeypatch: pytest.MonkeyPatch) -> None:
    deleted: list[str] = []

    async def fake_delete(domain: str, *, config: ServerConfig) -> None:
        del config
        deleted.append(domain)

    monkeypatch.setattr(cli, "delete_record", fake_delete)

    cli.main(["records", "delete", "a.io"])

    assert deleted == ["a.io"]


def test_sigint_exits_with_interrupt_status() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.sigint_handler(2, None)

    assert excinfo.value.code == 130  # noqa: PLR2004
