from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from fwupdctl import cli
from fwupdctl.core.model import ExitCode


class FakeService:
    instances: list[FakeService] = []

    def __init__(self, *, profile_id=None, echo=None) -> None:
        self.profile_id = profile_id
        self.echo = echo
        self.calls: list[tuple] = []
        self.load_warnings = ()
        FakeService.instances.append(self)

    def get_info(self, address):
        self.calls.append(("get-info", address))
        self.echo("=> FW+RAM?\r\n")
        self.echo("<= mem=1234\r\n")
        return ExitCode.OK

    def update(self, address, firmware):
        self.calls.append(("update", address, firmware))
        return ExitCode.OK

    def reset(self, address):
        self.calls.append(("reset", address))
        self.echo(">! ERROR\n")
        return ExitCode.CONTROL


runner = CliRunner()


def test_get_info_command(monkeypatch):
    monkeypatch.setattr(cli, "FirmwareService", FakeService)
    result = runner.invoke(cli.app, ["AA:BB:CC:DD:EE:FF", "get-info"])
    assert result.exit_code == 0
    assert "=> FW+RAM?" in result.stdout
    assert "<= mem=1234" in result.stdout
    assert FakeService.instances[-1].calls == [("get-info", "AA:BB:CC:DD:EE:FF")]


def test_update_command_passes_firmware_path(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "FirmwareService", FakeService)
    image = tmp_path / "fw.bin"
    result = runner.invoke(cli.app, ["AA:BB:CC:DD:EE:FF", "update", str(image)])
    assert result.exit_code == 0
    assert FakeService.instances[-1].calls == [("update", "AA:BB:CC:DD:EE:FF", Path(image))]


def test_profile_option_reaches_service(monkeypatch):
    monkeypatch.setattr(cli, "FirmwareService", FakeService)
    result = runner.invoke(cli.app, ["--profile", "slow", "AA:BB:CC:DD:EE:FF", "get-info"])
    assert result.exit_code == 0
    assert FakeService.instances[-1].profile_id == "slow"


def test_failed_session_exit_code(monkeypatch):
    monkeypatch.setattr(cli, "FirmwareService", FakeService)
    result = runner.invoke(cli.app, ["AA:BB:CC:DD:EE:FF", "reset"])
    assert result.exit_code == ExitCode.CONTROL
    assert ">! ERROR" in result.stdout


def test_update_error_is_clean(monkeypatch, tmp_path):
    class FailingService(FakeService):
        def update(self, address, firmware):
            from fwupdctl.core.errors import FileAccessError

            raise FileAccessError(f"Could not open file: {firmware}")

    monkeypatch.setattr(cli, "FirmwareService", FailingService)
    result = runner.invoke(cli.app, ["AA:BB:CC:DD:EE:FF", "update", str(tmp_path / "nope.bin")])
    assert result.exit_code == ExitCode.FILE
    assert "Error: Could not open file" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_missing_command_is_usage_error(monkeypatch):
    monkeypatch.setattr(cli, "FirmwareService", FakeService)
    result = runner.invoke(cli.app, ["AA:BB:CC:DD:EE:FF"])
    assert result.exit_code == ExitCode.ARGUMENT


def test_update_without_file_is_usage_error(monkeypatch):
    monkeypatch.setattr(cli, "FirmwareService", FakeService)
    result = runner.invoke(cli.app, ["AA:BB:CC:DD:EE:FF", "update"])
    assert result.exit_code == ExitCode.ARGUMENT


def test_load_warning_is_printed(monkeypatch):
    class WarnService(FakeService):
        def __init__(self, **kwargs) -> None:
            super().__init__(**kwargs)
            self.load_warnings = ("User profile 'default' overrides packaged profile",)

    monkeypatch.setattr(cli, "FirmwareService", WarnService)
    result = runner.invoke(cli.app, ["AA:BB:CC:DD:EE:FF", "get-info"])
    assert result.exit_code == 0
    assert "Warning: User profile 'default' overrides packaged profile" in result.stderr
