from __future__ import annotations

from pathlib import Path

import pytest

from fwupdctl.core.errors import ProfileLoadError, ProfileValidationError
from fwupdctl.core.profile_loader import load_profiles, profile_from_document, user_profile_dirs


def _write_profile(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture(autouse=True)
def _isolated_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))


def test_load_packaged_profile() -> None:
    loaded = load_profiles()
    profile = loaded.get(None)
    assert profile.id == "default"
    assert profile.service_uuid == "ff52"
    assert profile.char_uuid == "5201"
    assert profile.chunk_size == 512
    assert profile.discovery_timeout_s == 5.0
    assert profile.command_write_with_response is False
    assert profile.data_write_with_response is True
    assert loaded.warnings == ()


def test_user_profile_adds_new_id(tmp_path: Path) -> None:
    _write_profile(
        tmp_path / "data" / "fwupdctl" / "profiles" / "slow.yaml",
        """
id: slow
name: Slow link
service_uuid: "0000FF52-0000-1000-8000-00805F9B34FB"
char_uuid: "5201"
chunk_size: 128
discovery_timeout_s: 15
data_write_with_response: false
""",
    )

    profile = load_profiles().get("slow")
    assert profile.service_uuid == "0000ff52-0000-1000-8000-00805f9b34fb"
    assert profile.chunk_size == 128
    assert profile.discovery_timeout_s == 15.0
    assert profile.data_write_with_response is False


def test_user_profile_overrides_packaged_with_warning(tmp_path: Path) -> None:
    _write_profile(
        tmp_path / "cfg" / "fwupdctl" / "profiles" / "default.yml",
        """
id: default
name: Overridden
service_uuid: "ff52"
char_uuid: "5201"
chunk_size: 256
""",
    )

    loaded = load_profiles()
    assert loaded.get("default").chunk_size == 256
    assert loaded.warnings == ("User profile 'default' overrides packaged profile",)


def test_unknown_profile_id_rejected() -> None:
    with pytest.raises(ProfileLoadError, match="Unknown profile 'nope'"):
        load_profiles().get("nope")


def test_invalid_uuid_rejected(tmp_path: Path) -> None:
    _write_profile(
        tmp_path / "cfg" / "fwupdctl" / "profiles" / "bad.yaml",
        """
id: bad_uuid
name: Bad UUID
service_uuid: "xyz"
char_uuid: "5201"
""",
    )

    with pytest.raises(ProfileValidationError, match="service_uuid"):
        load_profiles()


def test_chunk_size_above_limit_rejected(tmp_path: Path) -> None:
    _write_profile(
        tmp_path / "cfg" / "fwupdctl" / "profiles" / "big.yaml",
        """
id: big
name: Big chunks
service_uuid: "ff52"
char_uuid: "5201"
chunk_size: 1024
""",
    )

    with pytest.raises(ProfileValidationError, match="chunk_size"):
        load_profiles()


def test_missing_required_keys_rejected(tmp_path: Path) -> None:
    _write_profile(
        tmp_path / "cfg" / "fwupdctl" / "profiles" / "missing.yaml",
        """
id: missing
name: Missing
""",
    )

    with pytest.raises(ProfileValidationError, match="Schema validation failed"):
        load_profiles()


def test_duplicate_keys_rejected(tmp_path: Path) -> None:
    _write_profile(
        tmp_path / "cfg" / "fwupdctl" / "profiles" / "dup.yaml",
        """
id: dup
id: dup2
name: Dup
service_uuid: "ff52"
char_uuid: "5201"
""",
    )

    with pytest.raises(ProfileValidationError, match="Duplicate key 'id'"):
        load_profiles()


def test_non_boolean_flag_rejected(tmp_path: Path) -> None:
    _write_profile(
        tmp_path / "cfg" / "fwupdctl" / "profiles" / "flag.yaml",
        """
id: flag
name: Flag
service_uuid: "ff52"
char_uuid: "5201"
command_write_with_response: maybe
""",
    )

    with pytest.raises(ProfileValidationError, match="must be boolean"):
        load_profiles()


def test_yaml_yes_is_not_a_boolean(tmp_path: Path) -> None:
    _write_profile(
        tmp_path / "cfg" / "fwupdctl" / "profiles" / "yes.yaml",
        """
id: yes_flag
name: Yes flag
service_uuid: "ff52"
char_uuid: "5201"
data_write_with_response: yes
""",
    )

    with pytest.raises(ProfileValidationError, match="data_write_with_response must be boolean"):
        load_profiles()


def test_document_defaults_follow_device_profile() -> None:
    profile = profile_from_document(
        {"id": "minimal", "name": "Minimal", "service_uuid": " FF52 ", "char_uuid": "5201"}
    )

    assert profile.service_uuid == "ff52"
    assert profile.chunk_size == 512
    assert profile.discovery_timeout_s == 5.0
    assert profile.command_write_with_response is False
    assert profile.data_write_with_response is True


def test_user_profile_dirs_follow_xdg(tmp_path: Path) -> None:
    assert user_profile_dirs() == [
        tmp_path / "cfg" / "fwupdctl" / "profiles",
        tmp_path / "data" / "fwupdctl" / "profiles",
    ]
