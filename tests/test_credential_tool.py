"""Tests for the credential_tool developer script."""

import importlib.util
import json
import pyotp
import pytest
from pathlib import Path

from src.auth.credentials import CredentialRecord, TwoFactorState

_SCRIPT = Path(__file__).parent.parent / "scripts" / "credential_tool.py"
_spec = importlib.util.spec_from_file_location("credential_tool", _SCRIPT)
credential_tool = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(credential_tool)


@pytest.fixture
def creds_file(tmp_path, strong_password):
    path = tmp_path / "creds.json"
    assert credential_tool.main([str(path), "init", strong_password, "--input", "alice"]) == 0
    return path


def run(path: Path, *args: str) -> int:
    return credential_tool.main([str(path), *args])


def test_init_writes_record(creds_file, strong_password):
    record = CredentialRecord.from_json(creds_file.read_text())
    record.check_password(strong_password)


def test_weak_password_rejected(tmp_path, capsys):
    path = tmp_path / "creds.json"

    assert run(path, "init", "something") == 1
    assert "Rejected" in capsys.readouterr().err
    assert not path.exists()


def test_check_password(creds_file, strong_password):
    before = creds_file.read_text()

    assert run(creds_file, "check-password", strong_password) == 0
    assert run(creds_file, "check-password", "nope") == 1
    assert creds_file.read_text() == before


def test_reset_flow(creds_file, capsys):
    capsys.readouterr()
    assert run(creds_file, "reset", "--hours", "1") == 0
    code = capsys.readouterr().out.strip()

    assert run(creds_file, "check-reset", code) == 0
    assert run(creds_file, "check-reset", "wrong") == 1


def test_expired_reset_is_cleared_on_disk(creds_file, capsys):
    capsys.readouterr()
    assert run(creds_file, "reset", "--hours", "-1") == 0
    code = capsys.readouterr().out.strip()

    assert run(creds_file, "check-reset", code) == 1
    assert json.loads(creds_file.read_text())["reset_code"] is None


def test_two_factor_flow(creds_file, capsys):
    capsys.readouterr()
    assert run(creds_file, "setup-2fa", "alice", "example.com") == 0
    lines = capsys.readouterr().out.split()
    uri, keys = lines[0], lines[1:]

    assert uri.startswith("otpauth://totp/example.com:alice?")
    assert len(keys) == 8

    secret = json.loads(creds_file.read_text())["init_two_factor"]["secret"]
    assert run(creds_file, "complete-2fa", pyotp.TOTP(secret).now()) == 0

    record = CredentialRecord.from_json(creds_file.read_text())
    assert record.two_factor_state == TwoFactorState.ACTIVE

    assert run(creds_file, "check-2fa", keys[0]) == 0
    assert run(creds_file, "check-2fa", keys[0]) == 1

    capsys.readouterr()
    assert run(creds_file, "show") == 0
    assert "recovery keys left: 7" in capsys.readouterr().out


def test_code_without_two_factor(creds_file, capsys):
    capsys.readouterr()
    assert run(creds_file, "code") == 0
    assert capsys.readouterr().out == "\n"


def test_corrupt_file(tmp_path, capsys):
    path = tmp_path / "creds.json"
    path.write_text("{broken")

    assert run(path, "show") == 2
    assert "Error" in capsys.readouterr().err
