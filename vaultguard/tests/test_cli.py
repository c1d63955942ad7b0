import json

import pytest

from vaultguard import cli, vault
from vaultguard.tests.factories import USDC
from vaultguard.types import VaultSnapshot


def _run(monkeypatch, *args):
    monkeypatch.setattr("sys.argv", ["vaultguard", *args])
    cli.run()


def test_resolve(monkeypatch, capsys):
    _run(monkeypatch, "resolve", USDC)
    out = json.loads(capsys.readouterr().out)
    assert out["symbol"] == "USDC"
    assert out["decimals"] == 6


def test_snapshot_without_vault_is_demo(monkeypatch, capsys):
    monkeypatch.setattr(cli, "VAULT_GUARD_ADDRESS", "")
    _run(monkeypatch, "snapshot")
    out = json.loads(capsys.readouterr().out)
    assert out["is_contract_backed"] is False
    assert [a["symbol"] for a in out["assets"]] == ["ETH", "USDC", "WBTC"]
    assert out["epoch"] == 1


def test_validation_errors_exit_nonzero(monkeypatch, capsys):
    monkeypatch.setattr(vault, "VAULT_GUARD_ADDRESS", "")
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "deposit", USDC, "0")
    assert exc.value.code == 1
    err = json.loads(capsys.readouterr().err)
    assert "VAULT_GUARD_ADDRESS" in err["error"]


def test_claim_uses_snapshot_owner(monkeypatch, capsys):
    owner = "0x1111111111111111111111111111111111111111"
    snapshot = VaultSnapshot(epoch=4, owner=owner, reference_time=0, fetched_at=0)
    seen = {}

    def fake_claim(*args, **kwargs):
        seen.update(kwargs)
        return {"status": "confirmed"}

    monkeypatch.setattr(cli, "fetch_snapshot", lambda owner=None, vault_address=None: snapshot)
    monkeypatch.setattr(cli, "claim_payroll_stream", fake_claim)
    _run(monkeypatch, "claim", "0", "alice", "1")

    assert seen["owner"] == owner
    assert seen["snapshot"] is snapshot
    assert seen["epoch"] == 4
    assert json.loads(capsys.readouterr().out) == {"status": "confirmed"}
