"""Tests for settings and target identity resolution."""

from __future__ import annotations

from nodectl.config import Settings
from nodectl.services.identity import TargetIdentity, resolve_identity


def test_identity_from_vm_variables(monkeypatch):
    monkeypatch.setenv("VM_USER", "ubuntu")
    monkeypatch.setenv("VM_IP_ADDRESS", "203.0.113.7")
    cfg = Settings(_env_file=None)

    identity = resolve_identity(cfg)
    assert identity == TargetIdentity(
        key_path="~/.ssh/id_rsa.pem", user="ubuntu", host="203.0.113.7",
    )
    assert identity.key == "ubuntu@203.0.113.7"


def test_identity_from_remote_variables(monkeypatch):
    monkeypatch.delenv("VM_USER", raising=False)
    monkeypatch.delenv("VM_IP_ADDRESS", raising=False)
    monkeypatch.setenv("REMOTE_USER", "node")
    monkeypatch.setenv("REMOTE_HOST", "node.example.net")
    cfg = Settings(_env_file=None)

    assert resolve_identity(cfg).key == "node@node.example.net"


def test_missing_host_means_no_identity(monkeypatch):
    for name in ("VM_USER", "VM_IP_ADDRESS", "REMOTE_USER", "REMOTE_HOST"):
        monkeypatch.delenv(name, raising=False)
    cfg = Settings(_env_file=None, remote_user="ubuntu")

    assert resolve_identity(cfg) is None


def test_identity_is_immutable(identity):
    import pydantic
    import pytest

    with pytest.raises(pydantic.ValidationError):
        identity.host = "10.9.9.9"


def test_node_settings_from_environment(monkeypatch):
    monkeypatch.setenv("CELESTIA_NETWORK", "arabica-11")
    monkeypatch.setenv("ENABLE_SSH_DEBUG", "true")
    cfg = Settings(_env_file=None)

    assert cfg.celestia_network == "arabica-11"
    assert cfg.enable_ssh_debug is True
    assert cfg.celestia_service == "celestia-light.service"
