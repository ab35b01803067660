import pytest

from codescope.credentials import (
    CredentialStore,
    EnvironmentCredentialStore,
    StaticCredentialStore,
)

pytestmark = pytest.mark.unit


def test_environment_store_reads_prefixed_variable(monkeypatch):
    monkeypatch.setenv("CODESCOPE_CHAT_COMPLETIONS_API_KEY", " sk-test ")
    store = EnvironmentCredentialStore()
    assert store.variable_for("chat-completions") == "CODESCOPE_CHAT_COMPLETIONS_API_KEY"
    assert store.get_credential("chat-completions") == "sk-test"


def test_environment_store_treats_blank_as_absent(monkeypatch):
    monkeypatch.setenv("CODESCOPE_GEMINI_API_KEY", "   ")
    assert EnvironmentCredentialStore().get_credential("gemini") is None


def test_static_store_never_reveals_secrets_in_repr():
    store = StaticCredentialStore({"gemini": "super-secret"})
    assert store.get_credential("gemini") == "super-secret"
    assert store.get_credential("other") is None
    assert "super-secret" not in repr(store)
    assert "gemini" in repr(store)


def test_stores_satisfy_protocol():
    assert isinstance(EnvironmentCredentialStore(), CredentialStore)
    assert isinstance(StaticCredentialStore(), CredentialStore)
