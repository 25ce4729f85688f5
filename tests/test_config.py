import pydantic
import pytest

from nfd_master.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.PORT == 8080
    assert settings.EXTRA_LABEL_NS == []
    assert settings.label_whitelist.search("anything")
    assert not settings.tls_enabled
    assert not settings.NO_PUBLISH


def test_tls_files_enable_tls():
    settings = Settings(_env_file=None, CA_FILE="ca.crt", CERT_FILE="tls.crt", KEY_FILE="tls.key")
    assert settings.tls_enabled


@pytest.mark.parametrize("kwargs,missing", [
    ({"KEY_FILE": "k", "CA_FILE": "c"}, "CERT_FILE"),
    ({"CERT_FILE": "t", "CA_FILE": "c"}, "KEY_FILE"),
    ({"CERT_FILE": "t", "KEY_FILE": "k"}, "CA_FILE"),
])
def test_tls_files_must_be_given_together(kwargs, missing):
    with pytest.raises(pydantic.ValidationError, match=f"{missing} needs to be specified"):
        Settings(_env_file=None, **kwargs)


def test_invalid_whitelist_is_rejected():
    with pytest.raises(pydantic.ValidationError, match="invalid LABEL_WHITELIST"):
        Settings(_env_file=None, LABEL_WHITELIST="(")


def test_list_settings_from_environment(monkeypatch):
    monkeypatch.setenv("EXTRA_LABEL_NS", '["vendor.io", "example.com"]')
    monkeypatch.setenv("RESOURCE_LABELS", '["gpu"]')
    monkeypatch.setenv("VERIFY_NODE_NAME", "true")

    settings = Settings(_env_file=None)

    assert settings.EXTRA_LABEL_NS == ["vendor.io", "example.com"]
    assert settings.RESOURCE_LABELS == ["gpu"]
    assert settings.VERIFY_NODE_NAME
