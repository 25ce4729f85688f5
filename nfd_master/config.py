import re
from functools import cached_property
from typing import List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    NFD master configuration.
    Reads from environment variables and .env file. List values are given as
    JSON, e.g. EXTRA_LABEL_NS='["vendor.example.com"]'.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # Functionality
    ENVIRONMENT: Literal["development", "production", "testing"] = "development"
    LOG_LEVEL: str = "INFO"
    NODE_NAME: str = ""  # Node the master runs on, for the master.version annotation

    # Listener
    API_HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Mutual TLS (all three or none)
    CA_FILE: str = ""
    CERT_FILE: str = ""
    KEY_FILE: str = ""

    # Object store
    KUBECONFIG: str = ""  # Empty: in-cluster config, falling back to ~/.kube/config
    TOPOLOGY_NAMESPACE: str = "default"
    STORE_TIMEOUT_SECONDS: float = 30.0

    # Label publishing policy
    EXTRA_LABEL_NS: List[str] = []
    LABEL_WHITELIST: str = ""
    RESOURCE_LABELS: List[str] = []

    # Switches
    NO_PUBLISH: bool = False
    VERIFY_NODE_NAME: bool = False
    PRUNE: bool = False

    READY_TIMEOUT_SECONDS: float = 10.0

    @field_validator("LABEL_WHITELIST")
    @classmethod
    def check_label_whitelist(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid LABEL_WHITELIST regexp {value!r}: {e}")
        return value

    @model_validator(mode="after")
    def check_tls_files(self):
        if self.CERT_FILE or self.KEY_FILE or self.CA_FILE:
            if not self.CERT_FILE:
                raise ValueError("CERT_FILE needs to be specified alongside KEY_FILE and CA_FILE")
            if not self.KEY_FILE:
                raise ValueError("KEY_FILE needs to be specified alongside CERT_FILE and CA_FILE")
            if not self.CA_FILE:
                raise ValueError("CA_FILE needs to be specified alongside CERT_FILE and KEY_FILE")
        return self

    @property
    def tls_enabled(self) -> bool:
        return bool(self.CERT_FILE and self.KEY_FILE and self.CA_FILE)

    @cached_property
    def label_whitelist(self) -> re.Pattern:
        return re.compile(self.LABEL_WHITELIST)
