"""Connection parameters and authentication handling."""

import os
from pathlib import Path
from typing import Optional, Any, Dict

import keyring
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.backends import default_backend
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

KEYPAIR_AUTHENTICATOR = "SNOWFLAKE_JWT"


class ConnectionParams(BaseModel):
    """Validated parameters for opening a session against Snowflake

    ``username``, ``account``, ``database``, ``schema`` and ``warehouse`` are
    always required. ``password`` is required unless keypair authentication
    (``authenticator = "SNOWFLAKE_JWT"``) is selected.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    username: str
    password: Optional[SecretStr] = None
    account: str
    database: str
    schema_name: str = Field(alias="schema")
    warehouse: str
    role: Optional[str] = None
    authenticator: Optional[str] = None
    private_key_file: Optional[str] = None
    private_key_passphrase_env: Optional[str] = None
    use_keyring: bool = False
    keyring_service: Optional[str] = None
    keyring_username: Optional[str] = None
    login_timeout: Optional[int] = None

    @field_validator("username", "account", "database", "schema_name", "warehouse")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @model_validator(mode="after")
    def _check_auth(self) -> "ConnectionParams":
        if self.is_keypair:
            if not self.private_key_file:
                raise ValueError(
                    "Keypair authentication requires 'private_key_file'"
                )
        elif self.password is None or not self.password.get_secret_value():
            raise ValueError("'password' is required for password authentication")
        return self

    @classmethod
    def from_profile(cls, profile: Dict[str, Any], **overrides: Any) -> "ConnectionParams":
        """Build parameters from a connections.toml profile, accepting 'user' as an alias of 'username'"""
        cfg = dict(profile)
        cfg.update(overrides)
        if "user" in cfg:
            cfg.setdefault("username", cfg.pop("user"))
        return cls.model_validate(cfg)

    @property
    def is_keypair(self) -> bool:
        return (self.authenticator or "").upper() == KEYPAIR_AUTHENTICATOR

    def connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for snowflake.connector.connect"""
        kwargs: Dict[str, Any] = {
            "user": self.username,
            "account": self.account,
            "database": self.database,
            "schema": self.schema_name,
            "warehouse": self.warehouse,
        }
        if self.role:
            kwargs["role"] = self.role
        if self.login_timeout is not None:
            kwargs["login_timeout"] = self.login_timeout

        if self.is_keypair:
            kwargs["authenticator"] = KEYPAIR_AUTHENTICATOR
            kwargs["private_key"] = self._load_private_key()
        else:
            if self.authenticator:
                kwargs["authenticator"] = self.authenticator
            assert self.password is not None
            kwargs["password"] = self.password.get_secret_value()
        return kwargs

    def _load_private_key(self) -> bytes:
        """Load and decrypt the PEM private key, returned as unencrypted PKCS8 DER"""
        key_path, passphrase = self._get_key_details()

        try:
            with open(key_path, "rb") as key_file:
                p_key_bytes = key_file.read()

            private_key = serialization.load_pem_private_key(
                p_key_bytes,
                password=passphrase.get_secret_value().encode() if passphrase else None,
                backend=default_backend()
            )
        except Exception as e:
            raise IOError(f"Failed to read or decrypt private key from {key_path}: {e}") from e

        return private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def _get_key_details(self) -> tuple[Path, Optional[SecretStr]]:
        """Validate key path and retrieve the passphrase from an environment variable or keyring"""
        assert self.private_key_file is not None
        key_path = Path(self.private_key_file).expanduser()

        # Only allow absolute paths or home directory expansion
        if not key_path.is_absolute():
            raise ValueError(
                f"Private key path must be absolute or use ~ for home directory. Got: {self.private_key_file}"
            )

        if not key_path.exists():
            raise FileNotFoundError(f"Private key file not found: {key_path}")

        passphrase: Optional[SecretStr] = None

        if self.private_key_passphrase_env:
            env_pass = os.environ.get(self.private_key_passphrase_env)
            if env_pass:
                passphrase = SecretStr(env_pass)

        if not passphrase and self.use_keyring:
            service = self.keyring_service or f"snowbridge.{self.account}"
            username = self.keyring_username or self.username
            keyring_pass = keyring.get_password(service, username)
            if keyring_pass:
                passphrase = SecretStr(keyring_pass)

        return key_path, passphrase

    def describe(self) -> str:
        """Loggable summary without secrets"""
        return (
            f"account={self.account} user={self.username} database={self.database} "
            f"schema={self.schema_name} warehouse={self.warehouse}"
        )
