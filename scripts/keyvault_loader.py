#!/usr/bin/env python3
"""
Load environment variables from Azure Key Vault, with optional per-user overrides.
Gaps are filled from .env; values already in the environment are never overwritten.
"""
import logging
import os
from pathlib import Path

from dotenv import dotenv_values, load_dotenv

logger = logging.getLogger(__name__)

# Known env vars to fetch from Key Vault (in lookup order for per-user)
ENV_VARS = (
    "API_AUTH_TOKEN",
    "MQ_MASTER_NODES",
    "MQ_MASTER_TIMEOUT",
    "SINK_CONNECT_TIMEOUT",
    "SINK_STATEMENT_TIMEOUT",
)


def _env_to_secret_name(env_key: str) -> str:
    """Convert env var name to Key Vault secret name (underscores -> hyphens)."""
    return env_key.replace("_", "-")


def _find_dotenv():
    """First .env found in the cwd, then the repo root."""
    for base in (Path.cwd(), Path(__file__).resolve().parent.parent):
        env_path = base / ".env"
        if env_path.exists():
            return env_path
    return None


def load_env() -> None:
    """
    Load env vars from Azure Key Vault, then fill gaps from .env.
    - KEYVAULT_NAME: vault name (Key Vault is skipped when unset)
    - AZURE_USER_NAME: optional; use {VAR}-{USER} secrets first, then {VAR}
    - Does not overwrite existing os.environ values (allows CLI overrides)
    """
    # KEYVAULT_NAME and AZURE_USER_NAME may themselves live in .env
    env_path = _find_dotenv()
    file_values = dotenv_values(env_path) if env_path is not None else {}
    vault_name = (os.environ.get("KEYVAULT_NAME") or file_values.get("KEYVAULT_NAME") or "").strip()
    user_name = (os.environ.get("AZURE_USER_NAME") or file_values.get("AZURE_USER_NAME") or "").strip().upper()
    if vault_name:
        _load_from_keyvault(vault_name, user_name)
    if env_path is not None:
        load_dotenv(env_path, override=False)


def _load_from_keyvault(vault_name: str, user_name: str) -> None:
    """Set each unset var in ENV_VARS from its secret, per-user secret first."""
    from azure.core.exceptions import AzureError
    from azure.identity import DefaultAzureCredential
    from azure.keyvault.secrets import SecretClient

    client = SecretClient(vault_url=f"https://{vault_name}.vault.azure.net/", credential=DefaultAzureCredential())

    for var in ENV_VARS:
        if var in os.environ:
            continue  # Do not overwrite (CLI override)
        secret_names = []
        base_name = _env_to_secret_name(var)
        if user_name:
            secret_names.append(f"{base_name}-{user_name}")
        secret_names.append(base_name)
        for name in secret_names:
            try:
                secret = client.get_secret(name)
            except AzureError as e:
                logger.debug(f"Key Vault secret {name} not available: {type(e).__name__}")
                continue
            if secret and secret.value:
                os.environ[var] = secret.value
                logger.info(f"Loaded {var} from Key Vault secret {name}")
                break
