"""Chatwoot CLI configuration with directory-based detection.

## .cw/ folder layout

```
.cw/
└── config.yaml          # Main config file (config.json also accepted)
```

### config.yaml Structure

```yaml
base_url: https://app.chatwoot.com
account_id: 1
api_token_env: CHATWOOT_API_TOKEN_WORK   # or api_token: ...
output: text                             # default --output
compact: false
```

### Resolution Order

1. CHATWOOT_BASE_URL / CHATWOOT_API_TOKEN / CHATWOOT_ACCOUNT_ID environment
2. .cw/config.yaml in the current directory or a parent
3. <user config dir>/chatwoot-cli/config.yaml (user default)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from platformdirs import user_config_dir

from .errors import AuthenticationError, UserInputError

USER_CONFIG_DIR = Path(user_config_dir("chatwoot-cli"))
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.yaml"

CW_CONFIG_DIR = ".cw"
CW_CONFIG_FILES = ("config.yaml", "config.yml", "config.json")

ENV_BASE_URL = "CHATWOOT_BASE_URL"
ENV_API_TOKEN = "CHATWOOT_API_TOKEN"
ENV_ACCOUNT_ID = "CHATWOOT_ACCOUNT_ID"


@dataclass
class CWContext:
    """Resolved Chatwoot account context."""

    # Source of config
    config_path: Optional[Path] = None
    config_source: str = "none"  # "env", "directory", "parent", "user", "none"

    base_url: Optional[str] = None
    account_id: Optional[int] = None

    # Auth
    api_token: Optional[str] = None
    api_token_env: str = ENV_API_TOKEN

    # Output defaults
    output: Optional[str] = None
    compact: bool = False

    def is_configured(self) -> bool:
        return bool(self.base_url and self.account_id and self.api_token)

    def require(self) -> "CWContext":
        """Return self, or raise AuthenticationError listing what is missing."""
        missing = []
        if not self.base_url:
            missing.append("base_url")
        if not self.account_id:
            missing.append("account_id")
        if not self.api_token:
            missing.append(f"API token ({self.api_token_env})")
        if missing:
            raise AuthenticationError(
                "Chatwoot is not configured: missing " + ", ".join(missing),
                suggestions=[
                    f"export {ENV_BASE_URL}=https://app.chatwoot.com",
                    f"export {ENV_API_TOKEN}=... {ENV_ACCOUNT_ID}=1",
                    "Or run: cw config init",
                ],
            )
        return self


def _parse_account_id(value, source: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        account_id = int(value)
    except (TypeError, ValueError):
        account_id = 0
    if account_id < 1:
        raise UserInputError(f"{source} must be a positive integer")
    return account_id


def find_cw_config(start_path: Optional[Path] = None) -> Optional[Path]:
    """Find the nearest .cw/config.yaml by walking up the directory tree."""
    current = Path(start_path or Path.cwd()).resolve()

    while True:
        for name in CW_CONFIG_FILES:
            config_path = current / CW_CONFIG_DIR / name
            if config_path.exists():
                return config_path
        if current == current.parent:
            return None
        current = current.parent


def load_config_file(config_path: Path) -> dict:
    """Load a YAML (or JSON, which is valid YAML) config file."""
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise UserInputError(f"invalid config file {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise UserInputError(f"invalid config file {config_path}: expected a mapping")
    return data


def load_user_config() -> Optional[dict]:
    if USER_CONFIG_FILE.exists():
        return load_config_file(USER_CONFIG_FILE)
    return None


def _apply_file(context: CWContext, data: dict, path: Path) -> None:
    context.base_url = context.base_url or data.get("base_url")
    if context.account_id is None:
        context.account_id = _parse_account_id(data.get("account_id"), f"account_id in {path}")
    if data.get("api_token_env"):
        context.api_token_env = data["api_token_env"]
    if not context.api_token:
        context.api_token = os.environ.get(context.api_token_env) or data.get("api_token")
    if context.output is None:
        context.output = data.get("output")
    context.compact = context.compact or bool(data.get("compact", False))


def resolve_context(path: Optional[Path] = None) -> CWContext:
    """Resolve the Chatwoot account context for a directory.

    Environment variables win outright when CHATWOOT_BASE_URL is set; the
    token and account id must then be set too.
    """
    context = CWContext()

    base_url = os.environ.get(ENV_BASE_URL, "").strip()
    if base_url:
        token = os.environ.get(ENV_API_TOKEN, "").strip()
        account = os.environ.get(ENV_ACCOUNT_ID, "").strip()
        if not token or not account:
            raise UserInputError(
                f"environment variables {ENV_BASE_URL}, {ENV_API_TOKEN}, and "
                f"{ENV_ACCOUNT_ID} must all be set"
            )
        context.config_source = "env"
        context.base_url = base_url
        context.api_token = token
        context.account_id = _parse_account_id(account, ENV_ACCOUNT_ID)

    cw_config_path = find_cw_config(path)
    if cw_config_path:
        target_dir = Path(path).resolve() if path else Path.cwd().resolve()
        if context.config_source == "none":
            context.config_path = cw_config_path
            context.config_source = "directory" if cw_config_path.parent.parent == target_dir else "parent"
        _apply_file(context, load_config_file(cw_config_path), cw_config_path)

    if not context.is_configured():
        user_config = load_user_config()
        if user_config:
            if context.config_source == "none":
                context.config_path = USER_CONFIG_FILE
                context.config_source = "user"
            _apply_file(context, user_config, USER_CONFIG_FILE)

    if not context.api_token:
        context.api_token = os.environ.get(context.api_token_env) or None

    return context


def create_cw_config(
    path: Path,
    base_url: str,
    account_id: int,
    api_token_env: Optional[str] = None,
    output: Optional[str] = None,
) -> Path:
    """Create .cw/config.yaml in the given directory. Tokens are never written."""
    cw_dir = Path(path) / CW_CONFIG_DIR
    cw_dir.mkdir(exist_ok=True)

    config = {"base_url": base_url, "account_id": account_id}
    if api_token_env:
        config["api_token_env"] = api_token_env
    if output:
        config["output"] = output

    config_path = cw_dir / CW_CONFIG_FILES[0]
    with open(config_path, "w") as f:
        yaml.safe_dump(config, f, sort_keys=False)
    return config_path


def describe_context(context: CWContext) -> dict:
    """JSON-ready view of a context with the token redacted."""
    return {
        "config_source": context.config_source,
        "config_path": str(context.config_path) if context.config_path else None,
        "base_url": context.base_url,
        "account_id": context.account_id,
        "api_token_env": context.api_token_env,
        "api_token_configured": context.api_token is not None,
        "output": context.output,
        "compact": context.compact,
    }
