"""Configuration settings and models for prefixload."""

import os
import shutil
from importlib import resources
from pathlib import Path
from typing import Any, List, Optional, Union

import click
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError

APP_NAME = "prefixload"
CONFIG_FILE_NAME = "config.yml"
CREDENTIALS_FILE_NAME = "credentials.yml"
DEFAULT_PART_SIZE = 15 * 1024 * 1024  # 15MB
# Smallest multipart part the S3 transfer manager uploads as-is
MIN_PART_SIZE = 5 * 1024 * 1024  # 5MB
DEFAULT_REGION = "us-east-1"


def app_dir() -> Path:
    """Platform-native configuration directory for prefixload."""
    return Path(click.get_app_dir(APP_NAME))


def _load_yaml(path: Path) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e


class UploadRule(BaseModel):
    """Maps a local file name prefix to a directory in the bucket."""
    prefix_file: str
    cloud_dir: str

    @field_validator('prefix_file')
    @classmethod
    def validate_prefix(cls, v):
        if not v:
            raise ValueError('prefix_file must not be empty')
        return v

    def matches(self, file_name: str) -> bool:
        return file_name.startswith(self.prefix_file)


class PrefixloadConfig(BaseModel):
    """Main configuration: where to read files and where to send them."""
    model_config = ConfigDict(validate_assignment=True)

    endpoint: str
    bucket: str
    region: str = DEFAULT_REGION
    force_path_style: bool = False
    part_size: int = DEFAULT_PART_SIZE
    local_directory_path: str
    # Order matters: the first matching prefix wins
    directory_struct: List[UploadRule] = Field(default_factory=list)

    @field_validator('part_size')
    @classmethod
    def validate_part_size(cls, v):
        if v < MIN_PART_SIZE:
            raise ValueError(f'part_size must be at least {MIN_PART_SIZE} bytes (5MB)')
        return v

    @field_validator('bucket')
    @classmethod
    def validate_bucket(cls, v):
        if not v:
            raise ValueError('bucket is required')
        return v

    @property
    def local_directory(self) -> Path:
        return Path(self.local_directory_path).expanduser()

    @classmethod
    def default_path(cls) -> Path:
        """Default location of config.yml (e.g. ~/.config/prefixload/config.yml)."""
        return app_dir() / CONFIG_FILE_NAME

    @classmethod
    def ensure_exists(cls, config_path: Union[str, Path]) -> bool:
        """Write the bundled default configuration if no file exists yet.

        Returns:
            True if a new file was written
        """
        config_path = Path(config_path)
        if config_path.exists():
            return False

        config_path.parent.mkdir(parents=True, exist_ok=True)
        template = resources.files(__package__).joinpath('default_config.yml').read_text(encoding='utf-8')
        config_path.write_text(template, encoding='utf-8')
        return True

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "PrefixloadConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        config_data = _load_yaml(config_path)
        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")

        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {config_path}:\n{e}") from e

    def to_yaml(self, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file, keeping a .bak copy of the previous one."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        self.backup(config_path)

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False, sort_keys=False, indent=2)

    @staticmethod
    def backup(config_path: Union[str, Path]) -> Optional[Path]:
        """Copy config.yml to config.yml.bak.

        Returns:
            Backup path, or None if there was nothing to back up
        """
        config_path = Path(config_path)
        if not config_path.exists():
            return None

        backup_path = config_path.with_name(config_path.name + '.bak')
        shutil.copyfile(config_path, backup_path)
        return backup_path

    def update(self, **fields) -> List[str]:
        """Set the given top-level fields, ignoring None values.

        Returns:
            Names of the fields that were changed
        """
        changed = []
        for name, value in fields.items():
            if value is None:
                continue
            try:
                setattr(self, name, value)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid value for {name}: {value!r}\n{e}") from e
            changed.append(name)
        return changed

    def get_rule(self, prefix_file: str) -> Optional[UploadRule]:
        """Get upload rule by its prefix."""
        for rule in self.directory_struct:
            if rule.prefix_file == prefix_file:
                return rule
        return None

    def add_rule(self, prefix_file: str, cloud_dir: str) -> bool:
        """Append an upload rule.

        Returns:
            False if a rule with the same prefix already exists
        """
        if self.get_rule(prefix_file) is not None:
            return False
        try:
            rule = UploadRule(prefix_file=prefix_file, cloud_dir=cloud_dir)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid upload rule:\n{e}") from e
        self.directory_struct = [*self.directory_struct, rule]
        return True

    def remove_rule(self, prefix_file: str) -> bool:
        """Remove the upload rule with this prefix.

        Returns:
            False if no such rule exists
        """
        remaining = [rule for rule in self.directory_struct if rule.prefix_file != prefix_file]
        if len(remaining) == len(self.directory_struct):
            return False
        self.directory_struct = remaining
        return True


class CredentialsConfig(BaseModel):
    """S3 credentials (stored separately from the main configuration)."""
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    session_token: Optional[str] = None

    @property
    def has_keys(self) -> bool:
        return bool(self.access_key and self.secret_key)

    @classmethod
    def default_path(cls) -> Path:
        return app_dir() / CREDENTIALS_FILE_NAME

    @classmethod
    def from_yaml(cls, credentials_path: Union[str, Path]) -> "CredentialsConfig":
        """Load credentials from YAML file."""
        credentials_path = Path(credentials_path)
        if not credentials_path.exists():
            return cls()  # Return empty config if file doesn't exist

        creds_data = _load_yaml(credentials_path) or {}
        try:
            return cls(**creds_data)
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid credentials file {credentials_path}: {e}") from e

    @classmethod
    def from_env(cls) -> "CredentialsConfig":
        """Load credentials from environment variables."""
        return cls(
            access_key=os.getenv('AWS_ACCESS_KEY_ID'),
            secret_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
            session_token=os.getenv('AWS_SESSION_TOKEN')
        )

    def merged_with(self, fallback: "CredentialsConfig") -> "CredentialsConfig":
        """Fill unset fields from another credentials source."""
        return CredentialsConfig(
            access_key=self.access_key or fallback.access_key,
            secret_key=self.secret_key or fallback.secret_key,
            session_token=self.session_token or fallback.session_token
        )

    def to_yaml(self, credentials_path: Union[str, Path]) -> None:
        """Save credentials to YAML file readable only by the owner."""
        credentials_path = Path(credentials_path)
        credentials_path.parent.mkdir(parents=True, exist_ok=True)

        with open(credentials_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.model_dump(exclude_none=True), f, default_flow_style=False)
        os.chmod(credentials_path, 0o600)
