from __future__ import annotations

import os
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

APP_NAME = "votegate"
DEFAULT_SCHEMA_FILENAME = "physical_model.sql"


def config_yaml_path() -> Path:
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home).expanduser().resolve() / APP_NAME / "config.yaml"
    return (Path.home() / ".config" / APP_NAME / "config.yaml").expanduser().resolve()


def _looks_like_dotenv(path: Path) -> bool:
    if not path.exists() or not path.is_file():
        return False
    try:
        for raw_line in path.read_text().splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            return "=" in line and ":" not in line.split("=", 1)[0]
    except OSError:
        return False
    return False


class GatewaySettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    db_host: str = Field(
        default="localhost",
        validation_alias=AliasChoices("VOTEGATE_DB_HOST", "PGHOST", "db_host"),
    )
    db_port: int = Field(
        default=5432,
        validation_alias=AliasChoices("VOTEGATE_DB_PORT", "PGPORT", "db_port"),
    )
    schema_path: Path = Field(
        default=Path(DEFAULT_SCHEMA_FILENAME),
        validation_alias=AliasChoices("VOTEGATE_SCHEMA_PATH", "schema_path"),
    )
    verbose: bool = Field(
        default=False,
        validation_alias=AliasChoices("VOTEGATE_VERBOSE", "verbose"),
    )
    # When false, optional identifiers are omitted only when absent or null.
    elide_falsy_optionals: bool = Field(
        default=True,
        validation_alias=AliasChoices("VOTEGATE_ELIDE_FALSY_OPTIONALS", "elide_falsy_optionals"),
    )
    drain_on_provision_failure: bool = Field(
        default=True,
        validation_alias=AliasChoices("VOTEGATE_DRAIN_ON_PROVISION_FAILURE", "drain_on_provision_failure"),
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_path = config_yaml_path()
        if _looks_like_dotenv(yaml_path):
            file_config_settings: PydanticBaseSettingsSource = DotEnvSettingsSource(
                settings_cls,
                env_file=yaml_path,
            )
        else:
            file_config_settings = YamlConfigSettingsSource(settings_cls, yaml_file=yaml_path)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_config_settings,
            file_secret_settings,
        )


def load_settings(**overrides: object) -> GatewaySettings:
    return GatewaySettings(**overrides)  # type: ignore[arg-type]
