"""Game server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.auth.password import HasherName  # noqa: TC001
from shared.validators import StringListEnvSettingsSource, parse_string_list, parse_username_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class GameServerSettings(BaseSettings):
    model_config = {"env_prefix": "GAME_"}

    state_file: str = Field(default="backend/data/game-state.json", min_length=1)
    log_dir: str = Field(default="backend/logs/game", min_length=1)
    autosave_interval_seconds: float = Field(default=120, ge=1)
    cors_origins: list[str] = ["http://localhost:8712"]
    # Registrations under these names become superadmins.
    superadmin_usernames: list[str] = []
    password_hasher: HasherName = "bcrypt"
    max_rooms: int = Field(default=100, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @field_validator("superadmin_usernames", mode="before")
    @classmethod
    def validate_superadmin_usernames(cls, v: str | list[str]) -> list[str]:
        return parse_username_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
