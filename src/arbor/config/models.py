"""Settings schema for arbor."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

FindCommand = Literal["auto", "fd", "fdfind", "find", "where"]


class FilterSettings(BaseModel):
    show_hidden: bool = Field(default=False, description="Show dotfiles and dot-folders")
    respect_gitignore: bool = Field(default=True, description="Hide entries matched by .gitignore")


class SearchSettings(BaseModel):
    find_command: FindCommand = Field(default="auto", description="External file finder")
    limit: int = Field(default=50, ge=1, le=100000)

    def command(self) -> str | None:
        return None if self.find_command == "auto" else self.find_command


class WatchSettings(BaseModel):
    enabled: bool = Field(default=True)
    debounce_s: float = Field(default=0.25, ge=0.0, le=10.0)


class PathsSettings(BaseModel):
    root_path: str = Field(default_factory=lambda: str(Path.cwd()))

    @field_validator("root_path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        path = Path(value).expanduser()
        return str(path)


class AppSettings(BaseModel):
    schema_version: int = Field(default=1)
    paths: PathsSettings = Field(default_factory=PathsSettings)
    filters: FilterSettings = Field(default_factory=FilterSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)

    def setting_items(self) -> list[tuple[str, str]]:
        """Flatten key/value pairs for display."""

        result: list[tuple[str, str]] = []

        def walk(prefix: str, value: object) -> None:
            if isinstance(value, BaseModel):
                for key in type(value).model_fields:
                    walk(f"{prefix}.{key}" if prefix else key, getattr(value, key))
            else:
                result.append((prefix, str(value)))

        walk("", self)
        return result
