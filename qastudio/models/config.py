"""Configuration model for the QA studio."""

from __future__ import annotations

import getpass
import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from qastudio.ai.client import DEFAULT_MODEL
from qastudio.models.session import ArtifactScope


class StudioConfig(BaseModel):
    # Storage
    data_dir: str = "./.qa-studio"

    # Identity of the local user; sessions are filtered by owner
    user_id: Optional[str] = None

    # AI settings
    ai_model: str = DEFAULT_MODEL
    ai_analysis_model: Optional[str] = None  # falls back to ai_model
    ai_max_tokens: int = 16000
    ai_api_key: Optional[str] = None

    # Generation defaults
    default_scope: ArtifactScope = ArtifactScope.ALL
    more_cases_count: int = Field(default=3, ge=1, le=20)

    # History
    recent_url_limit: int = 5

    @field_validator("ai_api_key", mode="before")
    @classmethod
    def resolve_env_key(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v

    @property
    def sessions_path(self) -> Path:
        return Path(self.data_dir) / "sessions.json"

    @property
    def history_path(self) -> Path:
        return Path(self.data_dir) / "recent_urls.json"

    @property
    def debug_dir(self) -> Path:
        return Path(self.data_dir) / "debug"

    def resolved_user_id(self) -> str:
        """Configured user id, or the login name of the current OS user."""
        if self.user_id:
            return self.user_id
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            return "local"

    @classmethod
    def load(cls, path: str | Path) -> "StudioConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def load_or_default(cls, path: str | Path) -> "StudioConfig":
        """Load config when the file exists, otherwise return defaults."""
        path = Path(path)
        if path.exists():
            return cls.load(path)
        return cls()

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json", exclude={"ai_api_key"}), f, indent=2)
