"""Configuration models for the snapshot harness."""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class HostSize(BaseModel):
    width: float = 375
    height: float = 667


class HarnessConfig(BaseModel):
    # Reference storage
    reference_dir: str = "./snapshots/reference"
    failure_dir: str = "./snapshots/failures"
    record_mode: bool = False

    # Comparison
    default_tolerance: float = Field(default=0.0, ge=0.0, le=1.0)
    pixel_threshold: int = Field(default=0, ge=0, le=255)

    # Layout
    width_frame_height: float = 0.0
    host_size: HostSize = Field(default_factory=HostSize)
    presentation_timeout_seconds: float = Field(default=2.0, gt=0)

    # Expected snapshot backgrounds per color scheme
    light_background: str = "#FFFFFF"
    dark_background: str = "#000000"

    # Reporting
    report_path: str | None = None

    @field_validator("reference_dir", "failure_dir", mode="before")
    @classmethod
    def resolve_env_dir(cls, v: str) -> str:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v

    @classmethod
    def load(cls, path: str | Path) -> "HarnessConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
