"""Ingestion Profile Loader — loads and validates YAML profile files."""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from backend.core.config import settings
from backend.core.errors import ProfileError
from backend.core.ingestion_profile import DEFAULT_PROFILE, IngestionProfile

logger = logging.getLogger(__name__)


def load_profile(profile_name: Optional[str] = None) -> IngestionProfile:
    """Load an ingestion profile from the profiles directory.

    Looks for {profiles_dir}/{profile_name}.yaml. The configured default
    profile falls back to the built-in vocabulary when no file overrides it.
    """
    name = profile_name or settings.default_profile
    profile_path = Path(settings.profiles_dir) / f"{name}.yaml"

    if not profile_path.exists():
        if name == settings.default_profile:
            return DEFAULT_PROFILE
        raise ProfileError(f"Ingestion profile not found: {profile_path}")

    with open(profile_path) as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ProfileError(f"Invalid profile format in {profile_path}: expected a YAML mapping")

    data.setdefault("profile_name", name)
    try:
        profile = IngestionProfile(**data)
    except ValidationError as e:
        raise ProfileError(f"Invalid ingestion profile {profile_path}: {e}") from e

    logger.info(f"Loaded ingestion profile '{name}' ({len(profile.known_columns)} known columns)")
    return profile


def list_profiles() -> list[str]:
    """List available profile names (without .yaml extension)."""
    profiles_dir = Path(settings.profiles_dir)
    if not profiles_dir.exists():
        return []
    return sorted(p.stem for p in profiles_dir.glob("*.yaml") if not p.stem.startswith("_"))
