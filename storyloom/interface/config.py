"""
User configuration persistence.

Stores settings like the enhancement backend and strict mode in a JSON
file inside the saves directory.
"""

import json
import logging
from pathlib import Path
from typing import TypedDict


logger = logging.getLogger(__name__)


class Config(TypedDict, total=False):
    """User configuration."""
    backend: str  # none, lmstudio, ollama, openai
    model: str | None  # Model name for the backend
    base_url: str | None  # Override the backend preset URL
    enhance: bool  # Regenerate short node text with the backend
    strict: bool  # Report unknown conditions/effects instead of ignoring them
    seed: int | None  # Skill check seed; None for a fresh seed each run


DEFAULT_CONFIG: Config = {
    "backend": "none",
    "model": None,
    "base_url": None,
    "enhance": False,
    "strict": False,
    "seed": None,
}


def get_config_path(saves_dir: Path | str = "saves") -> Path:
    """Get path to config file."""
    return Path(saves_dir) / ".storyloom_config.json"


def load_config(saves_dir: Path | str = "saves") -> Config:
    """Load config from file, or return defaults if not found."""
    path = get_config_path(saves_dir)

    if not path.exists():
        return DEFAULT_CONFIG.copy()

    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return DEFAULT_CONFIG.copy()

    # Merge with defaults to handle missing keys
    config = DEFAULT_CONFIG.copy()
    if isinstance(saved, dict):
        config.update({k: v for k, v in saved.items() if k in DEFAULT_CONFIG})
    return config


def save_config(config: Config, saves_dir: Path | str = "saves") -> bool:
    """Save config to file. Returns True on success."""
    path = get_config_path(saves_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        return True
    except OSError as e:
        logger.warning("Could not write config %s: %s", path, e)
        return False


def set_backend(backend: str, saves_dir: Path | str = "saves") -> None:
    """Save backend preference."""
    config = load_config(saves_dir)
    config["backend"] = backend
    save_config(config, saves_dir)


def set_model(model: str | None, saves_dir: Path | str = "saves") -> None:
    """Save model preference."""
    config = load_config(saves_dir)
    config["model"] = model
    save_config(config, saves_dir)


def set_strict(strict: bool, saves_dir: Path | str = "saves") -> None:
    """Save strict mode preference."""
    config = load_config(saves_dir)
    config["strict"] = strict
    save_config(config, saves_dir)
