from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .utils import PX_GRID, PX_PER_MM, MIN_ELEMENT_W, MIN_ELEMENT_H, BOUNDARY_W, BOUNDARY_H

logger = logging.getLogger(__name__)

PACKAGE_PATH = Path(__file__).resolve().parent
SAMPLE_LAYOUTS_PATH = PACKAGE_PATH / "data" / "sample_layouts.json"
DEFAULT_STORAGE_PATH = Path.home() / ".retail_planner" / "layouts.json"
ENV_PREFIX = "RETAIL_PLANNER_"


@dataclass
class EditorConfig:
    grid_size: float = PX_GRID
    snap_to_grid: bool = True
    px_per_mm: float = PX_PER_MM
    min_width: float = MIN_ELEMENT_W
    min_height: float = MIN_ELEMENT_H
    rotation_limit: Optional[float] = None
    history_limit: int = 100
    boundary_width: float = BOUNDARY_W
    boundary_height: float = BOUNDARY_H
    storage_path: str = str(DEFAULT_STORAGE_PATH)
    sample_path: str = str(SAMPLE_LAYOUTS_PATH)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    analysis_url: Optional[str] = None
    log_level: str = "INFO"

    @property
    def remote_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


_POSITIVE = ("grid_size", "px_per_mm", "min_width", "min_height",
             "history_limit", "boundary_width", "boundary_height")


def _coerce(name: str, raw, default):
    if raw is None:
        return None
    if name == "rotation_limit":
        if str(raw).strip().lower() in ("", "none", "off"):
            return None
        return abs(float(raw))
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return str(raw)


def _apply(cfg: EditorConfig, values: dict, source: str):
    defaults = EditorConfig()
    for f in fields(EditorConfig):
        if f.name not in values:
            continue
        try:
            value = _coerce(f.name, values[f.name], getattr(defaults, f.name))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid %s=%r from %s", f.name, values[f.name], source)
            continue
        if f.name in _POSITIVE and (value is None or value <= 0):
            logger.warning("Ignoring non-positive %s=%r from %s", f.name, values[f.name], source)
            continue
        setattr(cfg, f.name, value)


def load_config(path: Optional[str] = None, env_file: Optional[str] = None) -> EditorConfig:
    """Defaults <- JSON file <- environment (``.env`` is read first)."""
    cfg = EditorConfig()

    if path and Path(path).exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                _apply(cfg, data, path)
            else:
                logger.warning("Config %s is not a JSON object, using defaults", path)
        except (OSError, ValueError):
            logger.exception("Failed to read config %s, using defaults", path)

    load_dotenv(env_file)
    env = {}
    for f in fields(EditorConfig):
        key = ENV_PREFIX + f.name.upper()
        if key in os.environ:
            env[f.name] = os.environ[key]
    if "supabase_url" not in env and os.environ.get("SUPABASE_URL"):
        env["supabase_url"] = os.environ["SUPABASE_URL"]
    if "supabase_key" not in env and os.environ.get("SUPABASE_KEY"):
        env["supabase_key"] = os.environ["SUPABASE_KEY"]
    _apply(cfg, env, "environment")
    return cfg
