"""
Runtime configuration.
Values come from config/config.yaml, then .env / environment (UGC_STUDIO_*).
"""
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "UGC_STUDIO_"
DEFAULT_CONFIG_PATH = Path("config/config.yaml")


class StudioSettings(BaseModel):
    """Settings shared by the enhancer, the recorder and the transcoder."""

    ffmpeg_bin: str = Field("ffmpeg", description="ffmpeg executable")
    ffprobe_bin: str = Field("ffprobe", description="ffprobe executable")
    temp_dir: Optional[str] = Field(None, description="Scratch directory (system temp if unset)")

    capture_codec: str = "libvpx-vp9"
    capture_bitrate: str = "6M"
    capture_speed: int = Field(8, description="libvpx -cpu-used value")

    delivery_codec: str = "libx264"
    delivery_preset: str = "veryfast"
    delivery_crf: int = 23
    transcode_timeout: float = 600.0

    font_path: Optional[str] = None
    bold_font_path: Optional[str] = None

    max_output_pixels: int = 80_000_000
    enhance_workers: int = 4
    detection_attempts: int = 2
    log_level: str = "INFO"

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "StudioSettings":
        """
        Build settings from the YAML file and the environment.

        Args:
            config_path: YAML file to read (defaults to config/config.yaml)

        Returns:
            Validated settings
        """
        load_dotenv()
        values: dict[str, Any] = {}

        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            section = data.get("studio", data) if isinstance(data, dict) else {}
            values.update({k: v for k, v in section.items() if k in cls.model_fields})
            logger.debug(f"Configuration loaded from {path}")
        elif config_path:
            logger.warning(f"Config file {path} not found, using defaults")

        for name in cls.model_fields:
            env_value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if env_value is not None:
                values[name] = env_value

        return cls(**values)
