"""
linedraw Configuration
======================

This module handles configuration loading for the CLI and the service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml / linedraw.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    LINEDRAW_SIGMA_R          -> drawing.sigma_r
    LINEDRAW_SIGMA_M          -> drawing.sigma_m
    LINEDRAW_SIGMA_C          -> drawing.sigma_c
    LINEDRAW_RHO              -> drawing.rho
    LINEDRAW_TAU              -> drawing.tau
    LINEDRAW_ETF_KERNEL       -> drawing.etf_kernel_radius
    LINEDRAW_ETF_ITERATIONS   -> drawing.etf_iterations
    LINEDRAW_FDOG_ITERATIONS  -> drawing.fdog_iterations
    LINEDRAW_WORKERS          -> parallel.workers
    LINEDRAW_LOG_LEVEL        -> logging.level
    LINEDRAW_PORT             -> server.port
    PORT                      -> server.port (Cloud Run)

Example:
    from linedraw.config import settings

    print(settings.drawing.tau)
    print(settings.parallel.workers)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from linedraw.flow.scheduler import RowScheduler
from linedraw.models.options import Options


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ParallelConfig(BaseModel):
    """Per-pixel stage parallelism."""

    workers: int = Field(
        default=0,
        ge=0,
        description="Worker threads (0 = CPU count)",
    )
    band_rows: int = Field(
        default=16,
        ge=1,
        description="Image rows per scheduled task",
    )

    def scheduler(self) -> RowScheduler:
        """Build the band scheduler for these settings."""
        return RowScheduler(workers=self.workers, band_rows=self.band_rows)


class OutputConfig(BaseModel):
    """Encoding of results."""

    jpeg_quality: int = Field(default=100, ge=1, le=100, description="JPEG quality")
    flow_preview_suffix: str = Field(
        default="_etf",
        description="Suffix appended to the output stem for the flow preview",
    )
    arrows_suffix: str = Field(
        default="_arrows",
        description="Suffix appended to the output stem for the arrow preview",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")
    max_upload_bytes: int = Field(
        default=20 * 1024 * 1024,
        ge=1,
        description="Largest accepted request body",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for linedraw.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    drawing: Options = Field(default_factory=Options)
    parallel: ParallelConfig = Field(default_factory=ParallelConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to a YAML file. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("linedraw.yaml"),
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


_DRAWING_ENV = {
    "LINEDRAW_SIGMA_R": ("sigma_r", float),
    "LINEDRAW_SIGMA_M": ("sigma_m", float),
    "LINEDRAW_SIGMA_C": ("sigma_c", float),
    "LINEDRAW_RHO": ("rho", float),
    "LINEDRAW_TAU": ("tau", float),
    "LINEDRAW_ETF_KERNEL": ("etf_kernel_radius", int),
    "LINEDRAW_ETF_ITERATIONS": ("etf_iterations", int),
    "LINEDRAW_FDOG_ITERATIONS": ("fdog_iterations", int),
}


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Drawing options
    for env_name, (field, cast) in _DRAWING_ENV.items():
        if env_value := os.environ.get(env_name):
            config_data.setdefault("drawing", {})[field] = cast(env_value)

    # Parallelism
    if env_workers := os.environ.get("LINEDRAW_WORKERS"):
        config_data.setdefault("parallel", {})["workers"] = int(env_workers)

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("LINEDRAW_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("LINEDRAW_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
