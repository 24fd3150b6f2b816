"""
Utility functions for Snowbasin.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from rich.console import Console

from src.utilities.config import SnowbasinConfig, get_config

console = Console()

# Logger instance - will be configured by config
logger = logging.getLogger("snowbasin")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: SnowbasinConfig) -> None:
    """Setup logging based on configuration"""
    level_map = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }
    level = level_map[config.logging.level.value]

    # Module loggers live under "src" and "backend"; route them through one root config
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    # Console handler
    if config.logging.log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console_handler)

    # File handler
    if config.logging.log_to_file:
        ensure_directory(os.path.dirname(config.logging.log_file_path) or ".")
        file_handler = logging.FileHandler(config.logging.log_file_path)
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def ensure_config(config: Optional[SnowbasinConfig] = None) -> SnowbasinConfig:
    """Return the given config or a default one."""
    return config if config is not None else get_config()


def log_info(message: str, verbose_only: bool = False, config: Optional[SnowbasinConfig] = None):
    """Log info message. If verbose_only=True, only shows in verbose mode."""
    if not verbose_only or (config and config.logging.verbose):
        console.print(f"[bold cyan]ℹ️  {message}[/bold cyan]")
        logger.info(message)


def log_success(message: str, verbose_only: bool = False, config: Optional[SnowbasinConfig] = None):
    """Log success message. If verbose_only=True, only shows in verbose mode."""
    if not verbose_only or (config and config.logging.verbose):
        console.print(f"[bold green]✅ {message}[/bold green]")
        logger.info(f"SUCCESS: {message}")


def log_warning(message: str, verbose_only: bool = False, config: Optional[SnowbasinConfig] = None):
    """Log warning message. If verbose_only=True, only shows in verbose mode."""
    if not verbose_only or (config and config.logging.verbose):
        console.print(f"[bold yellow]⚠️  {message}[/bold yellow]")
        logger.warning(message)


def log_error(message: str, verbose_only: bool = False, config: Optional[SnowbasinConfig] = None):
    """Log error message. If verbose_only=True, only shows in verbose mode."""
    if not verbose_only or (config and config.logging.verbose):
        console.print(f"[bold red]❌ {message}[/bold red]")
        logger.error(message)


def ensure_directory(path: str) -> Path:
    """
    Ensures directory exists, creates if necessary.

    Args:
        path: Directory path to ensure

    Returns:
        Path object
    """
    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj
