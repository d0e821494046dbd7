from __future__ import annotations
import logging
from pathlib import Path
import yaml
from typing import Optional


def configure_logging(config_path: Optional[Path] = None) -> logging.Logger:
    """Configure root logging for an application using ephemera.

    The level comes from the ``log_level`` key of the YAML configuration
    file when present and readable, WARNING otherwise. Returns the package
    logger.
    """
    level = logging.WARNING

    cfg_path = Path(config_path) if config_path else Path('ephemera.yml')
    if cfg_path.exists():
        try:
            with cfg_path.open('r', encoding='utf-8') as _f:
                _cfg = yaml.safe_load(_f) or {}
        except (OSError, yaml.YAMLError):
            _cfg = {}
        _lvl = _cfg.get('log_level') if isinstance(_cfg, dict) else None
        if isinstance(_lvl, str) and isinstance(getattr(logging, _lvl.upper(), None), int):
            level = getattr(logging, _lvl.upper())

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s [%(name)s]: %(message)s')

    # Keep the driver quiet by default
    logging.getLogger('redis').setLevel(logging.WARNING)

    logger = logging.getLogger('ephemera')
    logger.setLevel(level)
    logger.info("Log level set to %s", logging.getLevelName(level))
    return logger
