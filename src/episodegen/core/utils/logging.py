"""Configuration du logging pour l'application."""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Configure le logging racine et retourne le logger de l'app.

    Args:
        level: Niveau de log (DEBUG, INFO, WARNING, ERROR).
        log_file: Fichier où écrire les logs (optionnel).
        format_string: Format des messages (optionnel).

    Returns:
        Logger 'episodegen'.
    """
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    root = logging.getLogger()
    root.setLevel(level)

    # Éviter double handlers si rappel
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logger = logging.getLogger("episodegen")
    logger.setLevel(level)
    return logger


def level_from_verbosity(verbosity: int) -> int:
    """0 -> WARNING, 1 -> INFO, 2+ -> DEBUG."""
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG
