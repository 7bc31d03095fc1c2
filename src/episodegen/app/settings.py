"""Réglages applicatifs : lecture / écriture du fichier TOML, clé API depuis l'environnement."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from episodegen.core.generation.pacing import DelayPolicy
from episodegen.core.models import ConfigError, ExportOptions, GenerationConfig

logger = logging.getLogger(__name__)

API_KEY_ENV = "EPISODEGEN_API_KEY"
DEFAULT_MODEL = "deepseek-ai/DeepSeek-V2.5"
DEFAULT_ENDPOINT = "http://localhost:3000/api/siliconflow"


@dataclass(frozen=True)
class ApiSettings:
    """Accès au proxy de génération."""

    endpoint: str = DEFAULT_ENDPOINT
    api_key: str = ""
    timeout_s: float = 60.0
    retries: int = 1


@dataclass(frozen=True)
class AppSettings:
    generation: GenerationConfig = field(default_factory=lambda: GenerationConfig(model=DEFAULT_MODEL))
    api: ApiSettings = field(default_factory=ApiSettings)
    export: ExportOptions = field(default_factory=ExportOptions)
    pacing: DelayPolicy = field(default_factory=DelayPolicy)


def read_toml(path: Path) -> dict[str, Any]:
    """Lit un fichier TOML (stdlib tomllib en 3.11+)."""
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore
    with open(path, "rb") as file_obj:
        try:
            return tomllib.load(file_obj)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"{path}: invalid TOML ({e})") from e


_TOML_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


def _toml_string(value: str) -> str:
    """Chaîne TOML basique ; autres caractères de contrôle en \\uXXXX."""
    parts: list[str] = []
    for ch in value:
        if ch in _TOML_ESCAPES:
            parts.append(_TOML_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            parts.append(f"\\u{ord(ch):04X}")
        else:
            parts.append(ch)
    return '"' + "".join(parts) + '"'


def _toml_value(value: Any) -> str:
    if isinstance(value, str):
        return _toml_string(value)
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return f"{value}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    return _toml_string(str(value))


def write_toml(path: Path, data: dict[str, dict[str, Any]]) -> None:
    """Écrit un fichier TOML à un niveau de tables (écriture manuelle pour éviter une dépendance)."""
    lines: list[str] = []
    for table, values in data.items():
        if lines:
            lines.append("")
        lines.append(f"[{table}]")
        for key, value in values.items():
            if value is None:
                continue
            lines.append(f"{key} = {_toml_value(value)}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _table(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _number(table: Mapping[str, Any], key: str, default: float) -> float:
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    return float(value)


def _bool(table: Mapping[str, Any], key: str, default: bool) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _generation_config(table: Mapping[str, Any]) -> GenerationConfig:
    length = table.get("summary_length", [20, 30])
    if not isinstance(length, (list, tuple)) or len(length) != 2 or not all(isinstance(v, int) for v in length):
        raise ConfigError(f"summary_length must be [min, max], got {length!r}")
    styles = table.get("selected_styles", ["crunchyroll"])
    if isinstance(styles, str):
        styles = [styles]
    if not isinstance(styles, (list, tuple)):
        raise ConfigError(f"selected_styles must be a list, got {styles!r}")
    return GenerationConfig(
        model=str(table.get("model") or DEFAULT_MODEL),
        summary_length=(length[0], length[1]),
        selected_styles=tuple(str(s) for s in styles),
        selected_title_style=(str(table.get("selected_title_style") or "") or None),
        temperature=_number(table, "temperature", 0.7),
        custom_prompt=str(table.get("custom_prompt") or ""),
    )


def settings_from_dict(data: Mapping[str, Any], *, env: Mapping[str, str] | None = None) -> AppSettings:
    """Construit AppSettings depuis les tables [generation], [api], [export], [pacing]."""
    env = os.environ if env is None else env
    api = _table(data, "api")
    export = _table(data, "export")
    pacing = _table(data, "pacing")
    api_key = (env.get(API_KEY_ENV) or "").strip() or str(api.get("api_key") or "")
    retries = api.get("retries", 1)
    if isinstance(retries, bool) or not isinstance(retries, int) or retries < 1:
        raise ConfigError(f"retries must be a positive integer, got {retries!r}")
    return AppSettings(
        generation=_generation_config(_table(data, "generation")),
        api=ApiSettings(
            endpoint=str(api.get("endpoint") or DEFAULT_ENDPOINT),
            api_key=api_key,
            timeout_s=_number(api, "timeout_s", 60.0),
            retries=retries,
        ),
        export=ExportOptions(
            include_title=_bool(export, "include_title", True),
            include_overview=_bool(export, "include_overview", True),
            include_runtime=_bool(export, "include_runtime", True),
        ),
        pacing=DelayPolicy(
            style_delay_s=_number(pacing, "style_delay_s", 0.5),
            episode_delay_s=_number(pacing, "episode_delay_s", 1.5),
            min_request_interval_s=_number(pacing, "min_request_interval_s", 0.0),
        ),
    )


def load_settings(path: Path | None = None, *, env: Mapping[str, str] | None = None) -> AppSettings:
    """
    Charge les réglages. Fichier absent (ou path None) : valeurs par défaut.
    EPISODEGEN_API_KEY, si défini, remplace api_key du fichier.
    Lève ConfigError si le fichier est invalide.
    """
    data: dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if path.exists():
            data = read_toml(path)
        else:
            logger.warning("Settings file not found: %s (using defaults)", path)
    return settings_from_dict(data, env=env)


def save_settings(settings: AppSettings, path: Path) -> None:
    """Écrit les réglages (action de sauvegarde explicite, dernière écriture gagne)."""
    gen = settings.generation
    write_toml(
        Path(path),
        {
            "generation": {
                "model": gen.model,
                "summary_length": list(gen.summary_length),
                "selected_styles": list(gen.selected_styles),
                "selected_title_style": gen.selected_title_style or "",
                "temperature": gen.temperature,
                "custom_prompt": gen.custom_prompt,
            },
            "api": {
                "endpoint": settings.api.endpoint,
                "api_key": settings.api.api_key,
                "timeout_s": settings.api.timeout_s,
                "retries": settings.api.retries,
            },
            "export": {
                "include_title": settings.export.include_title,
                "include_overview": settings.export.include_overview,
                "include_runtime": settings.export.include_runtime,
            },
            "pacing": {
                "style_delay_s": settings.pacing.style_delay_s,
                "episode_delay_s": settings.pacing.episode_delay_s,
                "min_request_interval_s": settings.pacing.min_request_interval_s,
            },
        },
    )
    logger.info("Settings saved to %s", path)
