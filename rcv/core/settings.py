# File: rcv/core/settings.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.0
# Status: stable
# Date: 2026-10-18
# Purpose: Persistencia de preferencias de usuario (JSON) + defaults por proyecto (rcv_settings.json -> env).
# Notes: No depende de Qt; guarda en ~/.rcv/settings.json. Las conversaciones NO se persisten.
from __future__ import annotations

import json
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

log = logging.getLogger(__name__)


def settings_dir() -> Path:
    """Carpeta de settings del usuario (ruta simple, sin QStandardPaths)."""
    return Path.home() / ".rcv"


def settings_path() -> Path:
    return settings_dir() / "settings.json"


# ------------------------------
# Env helpers (tolerantes)
# ------------------------------

def env_float(name: str, default: float, *, min_value: float = -1e9, max_value: float = 1e9) -> float:
    try:
        v = float(os.getenv(name, str(default)).strip())
    except (TypeError, ValueError):
        return float(default)
    if v < float(min_value):
        return float(min_value)
    if v > float(max_value):
        return float(max_value)
    return float(v)


def env_bool(name: str, default: bool) -> bool:
    """Lee un booleano desde env (tolerante)."""
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    s = str(raw).strip().lower()
    if s in ("1", "true", "yes", "y", "on"):
        return True
    if s in ("0", "false", "no", "n", "off"):
        return False
    return bool(default)


# ------------------------------
# Project settings (repo-local)
# ------------------------------
# Defaults reproducibles por proyecto (no por usuario) sin tocar el código.
PROJECT_SETTINGS_FILENAME = "rcv_settings.json"


def find_project_settings_path(start: Path | None = None) -> Path | None:
    """Busca rcv_settings.json subiendo desde start (o CWD)."""
    start = (start or Path.cwd()).resolve()
    for p in (start, *start.parents):
        candidate = p / PROJECT_SETTINGS_FILENAME
        if candidate.is_file():
            return candidate
    return None


def _deep_get(d: Dict[str, Any], path: str, default: Any = None) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def apply_project_settings(
    *,
    start: Path | None = None,
    logger: logging.Logger | None = None,
    prefer_env: bool = True,
) -> Dict[str, Any]:
    """Carga rcv_settings.json (si existe) y aplica overrides vía variables de entorno.

    Los consumidores (canvas / main window) leen env vars; así quedan desacoplados de este módulo.

    - Si `prefer_env=True`, una env var ya seteada NO se pisa.
    - Si `prefer_env=False`, el JSON pisa la env var.

    Devuelve un dict con los valores *aplicados desde JSON*.
    """
    _log = logger or log
    p = find_project_settings_path(start)
    if not p:
        return {}

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _log.warning("No se pudo leer %s: %s", p, e)
        return {}
    if not isinstance(data, dict):
        _log.warning("%s: se esperaba un objeto JSON", p)
        return {}

    applied: Dict[str, Any] = {}

    def _set_env(key: str, value: Any) -> None:
        if prefer_env and os.environ.get(key):
            return
        os.environ[key] = str(value)

    theme = _deep_get(data, "ui.canvas.theme")
    if isinstance(theme, str):
        theme = theme.strip().lower()
        if theme in VALID_CANVAS_THEMES:
            applied["ui.canvas.theme"] = theme
            _set_env("RCV_CANVAS_THEME", theme)

    # Pan por rueda: multiplicador del delta (1.0 = sigue el gesto tal cual)
    sens = _deep_get(data, "ui.canvas.wheel_sensitivity")
    if isinstance(sens, (int, float)) and not isinstance(sens, bool):
        sens = float(sens)
        if 0.1 <= sens <= 5.0:
            applied["ui.canvas.wheel_sensitivity"] = sens
            _set_env("RCV_WHEEL_SENSITIVITY", sens)

    labels = _deep_get(data, "ui.canvas.level_labels")
    if isinstance(labels, bool):
        applied["ui.canvas.level_labels"] = labels
        _set_env("RCV_LEVEL_LABELS", "1" if labels else "0")

    gl = _deep_get(data, "ui.canvas.opengl")
    if isinstance(gl, bool):
        applied["ui.canvas.opengl"] = gl
        _set_env("RCV_CANVAS_OPENGL", "1" if gl else "0")

    if applied:
        _log.info("Project settings aplicados desde %s: %s", p, applied)
    return applied


# Temas válidos para el lienzo (CanvasView). Mantener en sync con CanvasView.THEME_PRESETS.
VALID_CANVAS_THEMES = ("dark", "mid", "light")


@dataclass
class AppSettings:
    """Preferencias persistentes del usuario."""

    canvas_theme: str = "light"
    wheel_sensitivity: float = 1.0
    show_level_labels: bool = True

    # ------------------------------
    # UI (Qt): persistencia de layout
    # ------------------------------
    # Se guardan como base64 (bytes->str) para evitar dependencia fuerte a Qt.
    ui_main_geometry_b64: str = ""
    ui_main_state_b64: str = ""
    ui_splitter_b64: str = ""

    @classmethod
    def load(cls) -> "AppSettings":
        p = settings_path()
        out = cls()
        # Defaults de proyecto (env) antes que los del usuario.
        out.canvas_theme = _coerce_canvas_theme(os.environ.get("RCV_CANVAS_THEME", out.canvas_theme))
        out.wheel_sensitivity = env_float("RCV_WHEEL_SENSITIVITY", out.wheel_sensitivity, min_value=0.1, max_value=5.0)
        out.show_level_labels = env_bool("RCV_LEVEL_LABELS", out.show_level_labels)
        try:
            if not p.exists():
                return out
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            log.debug("No se pudieron cargar settings: %s", p, exc_info=True)
            return out
        if not isinstance(data, dict):
            return out

        out.canvas_theme = _coerce_canvas_theme(data.get("canvas_theme", out.canvas_theme))
        out.wheel_sensitivity = _coerce_float(data.get("wheel_sensitivity", out.wheel_sensitivity), 0.1, 5.0, out.wheel_sensitivity)
        out.show_level_labels = bool(data.get("show_level_labels", out.show_level_labels))

        # UI state (opcional)
        out.ui_main_geometry_b64 = str(data.get("ui_main_geometry_b64", "") or "")
        out.ui_main_state_b64 = str(data.get("ui_main_state_b64", "") or "")
        out.ui_splitter_b64 = str(data.get("ui_splitter_b64", "") or "")
        return out

    def save(self) -> bool:
        """Guarda settings en disco. No debe romper la app: devuelve False si falla."""
        payload: Dict[str, Any] = {
            "schema_version": 1,
            "canvas_theme": _coerce_canvas_theme(self.canvas_theme),
            "wheel_sensitivity": _coerce_float(self.wheel_sensitivity, 0.1, 5.0, 1.0),
            "show_level_labels": bool(self.show_level_labels),
            "ui_main_geometry_b64": str(self.ui_main_geometry_b64 or ""),
            "ui_main_state_b64": str(self.ui_main_state_b64 or ""),
            "ui_splitter_b64": str(self.ui_splitter_b64 or ""),
        }
        try:
            settings_dir().mkdir(parents=True, exist_ok=True)
            settings_path().write_text(
                json.dumps(payload, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            return True
        except OSError:
            log.debug("No se pudieron guardar settings", exc_info=True)
            return False


def _coerce_canvas_theme(v: Any) -> str:
    s = str(v or "").strip().lower()
    if s in VALID_CANVAS_THEMES:
        return s
    return "light"


def _coerce_float(v: Any, min_v: float, max_v: float, default: float) -> float:
    try:
        n = float(v)
    except (TypeError, ValueError):
        return float(default)
    if n < min_v:
        return float(min_v)
    if n > max_v:
        return float(max_v)
    return n
