from __future__ import annotations

from dataclasses import asdict, dataclass, replace
import json
from pathlib import Path
import tempfile
from typing import Any

from .locator_generator import ANCESTOR_DEPTH
from .models import DIALECTS, Dialect
from .selector_rules import NAME_TEXT_LIMIT
from .verifier import MARKER_ATTRIBUTE

CONFIG_DIR = Path.home() / ".locatorpicker"
CONFIG_PATH = CONFIG_DIR / "config.json"


@dataclass(frozen=True, slots=True)
class PickerSettings:
    dialect: Dialect = "pytest"
    text_limit: int = NAME_TEXT_LIMIT
    ancestor_depth: int = ANCESTOR_DEPTH
    marker_attribute: str = MARKER_ATTRIBUTE
    log_to_file: bool = False


def _coerce_dialect(raw: Any) -> Dialect:
    value = str(raw or "").strip().lower()
    if value in {"javascript", "typescript", "ts"}:
        value = "js"
    if value == "python":
        value = "pytest"
    return value if value in DIALECTS else "pytest"  # type: ignore[return-value]


def _coerce_positive_int(raw: Any, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def settings_from_mapping(payload: dict[str, Any]) -> PickerSettings:
    defaults = PickerSettings()
    marker = str(payload.get("marker_attribute", "") or "").strip() or defaults.marker_attribute
    return PickerSettings(
        dialect=_coerce_dialect(payload.get("dialect", defaults.dialect)),
        text_limit=_coerce_positive_int(payload.get("text_limit"), defaults.text_limit),
        ancestor_depth=_coerce_positive_int(payload.get("ancestor_depth"), defaults.ancestor_depth),
        marker_attribute=marker,
        log_to_file=bool(payload.get("log_to_file", False)),
    )


def load_settings(config_path: Path | None = None) -> PickerSettings:
    path = config_path or CONFIG_PATH
    if not path.exists() or not path.is_file():
        return PickerSettings()

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, TypeError):
        return PickerSettings()

    if not isinstance(payload, dict):
        return PickerSettings()
    return settings_from_mapping(payload)


def save_settings(settings: PickerSettings, config_path: Path | None = None) -> tuple[bool, str | None]:
    path = config_path or CONFIG_PATH

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return False, f"Could not create config folder: {exc}"

    payload = json.dumps(asdict(settings), ensure_ascii=True, indent=2, sort_keys=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            handle.write(payload)
            handle.flush()
            temp_path = Path(handle.name)

        if temp_path is None:
            return False, "Could not create temporary config file."
        temp_path.replace(path)
    except OSError as exc:
        if temp_path and temp_path.exists():
            temp_path.unlink(missing_ok=True)
        return False, f"Could not write settings: {exc}"

    return True, None


def update_setting(settings: PickerSettings, key: str, raw_value: str) -> PickerSettings:
    """Return a copy with one field changed from CLI text; unknown keys raise KeyError."""
    if key not in PickerSettings.__dataclass_fields__:
        raise KeyError(key)
    payload = asdict(settings)
    if key == "log_to_file":
        payload[key] = raw_value.strip().lower() in {"1", "true", "yes", "on"}
    else:
        payload[key] = raw_value
    updated = settings_from_mapping(payload)
    return replace(settings, **{key: getattr(updated, key)})
