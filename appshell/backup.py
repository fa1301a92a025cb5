"""
backup module

- Exports every known key (theme, recents, app data) into one JSON document.
- Imports such a document: validate, confirm, then overwrite.
- Resets all local data after a double confirmation.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from .exceptions import InvalidBackupError
from .recents import RecencyRecord, RecencyStore, parse_records
from .storage import RECENTS_KEY, THEME_KEY, ScopedStorage, is_shell_key
from .theme import ThemeManager

BACKUP_VERSION = "2.0.0"

ConfirmFn = Callable[[str], bool]


def _isoformat(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_iso(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None


def export_data(
    storage: ScopedStorage,
    theme: Optional[str],
    recents: RecencyStore,
    storage_keys: Iterable[str],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build the backup document.
    
    App values are opaque: valid JSON is embedded as JSON, anything else
    as a raw string.
    
    Args:
        storage: Storage view that can read every app key
        theme: Current theme
        recents: Recency store
        storage_keys: Every known app storage key
        now: Export time (defaults to now, UTC)
        
    Returns:
        Backup document
    """
    data: Dict[str, Any] = {
        "version": BACKUP_VERSION,
        "exportedAt": _isoformat(now or datetime.now(timezone.utc)),
        "theme": theme,
        "recents": [r.to_dict() for r in recents.records()],
        "appData": {},
    }
    
    for key in storage_keys:
        # Theme and recents already have their own fields
        if key in (THEME_KEY, RECENTS_KEY):
            continue
        value = storage.get_item(key)
        if not value:
            continue
        try:
            data["appData"][key] = json.loads(value)
        except json.JSONDecodeError:
            data["appData"][key] = value
    
    return data


def export_filename(now: Optional[datetime] = None) -> str:
    """File name for a backup made on `now`'s date."""
    moment = now or datetime.now(timezone.utc)
    return f"appshell-backup-{moment.date().isoformat()}.json"


def parse_backup(text: str) -> Dict[str, Any]:
    """
    Parse and validate a backup document.
    
    Raises:
        InvalidBackupError: If the text is not JSON, lacks version/exportedAt,
            or carries malformed appData or recents
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidBackupError(f"Backup file is not valid JSON: {e}") from e
    
    if not isinstance(data, dict) or not data.get("version") or not data.get("exportedAt"):
        raise InvalidBackupError("Invalid backup file format")
    if "appData" in data and not isinstance(data["appData"], dict):
        raise InvalidBackupError("Invalid backup file format: appData must be an object")
    if "recents" in data and not isinstance(data["recents"], list):
        raise InvalidBackupError("Invalid backup file format: recents must be a list")
    for entry in data.get("recents") or []:
        try:
            RecencyRecord.from_dict(entry)
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidBackupError(f"Invalid backup file format: malformed recents entry {entry!r}") from e
    return data


@dataclass
class ImportPreview:
    """What an import would overwrite; shown before confirmation."""
    exported_at: str
    changes: List[str] = field(default_factory=list)
    
    @property
    def message(self) -> str:
        moment = _parse_iso(self.exported_at)
        when = moment.date().isoformat() if moment else self.exported_at
        lines = [
            f"Import data from {when}?",
            "",
            "This will overwrite your current data:",
            *[f"• {change}" for change in self.changes],
            "",
            "This action cannot be undone.",
        ]
        return "\n".join(lines)


def preview_import(data: Dict[str, Any]) -> ImportPreview:
    """List what applying `data` would change."""
    changes = []
    if data.get("theme"):
        changes.append(f"Theme: {data['theme']}")
    if data.get("recents"):
        changes.append(f"Recent apps: {len(data['recents'])}")
    app_data = data.get("appData") or {}
    if app_data:
        changes.append(f"App data entries: {len(app_data)}")
    return ImportPreview(exported_at=str(data["exportedAt"]), changes=changes)


def import_data(
    text: str,
    storage: ScopedStorage,
    theme_manager: ThemeManager,
    recents: RecencyStore,
    confirm: ConfirmFn,
) -> bool:
    """
    Validate, confirm, then apply a backup document.
    
    Nothing is written before the user confirms. Every key present in the
    document is overwritten; keys absent from it are left alone.
    
    Args:
        text: Backup file contents
        storage: Storage view that can write every app key
        theme_manager: Applies the imported theme
        recents: Receives the imported recents
        confirm: Shows the preview message, returns True to proceed
        
    Returns:
        True if applied, False if the user declined
        
    Raises:
        InvalidBackupError: If validation fails (nothing is applied)
    """
    data = parse_backup(text)
    preview = preview_import(data)
    
    if not confirm(preview.message):
        return False
    
    if data.get("theme"):
        theme_manager.apply(str(data["theme"]))
    
    if data.get("recents") is not None:
        recents.replace(parse_records(data["recents"]))
    
    for key, value in (data.get("appData") or {}).items():
        serialized = value if isinstance(value, str) else json.dumps(value)
        storage.set_item(key, serialized)
    
    return True


def reset_data(storage: ScopedStorage, storage_keys: Iterable[str], confirm: ConfirmFn) -> bool:
    """
    Delete every known key and every shell-owned key after two confirmations.
    
    Returns:
        True if data was deleted
    """
    message = "\n".join([
        "Are you sure you want to reset all local data?",
        "",
        "This will permanently delete:",
        "• All app data (todos, notes, habits, etc.)",
        "• Your preferences and settings",
        "• Recent apps history",
        "",
        "This action cannot be undone.",
    ])
    if not confirm(message):
        return False
    if not confirm("This is your last chance. Delete ALL data?"):
        return False
    
    for key in storage_keys:
        storage.remove_item(key)
    for key in storage.keys():
        if is_shell_key(key):
            storage.remove_item(key)
    return True
