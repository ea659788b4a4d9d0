"""
Workspace settings with an explicit, invalidatable cache.

SettingsCache lazy-loads every setting of a workspace on first use and keeps
it until invalidate() is called by the settings update path. One instance is
registered per app on app.extensions['settings_cache'].
"""

import json
import logging
import threading
from typing import Callable, Dict, Optional

from flask import current_app
from sqlalchemy import select

from models import db, Setting
from services.errors import ValidationError
from utils.db import atomic, retry_on_conflict

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, str] = {
    'DEFAULT_PROJ_PREFIX': 'PROJ-',
    'DEFAULT_TASK_PREFIX': 'TASK-',
    'DEFAULT_FINISHED_COLUMN_NAMES': '["Done", "Completed", "Finished"]',
    'HIGHLIGHT_OVERDUE_TASKS': 'true',
}

MAX_KEY_LENGTH = 128
MAX_PREFIX_LENGTH = 16
PREFIX_KEYS = ('DEFAULT_PROJ_PREFIX', 'DEFAULT_TASK_PREFIX')


def load_workspace_settings(workspace_id: str) -> Dict[str, str]:
    """Defaults overlaid with the rows stored for the workspace."""
    values = dict(DEFAULT_SETTINGS)
    rows = db.session.execute(
        select(Setting.key, Setting.value).where(Setting.workspace_id == workspace_id)
    )
    for key, value in rows:
        if value is not None:
            values[key] = value
    return values


class SettingsCache:
    """Per-process memo of workspace settings."""

    def __init__(self, loader: Optional[Callable[[str], Dict[str, str]]] = None):
        self._loader = loader or load_workspace_settings
        self._values: Dict[str, Dict[str, str]] = {}
        # bumped by invalidate(); a load only lands if nothing bumped it meanwhile
        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    def _generation(self, workspace_id: str):
        return self._epoch, self._generations.get(workspace_id, 0)

    def get(self, workspace_id: str, key: Optional[str] = None, default: Optional[str] = None):
        """All settings of a workspace, or one value when `key` is given."""
        with self._lock:
            values = self._values.get(workspace_id)
            generation = self._generation(workspace_id)
        if values is None:
            values = self._loader(workspace_id)
            with self._lock:
                if self._generation(workspace_id) == generation:
                    self._values[workspace_id] = values
            logger.debug(f"Loaded {len(values)} settings for workspace {workspace_id}")
        if key is None:
            return dict(values)
        return values.get(key, default)

    def invalidate(self, workspace_id: Optional[str] = None):
        """Drop one workspace (or everything) so the next get() reloads."""
        with self._lock:
            if workspace_id is None:
                self._values.clear()
                self._epoch += 1
            else:
                self._values.pop(workspace_id, None)
                self._generations[workspace_id] = self._generations.get(workspace_id, 0) + 1
        logger.info(f"Settings cache invalidated for {workspace_id or 'all workspaces'}")

    def init_app(self, app):
        app.extensions['settings_cache'] = self
        return self


def get_settings_cache() -> SettingsCache:
    return current_app.extensions['settings_cache']


def get_setting(workspace_id: str, key: str, default: Optional[str] = None) -> Optional[str]:
    return get_settings_cache().get(workspace_id, key, default if default is not None else DEFAULT_SETTINGS.get(key))


def get_json_setting(workspace_id: str, key: str, default=None):
    raw = get_setting(workspace_id, key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Setting {key} for workspace {workspace_id} is not valid JSON")
        return default


@retry_on_conflict
def update_setting(workspace_id: str, key: str, value) -> Setting:
    """Create or overwrite one setting and invalidate the cached copy."""
    if not isinstance(key, str) or not key.strip() or len(key) > MAX_KEY_LENGTH:
        raise ValidationError("Setting key is required")
    if value is not None and not isinstance(value, str):
        value = json.dumps(value)

    key = key.strip()
    if key in PREFIX_KEYS and (not value or len(value) > MAX_PREFIX_LENGTH):
        raise ValidationError(f"{key} must be 1 to {MAX_PREFIX_LENGTH} characters")

    with atomic():
        setting = db.session.get(Setting, (workspace_id, key))
        if setting is None:
            setting = Setting(workspace_id=workspace_id, key=key)
            db.session.add(setting)
        setting.value = value

    get_settings_cache().invalidate(workspace_id)
    logger.info(f"Setting {key} updated for workspace {workspace_id}")
    return setting
