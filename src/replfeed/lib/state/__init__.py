"""On-disk state: paths and the preferences store."""

from replfeed.lib.state.paths import StatePaths, resolve_home, resolve_state_paths
from replfeed.lib.state.prefs_store import PrefsStore, RetainedPrefs

__all__ = ["PrefsStore", "RetainedPrefs", "StatePaths", "resolve_home", "resolve_state_paths"]
