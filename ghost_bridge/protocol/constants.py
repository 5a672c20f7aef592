"""Wire protocol — constants shared by the codec, dispatcher and recorder."""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Stable error codes carried in ``Response.error.code``.

    These values are part of the wire contract and must never be renumbered.
    """

    NOT_FOUND = -1
    INVALID_PARAMS = -2
    PERMISSION_DENIED = -3
    INTERNAL_ERROR = -4
    METHOD_NOT_FOUND = -5


# ---------------------------------------------------------------------------
# Method names
# ---------------------------------------------------------------------------

METHOD_GET_STATE = "getState"
METHOD_GET_APP_STATE = "getAppState"
METHOD_FIND_ELEMENT = "findElement"
METHOD_FIND_ELEMENTS = "findElements"
METHOD_CLICK = "click"
METHOD_TYPE = "type"
METHOD_PRESS = "press"
METHOD_HOTKEY = "hotkey"
METHOD_SCROLL = "scroll"
METHOD_FOCUS = "focus"
METHOD_REFRESH = "refresh"
METHOD_PING = "ping"

METHOD_RECORD_START = "recordStart"
METHOD_RECORD_STOP = "recordStop"
METHOD_RECORD_STATUS = "recordStatus"
METHOD_RUN = "run"
METHOD_RECIPE_LIST = "recipeList"
METHOD_RECIPE_SHOW = "recipeShow"
METHOD_RECIPE_SAVE = "recipeSave"
METHOD_RECIPE_DELETE = "recipeDelete"
METHOD_RECORDING_LIST = "recordingList"
METHOD_RECORDING_SHOW = "recordingShow"

# Methods that manage recording/recipe state (plus the liveness probe).
# They are never captured into a recording.
META_METHODS: frozenset[str] = frozenset(
    {
        METHOD_RECORD_START,
        METHOD_RECORD_STOP,
        METHOD_RECORD_STATUS,
        METHOD_RUN,
        METHOD_RECIPE_LIST,
        METHOD_RECIPE_SHOW,
        METHOD_RECIPE_SAVE,
        METHOD_RECIPE_DELETE,
        METHOD_RECORDING_LIST,
        METHOD_RECORDING_SHOW,
        METHOD_PING,
    }
)

PONG = "pong"

# ---------------------------------------------------------------------------
# Formats
# ---------------------------------------------------------------------------

# Wire / file timestamps (UTC, whole seconds).
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Recording filename suffix; zero-padded so lexicographic order is chronological.
RECORDING_STAMP_FORMAT = "%Y%m%dT%H%M%S"

RECIPE_SCHEMA_VERSION = 1
JSON_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"
