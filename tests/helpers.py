# tests/helpers.py
"""Constants shared by the test modules and fixtures."""

from typing import Any

PROJECT_ID = "test-project"
ID_TOKEN_KID = "test-kid"
ISSUER = f"https://securetoken.google.com/{PROJECT_ID}"

EDITOR_UID = "editor-uid"
OTHER_EDITOR_UID = "other-editor-uid"
ADMIN_UID = "admin-uid"
NO_ACCESS_UID = "no-access-uid"

# Flags are stored in the mixed shapes the account hub produces.
USER_PERMISSIONS: dict[str, dict[str, Any]] = {
    EDITOR_UID: {"social": "true"},
    OTHER_EDITOR_UID: {"social": True},
    ADMIN_UID: {"social": 1, "socialAdmin": True},
    NO_ACCESS_UID: {"social": False, "socialAdmin": "no"},
}

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64
