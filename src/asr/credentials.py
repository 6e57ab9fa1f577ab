"""Gateway credential loading.

Credentials live in an env-style file (``PIE_APP_ID=...``) that is looked up
in a fixed list of locations; the first existing file wins. They are loaded
once at startup and passed explicitly to whatever needs to sign requests.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field

from src.video.errors import MissingCredentialsError

logger = logging.getLogger(__name__)

APP_ID_KEY = "PIE_APP_ID"
APP_SECRET_KEY = "PIE_APP_SECRET"  # noqa: S105
GATEWAY_PATH_KEY = "PIE_GATEWAY_PATH"


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    app_id: str = Field(..., min_length=1)
    app_secret: str = Field(..., min_length=1, repr=False)
    gateway_path: str = Field(..., min_length=1)


def find_credentials_file(search_paths: Sequence[Path]) -> Path | None:
    for candidate in search_paths:
        if candidate.is_file():
            return candidate
    return None


def load_credentials(search_paths: Sequence[Path]) -> Credentials:
    """Load gateway credentials from the first existing credential file.

    Raises
    ------
        MissingCredentialsError: If no file exists or required keys are absent

    """
    env_path = find_credentials_file(search_paths)
    if env_path is None:
        searched = ", ".join(str(p) for p in search_paths)
        raise MissingCredentialsError(
            f"Credential file not found (searched: {searched}). "
            "Create the app credentials first."
        )

    values = {k: (v or "").strip() for k, v in dotenv_values(env_path).items()}
    missing = [
        key
        for key in (APP_ID_KEY, APP_SECRET_KEY, GATEWAY_PATH_KEY)
        if not values.get(key)
    ]
    if missing:
        raise MissingCredentialsError(
            f"Credential file {env_path} is missing: {', '.join(missing)}"
        )

    logger.info(f"Loaded gateway credentials from {env_path}")
    return Credentials(
        app_id=values[APP_ID_KEY],
        app_secret=values[APP_SECRET_KEY],
        gateway_path=values[GATEWAY_PATH_KEY],
    )
