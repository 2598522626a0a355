from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from loguru import logger as log

from deribitdash.core.errors import ConfigError


def load_local_environment(
    env_file: Optional[Union[str, Path]] = None,
    override: bool = True,
) -> Optional[Path]:
    """Load DERIBITDASH_* settings (e.g. DERIBITDASH_SUBSCRIBE_URL) from a .env file.

    An explicit env_file must exist. Without one, ./.env is tried first and
    then ~/.deribitdash/.env. Returns the file that was loaded, or None.
    """
    if env_file is not None:
        path = Path(env_file)
        if not path.is_file():
            raise ConfigError(f"env file not found: {path}")
        candidates = [path]
    else:
        candidates = [Path.cwd() / ".env", Path.home() / ".deribitdash" / ".env"]

    for path in candidates:
        if path.is_file():
            load_dotenv(dotenv_path=path, override=override)
            log.debug("Loaded environment from {}", path)
            return path
    return None
