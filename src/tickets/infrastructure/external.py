"""
Ticket External Service Integrations
=====================================

External services for the ticket module:
- YAML SLA policy loader with file watcher (hot reload)
- YAML user directory loader for the in-memory store
"""

import threading
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from src.core import ConfigurationException
from src.shared.infrastructure.logging import get_logger
from src.tickets.application import ISLAPolicyProvider
from src.tickets.domain import SLAPolicy, UserProfile

logger = get_logger(__name__)


class PolicyFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA policy file changes."""

    def __init__(self, policy_manager: "SLAPolicyManager", policy_path: Path):
        self.policy_manager = policy_manager
        self.policy_path = policy_path
        super().__init__()

    def on_modified(self, event):
        """Handle file modification event."""
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.policy_path.resolve():
            logger.info(f"SLA policy file changed: {event.src_path}")
            self.policy_manager.reload()


class SLAPolicyManager(ISLAPolicyProvider):
    """
    Thread-safe SLA policy manager with hot-reload support.

    Uses watchdog to monitor file changes and reload the policy
    without restarting the service. A missing file means defaults.
    """

    def __init__(self):
        self._policy: Optional[SLAPolicy] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SLAPolicy:
        """
        Initial policy load.

        Raises:
            ConfigurationException: If the file exists but is invalid
        """
        self._path = Path(path)
        try:
            policy = self._load_from_file(self._path)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid SLA policy file {self._path}: {e}"
            ) from e

        with self._lock:
            self._policy = policy
        return policy

    def _load_from_file(self, path: Path) -> SLAPolicy:
        """Load and parse YAML policy file."""
        if not path.exists():
            logger.warning(f"SLA policy file not found: {path}, using defaults")
            return SLAPolicy()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return SLAPolicy(**data)

    def reload(self) -> bool:
        """Reload policy from file, keeping the current one on failure."""
        if self._path is None:
            return False

        try:
            new_policy = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            logger.error(f"Failed to reload SLA policy: {e}")
            return False

        with self._lock:
            self._policy = new_policy
        logger.info("SLA policy reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching the policy file for changes.

        Skips watching if the file doesn't exist or the platform
        doesn't support file notifications.
        """
        if self._path is None:
            raise RuntimeError("Policy not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                f"SLA policy file doesn't exist, skipping file watch: {self._path}. "
                "Using default SLA policy."
            )
            return

        try:
            self._observer = Observer()
            handler = PolicyFileHandler(self, self._path)
            self._observer.schedule(
                handler,
                str(self._path.resolve().parent),
                recursive=False
            )
            self._observer.start()
            logger.info(f"Started watching SLA policy file: {self._path}")
        except OSError as e:
            logger.warning(
                f"File watching not available, using static SLA policy: {e}"
            )
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching the policy file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    def get_policy(self) -> SLAPolicy:
        """Get current policy."""
        with self._lock:
            if self._policy is None:
                raise RuntimeError("SLA policy not loaded")
            return self._policy


class UserRecord(BaseModel):
    """One entry of the user directory file."""
    id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    country: Optional[str] = None
    team_id: Optional[str] = None


class UserDirectoryFile(BaseModel):
    users: List[UserRecord] = Field(default_factory=list)


def load_user_profiles(path: Path) -> List[UserProfile]:
    """
    Read user profiles for the in-memory directory from YAML.

    A missing file yields no profiles.

    Raises:
        ConfigurationException: If the file exists but is invalid
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"User directory file not found: {path}, directory is empty")
        return []

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        directory = UserDirectoryFile(**data)
    except (yaml.YAMLError, ValidationError, TypeError) as e:
        raise ConfigurationException(f"Invalid user directory file {path}: {e}") from e

    logger.info("User directory loaded", extra={"users": len(directory.users)})
    return [
        UserProfile(
            id=record.id,
            email=record.email,
            country=record.country,
            team_id=record.team_id,
        )
        for record in directory.users
    ]
