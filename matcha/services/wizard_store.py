"""In-memory TTL store for profile wizards in progress."""

import asyncio
import logging
import time
from dataclasses import dataclass
from threading import Lock

from matcha.services.wizard import ProfileWizard

logger = logging.getLogger(__name__)


@dataclass
class WizardEntry:
    """A stored wizard with its expiration time."""

    wizard: ProfileWizard
    expires_at: float

    def is_expired(self) -> bool:
        return time.time() > self.expires_at


@dataclass
class WizardStoreConfig:
    """Configuration for the wizard store."""

    max_size: int = 1000
    ttl_seconds: int = 3600
    cleanup_interval_seconds: int = 300

    @classmethod
    def from_settings(cls) -> "WizardStoreConfig":
        """Create config from application settings."""
        from matcha.core.config import get_settings

        settings = get_settings()
        return cls(
            max_size=settings.wizard_max_sessions,
            ttl_seconds=settings.wizard_ttl_seconds,
            cleanup_interval_seconds=settings.wizard_cleanup_interval_seconds,
        )


class WizardStore:
    """Keeps one wizard per user; idle wizards expire after the TTL.

    Evicted wizards have their pending uploads released.
    """

    def __init__(self, config: WizardStoreConfig | None = None) -> None:
        self.config = config or WizardStoreConfig()
        self._entries: dict[int, WizardEntry] = {}
        self._lock = Lock()
        self._cleanup_task: asyncio.Task | None = None

    async def start_cleanup_task(self) -> None:
        """Start background cleanup task."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Wizard store cleanup task started")

    async def stop_cleanup_task(self) -> None:
        """Stop background cleanup task."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Wizard store cleanup task stopped")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.cleanup_interval_seconds)
            count = self.cleanup()
            if count > 0:
                logger.debug("Wizard store cleaned up %d expired wizards", count)

    @staticmethod
    def _evict(entry: WizardEntry) -> None:
        entry.wizard.draft.release()

    def get(self, user_id: int) -> ProfileWizard | None:
        """Get a user's wizard and extend its lifetime.

        Returns:
            ProfileWizard | None: The wizard, or None if absent or expired.
        """
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            if entry.is_expired():
                logger.debug("Wizard for user %s expired", user_id)
                del self._entries[user_id]
                self._evict(entry)
                return None
            entry.expires_at = time.time() + self.config.ttl_seconds
            return entry.wizard

    def put(self, wizard: ProfileWizard) -> None:
        """Store a wizard, replacing any previous wizard of the same user."""
        with self._lock:
            previous = self._entries.pop(wizard.user_id, None)
            if previous is not None and previous.wizard is not wizard:
                self._evict(previous)
            if len(self._entries) >= self.config.max_size:
                self._evict_oldest()
            self._entries[wizard.user_id] = WizardEntry(
                wizard=wizard,
                expires_at=time.time() + self.config.ttl_seconds,
            )

    def remove(self, user_id: int) -> ProfileWizard | None:
        with self._lock:
            entry = self._entries.pop(user_id, None)
        if entry is None:
            return None
        self._evict(entry)
        return entry.wizard

    def _evict_oldest(self) -> None:
        """Evict expired, then the oldest 10% of wizards. Must be called with lock held."""
        for user_id in [k for k, v in self._entries.items() if v.is_expired()]:
            self._evict(self._entries.pop(user_id))

        if len(self._entries) >= self.config.max_size:
            oldest = sorted(self._entries.items(), key=lambda x: x[1].expires_at)
            to_remove = max(1, len(self._entries) // 10)
            for user_id, _ in oldest[:to_remove]:
                self._evict(self._entries.pop(user_id))
            logger.warning("Evicted %d wizards from a full wizard store", to_remove)

    def cleanup(self) -> int:
        """Remove all expired wizards.

        Returns:
            Number of wizards removed.
        """
        with self._lock:
            expired = [k for k, v in self._entries.items() if v.is_expired()]
            for user_id in expired:
                self._evict(self._entries.pop(user_id))
            return len(expired)

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "total_wizards": len(self._entries),
                "max_size": self.config.max_size,
                "ttl_seconds": self.config.ttl_seconds,
            }


_wizard_store: WizardStore | None = None


def get_wizard_store() -> WizardStore:
    """Get or create the global wizard store instance."""
    global _wizard_store
    if _wizard_store is None:
        _wizard_store = WizardStore(WizardStoreConfig.from_settings())
    return _wizard_store


async def init_wizard_store() -> WizardStore:
    """Initialize the wizard store with its cleanup task. Call at app startup."""
    store = get_wizard_store()
    await store.start_cleanup_task()
    return store


async def shutdown_wizard_store() -> None:
    """Stop the cleanup task and release every stored draft. Call at app shutdown."""
    global _wizard_store
    if _wizard_store:
        await _wizard_store.stop_cleanup_task()
        for user_id in list(_wizard_store._entries):
            _wizard_store.remove(user_id)
