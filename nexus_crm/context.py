"""
Application context.

Builds the collaborators for the configured store mode and owns their
lifecycle: `start()` restores the session and loads the store, `close()`
cancels pending refreshes, leaves the change feed and closes clients.
When the session disappears every piece of session-bound state is reset.
"""

from datetime import date

from nexus_crm.config import Settings, settings
from nexus_crm.infrastructure.observability.logging import get_logger
from nexus_crm.models.domain.contact_domain import Session
from nexus_crm.services.advisor_service import AdvisorService
from nexus_crm.services.auth_service import AuthProvider, LocalAuthProvider, SupabaseAuthClient
from nexus_crm.services.contact_service import ContactService
from nexus_crm.services.local_storage import LocalStorage
from nexus_crm.services.store.base import ContactStore, StoreError
from nexus_crm.services.store.local_store import LocalContactStore
from nexus_crm.services.store.remote_store import RemoteContactStore
from nexus_crm.services.supabase.realtime_client import RealtimeChangeFeed
from nexus_crm.services.supabase.rest_client import SupabaseRestClient

logger = get_logger(__name__)


class AppContext:
    def __init__(
        self,
        storage: LocalStorage,
        auth: AuthProvider,
        store: ContactStore,
        advisor: AdvisorService,
        *,
        rest: SupabaseRestClient | None = None,
        change_feed: RealtimeChangeFeed | None = None,
    ):
        self.storage = storage
        self.auth = auth
        self.store = store
        self.advisor = advisor
        self.rest = rest
        self.change_feed = change_feed
        self.contacts = ContactService(store, advisor)
        self._started = False
        auth.on_session_change(self._handle_session_change)

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "AppContext":
        storage = LocalStorage(url=config.LOCAL_STORAGE_URL)
        advisor = AdvisorService()

        if config.STORE_MODE == "remote":
            if not config.supabase_configured():
                raise RuntimeError("Remote mode requires SUPABASE_URL and SUPABASE_ANON_KEY")
            rest = SupabaseRestClient(config.SUPABASE_URL, config.SUPABASE_ANON_KEY)
            feed = RealtimeChangeFeed(config.realtime_url(), config.SUPABASE_ANON_KEY)
            store = RemoteContactStore(
                rest, feed, debounce_seconds=config.refresh_debounce_seconds()
            )
            auth: AuthProvider = SupabaseAuthClient(
                storage, config.SUPABASE_URL, config.SUPABASE_ANON_KEY
            )
            return cls(storage, auth, store, advisor, rest=rest, change_feed=feed)

        store = LocalContactStore(storage)
        return cls(storage, LocalAuthProvider(storage), store, advisor)

    @property
    def mode(self) -> str:
        return self.store.mode

    @property
    def session(self) -> Session | None:
        return self.auth.current_session

    def today(self) -> date:
        return date.today()

    async def start(self) -> None:
        if self._started:
            return
        await self.storage.initialize()
        session = await self.auth.restore()
        if session is not None:
            try:
                await self._bind_session(session)
            except StoreError as e:
                # The restored session may have expired; the user can sign in again
                logger.error("Failed to load contacts for restored session", error=str(e))
        self._started = True
        logger.info("Application context started", mode=self.mode, signed_in=session is not None)

    async def _bind_session(self, session: Session) -> None:
        if self.rest is not None:
            self.rest.set_access_token(session.access_token)
        if self.change_feed is not None:
            self.change_feed.set_access_token(session.access_token)
        self.store.set_session(session)
        await self.store.load()

    async def _handle_session_change(self, session: Session | None) -> None:
        if session is None:
            logger.info("Session ended, resetting local state")
            await self.store.reset()
            if self.rest is not None:
                self.rest.set_access_token(None)
            return
        # A new sign-in replaces whatever the previous session left behind
        await self.store.reset()
        await self._bind_session(session)

    async def close(self) -> None:
        errors = []
        for name, closer in (
            ("store", self.store.close),
            ("auth", self.auth.close),
            ("rest", self.rest.close if self.rest else None),
            ("advisor", self.advisor.close),
            ("storage", self.storage.close),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except Exception as e:
                logger.error("Error closing component", component=name, error=str(e))
                errors.append(f"{name}: {e}")

        self._started = False
        if errors:
            logger.warning("Some components had shutdown errors", errors=errors)
        else:
            logger.info("Application context closed")
