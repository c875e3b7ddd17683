"""
Search controller for Hooshyar.

Owns the lifecycle of one user's searches and guarantees that a cancelled
or superseded search can never overwrite newer state.
"""

from collections import OrderedDict
from typing import Optional

from hooshyar.config import settings
from hooshyar.core.errors import HooshyarError, InvalidInputError, StaleResultDiscarded
from hooshyar.core.llm_engine import HealthInfoEngine, get_health_info_engine, validate_topic
from hooshyar.models.schemas import Audience, HealthTopicInfo, SearchPhase, SearchState
from hooshyar.utils.logger import get_logger

logger = get_logger("search_controller")


class SearchController:
    """
    State machine ``idle -> loading -> (success | error)``.

    Every submission and every cancellation increments ``search_token``.
    A search captures the token when it starts and may only commit its
    outcome if the token is unchanged when the response arrives; the
    network call itself is never aborted.
    """

    def __init__(self, engine: Optional[HealthInfoEngine] = None):
        self._engine = engine
        self.query_text = ""
        self.audience = Audience.GENERAL
        self.phase = SearchPhase.IDLE
        self.result: Optional[HealthTopicInfo] = None
        self.error_message: Optional[str] = None
        self.search_token = 0

    @property
    def engine(self) -> HealthInfoEngine:
        if self._engine is None:
            self._engine = get_health_info_engine()
        return self._engine

    @property
    def state(self) -> SearchState:
        """Immutable snapshot of the current state."""
        return SearchState(
            query_text=self.query_text,
            audience=self.audience,
            phase=self.phase,
            result=self.result,
            error_message=self.error_message,
            search_token=self.search_token,
        )

    async def submit(
        self,
        topic: str,
        audience: Optional[Audience] = None
    ) -> SearchState:
        """
        Start a new search and wait for its outcome.

        Args:
            topic: Health topic entered by the user
            audience: Target reader profile (keeps the current one if omitted)

        Returns:
            State snapshot after the search settled, or after it was
            superseded by a newer submission or a cancellation
        """
        token = self.start(topic, audience)
        if token is None:
            return self.state
        return await self.complete(token, topic, self.audience)

    def start(self, topic: str, audience: Optional[Audience] = None) -> Optional[int]:
        """
        Enter the loading phase without waiting for the answer.

        Returns:
            Token of the new search, or None if the topic was rejected
        """
        self.query_text = topic
        if audience is not None:
            self.audience = audience

        try:
            validate_topic(topic)
        except InvalidInputError as e:
            self._reject(e.user_message)
            return None

        self.search_token += 1
        self.phase = SearchPhase.LOADING
        self.result = None
        self.error_message = None

        logger.info("Search started", token=self.search_token, audience=self.audience.value)
        return self.search_token

    async def complete(self, token: int, topic: str, audience: Audience) -> SearchState:
        """Fetch the answer of a started search and commit it if still current."""
        try:
            info = await self.engine.fetch(topic, audience)
        except HooshyarError as e:
            try:
                self._commit_error(token, e.user_message)
            except StaleResultDiscarded as stale:
                logger.debug("Stale search failure discarded", token=stale.token, current=stale.current_token)
        else:
            try:
                self._commit_result(token, info)
            except StaleResultDiscarded as stale:
                logger.debug("Stale search result discarded", token=stale.token, current=stale.current_token)

        return self.state

    def cancel(self) -> SearchState:
        """
        Abandon the current search.

        The pending request keeps running; its outcome is discarded when it
        arrives because the token no longer matches.
        """
        self.search_token += 1
        self.phase = SearchPhase.IDLE
        self.result = None
        self.error_message = None
        logger.info("Search cancelled", token=self.search_token)
        return self.state

    def _reject(self, message: str) -> None:
        """Show an input error without issuing a request."""
        if self.phase == SearchPhase.LOADING:
            # An in-flight search must not commit over the input error
            self.search_token += 1
        self.phase = SearchPhase.IDLE
        self.result = None
        self.error_message = message

    def _ensure_current(self, token: int) -> None:
        if token != self.search_token:
            raise StaleResultDiscarded(token, self.search_token)

    def _commit_result(self, token: int, info: HealthTopicInfo) -> None:
        self._ensure_current(token)
        self.result = info
        self.error_message = None
        self.phase = SearchPhase.SUCCESS
        logger.info("Search succeeded", token=token, sections=len(info.sections))

    def _commit_error(self, token: int, message: str) -> None:
        self._ensure_current(token)
        self.result = None
        self.error_message = message
        self.phase = SearchPhase.ERROR
        logger.info("Search failed", token=token)


class SearchSessionStore:
    """
    Registry of search controllers, one per browser session.

    Sessions are held in process memory only. At most ``max_sessions``
    controllers are kept; the least recently used one is evicted first.
    """

    def __init__(
        self,
        engine: Optional[HealthInfoEngine] = None,
        max_sessions: Optional[int] = None
    ):
        self._engine = engine
        self.max_sessions = max_sessions or settings.max_sessions
        self._controllers: "OrderedDict[str, SearchController]" = OrderedDict()

    def get(self, session_id: str) -> Optional[SearchController]:
        """Get the controller of a session, if it exists."""
        controller = self._controllers.get(session_id)
        if controller is not None:
            self._controllers.move_to_end(session_id)
        return controller

    def get_or_create(self, session_id: str) -> SearchController:
        """Get the controller of a session, creating it on first use."""
        controller = self.get(session_id)
        if controller is None:
            controller = SearchController(engine=self._engine)
            self._controllers[session_id] = controller
            logger.info("Search session created", session_id=session_id)
            self._evict()
        return controller

    def discard(self, session_id: str) -> bool:
        """Remove a session from memory."""
        if session_id in self._controllers:
            del self._controllers[session_id]
            logger.info("Search session discarded", session_id=session_id)
            return True
        return False

    def _evict(self) -> None:
        while len(self._controllers) > self.max_sessions:
            session_id, _ = self._controllers.popitem(last=False)
            logger.info("Search session evicted", session_id=session_id)

    def __len__(self) -> int:
        return len(self._controllers)


# Singleton instance
search_sessions = SearchSessionStore()
