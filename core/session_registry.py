"""
Session Registry: one SessionController per classroom section

Sections are matched case-insensitively, so "/sessions/A" and "/sessions/a"
drive the same engine. Sessions share nothing with each other.
"""
from functools import lru_cache
from typing import Dict, Optional
import logging

from core.exceptions import SessionNotFound
from core.roster_store import RosterStore
from core.selection_engine import SelectionConfig
from core.session_controller import SessionController
from database import get_settings
from services.validation_service import normalize_section, section_key

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self, store: RosterStore, config: Optional[SelectionConfig] = None):
        self.store = store
        self.config = config or SelectionConfig()
        self._sessions: Dict[str, SessionController] = {}

    async def open(self, section: str) -> SessionController:
        """
        Return the section's controller, creating it on first use, and (re)load it

        Raises:
            ClassroomNotFound: no classroom uses this section (nothing is registered)
        """
        section = normalize_section(section)
        key = section_key(section)

        controller = self._sessions.get(key)
        if controller is None:
            # Registered before the first load so concurrent opens share it
            controller = SessionController(self.store, config=self.config, section=section)
            self._sessions[key] = controller
            logger.info(f"Opened session for section {section}")

        try:
            await controller.load()
        except Exception:
            # A controller that never loaded a classroom is not kept
            if controller.classroom_id is None and self._sessions.get(key) is controller:
                del self._sessions[key]
            raise
        return controller

    def get(self, section: str) -> SessionController:
        controller = self._sessions.get(section_key(section or ""))
        if controller is None:
            raise SessionNotFound(section)
        return controller

    def close(self, section: str) -> None:
        controller = self._sessions.pop(section_key(section or ""), None)
        if controller is None:
            raise SessionNotFound(section)
        controller.engine.reset()
        logger.info(f"Closed session for section {section}")


@lru_cache()
def get_session_registry() -> SessionRegistry:
    """FastAPI dependency: process-wide registry bound to the default database"""
    return SessionRegistry(RosterStore(), SelectionConfig.from_settings(get_settings()))
