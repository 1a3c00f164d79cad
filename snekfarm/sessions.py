"""
Per-game bookkeeping: one snek per (game id, player id).

Calls for different games may arrive concurrently. Calls for the same game
arrive one at a time, one per turn, so only the session map is locked.
"""

import enum
import logging
import threading
from typing import Callable

from snekfarm.api import GameInProgress, GameNotStarted, Snek, State

log = logging.getLogger(__name__)


class EndPolicy(enum.Enum):
    """What /end does when there is no game to end.

    REJECT is the default: an unknown game is reported back to the caller,
    the same as /move.
    """
    REJECT = "reject"
    IGNORE = "ignore"


class SessionManager:
    def __init__(self, new_snek: Callable[[], Snek], end_policy: EndPolicy = EndPolicy.REJECT):
        self.new_snek = new_snek
        self.end_policy = end_policy
        self._mu = threading.Lock()
        self._sneks: dict[str, Snek] = {}

    def __len__(self):
        with self._mu:
            return len(self._sneks)

    def __contains__(self, key: str):
        with self._mu:
            return key in self._sneks

    def start(self, st: State) -> None:
        with self._mu:
            if st.key in self._sneks:
                raise GameInProgress(st.key)
            snek = self.new_snek()
            snek.start(st)
            self._sneks[st.key] = snek
        log.info("game %s started for %s", st.game.id, st.me.id)

    def move(self, st: State) -> tuple[str, str]:
        with self._mu:
            snek = self._sneks.get(st.key)
        if snek is None:
            raise GameNotStarted(st.key)
        return snek.move(st)

    def end(self, st: State) -> None:
        with self._mu:
            snek = self._sneks.pop(st.key, None)
        if snek is None:
            if self.end_policy is EndPolicy.REJECT:
                raise GameNotStarted(st.key)
            log.debug("ignoring end for unknown game %s", st.key)
            return
        snek.end(st)
        log.info("game %s ended for %s after %d turns", st.game.id, st.me.id, st.turn)
