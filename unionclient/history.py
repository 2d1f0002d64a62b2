"""
Browser history integration

`BrowserHistory` models the host's history API (what `window.history` and
`window.location.hash` give a page): a list of entries, a cursor, and
`popstate` / `hashchange` events. `HistoryBridge` is the only thing the rest
of the client uses to write navigation state into it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from unionclient.navigation import NavState, decode, encode

logger = logging.getLogger(__name__)

POPSTATE = "popstate"
HASHCHANGE = "hashchange"

Listener = Callable[[Any], None]


@dataclass
class HistoryEntry:
    state: Any
    url: str


class BrowserHistory:
    """
    In-memory session history.

    Mirrors browser semantics: push truncates forward entries, back/forward
    move the cursor and fire `popstate` with the entry's payload, and
    navigating to a new hash pushes an entry without a payload and fires
    `hashchange`.
    """

    def __init__(self, path: str = "/", initial_hash: str = ""):
        self.path = path
        if initial_hash and not initial_hash.startswith("#"):
            initial_hash = "#" + initial_hash
        self._entries: List[HistoryEntry] = [HistoryEntry(None, path + initial_hash)]
        self._index = 0
        self._listeners: Dict[str, List[Listener]] = {POPSTATE: [], HASHCHANGE: []}

    @property
    def length(self) -> int:
        return len(self._entries)

    @property
    def state(self) -> Any:
        return self._entries[self._index].state

    @property
    def url(self) -> str:
        return self._entries[self._index].url

    @property
    def location_hash(self) -> str:
        url = self.url
        return url[url.index("#"):] if "#" in url else ""

    def add_listener(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)

    def push_state(self, state: Any, url: str) -> None:
        del self._entries[self._index + 1:]
        self._entries.append(HistoryEntry(state, url))
        self._index += 1

    def replace_state(self, state: Any, url: str) -> None:
        self._entries[self._index] = HistoryEntry(state, url)

    def go(self, delta: int) -> None:
        target = self._index + delta
        if delta == 0 or not 0 <= target < len(self._entries):
            return
        self._index = target
        self._emit(POPSTATE, self.state)

    def back(self) -> None:
        self.go(-1)

    def forward(self) -> None:
        self.go(1)

    def navigate_hash(self, fragment: str) -> None:
        """Location change from outside the app (typed URL, notification click)"""
        if not fragment.startswith("#"):
            fragment = "#" + fragment
        self.push_state(None, self.path + fragment)
        self._emit(HASHCHANGE, None)

    def _emit(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners[event]):
            listener(payload)


class HistoryBridge:
    """
    Writes NavState into the host history.

    Every call is best effort: if the host refuses (restricted embedding,
    sandboxed frame) the error is logged and navigation carries on.
    """

    def __init__(self, history: BrowserHistory):
        self.history = history

    def _url_for(self, state: NavState) -> str:
        return self.history.path + encode(state)

    def push(self, state: NavState) -> None:
        try:
            self.history.push_state(state, self._url_for(state))
        except Exception as e:
            logger.debug(f"history push ignored: {e}")

    def replace(self, state: NavState) -> None:
        try:
            self.history.replace_state(state, self._url_for(state))
        except Exception as e:
            logger.debug(f"history replace ignored: {e}")

    def current(self) -> NavState:
        """NavState of the current location, decoded from the URL"""
        try:
            return decode(self.history.location_hash)
        except Exception as e:
            logger.debug(f"history read ignored: {e}")
            return decode("")

    def state_for_event(self, payload: Optional[Any]) -> NavState:
        """Use the entry's payload when present, else fall back to the URL"""
        if isinstance(payload, NavState):
            return payload
        return self.current()

    def listen(self, handler: Callable[[NavState], None]) -> None:
        """Route popstate and hashchange to `handler` as NavState"""
        self.history.add_listener(POPSTATE, lambda payload: handler(self.state_for_event(payload)))
        self.history.add_listener(HASHCHANGE, lambda _: handler(self.current()))
