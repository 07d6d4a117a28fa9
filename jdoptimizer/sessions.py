"""
In-memory per-browser-session registry.

Each session id (from the page cookie) owns one OptimizerShell and the
key/value mapping its usage counters are stored in. Nothing survives a
process restart. The least recently used session is dropped once
``max_sessions`` is reached, so clients that never send the cookie back
cannot grow the registry without limit.
"""
from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from typing import Callable, Dict, MutableMapping, Optional, Tuple

from .shell import OptimizerShell

ShellFactory = Callable[[MutableMapping[str, str]], OptimizerShell]

DEFAULT_MAX_SESSIONS = 1000


class SessionRegistry:
    def __init__(self, factory: ShellFactory, max_sessions: int = DEFAULT_MAX_SESSIONS):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._factory = factory
        self._max_sessions = max_sessions
        self._shells: "OrderedDict[str, OptimizerShell]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: Optional[str]) -> Tuple[str, OptimizerShell]:
        """Shell for ``session_id``, creating a fresh session when it is unknown."""
        with self._lock:
            if session_id and session_id in self._shells:
                self._shells.move_to_end(session_id)
                return session_id, self._shells[session_id]

            session_id = uuid.uuid4().hex
            storage: Dict[str, str] = {}
            self._shells[session_id] = self._factory(storage)
            while len(self._shells) > self._max_sessions:
                self._shells.popitem(last=False)
            return session_id, self._shells[session_id]

    def __len__(self) -> int:
        return len(self._shells)
