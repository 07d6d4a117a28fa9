from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, MutableMapping, Optional

import httpx

from . import usage as quota
from .config import Settings
from .model import OptimizeError, optimize_job_description
from .usage import FREE_LIMIT, UsageState

logger = logging.getLogger(__name__)

EMPTY_INPUT_MESSAGE = "Please paste a job description first"
QUOTA_MESSAGE = f"You've used your {FREE_LIMIT} free optimizations. Activate a code to keep going."
BUSY_MESSAGE = "An optimization is already in progress"
INVALID_CODE_MESSAGE = "Invalid activation code"


class RelayError(Exception):
    pass


# -------- Relay clients --------
class HttpRelay:
    """Calls the relay endpoint over HTTP."""

    def __init__(self, url: str, timeout: float = 60.0, client: Optional[httpx.Client] = None):
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)

    def optimize(self, job_description: str) -> str:
        try:
            resp = self._client.post(self.url, json={"jobDescription": job_description})
        except httpx.TimeoutException as e:
            raise RelayError("Request timed out. Please try again.") from e
        except httpx.HTTPError as e:
            raise RelayError("Could not reach the optimizer service.") from e

        data: Any
        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.status_code != 200:
            message = data.get("error") if isinstance(data, dict) else None
            raise RelayError(message or "Optimization failed")
        if not isinstance(data, dict) or not isinstance(data.get("optimized"), str):
            raise RelayError("Optimization failed")
        return data["optimized"]

    def close(self) -> None:
        self._client.close()


class LocalRelay:
    """Runs the relay's completion call in-process."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def optimize(self, job_description: str) -> str:
        try:
            return optimize_job_description(job_description, self.settings)
        except OptimizeError as e:
            raise RelayError(e.message) from e
        except Exception as e:
            logger.exception("in-process optimization failed")
            raise RelayError(OptimizeError.default_message) from e

    def close(self) -> None:
        pass


# -------- Shell --------
@dataclass(frozen=True)
class ShellState:
    input_text: str = ""
    output_text: str = ""
    loading: bool = False
    error: str = ""
    show_upsell: bool = False
    usage: UsageState = field(default_factory=UsageState)


class OptimizerShell:
    """
    Client-side controller for the optimizer page.

    Usage counters are read from ``storage`` once, here, and written back after
    every change. One submission at a time; a second submit while the first is
    in flight is refused rather than queued.
    """

    def __init__(self, relay, storage: MutableMapping[str, str]):
        self.relay = relay
        self.storage = storage
        self.state = ShellState(usage=quota.load_usage(storage))
        self._in_flight = threading.Lock()

    def _update(self, **changes) -> ShellState:
        usage_changed = "usage" in changes and changes["usage"] != self.state.usage
        self.state = replace(self.state, **changes)
        if usage_changed:
            quota.save_usage(self.storage, self.state.usage)
        return self.state

    def set_input(self, text: str) -> ShellState:
        return self._update(input_text=text or "")

    def submit(self) -> ShellState:
        if not self.state.input_text.strip():
            return self._update(error=EMPTY_INPUT_MESSAGE)
        if not self._in_flight.acquire(blocking=False):
            return self._update(error=BUSY_MESSAGE)

        # quota is checked under the lock so two submits cannot both pass it
        if not quota.can_submit(self.state.usage):
            self._in_flight.release()
            return self._update(error=QUOTA_MESSAGE, show_upsell=True)

        try:
            self._update(loading=True, error="")
            try:
                optimized = self.relay.optimize(self.state.input_text)
            except RelayError as e:
                self._update(error=f"Error: {e}")
            else:
                self._update(output_text=optimized, error="", usage=quota.consume(self.state.usage))
        finally:
            self._update(loading=False)
            self._in_flight.release()
        return self.state

    def activate(self, code: str) -> ShellState:
        usage = quota.activate(self.state.usage, code)
        if usage is None:
            return self._update(error=INVALID_CODE_MESSAGE)
        logger.info("activation accepted: tier=%s", usage.tier.value)
        return self._update(usage=usage, error="", show_upsell=False)

    @property
    def remaining(self) -> Optional[int]:
        return quota.remaining_uses(self.state.usage)

    @property
    def quota_exhausted(self) -> bool:
        return not quota.can_submit(self.state.usage)
