from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import MutableMapping, Optional

FREE_LIMIT = 2
PACK_SIZE = 10

PACK_PREFIX = "JDO10-"
UNLIMITED_PREFIX = "JDOUNL-"

# storage keys
FREE_USED_KEY = "jdo.free_used"
TIER_KEY = "jdo.tier"
PACK_REMAINING_KEY = "jdo.pack_remaining"
ACTIVATION_CODE_KEY = "jdo.activation_code"


class Tier(str, Enum):
    NONE = "none"
    FIXED_PACK = "fixed_pack"
    UNLIMITED = "unlimited"


@dataclass(frozen=True)
class UsageState:
    free_used: int = 0
    tier: Tier = Tier.NONE
    pack_remaining: int = 0
    activation_code: Optional[str] = None

    def __post_init__(self) -> None:
        if self.free_used < 0 or self.pack_remaining < 0:
            raise ValueError("usage counters cannot be negative")


# -------- Quota --------
def can_submit(usage: UsageState) -> bool:
    if usage.tier is Tier.UNLIMITED:
        return True
    if usage.pack_remaining > 0:
        return True
    return usage.free_used < FREE_LIMIT


def consume(usage: UsageState) -> UsageState:
    """Usage after one successful optimization."""
    if usage.tier is Tier.UNLIMITED:
        return usage
    if usage.pack_remaining > 0:
        return replace(usage, pack_remaining=usage.pack_remaining - 1)
    return replace(usage, free_used=usage.free_used + 1)


def remaining_uses(usage: UsageState) -> Optional[int]:
    """None means unlimited."""
    if usage.tier is Tier.UNLIMITED:
        return None
    return usage.pack_remaining + max(FREE_LIMIT - usage.free_used, 0)


# -------- Activation --------
def activate(usage: UsageState, code: str) -> Optional[UsageState]:
    """
    Apply an activation code. Returns the new state, or None if the code
    matches neither prefix.

    Matching is a case-insensitive prefix check only; nothing is signed,
    expires, or is checked against a server.
    """
    normalized = (code or "").strip()
    upper = normalized.upper()

    if upper.startswith(UNLIMITED_PREFIX):
        return replace(usage, tier=Tier.UNLIMITED, activation_code=normalized)
    if upper.startswith(PACK_PREFIX):
        tier = Tier.UNLIMITED if usage.tier is Tier.UNLIMITED else Tier.FIXED_PACK
        return replace(
            usage,
            tier=tier,
            free_used=0,
            pack_remaining=PACK_SIZE,
            activation_code=normalized,
        )
    return None


# -------- Persistence --------
def _read_count(storage: MutableMapping[str, str], key: str) -> int:
    try:
        return max(int(storage.get(key, "0")), 0)
    except (TypeError, ValueError):
        return 0


def load_usage(storage: MutableMapping[str, str]) -> UsageState:
    try:
        tier = Tier(storage.get(TIER_KEY, Tier.NONE.value))
    except ValueError:
        tier = Tier.NONE
    return UsageState(
        free_used=_read_count(storage, FREE_USED_KEY),
        tier=tier,
        pack_remaining=_read_count(storage, PACK_REMAINING_KEY),
        activation_code=storage.get(ACTIVATION_CODE_KEY) or None,
    )


def save_usage(storage: MutableMapping[str, str], usage: UsageState) -> None:
    storage[FREE_USED_KEY] = str(usage.free_used)
    storage[TIER_KEY] = usage.tier.value
    storage[PACK_REMAINING_KEY] = str(usage.pack_remaining)
    storage[ACTIVATION_CODE_KEY] = usage.activation_code or ""
