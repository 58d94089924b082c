"""
Plan ID selection.

A plan ID groups devices for provisioning. For each invocation one of three
candidates is handed to the SDK controller:

1. The cached plan ID from a previous successful setup (if requested)
2. The developer plan ID (debug builds only), which wins over the cache
3. None - the SDK generates a new plan ID itself

See electricimp.com/docs/manufacturing/planids/ for background.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from blinkup_bridge.core.arguments import InvocationRequest
from blinkup_bridge.platform.preferences import PreferenceStore

logger = logging.getLogger(__name__)

PLAN_ID_KEY = "planId"


class PlanIdSource(str, Enum):
    """Where the effective plan ID came from."""

    CACHED = "cached"
    DEVELOPER = "developer"
    NONE = "none"


@dataclass(frozen=True)
class PlanIdSelection:
    """The effective plan ID for one invocation."""

    source: PlanIdSource
    plan_id: str | None = None

    @property
    def is_none(self) -> bool:
        return self.source is PlanIdSource.NONE


NO_PLAN_ID = PlanIdSelection(PlanIdSource.NONE)


def resolve_plan_id(
    request: InvocationRequest,
    store: PreferenceStore,
    debug: bool,
    key: str = PLAN_ID_KEY,
) -> PlanIdSelection:
    """
    Pick the plan ID to configure on the controller.

    The cache is read whenever the request asks for it, even when the
    developer plan ID is about to override the result.

    Args:
        request: Validated invocation request
        store: Preference store holding the cached plan ID
        debug: Whether this is a debug/developer build
        key: Preference key of the cached plan ID

    Returns:
        The selected plan ID and its source
    """
    selection = NO_PLAN_ID

    if request.use_cached_plan_id:
        cached = store.get(key)
        if cached is not None:
            selection = PlanIdSelection(PlanIdSource.CACHED, cached)
        else:
            logger.debug("No cached plan ID, SDK will generate one")

    if debug and request.developer_plan_id != "":
        selection = PlanIdSelection(PlanIdSource.DEVELOPER, request.developer_plan_id)

    logger.info(f"Using plan ID source: {selection.source.value}")
    return selection
