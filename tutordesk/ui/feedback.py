import logging
from typing import Any, Callable, MutableMapping, Optional

import streamlit as st

from tutordesk.config import GENERIC_ERROR_MESSAGE, UNAUTHORIZED_MESSAGE
from tutordesk.services.api_client import BackendAuthError, BackendError
from tutordesk.ui.state import mark_logged_out

logger = logging.getLogger(__name__)


def run_action(
    action: Callable[[], Any],
    *,
    success: Optional[str] = None,
    notify=st,
    state: Optional[MutableMapping] = None,
) -> tuple[bool, Any]:
    """
    Operation boundary for every backend call made from the UI.
    Failures become notifications; nothing is retried.
    """
    if state is None:
        state = st.session_state

    try:
        result = action()
    except BackendAuthError:
        logger.warning("session rejected by backend")
        notify.warning(UNAUTHORIZED_MESSAGE)
        mark_logged_out(state)
        return False, None
    except BackendError:
        logger.exception("backend action failed")
        notify.error(GENERIC_ERROR_MESSAGE)
        return False, None
    except ValueError as exc:
        # local precondition, never sent
        notify.error(str(exc))
        return False, None

    if success:
        notify.success(success)
    return True, result
