"""
Navigation state <-> URL fragment

The site keeps the path fixed and records where the user is in the hash:

    #tab=free&post=42
    #tab=notice_all&write=1

All three keys are optional. Bookmarked and shared links, as well as push
notification links, depend on this grammar staying stable.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import parse_qsl, urlencode

DEFAULT_TAB = "home"

TAB_KEY = "tab"
POST_KEY = "post"
WRITE_KEY = "write"


@dataclass(frozen=True)
class NavState:
    """Minimal serializable description of the current screen"""
    tab: Optional[str] = None
    post_id: Optional[str] = None
    writing: bool = False


HOME = NavState(tab=DEFAULT_TAB)


def encode(state: NavState) -> str:
    """
    Build the URL fragment for a NavState.

    Empty fields are left out, so HOME encodes to "#tab=home" and a state
    with nothing set encodes to "".
    """
    params = []
    if state.tab:
        params.append((TAB_KEY, state.tab))
    if state.post_id:
        params.append((POST_KEY, state.post_id))
    if state.writing:
        params.append((WRITE_KEY, "1"))
    query = urlencode(params)
    return f"#{query}" if query else ""


def decode(fragment: object) -> NavState:
    """
    Parse a URL fragment (with or without the leading '#').

    Never raises: missing or malformed fields fall back to tab="home",
    post_id=None, writing=False.
    """
    if not isinstance(fragment, str):
        return HOME

    raw = fragment[1:] if fragment.startswith("#") else fragment
    try:
        params = dict(parse_qsl(raw, keep_blank_values=False))
    except (ValueError, UnicodeError):
        return HOME

    return NavState(
        tab=params.get(TAB_KEY) or DEFAULT_TAB,
        post_id=params.get(POST_KEY) or None,
        writing=params.get(WRITE_KEY) == "1",
    )


# ==========================================
# Push notification deep links
# ==========================================

class NotificationCategory(str, Enum):
    """Kinds of push notification the site sends"""
    NEW_POST = "new_post"
    ADMIN_SIGNUP = "admin_signup"
    ADMIN_WITHDRAW = "admin_withdraw"


ADMIN_TAB = "admin"


def deep_link(
    category: NotificationCategory,
    board: Optional[str] = None,
    post_id: Optional[str] = None,
) -> str:
    """URL a notification opens; resolves to a NavState on arrival"""
    if category == NotificationCategory.NEW_POST:
        state = NavState(tab=board or "free", post_id=post_id)
    else:
        state = NavState(tab=ADMIN_TAB)
    return "/" + encode(state)
