"""Chat addressing: turn user-supplied chat names into JIDs."""

import re

USER_SERVER = "s.whatsapp.net"

_DEVICE_SUFFIX = re.compile(r":[^@]*@")
_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_jid(user_id: str) -> str:
    """Strip the device suffix from a session user id (``123:4@s.whatsapp.net`` -> ``123@s.whatsapp.net``)."""
    return _DEVICE_SUFFIX.sub("@", user_id, count=1)


def resolve_chat(chat: str, own_jid: str | None) -> str:
    """Resolve a chat argument to a JID.

    ``me`` is the session's own JID, anything containing ``@`` is already a JID,
    and everything else is treated as a phone number.

    Raises:
        ValueError: ``me`` was requested but the own JID is unknown, or no digits remain.

    """
    if chat == "me":
        if own_jid is None:
            msg = "Own JID is unknown until the session has opened."
            raise ValueError(msg)
        return own_jid
    if "@" in chat:
        return chat
    digits = _NON_DIGITS.sub("", chat)
    if not digits:
        msg = f"Invalid chat: {chat!r}"
        raise ValueError(msg)
    return f"{digits}@{USER_SERVER}"
