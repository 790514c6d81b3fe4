"""Identity masking and deterministic avatars for public bid history."""

DEFAULT_AVATAR_POOL_SIZE = 70
DEFAULT_AVATAR_URL_TEMPLATE = "https://i.pravatar.cc/150?img={index}"
OWN_DISPLAY_NAME = "You"

_VISIBLE_CHARS = 3
_MASK = "*"


def anonymize_name(name: str | None) -> str:
    """
    Mask a display name for public view.

    Keeps the first 3 characters and stars the rest; names of 2-3 characters
    keep only the first. Length is preserved, except that a single character
    is padded to three ("A" -> "A**").
    """
    trimmed = (name or "").strip()
    if not trimmed:
        return _MASK * 3
    if len(trimmed) == 1:
        return trimmed + _MASK * 2
    if len(trimmed) <= _VISIBLE_CHARS:
        return trimmed[0] + _MASK * (len(trimmed) - 1)
    return trimmed[:_VISIBLE_CHARS] + _MASK * (len(trimmed) - _VISIBLE_CHARS)


def hash_code(value: str) -> int:
    """
    32-bit signed rolling hash: h = h * 31 + unit over UTF-16 code units.

    Same result as Java's String.hashCode, so any runtime can reproduce
    the avatar assignment.
    """
    h = 0
    data = value.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def avatar_index(user_id: str, pool_size: int = DEFAULT_AVATAR_POOL_SIZE) -> int:
    return abs(hash_code(user_id)) % pool_size


def avatar_url(
    user_id: str,
    pool_size: int = DEFAULT_AVATAR_POOL_SIZE,
    template: str = DEFAULT_AVATAR_URL_TEMPLATE,
) -> str:
    """Stable avatar reference for a user id."""
    return template.format(index=avatar_index(user_id, pool_size))


def fallback_display_name(user_id: str) -> str:
    """Name shown when the user directory has no profile for the id."""
    return f"User {user_id[-6:]}"
