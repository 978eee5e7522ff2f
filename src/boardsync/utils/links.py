"""Shareable board links."""


def build_share_link(origin: str, board_id: str) -> str:
    """Build the public link for a board.

    The format is consumed by the read-only shared view and must stay
    exactly ``<origin>/board/<board_id>?shared=true``.

    Args:
        origin: Scheme and host of the app, e.g. "https://app.example"
        board_id: Board identifier

    Returns:
        The shareable URL.
    """
    return f"{origin.rstrip('/')}/board/{board_id}?shared=true"
