# ABOUTME: This file provides HTTP content negotiation for the speech endpoint.
# ABOUTME: Picks JSON (base64 audio) or raw audio/wav from the Accept header, honoring q-values.

from typing import List, Tuple

from starlette.requests import Request


def _parse_accept(accept_header: str) -> List[Tuple[str, float]]:
    """Split an Accept header into (media type, q) pairs, best first."""
    entries = []
    for position, part in enumerate(accept_header.split(',')):
        pieces = [p.strip() for p in part.split(';')]
        media_type = pieces[0].lower()
        if not media_type:
            continue
        q = 1.0
        for param in pieces[1:]:
            if param.startswith('q='):
                try:
                    q = float(param[2:])
                except ValueError:
                    q = 0.0
        entries.append((media_type, q, position))
    # Stable: higher q first, then header order
    entries.sort(key=lambda e: (-e[1], e[2]))
    return [(media_type, q) for media_type, q, _ in entries]


def negotiate_accept(request: Request, allowed: List[str]) -> str:
    """Negotiate the best Accept header match from allowed content types.

    Args:
        request: The Starlette/FastAPI request object
        allowed: Content types the server can provide, preferred first

    Returns:
        The best matching content type from allowed list

    Raises:
        ValueError: If no acceptable content type is found (maps to 406)
    """
    accept_header = request.headers.get('accept', '').strip() or '*/*'

    for media_type, q in _parse_accept(accept_header):
        if q <= 0:
            continue
        if media_type == '*/*':
            return allowed[0]
        if media_type in allowed:
            return media_type
        if media_type.endswith('/*'):
            main_type = media_type[:-1]
            for allowed_type in allowed:
                if allowed_type.startswith(main_type):
                    return allowed_type

    raise ValueError(f"No acceptable content type found. Accept: {accept_header}, Allowed: {allowed}")
