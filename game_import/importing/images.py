"""
Primary image selection, gameplay photos and the image host allow-list.
"""

import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urlparse, urlunparse

from ..config import (
    GAMEPLAY_EXCLUDED_FRAGMENTS,
    GAMEPLAY_FALLBACK_LIMIT,
    GAMEPLAY_IMAGE_LIMIT,
    IMAGE_ALLOWED_HOSTS,
    IMAGE_BAD_FRAGMENTS,
    IMAGE_EXTENSIONS,
)

logger = logging.getLogger(__name__)

_GEEKDO_IMAGE_PATTERN = re.compile(r"https?://cf\.geekdo-images\.com[^\s\"'<>]+")
_PIC_SEGMENT = re.compile(r"/pic\d+")
_GALLERY_PHOTO = re.compile(r"__imagepage/|/pic\d+\.", re.IGNORECASE)

# Lower rank wins
_IMAGE_PRIORITIES = (
    ("_itemrep", 0),
    ("_imagepage", 1),
    ("_original", 2),
)


def _has_bad_fragment(url: str) -> bool:
    lowered = url.lower()
    return any(fragment in lowered for fragment in IMAGE_BAD_FRAGMENTS)


def _image_priority(url: str) -> int:
    for marker, rank in _IMAGE_PRIORITIES:
        if marker in url:
            return rank
    return len(_IMAGE_PRIORITIES)


def find_candidate_images(raw_html: str) -> List[str]:
    """All usable CDN image URLs in the page, best first, without duplicates."""
    seen = set()
    candidates = []
    for url in _GEEKDO_IMAGE_PATTERN.findall(raw_html or ""):
        if url in seen or _has_bad_fragment(url):
            continue
        seen.add(url)
        candidates.append(url)
    # sorted() is stable, so page order breaks ties
    return sorted(candidates, key=_image_priority)


def pick_best_image(raw_html: str) -> Optional[str]:
    """
    Pick the primary box image from a BGG page's raw HTML.

    The item representative image is preferred, then the image page variant,
    then the original upload. Thumbnails, avatars and crops are never picked.
    """
    candidates = find_candidate_images(raw_html)
    if not candidates:
        return None
    logger.debug(f"Found {len(candidates)} candidate images, picked {candidates[0]}")
    return candidates[0]


def is_allowed_image_url(url: Optional[str]) -> bool:
    """Check the host allow-list, the bad-fragment list and that the path looks like a picture."""
    if not url:
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False
    if (parsed.hostname or "").lower() not in IMAGE_ALLOWED_HOSTS:
        return False
    path = parsed.path.lower()
    if _has_bad_fragment(path):
        return False
    return path.endswith(IMAGE_EXTENSIONS) or bool(_PIC_SEGMENT.search(path))


def sanitize_image_url(url: str) -> str:
    """Percent-encode parentheses in the path; CDN filter segments like ``fit-in/...(...)`` break some consumers."""
    parsed = urlparse(url.strip())
    path = parsed.path.replace("(", "%28").replace(")", "%29")
    return urlunparse(parsed._replace(path=path))


def filter_image_url(url: Optional[str]) -> str:
    """Return the sanitised URL when it passes the allow-list, otherwise an empty string."""
    if not url:
        return ""
    if not is_allowed_image_url(url):
        logger.info(f"Rejected image URL: {url}")
        return ""
    return sanitize_image_url(url)


def _is_gameplay_candidate(url: str) -> bool:
    lowered = url.lower()
    return not any(fragment in lowered for fragment in GAMEPLAY_EXCLUDED_FRAGMENTS)


def _unique_allowed(urls: Iterable[str], main_image: Optional[str], limit: int) -> List[str]:
    kept: List[str] = []
    for url in urls:
        cleaned = filter_image_url(url)
        if cleaned and cleaned != main_image and cleaned not in kept:
            kept.append(cleaned)
        if len(kept) >= limit:
            break
    return kept


def pick_gameplay_images(suggested: Iterable[str], raw_html: str, main_image: Optional[str] = None) -> List[str]:
    """
    Choose the gameplay photos stored next to the box image.

    Images the model suggested win, up to ``GAMEPLAY_IMAGE_LIMIT``. Without
    usable suggestions, gallery photos from the page are used instead, up to
    ``GAMEPLAY_FALLBACK_LIMIT``. Box art representations, thumbnails and the
    main image itself are never included.
    """
    chosen = _unique_allowed(
        (url for url in suggested or [] if isinstance(url, str) and _is_gameplay_candidate(url)),
        main_image,
        GAMEPLAY_IMAGE_LIMIT,
    )
    if chosen:
        return chosen
    gallery = (
        url for url in find_candidate_images(raw_html)
        if _is_gameplay_candidate(url) and _GALLERY_PHOTO.search(url)
    )
    return _unique_allowed(gallery, main_image, GAMEPLAY_FALLBACK_LIMIT)
