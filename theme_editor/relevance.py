"""
Relevance selector — picks which theme files to show the model for a
free-text request.

The keyword table below reflects the standard section/snippet layout of
Shopify's reference themes.  Matching is heuristic; a missed file can always
be attached by hand.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .models import ThemeFile

logger = logging.getLogger(__name__)

MAX_RELEVANT_FILES = 10
SIZE_CEILING = 100_000

FALLBACK_FILES = (
    "layout/theme.liquid",
    "assets/base.css",
    "config/settings_data.json",
)

# Lowercase substring → exact paths or "dir/prefix*" wildcards.
KEYWORD_PATTERNS: dict[str, tuple[str, ...]] = {
    "header": ("sections/header.liquid", "snippets/header-*.liquid", "layout/theme.liquid"),
    "footer": ("sections/footer.liquid", "snippets/footer-*.liquid"),
    "nav": ("sections/header.liquid", "snippets/header-*.liquid", "snippets/menu-*.liquid"),
    "navigation": ("sections/header.liquid", "snippets/header-*.liquid", "snippets/menu-*.liquid"),
    "menu": ("sections/header.liquid", "snippets/header-*.liquid", "snippets/menu-*.liquid"),
    "cart": ("sections/cart-*.liquid", "snippets/cart-*.liquid", "templates/cart.json", "assets/cart.js"),
    "product": ("sections/main-product.liquid", "sections/product-*.liquid",
                "snippets/product-*.liquid", "snippets/price.liquid", "templates/product.json"),
    "collection": ("sections/main-collection-*.liquid", "sections/collection-*.liquid",
                   "templates/collection.json"),
    "announcement": ("sections/announcement-bar.liquid", "sections/header.liquid"),
    "banner": ("sections/announcement-bar.liquid", "sections/image-banner.liquid", "sections/slideshow.liquid"),
    "hero": ("sections/image-banner.liquid", "sections/slideshow.liquid", "sections/rich-text.liquid"),
    "font": ("sections/header.liquid", "layout/theme.liquid", "config/settings_schema.json", "assets/base.css"),
    "color": ("config/settings_schema.json", "config/settings_data.json", "assets/base.css", "layout/theme.liquid"),
    "button": ("assets/base.css", "assets/section-*.css", "snippets/price.liquid"),
    "style": ("assets/base.css", "assets/section-*.css", "layout/theme.liquid"),
    "css": ("assets/base.css", "assets/section-*.css"),
    "layout": ("layout/theme.liquid", "layout/password.liquid"),
    "template": ("layout/theme.liquid",),
    "blog": ("sections/main-blog.liquid", "sections/blog-post.liquid", "templates/blog.json", "templates/article.json"),
    "article": ("sections/main-article.liquid", "templates/article.json"),
    "page": ("sections/main-page.liquid", "templates/page.json"),
    "search": ("sections/main-search.liquid", "templates/search.json"),
    "contact": ("sections/contact-form.liquid", "templates/page.contact.json"),
    "login": ("templates/customers/login.json", "sections/main-login.liquid"),
    "account": ("templates/customers/account.json", "sections/main-account.liquid"),
    "checkout": ("layout/checkout.liquid",),
    "password": ("layout/password.liquid", "templates/password.json"),
    "404": ("templates/404.json", "sections/main-404.liquid"),
    "gift": ("templates/gift_card.liquid",),
    "featured": ("sections/featured-collection.liquid", "sections/featured-product.liquid"),
    "newsletter": ("sections/newsletter.liquid", "snippets/newsletter-*.liquid"),
    "popup": ("sections/popup.liquid", "snippets/popup-*.liquid"),
    "slider": ("sections/slideshow.liquid", "sections/image-banner.liquid"),
    "slideshow": ("sections/slideshow.liquid",),
    "testimonial": ("sections/testimonials.liquid", "sections/multicolumn.liquid"),
    "image": ("sections/image-banner.liquid", "sections/image-with-text.liquid"),
    "video": ("sections/video.liquid", "sections/video-*.liquid"),
    "rich text": ("sections/rich-text.liquid",),
    "multicolumn": ("sections/multicolumn.liquid",),
    "collapsible": ("sections/collapsible-content.liquid",),
    "faq": ("sections/collapsible-content.liquid",),
    "settings": ("config/settings_schema.json", "config/settings_data.json"),
    "icon": ("snippets/icon-*.liquid",),
    "social": ("snippets/social-icons.liquid", "sections/footer.liquid"),
    "seo": ("snippets/seo.liquid", "layout/theme.liquid"),
    "meta": ("snippets/meta-*.liquid", "layout/theme.liquid"),
}


def _file_priority(filename: str) -> int:
    """Templates first, then stylesheets, then JSON config, then the rest."""
    if filename.endswith(".liquid"):
        return 0
    if filename.endswith(".css"):
        return 1
    if filename.endswith(".json"):
        return 2
    return 3


def _resolve_pattern(pattern: str, inventory: Sequence[ThemeFile],
                     known: set[str], size_ceiling: int) -> list[str]:
    if "*" not in pattern:
        return [pattern] if pattern in known else []
    prefix = pattern.split("*", 1)[0]
    return [
        f.filename for f in inventory
        if f.filename.startswith(prefix)
        and not f.is_bulk_asset
        and f.size < size_ceiling
    ]


def _mentioned_files(lower_prompt: str, inventory: Iterable[ThemeFile]) -> list[str]:
    mentioned: list[str] = []
    for f in inventory:
        basename = f.basename.lower()
        if not basename:
            continue
        stem = basename.rsplit(".", 1)[0] if "." in basename else basename
        if basename in lower_prompt or (stem and stem in lower_prompt):
            mentioned.append(f.filename)
    return mentioned


def select_relevant_files(
    prompt: str,
    inventory: Sequence[ThemeFile],
    limit: int = MAX_RELEVANT_FILES,
    size_ceiling: int = SIZE_CEILING,
) -> list[str]:
    """Return up to *limit* filenames from *inventory* relevant to *prompt*.

    Deterministic: the same prompt and inventory always give the same list.
    """
    lower = prompt.lower()
    known = {f.filename for f in inventory}
    matched: dict[str, None] = {}

    for keyword, patterns in KEYWORD_PATTERNS.items():
        if keyword not in lower:
            continue
        for pattern in patterns:
            for filename in _resolve_pattern(pattern, inventory, known, size_ceiling):
                matched.setdefault(filename)

    for filename in _mentioned_files(lower, inventory):
        matched.setdefault(filename)

    if not matched:
        for filename in FALLBACK_FILES:
            if filename in known:
                matched.setdefault(filename)

    # sorted() is stable, so ties keep discovery order.
    ordered = sorted(matched, key=_file_priority)
    selected = ordered[:limit]
    logger.debug("[Relevance] %d candidate(s), selected: %s",
                 len(ordered), ", ".join(selected) or "(none)")
    return selected
