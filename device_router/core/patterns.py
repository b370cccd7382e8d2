"""Pattern tables for bot screening and User-Agent form factor detection.

Tables are plain lists of compiled patterns grouped by family. Callers can
pass their own lists to ``is_bot_signals`` and ``classify_from_headers`` or
extend these to add new signatures without touching control flow.
"""

from __future__ import annotations

import re
from collections.abc import Iterable


def compile_patterns(sources: Iterable[str], flags: int = re.I) -> list[re.Pattern[str]]:
    """Compile a list of regex sources with shared flags."""
    return [re.compile(source, flags) for source in sources]


def matches_any(value: str | None, patterns: Iterable[re.Pattern[str]]) -> bool:
    """Return True if ``value`` is non-empty and any pattern matches it."""
    if not value:
        return False
    return any(pattern.search(value) for pattern in patterns)


# Generic crawler vocabulary
CRAWLER_UA_PATTERNS = compile_patterns([r"bot", r"crawl", r"spider", r"slurp"])

# AI fetchers and training crawlers
AI_FETCHER_UA_PATTERNS = compile_patterns(
    [
        r"chatgpt",
        r"anthropic",
        r"claude[-_]",
        r"google-extended",
        r"googleagent",
        r"gemini",
        r"perplexity",
        r"mistralai",
        r"cohere",
        r"deepseek",
        r"xai-grok",
        r"grok-deepsearch",
        r"meta-externalagent",
        r"meta-webindexer",
        r"webzio",
        r"bytedance",
        r"omgili",
    ]
)

# Link preview fetchers
SOCIAL_PREVIEW_UA_PATTERNS = compile_patterns([r"facebookexternalhit", r"whatsapp"])

# Headless browsers and automation frameworks
AUTOMATION_UA_PATTERNS = compile_patterns(
    [r"headlesschrome", r"phantomjs", r"puppeteer", r"playwright", r"selenium"]
)

# Command line tools and HTTP client libraries
HTTP_CLIENT_UA_PATTERNS = compile_patterns(
    [
        r"wget",
        r"curl",
        r"httpie",
        r"python-requests",
        r"go-http-client",
        r"java/",
        r"perl",
        r"ruby",
        r"scrapy",
        r"apache-httpclient",
    ]
)

BOT_UA_PATTERNS: list[re.Pattern[str]] = [
    *CRAWLER_UA_PATTERNS,
    *AI_FETCHER_UA_PATTERNS,
    *SOCIAL_PREVIEW_UA_PATTERNS,
    *AUTOMATION_UA_PATTERNS,
    *HTTP_CLIENT_UA_PATTERNS,
]

# Software renderers reported by headless browsers
HEADLESS_GPU_PATTERNS = compile_patterns(
    [r"swiftshader", r"llvmpipe", r"software rasterizer"]
)

MOBILE_UA_PATTERNS = compile_patterns(
    [
        r"Mobile",
        r"iPhone",
        r"iPod",
        r"Android.*Mobile",
        r"webOS",
        r"BlackBerry",
        r"Opera Mini",
        r"IEMobile",
    ]
)

TABLET_UA_PATTERNS = compile_patterns(
    [r"iPad", r"Android(?!.*Mobile)", r"Tablet", r"Silk", r"Kindle", r"PlayBook"]
)
