"""PageSpeed Insights summary with Gemini-written recommendations.

Mobile and desktop audits run concurrently; each is reduced to category
scores, six core metrics and the top five opportunities and diagnostics.
Recommendations degrade to a fixed list when Gemini is unavailable or
answers with text that is not valid JSON.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List

from usefreetools.config import GEMINI_TIMEOUT, PAGESPEED_TIMEOUT
from usefreetools.errors import ErrorKind, ToolError, UpstreamError, report_exception, run_with_timeout
from usefreetools.gemini_client import get_gemini_client
from usefreetools.pagespeed_client import PageSpeedClient, get_pagespeed_client

LOG = logging.getLogger(__name__)

STRATEGIES = ("mobile", "desktop")
TOP_FINDINGS = 5

CATEGORY_TITLES = {
    "performance": "Performance",
    "accessibility": "Accessibility",
    "best-practices": "Best Practices",
    "seo": "SEO",
}

# short name -> Lighthouse audit id
METRIC_AUDITS = {
    "fcp": "first-contentful-paint",
    "lcp": "largest-contentful-paint",
    "tbt": "total-blocking-time",
    "cls": "cumulative-layout-shift",
    "si": "speed-index",
    "tti": "interactive",
}

FALLBACK_RECOMMENDATIONS = [
    "Optimize images by using modern formats like WebP and implementing lazy loading.",
    "Minimize JavaScript execution time by code splitting and removing unused code.",
    "Reduce server response time by implementing caching and using a CDN.",
    "Eliminate render-blocking resources by deferring non-critical CSS and JavaScript.",
    "Improve Largest Contentful Paint by optimizing your largest image or text block.",
    "Minimize Cumulative Layout Shift by setting explicit dimensions for images and embeds.",
]


def _percent(score: Any) -> int:
    return round((score or 0) * 100)


def _failing(audit: Dict[str, Any], detail_type: str) -> bool:
    details = audit.get("details") or {}
    score = audit.get("score")
    return details.get("type") == detail_type and score is not None and score < 1


def summarize_report(data: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a raw ``runPagespeed`` response to the fields the UI shows."""
    lighthouse = data.get("lighthouseResult") or {}
    audits = lighthouse.get("audits") or {}
    categories = lighthouse.get("categories") or {}

    category_scores = {
        key: {
            "score": _percent((categories.get(key) or {}).get("score")),
            "title": (categories.get(key) or {}).get("title") or title,
        }
        for key, title in CATEGORY_TITLES.items()
    }

    metrics = {}
    for name, audit_id in METRIC_AUDITS.items():
        audit = audits.get(audit_id) or {}
        metrics[name] = {
            "score": _percent(audit.get("score")),
            "displayValue": audit.get("displayValue") or "N/A",
            "numericValue": audit.get("numericValue") or 0,
        }

    opportunities = [
        {
            "title": audit.get("title"),
            "description": audit.get("description"),
            "displayValue": audit.get("displayValue"),
            "score": _percent(audit.get("score")),
        }
        for audit in audits.values()
        if _failing(audit, "opportunity")
    ]
    opportunity_titles = {o["title"] for o in opportunities}
    diagnostics = [
        {
            "title": audit.get("title"),
            "description": audit.get("description"),
            "displayValue": audit.get("displayValue"),
        }
        for audit in audits.values()
        if _failing(audit, "table") and audit.get("title") not in opportunity_titles
    ]

    return {
        "categories": category_scores,
        "metrics": metrics,
        "opportunities": opportunities[:TOP_FINDINGS],
        "diagnostics": diagnostics[:TOP_FINDINGS],
    }


def recommendations_prompt(url: str, mobile: Dict[str, Any], desktop: Dict[str, Any]) -> str:
    m_cat, d_cat, m_met = mobile["categories"], desktop["categories"], mobile["metrics"]
    top = "\n".join(
        f"- {o['title']}: {o.get('displayValue') or ''}" for o in mobile["opportunities"][:3]
    )
    return f"""As a web performance expert, analyze these PageSpeed Insights results and provide 6 specific, actionable recommendations:

URL: {url}

MOBILE RESULTS:
- Performance: {m_cat['performance']['score']}/100
- Accessibility: {m_cat['accessibility']['score']}/100
- Best Practices: {m_cat['best-practices']['score']}/100
- SEO: {m_cat['seo']['score']}/100

Core Metrics (Mobile):
- FCP: {m_met['fcp']['displayValue']}
- LCP: {m_met['lcp']['displayValue']}
- TBT: {m_met['tbt']['displayValue']}
- CLS: {m_met['cls']['displayValue']}

DESKTOP RESULTS:
- Performance: {d_cat['performance']['score']}/100
- Accessibility: {d_cat['accessibility']['score']}/100

Top Opportunities (Mobile):
{top}

Provide exactly 6 prioritized recommendations as a JSON array of strings. Focus on the most impactful improvements.

Return ONLY the JSON array, no other text."""


def parse_recommendations(text: str) -> List[str]:
    """Parse a JSON array, tolerating a Markdown code fence around it.

    Raises ``ValueError`` when the text is not valid JSON.
    """
    body = text.strip()
    if body.startswith("```"):
        body = body.split("\n", 1)[1] if "\n" in body else ""
        body = body.rsplit("```", 1)[0]
    parsed = json.loads(body)
    if not isinstance(parsed, list):
        return []
    return [str(item) for item in parsed]


async def _recommendations(url: str, mobile: Dict[str, Any], desktop: Dict[str, Any]) -> List[str]:
    try:
        client = get_gemini_client()
        text = await run_with_timeout(
            client.generate,
            recommendations_prompt(url, mobile, desktop),
            timeout=GEMINI_TIMEOUT,
            label="gemini pagespeed recommendations",
        )
        return parse_recommendations(text)
    except (ToolError, UpstreamError, ValueError) as exc:
        LOG.warning("Using fallback PageSpeed recommendations: %s", exc)
        return list(FALLBACK_RECOMMENDATIONS)


async def _audit(client: PageSpeedClient, url: str, strategy: str) -> Dict[str, Any]:
    data = await run_with_timeout(
        client.run, url, strategy,
        timeout=PAGESPEED_TIMEOUT,
        label=f"pagespeed {strategy}",
        message="PageSpeed analysis timed out. Please try again later.",
    )
    return summarize_report(data)


async def analyze(url: str) -> Dict[str, Any]:
    client = get_pagespeed_client()
    try:
        mobile, desktop = await asyncio.gather(*(_audit(client, url, s) for s in STRATEGIES))
    except UpstreamError as exc:
        LOG.warning("PageSpeed analysis failed for %s: %s", url, exc)
        report_exception(exc, endpoint="pagespeed", service="pagespeed")
        raise ToolError(
            ErrorKind.SERVICE_UNAVAILABLE,
            "PageSpeed service temporarily unavailable. Please try again later.",
            code="PAGESPEED_SERVICE_UNAVAILABLE",
        ) from exc

    recommendations = await _recommendations(url, mobile, desktop)
    LOG.info(
        "PageSpeed analysed %s: mobile=%d desktop=%d",
        url, mobile["categories"]["performance"]["score"], desktop["categories"]["performance"]["score"],
    )
    return {
        "mobile": mobile,
        "desktop": desktop,
        "recommendations": recommendations,
        "analyzedUrl": url,
    }


__all__ = [
    "FALLBACK_RECOMMENDATIONS",
    "analyze",
    "parse_recommendations",
    "recommendations_prompt",
    "summarize_report",
]
