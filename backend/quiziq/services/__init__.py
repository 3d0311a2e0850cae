"""
Services package for business logic layer.
"""
from quiziq.services.ingestion import EventIngestionPipeline, client_ip_from
from quiziq.services.origins import extract_origin, is_origin_allowed
from quiziq.services.rate_limit import (
    InMemoryRateLimiter,
    RateLimiter,
    RateLimitResult,
    RedisRateLimiter,
    build_rate_limiter,
)
from quiziq.services.reports import PdfRenderer, build_report, render_html, render_leads_csv, render_txt
from quiziq.services.stats import StatsService
from quiziq.services.trackers import TrackerRegistry

__all__ = [
    # Collector
    "EventIngestionPipeline",
    "client_ip_from",
    "extract_origin",
    "is_origin_allowed",
    # Rate limiting
    "RateLimiter",
    "RateLimitResult",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "build_rate_limiter",
    # Dashboard
    "TrackerRegistry",
    "StatsService",
    # Reports
    "build_report",
    "render_txt",
    "render_html",
    "render_leads_csv",
    "PdfRenderer",
]
