"""Concurrent article QA harness."""

__version__ = "0.1.0"

from siteqa.aggregator import FailureAggregator
from siteqa.checks import (
    Check,
    CheckKey,
    CheckRegistry,
    article_checks,
    default_registry,
)
from siteqa.config import QAConfig, settings
from siteqa.content_model import ArticlePage
from siteqa.cursor import SharedUrlCursor
from siteqa.exceptions import (
    AggregateFailureError,
    ConfigurationError,
    CorpusError,
    RetryExhaustedError,
    SessionError,
    SiteQAError,
)
from siteqa.link_crawler import CrawlResult, IncorrectlyLinkedUrlsRule, LinkCrawlController
from siteqa.metrics import MetricsRecorder
from siteqa.models import (
    PASS,
    CheckMetrics,
    ExecutionError,
    Fail,
    FailureRecord,
    Outcome,
    Pass,
    RunReport,
)
from siteqa.orchestrator import Orchestrator, SequentialRunner
from siteqa.retry import RetryingCheckRunner
from siteqa.skip_policy import SkipPolicy
from siteqa.worker import WorkerLoop

# Infrastructure
from siteqa.infrastructure import (
    PageSession,
    PlaywrightPageSession,
    ProxyConfig,
    TokenBucketLimiter,
)

__all__ = [
    # Core
    "Orchestrator",
    "SequentialRunner",
    "WorkerLoop",
    "SharedUrlCursor",
    "FailureAggregator",
    "MetricsRecorder",
    "SkipPolicy",
    "RetryingCheckRunner",
    "LinkCrawlController",
    "IncorrectlyLinkedUrlsRule",
    # Checks
    "Check",
    "CheckKey",
    "CheckRegistry",
    "article_checks",
    "default_registry",
    "ArticlePage",
    # Models
    "Pass",
    "Fail",
    "ExecutionError",
    "Outcome",
    "PASS",
    "FailureRecord",
    "CheckMetrics",
    "RunReport",
    "CrawlResult",
    # Config
    "QAConfig",
    "settings",
    # Errors
    "SiteQAError",
    "AggregateFailureError",
    "ConfigurationError",
    "CorpusError",
    "RetryExhaustedError",
    "SessionError",
    # Infrastructure
    "PageSession",
    "PlaywrightPageSession",
    "ProxyConfig",
    "TokenBucketLimiter",
]
