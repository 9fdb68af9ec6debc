"""
Validation scenarios.

Each scenario logs its name, runs one flow end to end and raises
AggregateFailureError (an AssertionError) carrying the grouped report when
anything failed. Passing scenarios return their report.
"""

import logging
from typing import Iterable, Optional

from siteqa.browser_config import HEADLESS_CONFIG, PROXY_CONFIG
from siteqa.checks import (
    CheckKey,
    CheckRegistry,
    CodeBlocksRenderedCheck,
    VatPricesInEUCheck,
    default_registry,
)
from siteqa.config import QAConfig
from siteqa.constants import CODE_BLOCK_RENDER_WAIT_SECONDS, CRAWL_FETCH_FAILURE_KEY
from siteqa.corpus import load_corpus, to_absolute
from siteqa.exceptions import AggregateFailureError
from siteqa.infrastructure.page_session import (
    PageSession,
    SessionFactory,
    playwright_session_factory,
)
from siteqa.infrastructure.proxy import ProxyConfig
from siteqa.infrastructure.rate_limiter import get_shared_limiter
from siteqa.link_crawler import CrawlResult, IncorrectlyLinkedUrlsRule, LinkCrawlController
from siteqa.models import Fail, FailureRecord, RunReport
from siteqa.orchestrator import Orchestrator, SequentialRunner, default_worker_count
from siteqa.retry import RetryingCheckRunner
from siteqa.skip_policy import SkipPolicy

logger = logging.getLogger(__name__)


def run_check_scenario(
    name: str,
    keys: Optional[Iterable[str]] = None,
    config: Optional[QAConfig] = None,
    session_factory: Optional[SessionFactory] = None,
    registry: Optional[CheckRegistry] = None,
    corpus: Optional[Iterable[str]] = None,
    workers: Optional[int] = None,
    sequential: bool = False,
) -> RunReport:
    """
    Run checks over the whole corpus.

    Args:
        name: Scenario name, logged and used as the report header
        keys: Check keys to run; every registered check when None
        config: Run configuration; read from the environment when omitted
        session_factory: Produces unopened page sessions
        registry: Checks to select from; the article checks when omitted
        corpus: Article URLs; loaded from the configured source when omitted
        workers: Pool size; config value or available parallelism when omitted
        sequential: Traverse on one thread through the shared rate limiter

    Returns:
        RunReport of a run without failures

    Raises:
        AggregateFailureError: If any check failed on any page
    """
    logger.info(f"Running Test - {name}")

    config = config or QAConfig.from_env()
    registry = registry or default_registry()
    session_factory = session_factory or playwright_session_factory(HEADLESS_CONFIG)
    urls = list(corpus) if corpus is not None else load_corpus(config)
    checks = registry.select(keys)

    logger.info(
        f"The test will ignore URLs newer than {config.ignore_urls_newer_than_weeks} weeks"
    )

    options = dict(
        skip_policy=SkipPolicy.from_config(config),
        name=name,
        draft_site_host=config.draft_site_host,
    )
    if sequential:
        limiter = get_shared_limiter(config.rate_limit_per_second)
        runner = SequentialRunner(urls, checks, session_factory, limiter, **options)
    else:
        runner = Orchestrator(
            urls,
            checks,
            session_factory,
            workers=workers or config.workers,
            **options,
        )

    return runner.run_and_assert()


def run_empty_code_block_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnArticleLoads_thenArticleHasNoEmptyCodeBlock",
        [CheckKey.EMPTY_CODE_BLOCK],
        **kwargs,
    )


def run_single_shortcode_at_top_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnArticleLoads_thenItHasSingleShortcodeAtTheTop",
        [CheckKey.SINGLE_SHORTCODE_AT_TOP],
        **kwargs,
    )


def run_single_shortcode_at_end_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnArticleLoads_thenItHasSingleShortcodeAtTheEnd",
        [CheckKey.SINGLE_SHORTCODE_AT_END],
        **kwargs,
    )


def run_image_alt_attribute_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnalyzingImages_thenImagesDoNotHaveEmptyAltAttribute",
        [CheckKey.IMAGE_ALT_ATTRIBUTE],
        **kwargs,
    )


def run_excerpt_matches_description_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnalyzingExcerpt_thenItShouldNotBeEmptyAndShouldMatchDescription",
        [CheckKey.EXCERPT_MATCHES_DESCRIPTION],
        **kwargs,
    )


def run_draft_site_images_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnalysingImages_thenImagesDoNotPoinToTheDraftsSite",
        [CheckKey.DRAFT_SITE_IMAGES],
        **kwargs,
    )


def run_meta_image_absolute_path_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnArticleLoads_thenMetaOGImageAndTwitterImagePointToTheAbsolutePath",
        [CheckKey.META_IMAGE_ABSOLUTE_PATH],
        **kwargs,
    )


def run_code_blocks_rendered_scenario(**kwargs) -> RunReport:
    # Run alone, the highlighter gets time to finish before the snapshot
    kwargs.setdefault(
        "registry",
        CheckRegistry([CodeBlocksRenderedCheck(settle_seconds=CODE_BLOCK_RENDER_WAIT_SECONDS)]),
    )
    return run_check_scenario(
        "givenAllArticles_whenAnalyzingCodeBlocks_thenCodeBlocksAreRenderedProperly",
        [CheckKey.CODE_BLOCKS_RENDERED],
        **kwargs,
    )


def run_no_overlapping_text_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnArticleLoads_thenItDoesNotContainOverlappingText",
        [CheckKey.NO_OVERLAPPING_TEXT],
        **kwargs,
    )


def run_single_optin_in_sidebar_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnArticleLoads_thenItIsHasASingleOptinInTheSidebar",
        [CheckKey.SINGLE_OPTIN_IN_SIDEBAR],
        **kwargs,
    )


def run_single_optin_after_content_scenario(**kwargs) -> RunReport:
    return run_check_scenario(
        "givenAllArticles_whenAnArticleLoads_thenItIsHasASingleOptinInTheAfterPostContent",
        [CheckKey.SINGLE_OPTIN_AFTER_CONTENT],
        **kwargs,
    )


def run_all_technical_checks(**kwargs) -> RunReport:
    """Every article check in a single pass over the corpus."""
    return run_check_scenario(
        "givenAllLongRunningTests_whenHittingAllArticles_thenOK",
        None,
        **kwargs,
    )


SCENARIOS = {
    CheckKey.EMPTY_CODE_BLOCK.value: run_empty_code_block_scenario,
    CheckKey.SINGLE_SHORTCODE_AT_TOP.value: run_single_shortcode_at_top_scenario,
    CheckKey.SINGLE_SHORTCODE_AT_END.value: run_single_shortcode_at_end_scenario,
    CheckKey.IMAGE_ALT_ATTRIBUTE.value: run_image_alt_attribute_scenario,
    CheckKey.EXCERPT_MATCHES_DESCRIPTION.value: run_excerpt_matches_description_scenario,
    CheckKey.DRAFT_SITE_IMAGES.value: run_draft_site_images_scenario,
    CheckKey.META_IMAGE_ABSOLUTE_PATH.value: run_meta_image_absolute_path_scenario,
    CheckKey.CODE_BLOCKS_RENDERED.value: run_code_blocks_rendered_scenario,
    CheckKey.NO_OVERLAPPING_TEXT.value: run_no_overlapping_text_scenario,
    CheckKey.SINGLE_OPTIN_IN_SIDEBAR.value: run_single_optin_in_sidebar_scenario,
    CheckKey.SINGLE_OPTIN_AFTER_CONTENT.value: run_single_optin_after_content_scenario,
}
"""Single-check scenarios by check key."""


def _proxy_session_opener(session_factory: SessionFactory, proxy: ProxyConfig):
    def open_session() -> PageSession:
        session = session_factory()
        try:
            session.open_with_proxy(proxy)
        except Exception:
            session.close()
            raise
        return session
    return open_session


def run_eu_vat_pricing_scenario(
    config: Optional[QAConfig] = None,
    session_factory: Optional[SessionFactory] = None,
) -> RunReport:
    """
    Load the course page through the EU proxy and require VAT prices.

    Load errors are retried on a fresh proxied session up to the configured
    bound; after that the last error propagates as RetryExhaustedError.

    Raises:
        AggregateFailureError: If the page loaded but shows no VAT prices
        RetryExhaustedError: If every attempt raised
        ConfigurationError: If no proxy is configured
    """
    name = "givenOnTheCoursePage_whenThePageLoadsInEUCountry_thenTheVATPricesAreShown"
    logger.info(f"Running Test - {name}")

    config = config or QAConfig.from_env()
    proxy = ProxyConfig.from_qa_config(config)
    session_factory = session_factory or playwright_session_factory(PROXY_CONFIG)

    runner = RetryingCheckRunner(
        _proxy_session_opener(session_factory, proxy),
        max_attempts=config.max_retry_attempts,
        draft_site_host=config.draft_site_host,
    )
    check = VatPricesInEUCheck(proxy_address=proxy.address)
    url = to_absolute(config.base_url, config.vat_course_page)

    outcome = runner.run(check, url)

    report = RunReport(name=name)
    if isinstance(outcome, Fail):
        report.failures = {
            check.key: [FailureRecord(check.key, url, outcome.detail, outcome.count)]
        }
        raise AggregateFailureError(report)
    return report


def run_incorrectly_linked_urls_crawl(
    parallelism: Optional[int] = None,
    rule: Optional[IncorrectlyLinkedUrlsRule] = None,
    controller: Optional[LinkCrawlController] = None,
) -> CrawlResult:
    """
    Crawl the tutorials repository for links off the canonical repository.

    Pages that could not be fetched fail the crawl under
    CRAWL_FETCH_FAILURE_KEY next to the flagged links.

    Raises:
        AggregateFailureError: If any flagged link was found or any page
            could not be fetched
    """
    rule = rule or IncorrectlyLinkedUrlsRule()
    controller = controller or LinkCrawlController()
    parallelism = parallelism or default_worker_count()

    logger.info(f"Running Test - {rule.name}")
    logger.info(f"No of CPU cores: {default_worker_count()}")

    result = controller.start_crawl(rule, parallelism)

    for page_url, links in result.matching_urls.items():
        logger.info(f"{page_url}: {len(links)} flagged link(s)")

    failures = {}
    if result.matching_urls:
        failures[rule.name] = [
            FailureRecord(rule.name, link, f"linked from {page_url}")
            for page_url, links in result.matching_urls.items()
            for link in links
        ]
    if result.errors:
        failures[CRAWL_FETCH_FAILURE_KEY] = [
            FailureRecord(CRAWL_FETCH_FAILURE_KEY, page_url, error)
            for page_url, error in result.errors.items()
        ]

    if failures:
        report = RunReport(
            name=rule.name,
            urls_served=result.pages_crawled,
            load_errors=len(result.errors),
        )
        report.failures = failures
        raise AggregateFailureError(report)
    return result
