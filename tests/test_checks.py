"""Tests for article checks and the check registry."""

import pytest

from siteqa.checks import (
    Check,
    CheckKey,
    CheckRegistry,
    CodeBlocksRenderedCheck,
    DraftSiteImagesCheck,
    EmptyCodeBlockCheck,
    ExcerptMatchesDescriptionCheck,
    ImageAltAttributeCheck,
    MetaImageAbsolutePathCheck,
    NoOverlappingTextCheck,
    SingleOptinAfterContentCheck,
    SingleOptinInSidebarCheck,
    SingleShortcodeAtEndCheck,
    SingleShortcodeAtTopCheck,
    VatPricesInEUCheck,
    _SingleOptinCheck,
    _SingleShortcodeCheck,
    article_checks,
    default_registry,
)
from siteqa.content_model import ArticlePage
from siteqa.models import PASS, Fail

URL = "https://www.baeldung.com/java-streams"


def page_for(html, overlaps=0):
    return ArticlePage(URL, html, evaluate=lambda script, arg=None: overlaps)


class TestArticleChecks:
    """Every article check passes on a clean page and fails on a broken one."""

    @pytest.mark.parametrize("check", article_checks(), ids=lambda c: c.key)
    def test_clean_article_passes(self, check, make_article):
        assert check.evaluate(page_for(make_article())) == PASS

    def test_empty_code_block(self, make_article):
        outcome = EmptyCodeBlockCheck().evaluate(page_for(make_article(body="<pre></pre><pre></pre>")))

        assert isinstance(outcome, Fail)
        assert outcome.count == 2

    def test_shortcodes(self, make_article):
        outcome = SingleShortcodeAtTopCheck().evaluate(page_for(make_article(shortcodes=False)))
        assert outcome == Fail(detail="found 0 shortcodes at the top")

        body = '<div class="short_box short_end">one</div>'
        outcome = SingleShortcodeAtEndCheck().evaluate(page_for(make_article(body=body)))
        assert outcome == Fail(detail="found 2 shortcodes at the end")

    def test_image_alt_lists_sources(self, make_article):
        body = '<img src="/a.png" alt=""><img src="/b.png">'
        outcome = ImageAltAttributeCheck().evaluate(page_for(make_article(body=body)))

        assert outcome == Fail(detail="/a.png, /b.png", count=2)

    def test_excerpt_must_match_description(self, make_article):
        outcome = ExcerptMatchesDescriptionCheck().evaluate(
            page_for(make_article(excerpt="Something else"))
        )
        assert outcome == Fail(
            detail="description : [Learn the basics], excerpt : [Something else]"
        )

    def test_excerpt_must_not_be_empty(self, make_article):
        outcome = ExcerptMatchesDescriptionCheck().evaluate(
            page_for(make_article(description="", excerpt=""))
        )
        assert isinstance(outcome, Fail)

    def test_draft_site_images_count_both_kinds(self, make_article):
        body = (
            '<img src="https://drafts.baeldung.com/a.png" alt="a">'
            '<a href="https://drafts.baeldung.com/b.png">b</a>'
        )
        outcome = DraftSiteImagesCheck().evaluate(page_for(make_article(body=body)))

        assert outcome.count == 2
        assert "img: https://drafts.baeldung.com/a.png" in outcome.detail
        assert "a: https://drafts.baeldung.com/b.png" in outcome.detail

    def test_meta_image_absolute_path(self, make_article):
        outcome = MetaImageAbsolutePathCheck().evaluate(
            page_for(make_article(og_image="/cover.png"))
        )
        assert outcome == Fail(detail="og:image not absolute")

    def test_code_blocks_rendered(self, make_article):
        body = '<pre class="brush: java;">code</pre>'
        outcome = CodeBlocksRenderedCheck().evaluate(page_for(make_article(body=body)))
        assert isinstance(outcome, Fail)

    def test_overlapping_text(self, make_article):
        outcome = NoOverlappingTextCheck().evaluate(page_for(make_article(), overlaps=2))
        assert outcome.count == 2

    def test_optins(self, make_article):
        assert isinstance(
            SingleOptinInSidebarCheck().evaluate(page_for(make_article(sidebar_optins=0))), Fail
        )
        assert isinstance(
            SingleOptinAfterContentCheck().evaluate(page_for(make_article(after_content_optins=2))),
            Fail,
        )

    def test_vat_prices(self):
        check = VatPricesInEUCheck(proxy_address="eu.proxy:8080")

        assert check.evaluate(page_for('<span class="vat-price">€10</span>')) == PASS
        outcome = check.evaluate(page_for("<p>$10</p>"))
        assert outcome.detail == "VAT prices not displayed in EU region. Proxy Server:eu.proxy:8080"

    def test_skip_declarations(self):
        """Checks declare their own age and category skip rules."""
        assert SingleOptinInSidebarCheck.compare_age is False
        assert SingleOptinAfterContentCheck.compare_age is False
        assert EmptyCodeBlockCheck.compare_age is True
        assert "java-weekly" in SingleShortcodeAtTopCheck.excluded_categories
        assert "java-weekly" in CodeBlocksRenderedCheck.excluded_categories

    def test_position_bases_are_abstract(self):
        """Shortcode and opt-in bases need a concrete location to count."""
        with pytest.raises(TypeError):
            _SingleShortcodeCheck()
        with pytest.raises(TypeError):
            _SingleOptinCheck()

    def test_settle_seconds(self):
        assert CodeBlocksRenderedCheck().settle_seconds == 0.0
        assert CodeBlocksRenderedCheck(settle_seconds=1.0).settle_seconds == 1.0


class TestCheckRegistry:
    """Test cases for CheckRegistry."""

    def test_default_registry_has_eleven_checks(self):
        registry = default_registry()

        assert len(registry) == 11
        assert CheckKey.VAT_PRICES_IN_EU not in registry
        assert CheckKey.EMPTY_CODE_BLOCK in registry
        assert "no-overlapping-text" in registry

    def test_keys_are_unique(self):
        keys = [check.key for check in article_checks()]
        assert len(keys) == len(set(keys))

    def test_select_in_given_order(self):
        registry = default_registry()
        selected = registry.select(["image-alt-attribute", CheckKey.EMPTY_CODE_BLOCK])

        assert [c.key for c in selected] == ["image-alt-attribute", "empty-code-block"]

    def test_select_all(self):
        registry = default_registry()
        assert [c.key for c in registry.select()] == registry.keys()

    def test_select_unknown_key(self):
        with pytest.raises(KeyError):
            default_registry().select(["no-such-check"])

    def test_register_and_unregister(self):
        class TitleCheck(Check):
            key = "title-present"

            def evaluate(self, page):
                return PASS

        registry = CheckRegistry()
        registry.register(TitleCheck())
        assert registry.keys() == ["title-present"]

        with pytest.raises(ValueError):
            registry.register(TitleCheck())

        removed = registry.unregister("title-present")
        assert removed.key == "title-present"
        assert len(registry) == 0

    def test_register_requires_key(self):
        class Nameless(Check):
            def evaluate(self, page):
                return PASS

        with pytest.raises(ValueError):
            CheckRegistry().register(Nameless())
