import pytest
from selenium.common.exceptions import WebDriverException

from app.features.scan.exceptions import PageInspectionError
from app.features.scan.services.discovery.link_discovery import LinkDiscoveryService

ORIGIN = "https://example.com"


def anchor(href, text=""):
    return {"href": href, "text": text}


class TestLinkSelection:
    @pytest.fixture
    def service(self):
        return LinkDiscoveryService(max_links=50, max_label_length=30)

    def test_keeps_same_origin_and_drops_external(self, service):
        links = service.select_links(ORIGIN, [
            anchor("https://example.com/about", "About"),
            anchor("https://other.com/page", "Other"),
            anchor("https://sub.example.com/page", "Sub"),
            anchor("http://example.com/insecure", "Insecure"),
            anchor("https://example.com.evil.io/phish", "Phish"),
        ])

        assert [l.url for l in links] == ["https://example.com/about"]

    def test_fragment_links_are_excluded(self, service):
        links = service.select_links(ORIGIN, [
            anchor("https://example.com/page#section", "Jump"),
            anchor("https://example.com/page", "Page"),
        ])

        assert [l.url for l in links] == ["https://example.com/page"]

    def test_duplicates_keep_first_label(self, service):
        links = service.select_links(ORIGIN, [
            anchor("https://example.com/contact", "Contact us"),
            anchor("https://example.com/pricing", "Pricing"),
            anchor("https://example.com/contact", "Get in touch"),
        ])

        assert [(l.url, l.name) for l in links] == [
            ("https://example.com/contact", "Contact us"),
            ("https://example.com/pricing", "Pricing"),
        ]

    def test_caps_at_fifty(self, service):
        anchors = [anchor(f"https://example.com/page-{i}", f"Page {i}") for i in range(75)]

        links = service.select_links(ORIGIN, anchors)

        assert len(links) == 50
        assert links[0].url == "https://example.com/page-0"
        assert links[-1].url == "https://example.com/page-49"

    def test_cap_counts_unique_urls(self, service):
        anchors = []
        for i in range(60):
            anchors.append(anchor(f"https://example.com/p{i}", "x"))
            anchors.append(anchor(f"https://example.com/p{i}", "y"))

        links = service.select_links(ORIGIN, anchors)

        assert len(links) == 50
        assert len({l.url for l in links}) == 50

    def test_empty_page_returns_empty_list(self, service):
        assert service.select_links(ORIGIN, []) == []

    def test_explicit_default_port_is_same_origin(self, service):
        links = service.select_links(ORIGIN, [anchor("https://example.com:443/a", "A")])
        assert len(links) == 1

    def test_non_http_origin_yields_nothing(self, service):
        assert service.select_links("about:blank", [anchor("https://example.com/a", "A")]) == []


class TestLabels:
    @pytest.fixture
    def service(self):
        return LinkDiscoveryService()

    def test_visible_text_is_trimmed(self, service):
        assert service.label_for("https://example.com/docs", "  Docs \n") == "Docs"

    def test_empty_text_uses_path(self, service):
        assert service.label_for("https://example.com/about-us", "") == "about us"

    def test_nested_path(self, service):
        assert service.label_for("https://example.com/blog/my_first-post/", "") == "blog my first post"

    def test_root_is_home(self, service):
        assert service.label_for("https://example.com/", "") == "Home"
        assert service.label_for("https://example.com", "   ") == "Home"

    def test_long_text_falls_back_to_path(self, service):
        text = "Read everything about our company history and values"
        assert service.label_for("https://example.com/history", text) == "history"

    def test_text_of_exactly_thirty_chars_is_kept(self, service):
        text = "x" * 30
        assert service.label_for("https://example.com/a", text) == text

    def test_unusable_path_is_untitled(self, service):
        assert service.label_for("https://example.com//", "") == "Untitled Page"


class TestDiscover:
    def test_reads_anchors_from_driver(self, make_driver):
        driver = make_driver(anchors=[
            anchor("https://example.com/", ""),
            anchor("https://example.com/about-us", ""),
        ])

        links = LinkDiscoveryService().discover(driver)

        assert [(l.url, l.name) for l in links] == [
            ("https://example.com/", "Home"),
            ("https://example.com/about-us", "about us"),
        ]
        driver.execute_script.assert_called_once()

    def test_driver_error_raises_page_inspection_error(self, make_driver):
        driver = make_driver()
        driver.execute_script.side_effect = WebDriverException("target closed")

        with pytest.raises(PageInspectionError):
            LinkDiscoveryService().discover(driver)
