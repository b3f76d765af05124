"""
Tests for Locale Negotiation
----------------------------
"""

from app.services import negotiate_locale
from app.services.locale import parse_accept_language, path_locale


class TestParseAcceptLanguage:
    """Tests for parse_accept_language."""

    def test_quality_ordering(self):
        assert parse_accept_language("en;q=0.5, es-MX, fr;q=0.8") == ["es", "fr", "en"]

    def test_zero_and_invalid_quality_dropped(self):
        assert parse_accept_language("de;q=0, es;q=abc, en") == ["en"]

    def test_wildcard_and_empty(self):
        assert parse_accept_language("*") == []
        assert parse_accept_language(None) == []


class TestNegotiateLocale:
    """Tests for negotiate_locale."""

    def test_prefixed_path_is_not_redirected(self, test_settings):
        decision = negotiate_locale("/es/cursos", "", "es", None, test_settings)
        assert decision.locale == "es"
        assert not decision.is_redirect
        assert not decision.persist_locale

    def test_prefixed_path_persists_changed_locale(self, test_settings):
        decision = negotiate_locale("/es", "", "en", None, test_settings)
        assert decision.locale == "es"
        assert decision.persist_locale

    def test_root_redirects_to_default(self, test_settings):
        decision = negotiate_locale("/", "", None, None, test_settings)
        assert decision.redirect_to == "/en"

    def test_accept_language_picks_locale(self, test_settings):
        decision = negotiate_locale("/news", "", None, "es-ES,es;q=0.9,en;q=0.8", test_settings)
        assert decision.redirect_to == "/es/news"

    def test_locale_cookie_wins_over_header(self, test_settings):
        decision = negotiate_locale("/news", "", "en", "es", test_settings)
        assert decision.redirect_to == "/en/news"

    def test_unsupported_cookie_is_ignored(self, test_settings):
        decision = negotiate_locale("/news", "", "fr", None, test_settings)
        assert decision.redirect_to == "/en/news"

    def test_query_string_is_kept(self, test_settings):
        decision = negotiate_locale("/search", "q=ia&page=2", None, None, test_settings)
        assert decision.redirect_to == "/en/search?q=ia&page=2"

    def test_exempt_prefix_is_not_redirected(self, test_settings):
        decision = negotiate_locale("/api/session", "", None, "es", test_settings)
        assert not decision.is_redirect
        assert decision.locale == "es"

    def test_similar_prefix_is_not_exempt(self, test_settings):
        decision = negotiate_locale("/apiary", "", None, None, test_settings)
        assert decision.redirect_to == "/en/apiary"


class TestPathLocale:
    def test_only_first_segment_counts(self):
        assert path_locale("/news/es", ["en", "es"]) is None
        assert path_locale("/en", ["en", "es"]) == "en"
