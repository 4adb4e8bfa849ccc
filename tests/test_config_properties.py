"""Property-based tests for configuration and edition lookup."""

import os
from unittest.mock import patch

from hypothesis import given
from hypothesis import strategies as st

from cartoon_news.config import LOCATION_LOCALES, Config
from cartoon_news.filters import resolve_locale


class TestConfigProperties:
    @given(st.integers(min_value=1, max_value=1000))
    def test_news_limit_read_from_environment(self, limit):
        with patch.dict(os.environ, {"DEFAULT_NEWS_LIMIT": str(limit)}, clear=True):
            config = Config()

        assert config.get_news_config().default_limit == limit

    @given(st.text(alphabet="abcxyz .!?-", max_size=10))
    def test_garbage_numbers_use_default(self, value):
        with patch.dict(os.environ, {"MAX_RETRIES": value}, clear=True):
            config = Config()

        assert config.get_retry_config().max_retries == 3

    @given(st.sampled_from(sorted(LOCATION_LOCALES)))
    def test_city_lookup_ignores_case(self, city):
        assert resolve_locale(city.upper()) == LOCATION_LOCALES[city]
        assert resolve_locale(city.lower()) == LOCATION_LOCALES[city]
