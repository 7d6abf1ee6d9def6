import pytest

from webcrawl.utils.config import Config, CrawlerConfig, get_config, load_config, validate_config


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


def test_defaults():
    config = Config()
    assert config.crawler.max_pages == 1000
    assert config.crawler.max_depth == 5
    assert config.crawler.politeness_delay == 1.0
    assert config.crawler.user_agent == "WebCrawler/1.0"
    assert config.crawler.respect_robots_txt is True
    assert config.crawler.workers == 1
    assert "spam.com" in config.crawler.blocked_domains
    assert config.monitoring.metrics_enabled is False


def test_load_partial_file_uses_defaults(tmp_path):
    path = write(tmp_path, """
crawler:
  seed_urls: ["https://example.com/"]
  max_pages: 10
  max_depth: 0
logging:
  level: debug
""")
    config = load_config(path)

    assert config.crawler.seed_urls == ["https://example.com/"]
    assert config.crawler.max_pages == 10
    assert config.crawler.max_depth == 0
    assert config.crawler.request_timeout == 5.0
    assert config.logging.level == "debug"
    assert get_config() is config


def test_empty_file_is_all_defaults(tmp_path):
    config = load_config(write(tmp_path, ""))
    assert config == Config()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "absent.yaml"))


def test_unknown_keys_are_rejected(tmp_path):
    with pytest.raises(ValueError):
        load_config(write(tmp_path, "crawler:\n  max_pagez: 3\n"))
    with pytest.raises(ValueError):
        load_config(write(tmp_path, "redis:\n  host: localhost\n"))


@pytest.mark.parametrize("field,value", [
    ("max_pages", 0),
    ("max_depth", -1),
    ("politeness_delay", -0.5),
    ("request_timeout", 0),
    ("workers", 0),
    ("drain_interval", 0),
])
def test_invalid_values(field, value):
    config = Config(crawler=CrawlerConfig(**{field: value}))
    with pytest.raises(ValueError):
        validate_config(config)


def test_invalid_log_level():
    config = Config()
    config.logging.level = "LOUD"
    with pytest.raises(ValueError):
        validate_config(config)
    config.logging.level = "warning"
    validate_config(config)
