import pytest

from wayside.config import CONFIG, ExplorerConfig, parse_tag_filter
from wayside.errors import ConfigError


def test_defaults_match_config_table():
    config = ExplorerConfig()
    for key, value in CONFIG.items():
        assert getattr(config, key) == value


def test_from_dict_overrides():
    config = ExplorerConfig.from_dict({"max_results": 3, "language": "fr"})
    assert config.max_results == 3
    assert config.language == "fr"


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigError, match="Unknown configuration keys: colour"):
        ExplorerConfig.from_dict({"colour": "blue"})


@pytest.mark.parametrize("overrides", [
    {"base_distance_threshold_m": 0},
    {"speed_reference_baseline_kmh": -5},
    {"min_radius_m": 6000, "max_radius_m": 5000},
    {"radius_growth_factor": 0.5},
    {"importance_threshold": 1.5},
    {"min_sentences": 9, "default_max_sentences": 7},
    {"max_results": -1},
    {"provider": "bing"},
    {"tag_filters": ["no colon here"]},
])
def test_invalid_values_rejected(overrides):
    with pytest.raises(ConfigError):
        ExplorerConfig.from_dict(overrides)


def test_to_dict_masks_credentials():
    data = ExplorerConfig(gemini_api_key="secret").to_dict()
    assert data["gemini_api_key"] == "SET"
    assert data["geoapify_api_key"] == "NOT SET"
    assert "secret" not in str(data)


def test_parse_tag_filter():
    assert parse_tag_filter("tourism:hotel") == [("tourism", "hotel")]
    assert parse_tag_filter("access:private AND fee:") == [("access", "private"), ("fee", "")]
    assert parse_tag_filter("broken AND amenity:bench") == [("amenity", "bench")]
