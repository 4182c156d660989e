import pytest

import channelsync.config as config_module
from channelsync.constants import DEFAULT_JOBS, DEFAULT_REQUEST_TIMEOUT
from channelsync.exceptions import ConfigFileError, ConfigValidationError


@pytest.mark.configuration
@pytest.mark.unit
def test_config_exists_default_missing():
    """No file at the default location reports (False, None)."""
    assert config_module.config_exists() == (False, None)


@pytest.mark.configuration
@pytest.mark.unit
def test_config_exists_explicit(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("JOBS: 2\n")
    assert config_module.config_exists(str(path)) == (True, str(path))


@pytest.mark.configuration
@pytest.mark.unit
def test_load_config_missing_default_is_empty():
    assert config_module.load_config() == {}


@pytest.mark.configuration
@pytest.mark.unit
def test_load_config_from_default_location():
    with open(config_module.CONFIG_FILE, "w", encoding="utf-8") as f:
        f.write("CACHE_DIR: /srv/mirror\nJOBS: 8\nHOST: https://mirror.example/\n")

    config = config_module.load_config()

    assert config == {
        "CACHE_DIR": "/srv/mirror",
        "JOBS": 8,
        "HOST": "https://mirror.example/",
    }


@pytest.mark.configuration
@pytest.mark.unit
def test_load_config_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigFileError):
        config_module.load_config(str(tmp_path / "absent.yaml"))


@pytest.mark.configuration
@pytest.mark.unit
def test_load_config_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("JOBS: [1, 2\n")
    with pytest.raises(ConfigFileError) as exc_info:
        config_module.load_config(str(path))
    assert "Failed to parse configuration" in str(exc_info.value)


@pytest.mark.configuration
@pytest.mark.unit
def test_load_config_not_a_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigValidationError):
        config_module.load_config(str(path))


@pytest.mark.configuration
@pytest.mark.unit
def test_load_config_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert config_module.load_config(str(path)) == {}


@pytest.mark.configuration
@pytest.mark.unit
@pytest.mark.parametrize(
    "config, override, expected",
    [
        ({}, None, DEFAULT_JOBS),
        ({"JOBS": 6}, None, 6),
        ({"JOBS": "3"}, None, 3),
        ({"JOBS": 6}, 2, 2),
        ({"JOBS": 0}, None, 1),
        ({"JOBS": -4}, None, 1),
        ({"JOBS": "many"}, None, DEFAULT_JOBS),
        ({"JOBS": None}, None, DEFAULT_JOBS),
    ],
)
def test_get_jobs(config, override, expected):
    assert config_module.get_jobs(config, override) == expected


@pytest.mark.configuration
@pytest.mark.unit
def test_get_jobs_warns_on_invalid_value(mocker):
    mock_logger = mocker.patch("channelsync.config.logger")
    config_module.get_jobs({"JOBS": "many"})
    mock_logger.warning.assert_called_once()


@pytest.mark.configuration
@pytest.mark.unit
@pytest.mark.parametrize(
    "config, expected",
    [
        ({}, float(DEFAULT_REQUEST_TIMEOUT)),
        ({"REQUEST_TIMEOUT": 30}, 30.0),
        ({"REQUEST_TIMEOUT": "12.5"}, 12.5),
        ({"REQUEST_TIMEOUT": 0}, float(DEFAULT_REQUEST_TIMEOUT)),
        ({"REQUEST_TIMEOUT": "soon"}, float(DEFAULT_REQUEST_TIMEOUT)),
    ],
)
def test_get_request_timeout(config, expected):
    assert config_module.get_request_timeout(config) == expected
