import pytest

from taskboard_engine.config import StagingConfig, load_config

_VARS = (
    "TASKBOARD_AUTO_ENHANCEMENT",
    "TASKBOARD_DUPLICATE_DETECTION",
    "TASKBOARD_DUPLICATE_THRESHOLD",
    "TASKBOARD_MAX_STAGED",
    "TASKBOARD_RECURRENCE_MAX_ITERATIONS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so monkeypatch restores the original (unset) state even
    # when load_dotenv writes the variable during the test.
    for name in _VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults_match_board_client():
    config = StagingConfig()
    assert config.duplicate_threshold == 0.7
    assert config.confidence_threshold == 0.6
    assert config.max_staged == 50
    assert config.auto_enhancement and config.duplicate_detection


def test_load_config_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("TASKBOARD_AUTO_ENHANCEMENT", "off")
    monkeypatch.setenv("TASKBOARD_DUPLICATE_THRESHOLD", "0.85")
    config = load_config(str(tmp_path / "missing.env"))
    assert config.auto_enhancement is False
    assert config.duplicate_detection is True
    assert config.duplicate_threshold == 0.85


def test_load_config_reads_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("TASKBOARD_MAX_STAGED=7\nTASKBOARD_DUPLICATE_DETECTION=0\n", encoding="utf-8")
    config = load_config(str(env_file))
    assert config.max_staged == 7
    assert config.duplicate_detection is False


def test_load_config_rejects_bad_numbers(monkeypatch, tmp_path):
    monkeypatch.setenv("TASKBOARD_MAX_STAGED", "lots")
    with pytest.raises(ValueError, match="TASKBOARD_MAX_STAGED"):
        load_config(str(tmp_path / "missing.env"))


def test_load_config_reads_recurrence_cap(monkeypatch, tmp_path):
    monkeypatch.setenv("TASKBOARD_RECURRENCE_MAX_ITERATIONS", "25")
    assert load_config(str(tmp_path / "missing.env")).recurrence_max_iterations == 25
