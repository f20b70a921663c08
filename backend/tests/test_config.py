from pathlib import Path

from conftest import TEST_DATA_DIR
from core import config


def test_config_reads_test_environment_at_import():
    assert config.QA_MODE is True
    assert config.OPENAI_API_KEY == "test-key"
    assert config.SESSION_STORE_PATH == Path(TEST_DATA_DIR) / "sessions.jsonl"
    assert config.ARTIFACT_ROOT.startswith(TEST_DATA_DIR)
