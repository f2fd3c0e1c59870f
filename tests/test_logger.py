"""
Tests for the central logger.
"""

import pytest

from multisampler.utils.logger import LogLevel, logger


@pytest.fixture
def messages():
    received = []

    def on_message(msg, level, timestamp):
        received.append((msg, level))

    logger.signal_emitter.log_message.connect(on_message)
    yield received
    logger.signal_emitter.log_message.disconnect(on_message)


class TestLogger:
    """Component tagging and handlers."""

    def test_component_and_details(self, messages):
        logger.info("Preset written", component="PRESET", details="4 parts")
        assert messages[-1] == ("[PRESET] Preset written - 4 parts", LogLevel.INFO)

    def test_mapping_is_debug(self, messages):
        logger.mapping("Key 60: added layer 1")
        assert messages[-1] == ("[MAP] Key 60: added layer 1", LogLevel.DEBUG)

    def test_model_mutations_are_logged(self, messages, model, kick_ref):
        model.add_sample(60, kick_ref)
        assert any(msg.startswith("[MAP] Key 60: added 'kick'") for msg, _ in messages)

    def test_gui_level(self, messages):
        logger.set_gui_level(LogLevel.WARNING)
        try:
            logger.info("hidden")
            logger.warning("shown")
        finally:
            logger.set_gui_level(LogLevel.DEBUG)
        assert [msg for msg, _ in messages] == ["shown"]

    def test_file_logging(self, tmp_path):
        path = tmp_path / "multisampler.log"
        logger.enable_file_logging(str(path))
        try:
            logger.adv("Encoded 3 parts")
        finally:
            logger.disable_file_logging()
        assert "[ADV] Encoded 3 parts" in path.read_text()
