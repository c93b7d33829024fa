from loguru import logger

from resilient_api import ConfigLoader, init_logger


def test_init_logger_writes_to_file(tmp_path):
    log_file = tmp_path / "logs" / "api.log"
    config = ConfigLoader(config_path=tmp_path / "absent.yaml")

    init_logger(level="debug", log_file=str(log_file), config=config, force=True)
    logger.info("file sink check")
    logger.complete()

    assert "file sink check" in log_file.read_text(encoding="utf-8")
    # drop the file sink before tmp_path goes away
    init_logger(level="INFO", config=config, force=True)


def test_level_from_config(tmp_path, monkeypatch):
    log_file = tmp_path / "api.log"
    monkeypatch.setenv("LOGGING_LEVEL", "WARNING")
    config = ConfigLoader(config_path=tmp_path / "absent.yaml")

    init_logger(log_file=str(log_file), config=config, force=True)
    logger.info("hidden")
    logger.warning("shown")

    text = log_file.read_text(encoding="utf-8")
    assert "shown" in text
    assert "hidden" not in text
    init_logger(level="INFO", config=config, force=True)
