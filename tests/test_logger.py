import logging
from logging.handlers import RotatingFileHandler

import pytest

from services import close_all_services, get_service_manager, initialize_all_services
from utils.logger import setup_logger

@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)

def test_setup_logger_writes_rotating_file(root_logger, tmp_path):
    log_file = tmp_path / "logs" / "app.log"

    setup_logger(str(log_file), level="DEBUG", console=False)
    logging.getLogger("raw.test").debug("🧪 проверка")

    file_handlers = [handler for handler in root_logger.handlers if isinstance(handler, RotatingFileHandler)]
    assert file_handlers
    file_handlers[-1].flush()
    assert "🧪 проверка" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("google").level == logging.WARNING

async def test_global_services_lifecycle(root_logger):
    assert await initialize_all_services()
    manager = get_service_manager()
    assert manager.initialized
    assert any(isinstance(handler, logging.StreamHandler) for handler in root_logger.handlers)

    await close_all_services()
    assert get_service_manager() is not manager
    await close_all_services()
